from conftest import audit_rows, make_order, notifications_for


async def test_create_order_starts_in_admin_queue(client, headers, seed):
    response = await client.post("/api/orders/", headers=headers["admin"], json={
        "client_id": seed["client"].id,
        "manufacturer_id": seed["manufacturer"].id,
        "order_name": "Spring drop",
        "products": [{"product_id": seed["catalog"].id, "items": [{"variant_combo": "S / Red", "quantity": 5}]}],
    })

    assert response.status_code == 201
    order = response.json()["data"]
    assert order["order_number"] == "ORD-0001"
    assert order["products"][0]["product_order_number"] == "ORD-0001-P01"
    assert order["products"][0]["product_status"] == "pending"
    assert order["products"][0]["routed_to"] == "admin"
    assert [e.action_type for e in await audit_rows("order", order["id"])] == ["order_created"]


async def test_manufacturer_cannot_create_orders(client, headers, seed):
    response = await client.post("/api/orders/", headers=headers["manufacturer"], json={
        "client_id": seed["client"].id, "manufacturer_id": seed["manufacturer"].id,
    })
    assert response.status_code == 403


async def test_send_for_approval_writes_one_audit_row_and_no_notification(client, headers, seed, db_session):
    order_id, (product_id,) = await make_order(db_session, seed)

    response = await client.post(
        f"/api/order-products/{product_id}/route", headers=headers["admin"],
        json={"action": "send_for_approval"},
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["product_status"] == "pending_client_approval"
    assert data["routed_to"] == "client"

    rows = await audit_rows("order_product", product_id)
    assert len(rows) == 1
    assert rows[0].action_type == "product_routed_send_for_approval"
    assert rows[0].old_value == "pending"
    assert rows[0].new_value == "pending_client_approval"
    assert await notifications_for(seed["users"]["admin"].id) == []
    assert await notifications_for(seed["users"]["client"].id) == []


async def test_route_with_note_writes_two_audit_rows(client, headers, seed, db_session):
    _, (product_id,) = await make_order(db_session, seed)

    response = await client.post(
        f"/api/order-products/{product_id}/route", headers=headers["admin"],
        json={"action": "send_to_production", "notes": "Use the heavier fleece"},
    )

    assert response.status_code == 200
    assert "Use the heavier fleece" in response.json()["data"]["manufacturer_notes"]
    rows = await audit_rows("order_product", product_id)
    assert [r.action_type for r in rows] == ["product_routed_send_to_production", "routing_note"]
    assert rows[1].new_value == "Use the heavier fleece"


async def test_client_approval_notifies_order_creator(client, headers, seed, db_session):
    _, (product_id,) = await make_order(db_session, seed, ("pending_client_approval", "client"))

    response = await client.post(
        f"/api/order-products/{product_id}/route", headers=headers["client"], json={"action": "approve"},
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["product_status"] == "client_approved"
    assert data["routed_to"] == "admin"
    assert data["client_approved"] is True
    notifications = await notifications_for(seed["users"]["admin"].id)
    assert [n.type for n in notifications] == ["client_approved"]
    assert notifications[0].order_product_id == product_id


async def test_request_changes_without_note_is_rejected(client, headers, seed, db_session):
    _, (product_id,) = await make_order(db_session, seed, ("pending_client_approval", "client"))

    response = await client.post(
        f"/api/order-products/{product_id}/route", headers=headers["client"],
        json={"action": "request_changes", "notes": ""},
    )

    assert response.status_code == 422
    body = response.json()
    assert body["error_code"] == "VALIDATION_FAILED"
    assert body["retryable"] is False
    assert await audit_rows("order_product", product_id) == []


async def test_routing_from_wrong_queue_is_a_conflict(client, headers, seed, db_session):
    _, (product_id,) = await make_order(db_session, seed, ("in_production", "manufacturer"))

    response = await client.post(
        f"/api/order-products/{product_id}/route", headers=headers["admin"],
        json={"action": "send_for_approval"},
    )

    assert response.status_code == 409
    assert response.json()["error_code"] == "INVALID_TRANSITION"


async def test_stale_version_is_retryable(client, headers, seed, db_session):
    _, (product_id,) = await make_order(db_session, seed)

    response = await client.post(
        f"/api/order-products/{product_id}/route", headers=headers["admin"],
        json={"action": "send_to_production", "expected_version": 99},
    )

    assert response.status_code == 409
    assert response.json()["error_code"] == "STALE_WRITE"
    assert response.json()["retryable"] is True


async def test_version_increments_on_each_write(client, headers, seed, db_session):
    _, (product_id,) = await make_order(db_session, seed)

    first = await client.post(
        f"/api/order-products/{product_id}/route", headers=headers["admin"],
        json={"action": "send_to_manufacturer", "expected_version": 1},
    )
    assert first.status_code == 200
    assert first.json()["data"]["version"] == 2

    again = await client.patch(
        f"/api/order-products/{product_id}", headers=headers["manufacturer"],
        json={"product_price": 12.5, "expected_version": 1},
    )
    assert again.status_code == 409


async def test_lock_is_idempotent_and_couples_status(client, headers, seed, db_session):
    _, (product_id,) = await make_order(db_session, seed)
    url = f"/api/order-products/{product_id}/lock"

    locked = await client.post(url, headers=headers["admin"], json={"locked": True})
    assert locked.status_code == 200
    assert locked.json()["data"]["is_locked"] is True
    assert locked.json()["data"]["product_status"] == "in_production"

    again = await client.post(url, headers=headers["admin"], json={"locked": True})
    assert again.json()["message"] == "Product already locked"

    unlocked = await client.post(url, headers=headers["admin"], json={"locked": False})
    assert unlocked.json()["data"]["is_locked"] is False
    assert unlocked.json()["data"]["product_status"] == "pending"

    rows = await audit_rows("order_product", product_id)
    assert [r.action_type for r in rows] == ["product_locked", "product_unlocked"]


async def test_editable_toggle_keeps_status(client, headers, seed, db_session):
    _, (product_id,) = await make_order(db_session, seed, ("sent_to_manufacturer", "manufacturer"))

    response = await client.post(
        f"/api/order-products/{product_id}/editable", headers=headers["admin"], json={"editable": False},
    )

    assert response.json()["data"]["is_locked"] is True
    assert response.json()["data"]["product_status"] == "sent_to_manufacturer"


async def test_manufacturer_cannot_lock(client, headers, seed, db_session):
    _, (product_id,) = await make_order(db_session, seed)
    response = await client.post(
        f"/api/order-products/{product_id}/lock", headers=headers["manufacturer"], json={"locked": True},
    )
    assert response.status_code == 403


async def test_locked_product_refuses_manufacturer_pricing(client, headers, seed, db_session):
    _, (product_id,) = await make_order(db_session, seed, ("in_production", "manufacturer"))
    await client.post(f"/api/order-products/{product_id}/editable", headers=headers["admin"], json={"editable": False})

    response = await client.patch(
        f"/api/order-products/{product_id}", headers=headers["manufacturer"], json={"product_price": 20},
    )
    assert response.status_code == 409


async def test_manufacturer_pricing_is_audited(client, headers, seed, db_session):
    _, (product_id,) = await make_order(db_session, seed, ("sent_to_manufacturer", "manufacturer"))

    response = await client.patch(
        f"/api/order-products/{product_id}", headers=headers["manufacturer"],
        json={"product_price": 18.5, "production_time": "3 weeks"},
    )

    assert response.status_code == 200
    rows = await audit_rows("order_product", product_id, "manufacturer_pricing_updated")
    assert {c["field"] for c in rows[0].changes} == {"product_price", "production_time"}


async def test_client_cannot_edit_pricing(client, headers, seed, db_session):
    _, (product_id,) = await make_order(db_session, seed, ("pending_client_approval", "client"))
    response = await client.patch(
        f"/api/order-products/{product_id}", headers=headers["client"], json={"client_product_price": 1},
    )
    assert response.status_code == 403


async def test_get_order_hides_other_queues_and_prices(client, headers, seed, db_session):
    order_id, product_ids = await make_order(
        db_session, seed, ("sent_to_manufacturer", "manufacturer"), ("pending", "admin"),
    )

    response = await client.get(f"/api/orders/{order_id}", headers=headers["manufacturer"])

    assert response.status_code == 200
    products = response.json()["data"]["products"]
    assert [p["id"] for p in products] == [product_ids[0]]
    assert products[0]["client_product_price"] is None


async def test_delete_requires_reason_and_hides_product(client, headers, seed, db_session):
    order_id, (product_id,) = await make_order(db_session, seed)

    missing = await client.request(
        "DELETE", f"/api/order-products/{product_id}", headers=headers["admin"], json={"reason": " "},
    )
    assert missing.status_code == 422

    deleted = await client.request(
        "DELETE", f"/api/order-products/{product_id}", headers=headers["admin"], json={"reason": "Duplicate"},
    )
    assert deleted.status_code == 200

    order = await client.get(f"/api/orders/{order_id}", headers=headers["admin"])
    assert order.json()["data"]["products"] == []
    rows = await audit_rows("order_product", product_id, "product_deleted")
    assert rows[0].new_value == "Duplicate"


async def test_product_history_is_rendered(client, headers, seed, db_session):
    _, (product_id,) = await make_order(db_session, seed)
    await client.post(
        f"/api/order-products/{product_id}/route", headers=headers["admin"],
        json={"action": "send_for_approval", "notes": "Looks good"},
    )

    response = await client.get(f"/api/order-products/{product_id}/history", headers=headers["admin"])

    entries = response.json()["data"]
    labels = {e["label"] for e in entries}
    assert {"Sent for client approval", "Routing note"} <= labels
    routed = next(e for e in entries if e["action_type"] == "product_routed_send_for_approval")
    assert "Status: pending → pending client approval" in routed["lines"]
