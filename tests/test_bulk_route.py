from orderflow.models.order_models import OrderProduct

from conftest import audit_rows, fetch, make_order


async def test_bulk_route_reports_each_product(client, headers, seed, db_session):
    order_id, (ready, elsewhere) = await make_order(
        db_session, seed, ("pending", "admin"), ("in_production", "manufacturer"),
    )

    response = await client.post(
        f"/api/orders/{order_id}/route", headers=headers["admin"], json={"action": "send_for_approval"},
    )

    assert response.status_code == 200
    result = response.json()["data"]
    assert result["committed"] is True
    assert result["succeeded"] == 1
    assert result["failed"] == 1
    by_id = {r["product_id"]: r for r in result["results"]}
    assert by_id[ready]["ok"] is True
    assert by_id[ready]["routed_to"] == "client"
    assert by_id[elsewhere]["ok"] is False
    assert by_id[elsewhere]["error_code"] == "INVALID_TRANSITION"

    assert (await fetch(OrderProduct, ready)).routed_to == "client"
    assert (await fetch(OrderProduct, elsewhere)).routed_to == "manufacturer"


async def test_all_or_nothing_commits_nothing_on_failure(client, headers, seed, db_session):
    order_id, (ready, elsewhere) = await make_order(
        db_session, seed, ("pending", "admin"), ("in_production", "manufacturer"),
    )

    response = await client.post(
        f"/api/orders/{order_id}/route", headers=headers["admin"],
        json={"action": "send_for_approval", "all_or_nothing": True},
    )

    result = response.json()["data"]
    assert result["committed"] is False
    assert result["succeeded"] == 0
    by_id = {r["product_id"]: r for r in result["results"]}
    assert by_id[ready]["error_code"] == "BATCH_ABORTED"
    assert by_id[ready]["retryable"] is True
    assert (await fetch(OrderProduct, ready)).routed_to == "admin"
    assert await audit_rows("order_product", ready) == []


async def test_bulk_saves_edits_before_routing(client, headers, seed, db_session):
    order_id, (product_id,) = await make_order(db_session, seed)

    response = await client.post(
        f"/api/orders/{order_id}/route", headers=headers["admin"],
        json={
            "action": "send_for_approval",
            "notes": "Ready for review",
            "updates": {str(product_id): {"client_product_price": 42, "client_notes": "Colour matched"}},
        },
    )

    assert response.json()["data"]["succeeded"] == 1
    product = await fetch(OrderProduct, product_id)
    assert product.client_product_price == 42
    assert "Colour matched" in product.client_notes
    assert "Ready for review" in product.client_notes
    actions = [r.action_type for r in await audit_rows("order_product", product_id)]
    assert actions == ["product_updated", "note_added", "product_routed_send_for_approval", "routing_note"]


async def test_unknown_product_ids_are_reported(client, headers, seed, db_session):
    order_id, (product_id,) = await make_order(db_session, seed)

    response = await client.post(
        f"/api/orders/{order_id}/route", headers=headers["admin"],
        json={"action": "send_to_production", "product_ids": [product_id, 9999]},
    )

    result = response.json()["data"]
    assert result["succeeded"] == 1
    missing = next(r for r in result["results"] if r["product_id"] == 9999)
    assert missing["error_code"] == "NOT_FOUND"


async def test_manufacturer_bulk_only_sees_own_queue(client, headers, seed, db_session):
    order_id, (mine, admins) = await make_order(
        db_session, seed, ("sent_to_manufacturer", "manufacturer"), ("pending", "admin"),
    )

    response = await client.post(
        f"/api/orders/{order_id}/route", headers=headers["manufacturer"], json={"action": "send_to_admin"},
    )

    result = response.json()["data"]
    assert [r["product_id"] for r in result["results"]] == [mine]
    assert result["results"][0]["status"] == "pending_admin"


async def test_unknown_bulk_action_is_rejected(client, headers, seed, db_session):
    order_id, _ = await make_order(db_session, seed)
    response = await client.post(
        f"/api/orders/{order_id}/route", headers=headers["admin"], json={"action": "teleport"},
    )
    assert response.status_code == 422
