from datetime import timedelta

from orderflow.models.order_models import OrderItem, OrderProduct
from orderflow.utils.time_utils import utcnow

from conftest import audit_rows, fetch, make_order


async def _first_item_id(client, headers, order_id):
    order = await client.get(f"/api/orders/{order_id}", headers=headers["admin"])
    return order.json()["data"]["products"][0]["items"][0]["id"]


# ---------------------------
# Item approval
# ---------------------------
async def test_item_status_sets_the_column_of_the_acting_side(client, headers, seed, db_session):
    order_id, _ = await make_order(db_session, seed, ("sent_to_manufacturer", "manufacturer"))
    item_id = await _first_item_id(client, headers, order_id)

    admin = await client.patch(f"/api/order-items/{item_id}/status", headers=headers["admin"], json={"status": "approved"})
    maker = await client.patch(
        f"/api/order-items/{item_id}/status", headers=headers["manufacturer"], json={"status": "rejected"},
    )

    assert admin.status_code == 200
    assert maker.status_code == 200
    assert maker.json()["data"]["admin_status"] == "approved"
    assert maker.json()["data"]["manufacturer_status"] == "rejected"

    rows = await audit_rows("order_item", item_id, "item_status_changed")
    assert [r.changes[0]["field"] for r in rows] == ["admin_status", "manufacturer_status"]
    assert [(r.old_value, r.new_value) for r in rows] == [("pending", "approved"), ("pending", "rejected")]


async def test_item_status_unchanged_writes_nothing(client, headers, seed, db_session):
    order_id, _ = await make_order(db_session, seed)
    item_id = await _first_item_id(client, headers, order_id)

    response = await client.patch(f"/api/order-items/{item_id}/status", headers=headers["admin"], json={"status": "pending"})

    assert response.status_code == 200
    assert await audit_rows("order_item", item_id) == []
    assert (await fetch(OrderItem, item_id)).admin_status == "pending"


async def test_client_cannot_approve_items(client, headers, seed, db_session):
    order_id, _ = await make_order(db_session, seed, ("pending_client_approval", "client"))
    item_id = await _first_item_id(client, headers, order_id)

    response = await client.patch(f"/api/order-items/{item_id}/status", headers=headers["client"], json={"status": "approved"})
    assert response.status_code == 403


# ---------------------------
# Order history
# ---------------------------
async def test_order_history_covers_order_and_products(client, headers, seed):
    created = await client.post("/api/orders/", headers=headers["admin"], json={
        "client_id": seed["client"].id,
        "manufacturer_id": seed["manufacturer"].id,
        "products": [
            {"product_id": seed["catalog"].id, "items": [{"variant_combo": "S / Red", "quantity": 5}]},
            {"product_id": seed["catalog"].id, "items": [{"variant_combo": "L / Red", "quantity": 2}]},
        ],
    })
    order = created.json()["data"]
    first, second = (p["id"] for p in order["products"])
    await client.post(f"/api/order-products/{first}/route", headers=headers["admin"], json={"action": "send_for_approval"})
    await client.post(f"/api/order-products/{second}/route", headers=headers["admin"], json={"action": "send_to_manufacturer"})

    admin = await client.get(f"/api/orders/{order['id']}/history", headers=headers["admin"])
    buyer = await client.get(f"/api/orders/{order['id']}/history", headers=headers["client"])

    assert admin.status_code == 200
    labels = [e["label"] for e in admin.json()["data"]]
    assert labels[-1] == "Order created"
    assert {"Sent for client approval", "Sent to manufacturer"} <= set(labels)

    seen = {(e["target_type"], e["target_id"]) for e in buyer.json()["data"]}
    assert ("order_product", first) in seen
    assert ("order_product", second) not in seen


async def test_order_history_needs_order_access(client, headers, seed, db_session):
    order_id, _ = await make_order(db_session, seed)
    seed["users"]["client"].client_id = None
    db_session.add(seed["users"]["client"])
    await db_session.commit()

    response = await client.get(f"/api/orders/{order_id}/history", headers=headers["client"])
    assert response.status_code == 403


# ---------------------------
# Unlock from any stage
# ---------------------------
async def test_unlock_returns_to_pending_from_client_approved(client, headers, seed, db_session):
    _, (product_id,) = await make_order(db_session, seed, ("client_approved", "admin"))
    await client.post(f"/api/order-products/{product_id}/editable", headers=headers["admin"], json={"editable": False})

    response = await client.post(
        f"/api/order-products/{product_id}/lock", headers=headers["admin"], json={"locked": False},
    )

    data = response.json()["data"]
    assert data["is_locked"] is False
    assert data["product_status"] == "pending"
    row = (await audit_rows("order_product", product_id, "product_unlocked"))[0]
    assert row.old_value == "client_approved"


# ---------------------------
# Restore
# ---------------------------
async def test_deleted_product_can_be_restored(client, headers, seed, db_session):
    order_id, (product_id,) = await make_order(db_session, seed, ("sent_to_manufacturer", "manufacturer"))
    await client.request(
        "DELETE", f"/api/order-products/{product_id}", headers=headers["admin"], json={"reason": "Wrong colour"},
    )

    deleted = await client.get(f"/api/orders/{order_id}/deleted-products", headers=headers["admin"])
    assert [p["deletion_reason"] for p in deleted.json()["data"]] == ["Wrong colour"]

    response = await client.post(f"/api/order-products/{product_id}/restore", headers=headers["admin"])

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["deleted_at"] is None
    assert data["product_status"] == "sent_to_manufacturer"
    order = await client.get(f"/api/orders/{order_id}", headers=headers["admin"])
    assert [p["id"] for p in order.json()["data"]["products"]] == [product_id]
    row = (await audit_rows("order_product", product_id, "product_restored"))[0]
    assert row.old_value == "Wrong colour"
    assert {c["field"] for c in row.changes} == {"deleted_at", "deletion_reason"}


async def test_restore_rejects_live_products_and_non_admins(client, headers, seed, db_session):
    _, (product_id,) = await make_order(db_session, seed)

    live = await client.post(f"/api/order-products/{product_id}/restore", headers=headers["admin"])
    assert live.status_code == 409

    denied = await client.post(f"/api/order-products/{product_id}/restore", headers=headers["order_creator"])
    assert denied.status_code == 403


# ---------------------------
# Estimated ship dates
# ---------------------------
async def test_manufacturer_sets_and_clears_ship_dates(client, headers, seed, db_session):
    order_id, (first, second) = await make_order(
        db_session, seed, ("sent_to_manufacturer", "manufacturer"), ("in_production", "manufacturer"),
    )
    url = f"/api/orders/{order_id}/ship-dates"

    response = await client.patch(url, headers=headers["manufacturer"], json={"days": {str(first): 30, str(second): 10}})

    assert response.status_code == 200
    today = utcnow().date()
    dates = {p["id"]: p["estimated_ship_date"] for p in response.json()["data"]}
    assert dates == {first: (today + timedelta(days=30)).isoformat(), second: (today + timedelta(days=10)).isoformat()}
    assert len(await audit_rows("order_product", first, "ship_date_set")) == 1

    cleared = await client.patch(url, headers=headers["manufacturer"], json={"days": {str(first): None}})

    assert cleared.status_code == 200
    assert (await fetch(OrderProduct, first)).estimated_ship_date is None
    assert (await fetch(OrderProduct, second)).estimated_ship_date == today + timedelta(days=10)
    assert len(await audit_rows("order_product", first, "ship_date_cleared")) == 1


async def test_ship_dates_are_all_or_nothing(client, headers, seed, db_session):
    order_id, (ready, reviewing) = await make_order(
        db_session, seed, ("sent_to_manufacturer", "manufacturer"), ("revision_requested", "manufacturer"),
    )

    response = await client.patch(
        f"/api/orders/{order_id}/ship-dates", headers=headers["manufacturer"],
        json={"days": {str(ready): 14, str(reviewing): 14}},
    )

    assert response.status_code == 409
    assert (await fetch(OrderProduct, ready)).estimated_ship_date is None


async def test_ship_dates_reject_hidden_products_and_bad_days(client, headers, seed, db_session):
    order_id, (product_id,) = await make_order(db_session, seed, ("pending", "admin"))
    url = f"/api/orders/{order_id}/ship-dates"

    hidden = await client.patch(url, headers=headers["manufacturer"], json={"days": {str(product_id): 7}})
    assert hidden.status_code == 404

    bad = await client.patch(url, headers=headers["admin"], json={"days": {str(product_id): 0}})
    assert bad.status_code == 422

    denied = await client.patch(url, headers=headers["client"], json={"days": {str(product_id): 7}})
    assert denied.status_code == 403
