from orderflow.models.order_models import Order
from orderflow.services.order_services.sample_service import client_fee

from conftest import audit_rows, fetch, make_order, notifications_for


def test_client_fee_adds_margin():
    assert client_fee(100, 80) == 180.0
    assert client_fee(20, 50) == 30.0
    assert client_fee(None, 80) is None


async def test_manufacturer_fee_uses_default_margin(client, headers, seed, db_session):
    order_id, _ = await make_order(db_session, seed)

    response = await client.patch(
        f"/api/orders/{order_id}/sample", headers=headers["manufacturer"], json={"fee": 50, "eta": "2 weeks"},
    )

    assert response.status_code == 200
    sample = response.json()["data"]
    assert sample["sample_fee"] == 50
    assert sample["client_sample_fee"] is None
    assert sample["sample_required"] is True
    assert sample["sample_status"] == "pending"
    assert (await fetch(Order, order_id)).client_sample_fee == 90
    rows = await audit_rows("order", order_id, "order_sample_updated")
    assert len(rows) == 1


async def test_custom_client_margin_is_applied(client, headers, seed, db_session):
    order_id, _ = await make_order(db_session, seed)
    margin = await client.patch(
        f"/api/clients/{seed['client'].id}/sample-margin", headers=headers["admin"],
        json={"custom_sample_margin_percentage": 25},
    )
    assert margin.status_code == 200

    response = await client.patch(f"/api/orders/{order_id}/sample", headers=headers["admin"], json={"fee": 40})

    assert response.json()["data"]["client_sample_fee"] == 50


async def test_empty_sample_update_clears_the_request(client, headers, seed, db_session):
    order_id, _ = await make_order(db_session, seed, sample_required=True, sample_status="pending")

    response = await client.patch(f"/api/orders/{order_id}/sample", headers=headers["admin"], json={})

    sample = response.json()["data"]
    assert sample["sample_required"] is False
    assert sample["sample_status"] == "no_sample"


async def test_client_may_only_add_notes(client, headers, seed, db_session):
    order_id, _ = await make_order(db_session, seed, sample_required=True, sample_status="pending")

    denied = await client.patch(f"/api/orders/{order_id}/sample", headers=headers["client"], json={"fee": 1})
    assert denied.status_code == 403

    noted = await client.patch(
        f"/api/orders/{order_id}/sample", headers=headers["client"], json={"notes": "Need it by Friday"},
    )
    assert noted.status_code == 200
    assert noted.json()["data"]["sample_notes"].endswith("- Client] Need it by Friday")


async def test_route_sample_to_manufacturer_notifies_their_users(client, headers, seed, db_session):
    order_id, _ = await make_order(db_session, seed, sample_required=True, sample_status="pending")

    response = await client.post(
        f"/api/orders/{order_id}/sample/route", headers=headers["admin"],
        json={"destination": "manufacturer", "notes": "Two sizes please"},
    )

    assert response.status_code == 200
    sample = response.json()["data"]
    assert sample["sample_routed_to"] == "manufacturer"
    assert sample["sample_workflow_status"] == "sent_to_manufacturer"
    assert [n.type for n in await notifications_for(seed["users"]["manufacturer"].id)] == ["sample_routed"]
    rows = await audit_rows("order", order_id, "sample_routed")
    assert rows[0].old_value == "admin"
    assert rows[0].new_value == "manufacturer"


async def test_sample_cannot_be_routed_by_the_wrong_holder(client, headers, seed, db_session):
    order_id, _ = await make_order(db_session, seed, sample_required=True, sample_status="pending")

    response = await client.post(
        f"/api/orders/{order_id}/sample/route", headers=headers["manufacturer"], json={"destination": "admin"},
    )

    assert response.status_code == 409


async def test_request_sample_opens_the_order_sample(client, headers, seed, db_session):
    order_id, (product_id,) = await make_order(db_session, seed)

    response = await client.post(
        f"/api/order-products/{product_id}/route", headers=headers["admin"], json={"action": "request_sample"},
    )

    assert response.json()["data"]["product_status"] == "sample_requested"
    order = await fetch(Order, order_id)
    assert order.sample_required is True
    assert order.sample_status == "pending"
    assert order.sample_routed_to == "manufacturer"
