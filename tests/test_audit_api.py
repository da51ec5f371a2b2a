from conftest import make_order


async def _route(client, headers, product_id, role, action):
    response = await client.post(
        f"/api/order-products/{product_id}/route", headers=headers[role], json={"action": action},
    )
    assert response.status_code == 200


async def test_admin_lists_every_entry_with_display_lines(client, headers, seed, db_session):
    _, (first, second) = await make_order(
        db_session, seed, ("pending", "admin"), ("sent_to_manufacturer", "manufacturer"),
    )
    await _route(client, headers, first, "admin", "send_for_approval")
    await _route(client, headers, second, "manufacturer", "send_to_admin")

    response = await client.get("/api/audit/", headers=headers["admin"])

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 2
    assert {e["action_type"] for e in body["data"]} == {
        "product_routed_send_for_approval", "product_routed_send_to_admin",
    }
    assert all(e["label"] for e in body["data"])


async def test_manufacturer_only_sees_own_entries(client, headers, seed, db_session):
    _, (first, second) = await make_order(
        db_session, seed, ("pending", "admin"), ("sent_to_manufacturer", "manufacturer"),
    )
    await _route(client, headers, first, "admin", "send_for_approval")
    await _route(client, headers, second, "manufacturer", "send_to_admin")

    response = await client.get(
        "/api/audit/", headers=headers["manufacturer"],
        params={"user_id": seed["users"]["admin"].id},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 1
    assert body["data"][0]["user_id"] == seed["users"]["manufacturer"].id


async def test_client_cannot_list_audit(client, headers, seed):
    response = await client.get("/api/audit/", headers=headers["client"])
    assert response.status_code == 403
