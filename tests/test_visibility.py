from conftest import make_order


async def _history_lines(client, headers, role, product_id):
    response = await client.get(f"/api/order-products/{product_id}/history", headers=headers[role])
    assert response.status_code == 200
    return [line for entry in response.json()["data"] for line in entry["lines"]]


async def test_client_never_reads_manufacturer_pricing_or_internal_notes(client, headers, seed, db_session):
    _, (product_id,) = await make_order(db_session, seed, ("pending_client_approval", "client"))
    priced = await client.patch(
        f"/api/order-products/{product_id}", headers=headers["super_admin"],
        json={"product_price": 12.5, "client_product_price": 30, "internal_notes": "margin is 300%"},
    )
    assert priced.status_code == 200
    assert priced.json()["data"]["product_price"] == 12.5

    lines = await _history_lines(client, headers, "client", product_id)
    assert "Client price set to $30" in lines
    assert not any("margin is 300%" in line or "$12.50" in line for line in lines)

    approved = await client.post(
        f"/api/order-products/{product_id}/route", headers=headers["client"], json={"action": "approve"},
    )

    assert approved.status_code == 200
    data = approved.json()["data"]
    assert data["product_status"] == "client_approved"
    assert data["client_product_price"] == 30
    assert data["product_price"] is None
    assert data["internal_notes"] is None
    assert data["admin_notes"] is None


async def test_manufacturer_never_reads_client_pricing(client, headers, seed, db_session):
    _, (product_id,) = await make_order(db_session, seed, ("sent_to_manufacturer", "manufacturer"))
    await client.patch(
        f"/api/order-products/{product_id}", headers=headers["admin"],
        json={"client_product_price": 45, "internal_notes": "Ask for a discount"},
    )

    response = await client.patch(
        f"/api/order-products/{product_id}", headers=headers["manufacturer"], json={"product_price": 20},
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["product_price"] == 20
    assert data["client_product_price"] is None
    assert data["internal_notes"] is None

    lines = await _history_lines(client, headers, "manufacturer", product_id)
    assert "Product price set to $20" in lines
    assert not any(line.startswith(("Client price", "Internal note")) for line in lines)


async def test_admin_notes_stay_out_of_client_history(client, headers, seed, db_session):
    _, (product_id,) = await make_order(db_session, seed, ("pending_client_approval", "client"))
    await client.patch(
        f"/api/order-products/{product_id}", headers=headers["admin"], json={"admin_notes": "Chase the invoice"},
    )

    lines = await _history_lines(client, headers, "client", product_id)
    assert not any("Chase the invoice" in line for line in lines)


async def test_hidden_products_read_as_missing(client, headers, seed, db_session):
    order_id, (product_id,) = await make_order(db_session, seed, ("pending_client_approval", "client"))
    order = await client.get(f"/api/orders/{order_id}", headers=headers["admin"])
    item_id = order.json()["data"]["products"][0]["items"][0]["id"]

    visible = await client.get(f"/api/orders/{order_id}", headers=headers["manufacturer"])
    assert visible.json()["data"]["products"] == []

    maker = headers["manufacturer"]
    pricing = await client.patch(f"/api/order-products/{product_id}", headers=maker, json={"product_price": 99})
    note = await client.post(f"/api/order-products/{product_id}/notes", headers=maker, json={"text": "Hello"})
    item = await client.patch(f"/api/order-items/{item_id}/status", headers=maker, json={"status": "approved"})
    history = await client.get(f"/api/order-products/{product_id}/history", headers=maker)

    for response in (pricing, note, item, history):
        assert response.status_code == 404
        assert response.json()["error_code"] == "NOT_FOUND"


async def test_sample_fee_is_redacted_for_client(client, headers, seed, db_session):
    order_id, _ = await make_order(
        db_session, seed, sample_required=True, sample_status="pending", sample_fee=40, client_sample_fee=72,
    )

    response = await client.patch(
        f"/api/orders/{order_id}/sample", headers=headers["client"], json={"notes": "Blue please"},
    )

    assert response.status_code == 200
    sample = response.json()["data"]
    assert sample["sample_fee"] is None
    assert sample["client_sample_fee"] == 72

    order = await client.get(f"/api/orders/{order_id}", headers=headers["client"])
    assert order.json()["data"]["sample_fee"] is None
