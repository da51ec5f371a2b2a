from conftest import make_order


async def test_manufacturer_question_reaches_creator_inbox(client, headers, seed, db_session):
    _, (product_id,) = await make_order(
        db_session, seed, ("sent_to_manufacturer", "manufacturer"), created_by="order_creator",
    )
    await client.post(
        f"/api/order-products/{product_id}/route", headers=headers["manufacturer"],
        json={"action": "send_to_admin", "notes": "Which thread colour?"},
    )

    inbox = await client.get("/api/notifications/", headers=headers["order_creator"])

    assert inbox.status_code == 200
    body = inbox.json()
    assert body["unread_count"] == 1
    assert body["data"][0]["type"] == "manufacturer_question"
    assert body["data"][0]["message"] == "Manufacturer has a question about ORD-0001-P01"

    notification_id = body["data"][0]["id"]
    read = await client.post(f"/api/notifications/{notification_id}/read", headers=headers["order_creator"])
    assert read.json()["data"]["is_read"] is True

    other = await client.post(f"/api/notifications/{notification_id}/read", headers=headers["admin"])
    assert other.status_code == 404


async def test_mark_all_read(client, headers, seed, db_session):
    order_id, _ = await make_order(
        db_session, seed, ("sent_to_manufacturer", "manufacturer"), ("sent_to_manufacturer", "manufacturer"),
    )
    await client.post(f"/api/orders/{order_id}/route", headers=headers["manufacturer"], json={"action": "send_to_admin"})

    response = await client.post("/api/notifications/read-all", headers=headers["admin"])

    assert response.json()["updated"] == 2
    inbox = await client.get("/api/notifications/?unread_only=true", headers=headers["admin"])
    assert inbox.json()["unread_count"] == 0
    assert inbox.json()["data"] == []


async def test_catalog_and_media(client, headers, seed, db_session):
    created = await client.post("/api/catalog/products", headers=headers["admin"], json={"title": "Bomber jacket"})
    assert created.status_code == 201
    listing = await client.get("/api/catalog/products", headers=headers["client"])
    assert {p["title"] for p in listing.json()["data"]} == {"Hoodie", "Bomber jacket"}

    order_id, (product_id,) = await make_order(db_session, seed)
    media = await client.post(f"/api/orders/{order_id}/media", headers=headers["admin"], json={
        "file_url": "orders/1/front.png", "original_filename": "front.png", "order_product_id": product_id,
    })
    assert media.status_code == 201
    order = await client.get(f"/api/orders/{order_id}", headers=headers["admin"])
    assert [m["original_filename"] for m in order.json()["data"]["media"]] == ["front.png"]
