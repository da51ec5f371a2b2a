import httpx

from orderflow.services.inventory_services.alerts_service import stock_state
from orderflow.utils.translation import Translator

from conftest import audit_rows


async def _create_type(client, headers, name="Woven labels"):
    response = await client.post("/api/inventory/accessory-types", headers=headers["manufacturer"], json={"name": name})
    assert response.status_code == 201
    return response.json()["data"]["id"]


async def _create_row(client, headers, seed, type_id, quantity=100, threshold=20):
    response = await client.post("/api/inventory/items", headers=headers["manufacturer"], json={
        "client_id": seed["client"].id,
        "accessory_type_id": type_id,
        "quantity_on_hand": quantity,
        "low_stock_threshold": threshold,
    })
    assert response.status_code == 201
    return response.json()["data"]


def test_stock_state_thresholds():
    assert stock_state(0, 10) == "out_of_stock"
    assert stock_state(10, 10) == "low_stock"
    assert stock_state(11, 10) == "in_stock"


async def test_type_names_are_unique_per_manufacturer(client, headers, seed):
    await _create_type(client, headers)
    duplicate = await client.post(
        "/api/inventory/accessory-types", headers=headers["manufacturer"], json={"name": "woven LABELS"},
    )
    assert duplicate.status_code == 409


async def test_admin_must_pick_a_manufacturer(client, headers, seed):
    response = await client.post("/api/inventory/accessory-types", headers=headers["admin"], json={"name": "Hang tags"})
    assert response.status_code == 422

    response = await client.post(
        "/api/inventory/accessory-types", headers=headers["admin"],
        json={"name": "Hang tags", "manufacturer_id": seed["manufacturer"].id},
    )
    assert response.status_code == 201


async def test_type_in_use_cannot_be_deleted(client, headers, seed):
    type_id = await _create_type(client, headers)
    row = await _create_row(client, headers, seed, type_id)

    blocked = await client.delete(f"/api/inventory/accessory-types/{type_id}", headers=headers["manufacturer"])
    assert blocked.status_code == 409
    assert "in use by 1 inventory item" in blocked.json()["detail"]
    assert blocked.json()["error_code"] == "CONFLICT"

    removed = await client.delete(f"/api/inventory/items/{row['id']}", headers=headers["manufacturer"])
    assert removed.status_code == 200

    deleted = await client.delete(f"/api/inventory/accessory-types/{type_id}", headers=headers["manufacturer"])
    assert deleted.status_code == 200
    assert [r.action_type for r in await audit_rows("accessory_type", type_id)] == [
        "inventory_type_created", "inventory_type_deleted",
    ]


async def test_adjust_stock_and_alerts(client, headers, seed):
    type_id = await _create_type(client, headers)
    row = await _create_row(client, headers, seed, type_id, quantity=30, threshold=20)
    assert row["stock_state"] == "in_stock"
    assert row["accessory_type_name"] == "Woven labels"

    adjusted = await client.post(
        f"/api/inventory/items/{row['id']}/adjust", headers=headers["manufacturer"],
        json={"delta": -15, "reason": "Used on ORD-0001"},
    )
    assert adjusted.json()["data"]["quantity_on_hand"] == 15
    assert adjusted.json()["data"]["stock_state"] == "low_stock"

    too_many = await client.post(
        f"/api/inventory/items/{row['id']}/adjust", headers=headers["manufacturer"], json={"delta": -16},
    )
    assert too_many.status_code == 422

    alerts = await client.get("/api/inventory/alerts/", headers=headers["manufacturer"])
    assert [a["inventory_id"] for a in alerts.json()] == [row["id"]]


async def test_client_cannot_manage_inventory(client, headers, seed):
    response = await client.get("/api/inventory/items", headers=headers["client"])
    assert response.status_code == 403


async def test_translator_round_trip():
    def handler(request):
        assert request.url.params["target"] == "en"
        return httpx.Response(200, json={"translated": "Buttons"})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
        translator = Translator(api_url="http://translate.test", client=http)
        assert await translator.to_storage("Botones") == "Buttons"
        assert await translator.for_display("Buttons", "en") == "Buttons"


async def test_translator_keeps_text_when_provider_fails():
    def handler(request):
        return httpx.Response(503)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
        translator = Translator(api_url="http://translate.test", client=http)
        assert await translator.to_storage("Botones") == "Botones"


async def test_translator_disabled_without_url():
    translator = Translator(api_url="")
    assert translator.enabled is False
    assert await translator.translate("Botones", "en") == "Botones"


async def test_translator_cache_evicts_least_recently_used():
    calls = []

    def handler(request):
        calls.append(request.url.params["text"])
        return httpx.Response(200, json={"translated": request.url.params["text"].upper()})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
        translator = Translator(api_url="http://translate.test", client=http, cache_size=2)
        await translator.translate("a", "es")
        await translator.translate("b", "es")
        await translator.translate("a", "es")
        await translator.translate("c", "es")

        assert len(translator._cache) == 2
        assert calls == ["a", "b", "c"]

        # "b" was the least recently used entry and had to be fetched again
        assert await translator.translate("b", "es") == "B"
        assert calls == ["a", "b", "c", "b"]
        assert len(translator._cache) == 2
