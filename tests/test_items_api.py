from __future__ import annotations

from typing import Any

import httpx
import pytest
from fastapi.testclient import TestClient

from gigamarket.clients import gameitems as g
from gigamarket.errors import UpstreamQueryError, UpstreamUnavailable
from gigamarket.models.market import ItemDetails

STATUS_OK = 200
STATUS_ERROR = 500

GAMEITEMS_PAYLOAD: dict[str, Any] = {
    "entities": [
        {
            "ID_CID": 1,
            "NAME_CID": "Dust",
            "DESCRIPTION_CID": "Fine dust",
            "RARITY_NAME": "Common",
            "TYPE_CID": "Material",
            "IMG_URL_CID": "https://img/dust.png",
            "ICON_URL_CID": "https://icon/dust.png",
        },
        {
            "ID_CID": "2",
            "NAME_CID": "Shard",
            "TYPE_CID": "Material",
            "ICON_URL_CID": "https://icon/shard.png",
        },
        {"NAME_CID": "no id"},
    ]
}


def _mock_client(handler: Any) -> Any:
    return lambda: httpx.AsyncClient(transport=httpx.MockTransport(handler))


def test_build_lookup_shapes_entities() -> None:
    lookup = g.build_lookup(GAMEITEMS_PAYLOAD)

    assert set(lookup) == {"1", "2"}
    assert lookup["1"].name == "Dust"
    assert lookup["1"].image == "https://img/dust.png"
    assert lookup["1"].rarity == "Common"
    # image falls back to the icon
    assert lookup["2"].image == "https://icon/shard.png"
    assert lookup["2"].description is None


def test_build_lookup_requires_entities() -> None:
    with pytest.raises(UpstreamQueryError):
        g.build_lookup({"items": []})


@pytest.mark.asyncio
async def test_get_item_details(monkeypatch: pytest.MonkeyPatch) -> None:
    def _handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=GAMEITEMS_PAYLOAD)

    monkeypatch.setattr(g, "_client", _mock_client(_handler))

    lookup = await g.get_item_details()
    assert lookup["2"].name == "Shard"


@pytest.mark.asyncio
async def test_get_item_details_http_error(monkeypatch: pytest.MonkeyPatch) -> None:
    from gigamarket.config import settings

    calls = {"n": 0}

    def _handler(request: httpx.Request) -> httpx.Response:
        calls["n"] += 1
        return httpx.Response(503)

    monkeypatch.setattr(settings, "RETRY_MAX", 2)
    monkeypatch.setattr(g, "_client", _mock_client(_handler))

    with pytest.raises(UpstreamUnavailable):
        await g.get_item_details()
    assert calls["n"] == 2


def test_items_endpoint(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    from gigamarket.api.routes import items as i

    async def _ids() -> list[str]:
        return ["1", "2", "10"]

    monkeypatch.setattr(i, "get_item_ids", _ids)

    r = client.get("/api/items")
    assert r.status_code == STATUS_OK
    assert r.json() == ["1", "2", "10"]


def test_items_endpoint_failure(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    from gigamarket.api.routes import items as i

    async def _ids() -> list[str]:
        raise UpstreamUnavailable("down")

    monkeypatch.setattr(i, "get_item_ids", _ids)

    r = client.get("/api/items")
    assert r.status_code == STATUS_ERROR
    assert r.json() == {"error": "Failed to fetch items"}


def test_item_details_endpoint(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    from gigamarket.api.routes import items as i

    async def _details() -> dict[str, ItemDetails]:
        return g.build_lookup(GAMEITEMS_PAYLOAD)

    monkeypatch.setattr(i, "get_item_details", _details)

    r = client.get("/api/item-details")
    assert r.status_code == STATUS_OK
    data = r.json()
    assert data["1"] == {
        "id": "1",
        "name": "Dust",
        "description": "Fine dust",
        "rarity": "Common",
        "type": "Material",
        "image": "https://img/dust.png",
        "icon": "https://icon/dust.png",
    }


def test_item_details_endpoint_failure(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    from gigamarket.api.routes import items as i

    async def _details() -> dict[str, ItemDetails]:
        raise UpstreamUnavailable("down")

    monkeypatch.setattr(i, "get_item_details", _details)

    r = client.get("/api/item-details")
    assert r.status_code == STATUS_ERROR
    assert r.json() == {"error": "Failed to fetch item details"}
