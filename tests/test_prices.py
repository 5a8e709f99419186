from __future__ import annotations

from typing import Any

import httpx
import pytest
from fastapi.testclient import TestClient

from gigamarket.clients import prices as p
from gigamarket.models.market import EthPrice

STATUS_OK = 200


def _mock_client(handler: Any) -> Any:
    return lambda: httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_eth_usd_live(monkeypatch: pytest.MonkeyPatch) -> None:
    def _handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["ids"] == "ethereum"
        return httpx.Response(200, json={"ethereum": {"usd": 2412.5}})

    monkeypatch.setattr(p, "_client", _mock_client(_handler))

    price = await p.get_eth_usd()
    assert price == EthPrice(usd=2412.5, source="live")


@pytest.mark.asyncio
async def test_eth_usd_fallback_on_malformed_payload(monkeypatch: pytest.MonkeyPatch) -> None:
    def _handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"status": "rate limited"})

    monkeypatch.setattr(p, "_client", _mock_client(_handler))

    price = await p.get_eth_usd()
    assert price == EthPrice(usd=3500.0, source="fallback")


@pytest.mark.asyncio
async def test_eth_usd_fallback_on_network_error(monkeypatch: pytest.MonkeyPatch) -> None:
    def _handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("unreachable", request=request)

    monkeypatch.setattr(p, "_client", _mock_client(_handler))

    price = await p.get_eth_usd()
    assert price.source == "fallback"
    assert price.usd == 3500.0


def test_eth_price_endpoint(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    from gigamarket.api.routes import prices as route

    async def _rate() -> EthPrice:
        return EthPrice(usd=3100.0)

    monkeypatch.setattr(route, "get_eth_usd", _rate)

    r = client.get("/api/eth-price")
    assert r.status_code == STATUS_OK
    assert r.json() == {"usd": 3100.0, "source": "live"}
