from __future__ import annotations

import asyncio

import pytest
from fastapi.testclient import TestClient
from structlog.testing import capture_logs

from gigamarket import __version__
from gigamarket.logging import _add_service
from gigamarket.models.market import Listing
from gigamarket.services.batching import chunks, gather_in_batches

STATUS_OK = 200


def test_healthz(client: TestClient) -> None:
    r = client.get("/healthz")
    assert r.status_code == STATUS_OK
    data = r.json()
    assert data["status"] == "ok"
    assert "version" in data
    assert data["redis"] is None
    assert r.headers["X-Request-ID"]


def test_request_id_is_echoed(client: TestClient) -> None:
    r = client.get("/healthz", headers={"X-Request-ID": "abc-123"})
    assert r.headers["X-Request-ID"] == "abc-123"


def test_request_log_line_names_item(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    from gigamarket.api.routes import book as b

    async def _listings(item_id: str) -> list[Listing]:
        return []

    monkeypatch.setattr(b, "get_active_listings", _listings)

    with capture_logs() as logs:
        client.get("/api/orderbook/42")

    line = next(e for e in logs if e["event"] == "api_request")
    assert line["item_id"] == "42"
    assert line["status_code"] == STATUS_OK
    assert line["path"] == "/api/orderbook/42"


def test_log_lines_carry_service() -> None:
    event = _add_service(None, "info", {"event": "startup"})
    assert event["service"] == "gigamarket"
    assert event["version"] == __version__


def test_banner_without_ui_build(client: TestClient) -> None:
    r = client.get("/")
    assert r.status_code == STATUS_OK
    assert r.json()["status"] == "running"


def test_chunks() -> None:
    assert list(chunks(range(7), 3)) == [[0, 1, 2], [3, 4, 5], [6]]
    assert list(chunks([], 3)) == []


@pytest.mark.asyncio
async def test_gather_in_batches_bounds_concurrency() -> None:
    state = {"now": 0, "max": 0}

    async def _work(x: int) -> int:
        state["now"] += 1
        state["max"] = max(state["max"], state["now"])
        await asyncio.sleep(0)
        state["now"] -= 1
        return x * 2

    out = await gather_in_batches(list(range(12)), _work, batch_size=5)

    assert out == [x * 2 for x in range(12)]
    assert state["max"] == 5
