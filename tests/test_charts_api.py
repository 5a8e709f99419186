from __future__ import annotations

from typing import Any

import pytest
from fastapi.testclient import TestClient

from gigamarket.errors import UpstreamUnavailable
from gigamarket.models.market import Transfer

STATUS_OK = 200
STATUS_BAD_REQUEST = 400
STATUS_ERROR = 500
T1 = 1_700_000_000


def test_chart_data_series(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    from gigamarket.api.routes import charts as c

    async def _get_transfers(item_id: str, since: int | None = None, until: int | None = None) -> list[Transfer]:
        assert since is None and until is None
        return [
            Transfer(timestamp=T1, price_per_item_eth=0.01, amount=2, total_value_eth=0.02),
            Transfer(timestamp=T1 + 60, price_per_item_eth=0.03, amount=1, total_value_eth=0.03),
        ]

    monkeypatch.setattr(c, "get_transfers", _get_transfers)

    r = client.get("/api/chart-data/11", params={"timeframe": "4h"})
    assert r.status_code == STATUS_OK
    data = r.json()
    assert len(data) == 2
    assert data[0]["itemId"] == "11"
    assert data[0]["timestamp"].startswith("2023-11-14T22:13:20")
    assert (data[0]["price"], data[0]["volume"], data[0]["ethVolume"]) == (0.01, 2, 0.02)
    assert data[1]["price"] == 0.03


def test_chart_data_failure(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    from gigamarket.api.routes import charts as c

    async def _get_transfers(item_id: str, since: int | None = None, until: int | None = None) -> list[Transfer]:
        raise UpstreamUnavailable("down")

    monkeypatch.setattr(c, "get_transfers", _get_transfers)

    r = client.get("/api/chart-data/11")
    assert r.status_code == STATUS_ERROR
    assert r.json() == {"error": "Failed to fetch chart data"}


def test_timeframe_data_bucket(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    from gigamarket.api.routes import charts as c

    seen: dict[str, Any] = {}

    async def _get_transfers(item_id: str, since: int | None = None, until: int | None = None) -> list[Transfer]:
        seen.update(since=since, until=until)
        return [
            Transfer(timestamp=T1, price_per_item_eth=0.01, amount=2, total_value_eth=0.02),
            Transfer(timestamp=T1, price_per_item_eth=0.01, amount=4, total_value_eth=0.04),
        ]

    monkeypatch.setattr(c, "get_transfers", _get_transfers)

    r = client.get("/api/timeframe-data/11", params={"timeframe": "1h", "timestamp": T1})
    assert r.status_code == STATUS_OK
    data = r.json()
    start = T1 // 3600 * 3600
    assert (data["startTime"], data["endTime"]) == (start, start + 3600)
    assert (seen["since"], seen["until"]) == (start, start + 3600)
    assert data["totalItemsSold"] == 6
    assert data["totalEthVolume"] == pytest.approx(0.06)
    assert data["timeframe"] == "1h"
    assert data["itemId"] == "11"


def test_timeframe_data_requires_timestamp(client: TestClient) -> None:
    r = client.get("/api/timeframe-data/11")
    assert r.status_code == STATUS_BAD_REQUEST
    assert r.json() == {"error": "Timestamp required"}


def test_timeframe_data_unknown_timeframe(client: TestClient) -> None:
    r = client.get("/api/timeframe-data/11", params={"timeframe": "1w", "timestamp": T1})
    assert r.status_code == STATUS_BAD_REQUEST
    assert r.json() == {"error": "Unknown timeframe"}


def test_timeframe_data_rejects_non_numeric_timestamp(client: TestClient) -> None:
    r = client.get("/api/timeframe-data/11", params={"timeframe": "1h", "timestamp": "abc"})
    assert r.status_code == STATUS_BAD_REQUEST
    assert r.json() == {"error": "Invalid parameter: timestamp"}
