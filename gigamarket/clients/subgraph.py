from __future__ import annotations

from collections.abc import Mapping
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from ..config import settings
from ..errors import UpstreamQueryError, UpstreamUnavailable
from ..logging import get_logger
from ..models.market import Listing, Position, SubgraphItem, Transfer

_log = get_logger()

M = TypeVar("M", bound=BaseModel)

ITEM_IDS_QUERY = """
query GetAllItems($skip: Int!, $limit: Int!) {
    items(skip: $skip, first: $limit, orderBy: id) {
        id
    }
}
"""

ITEMS_QUERY = """
query GetItems($skip: Int!, $limit: Int!) {
    items(orderBy: totalVolumeETH, orderDirection: desc, skip: $skip, first: $limit) {
        id
        totalVolumeETH
        totalTrades
        totalItemsSold
        currentPriceETH
        lastTradeTimestamp
    }
}
"""

ITEM_QUERY = """
query GetItem($itemId: ID!) {
    item(id: $itemId) {
        id
        totalVolumeETH
        totalTrades
        totalItemsSold
        currentPriceETH
        lastTradeTimestamp
    }
}
"""

TRANSFERS_QUERY = """
query GetTransfers($itemId: ID!, $skip: Int!, $limit: Int!) {
    transfers(
        where: { item: $itemId, isPurchase: true }
        orderBy: timestamp
        orderDirection: asc
        skip: $skip
        first: $limit
    ) {
        id
        timestamp
        pricePerItemETH
        amount
        totalValueETH
    }
}
"""

TRANSFERS_SINCE_QUERY = """
query GetTransfersSince($itemId: ID!, $since: BigInt!, $skip: Int!, $limit: Int!) {
    transfers(
        where: { item: $itemId, isPurchase: true, timestamp_gte: $since }
        orderBy: timestamp
        orderDirection: asc
        skip: $skip
        first: $limit
    ) {
        pricePerItemETH
        totalValueETH
        amount
        timestamp
    }
}
"""

TRANSFERS_BETWEEN_QUERY = """
query GetTransfersBetween($itemId: ID!, $since: BigInt!, $until: BigInt!, $skip: Int!, $limit: Int!) {
    transfers(
        where: { item: $itemId, isPurchase: true, timestamp_gte: $since, timestamp_lt: $until }
        orderBy: timestamp
        orderDirection: asc
        skip: $skip
        first: $limit
    ) {
        pricePerItemETH
        totalValueETH
        amount
        timestamp
    }
}
"""

LATEST_TRANSFERS_QUERY = """
query GetTrades($itemId: ID!, $limit: Int!) {
    transfers(
        where: { item: $itemId, isPurchase: true }
        orderBy: timestamp
        orderDirection: desc
        first: $limit
    ) {
        id
        txHash
        timestamp
        pricePerItemETH
        amount
        totalValueETH
        transferredTo {
            id
        }
    }
}
"""

MARKET_TRANSFERS_SINCE_QUERY = """
query GetMarketVolumeSince($since: BigInt!, $skip: Int!, $limit: Int!) {
    transfers(where: { isPurchase: true, timestamp_gte: $since }, skip: $skip, first: $limit) {
        totalValueETH
    }
}
"""

MARKET_TRANSFERS_BETWEEN_QUERY = """
query GetMarketVolumeBetween($since: BigInt!, $until: BigInt!, $skip: Int!, $limit: Int!) {
    transfers(
        where: { isPurchase: true, timestamp_gte: $since, timestamp_lt: $until }
        skip: $skip
        first: $limit
    ) {
        totalValueETH
    }
}
"""

LISTINGS_QUERY = """
query GetOrderbook($itemId: ID!, $skip: Int!, $limit: Int!) {
    listings(
        where: { item: $itemId, isActive: true, amountRemaining_gt: "0" }
        orderBy: pricePerItemETH
        orderDirection: asc
        skip: $skip
        first: $limit
    ) {
        id
        pricePerItemETH
        amountRemaining
        amount
        owner {
            id
        }
    }
}
"""

FLOOR_PRICE_QUERY = """
query GetFloorPrice($itemId: ID!) {
    listings(
        where: { item: $itemId, isActive: true, amountRemaining_gt: "0" }
        orderBy: pricePerItemETH
        orderDirection: asc
        first: 1
    ) {
        pricePerItemETH
    }
}
"""

POSITION_QUERY = """
query GetUserBalance($positionId: ID!) {
    userItemPosition(id: $positionId) {
        currentBalance
        totalPurchased
        totalSold
        avgPurchasePriceETH
        totalSpentETH
        totalEarnedETH
    }
}
"""


def _client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.HTTP_TIMEOUT),
        headers={"User-Agent": settings.USER_AGENT},
    )


async def _post(
    client: httpx.AsyncClient, query: str, variables: Mapping[str, Any]
) -> dict[str, Any]:
    try:
        resp = await client.post(
            str(settings.SUBGRAPH_URL), json={"query": query, "variables": dict(variables)}
        )
    except httpx.HTTPError as exc:
        _log.error("subgraph_unreachable", error=str(exc))
        raise UpstreamUnavailable(f"subgraph unreachable: {exc}") from exc
    if resp.status_code >= 400:
        _log.error("subgraph_http_error", status_code=resp.status_code)
        raise UpstreamUnavailable(f"HTTP error! status: {resp.status_code}")
    try:
        body = resp.json()
    except ValueError as exc:
        raise UpstreamQueryError("subgraph returned invalid JSON") from exc
    if not isinstance(body, dict):
        raise UpstreamQueryError("subgraph returned a non-object body")
    if body.get("errors"):
        _log.error("subgraph_query_errors", errors=body["errors"])
        raise UpstreamQueryError("GraphQL query failed")
    return body.get("data") or {}


async def query_subgraph(query: str, variables: Mapping[str, Any] | None = None) -> dict[str, Any]:
    """Run one GraphQL query and return its ``data`` object."""
    async with _client() as client:
        return await _post(client, query, variables or {})


async def fetch_all(
    query: str,
    field: str,
    variables: Mapping[str, Any] | None = None,
    page_size: int | None = None,
) -> list[dict[str, Any]]:
    """Fetch every row of ``field`` by paging with ``skip``/``limit``.

    Pages are requested one after another and concatenated in order; a page
    shorter than ``page_size`` ends the loop. Any failing page aborts the whole
    fetch, so callers never see partial results.
    """
    size = page_size or settings.PAGE_SIZE
    rows: list[dict[str, Any]] = []
    skip = 0
    async with _client() as client:
        while True:
            data = await _post(client, query, {**(variables or {}), "skip": skip, "limit": size})
            page = data.get(field) or []
            rows.extend(page)
            _log.debug("subgraph_page_fetched", field=field, skip=skip, rows=len(page))
            if len(page) < size:
                break
            skip += size
    return rows


def _parse(model: type[M], rows: list[dict[str, Any]]) -> list[M]:
    try:
        return [model.model_validate(row) for row in rows]
    except ValidationError as exc:
        raise UpstreamQueryError(f"malformed {model.__name__} row: {exc}") from exc


async def get_item_ids() -> list[str]:
    rows = await fetch_all(ITEM_IDS_QUERY, "items")
    return [str(row["id"]) for row in rows if row.get("id") is not None]


async def get_items() -> list[SubgraphItem]:
    """All items, highest all-time ETH volume first."""
    return _parse(SubgraphItem, await fetch_all(ITEMS_QUERY, "items"))


async def get_item(item_id: str) -> SubgraphItem | None:
    data = await query_subgraph(ITEM_QUERY, {"itemId": item_id})
    row = data.get("item")
    if row is None:
        return None
    return _parse(SubgraphItem, [row])[0]


async def get_transfers(
    item_id: str, since: int | None = None, until: int | None = None
) -> list[Transfer]:
    """Purchase transfers of an item in ascending timestamp order.

    ``since`` is inclusive and ``until`` exclusive; both optional.
    """
    variables: dict[str, Any] = {"itemId": item_id}
    if since is None:
        query = TRANSFERS_QUERY
    elif until is None:
        query = TRANSFERS_SINCE_QUERY
        variables["since"] = str(since)
    else:
        query = TRANSFERS_BETWEEN_QUERY
        variables.update(since=str(since), until=str(until))
    return _parse(Transfer, await fetch_all(query, "transfers", variables))


async def get_latest_transfers(item_id: str, first: int) -> list[Transfer]:
    """Newest ``first`` purchase transfers, descending by timestamp (single page)."""
    data = await query_subgraph(LATEST_TRANSFERS_QUERY, {"itemId": item_id, "limit": first})
    return _parse(Transfer, data.get("transfers") or [])


async def get_market_transfers(since: int, until: int | None = None) -> list[Transfer]:
    """Purchase transfers of every item inside a window (only ETH value is selected)."""
    if until is None:
        rows = await fetch_all(MARKET_TRANSFERS_SINCE_QUERY, "transfers", {"since": str(since)})
    else:
        rows = await fetch_all(
            MARKET_TRANSFERS_BETWEEN_QUERY,
            "transfers",
            {"since": str(since), "until": str(until)},
        )
    return _parse(Transfer, rows)


async def get_active_listings(item_id: str) -> list[Listing]:
    rows = await fetch_all(LISTINGS_QUERY, "listings", {"itemId": item_id})
    _log.info("subgraph_listings_fetched", item_id=item_id, count=len(rows))
    return _parse(Listing, rows)


async def get_floor_price(item_id: str) -> float:
    """Cheapest active listing price, 0 when the book is empty."""
    data = await query_subgraph(FLOOR_PRICE_QUERY, {"itemId": item_id})
    listings = _parse(Listing, data.get("listings") or [])
    return listings[0].price_per_item_eth if listings else 0.0


async def get_position(user_address: str, item_id: str) -> Position | None:
    position_id = f"{user_address.lower()}-{item_id}"
    data = await query_subgraph(POSITION_QUERY, {"positionId": position_id})
    row = data.get("userItemPosition")
    if row is None:
        return None
    return _parse(Position, [row])[0]
