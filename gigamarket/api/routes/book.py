from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Query

from ...clients.gameitems import get_item_details
from ...clients.subgraph import get_active_listings, get_item_ids, get_latest_transfers
from ...config import settings
from ...errors import APIError, UpstreamError
from ...logging import get_logger
from ...models.market import ItemDetails, OrderBook, TickerTrade, Trade
from ...services.aggregation import build_order_book, group_trades
from ...services.batching import gather_in_batches

router = APIRouter(prefix="/api", tags=["book"])
_log = get_logger()


async def _grouped_trades(item_id: str, limit: int) -> list[Trade]:
    transfers = await get_latest_transfers(item_id, first=limit * settings.TRADES_OVERFETCH)
    trades = group_trades(transfers, limit)
    _log.debug("trades_grouped", item_id=item_id, transfers=len(transfers), trades=len(trades))
    return trades


@router.get("/orderbook/{item_id}")
async def orderbook(item_id: str) -> OrderBook:
    """Active listings aggregated into price levels, best (lowest) ask first."""
    try:
        listings = await get_active_listings(item_id)
    except UpstreamError as exc:
        _log.error("orderbook_failed", item_id=item_id, error=str(exc))
        raise APIError("Failed to fetch orderbook") from exc
    asks = build_order_book(listings, depth=settings.ORDERBOOK_DEPTH)
    _log.info("orderbook_aggregated", item_id=item_id, listings=len(listings), levels=len(asks))
    return OrderBook(item_id=item_id, asks=asks, last_update=datetime.now(timezone.utc))


@router.get("/trades/{item_id}")
async def trades(item_id: str, limit: int = Query(30, ge=1)) -> list[Trade]:
    """Latest trades of an item, transfers of one purchase merged, newest first."""
    try:
        return await _grouped_trades(item_id, limit)
    except UpstreamError as exc:
        _log.error("trades_failed", item_id=item_id, error=str(exc))
        raise APIError("Failed to fetch trades") from exc


@router.get("/recent-trades")
async def recent_trades() -> list[TickerTrade]:
    """Market-wide feed of the newest trades across items, for the UI ticker."""
    try:
        item_ids = await get_item_ids()
    except UpstreamError as exc:
        _log.error("recent_trades_failed", error=str(exc))
        raise APIError("Failed to fetch recent trades") from exc

    try:
        details = await get_item_details()
    except UpstreamError as exc:
        _log.warning("recent_trades_without_details", error=str(exc))
        details = {}

    async def _one(item_id: str) -> list[TickerTrade]:
        try:
            item_trades = await _grouped_trades(item_id, settings.TICKER_TRADES_PER_ITEM)
        except UpstreamError as exc:
            _log.warning("recent_trades_item_skipped", item_id=item_id, error=str(exc))
            return []
        info = details.get(item_id) or ItemDetails(id=item_id)
        return [
            TickerTrade(
                **tr.model_dump(),
                item_id=item_id,
                item_name=info.name or f"Item {item_id}",
                item_icon=info.image or info.icon,
            )
            for tr in item_trades
        ]

    per_item = await gather_in_batches(item_ids, _one, settings.TICKER_BATCH_SIZE)
    feed = [tr for group in per_item for tr in group]
    feed.sort(key=lambda tr: tr.timestamp, reverse=True)
    return feed[: settings.TICKER_LIMIT]
