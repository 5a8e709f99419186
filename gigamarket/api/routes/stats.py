from __future__ import annotations

import asyncio

from fastapi import APIRouter

from ...clients.subgraph import (
    get_floor_price,
    get_item,
    get_items,
    get_market_transfers,
    get_transfers,
)
from ...config import settings
from ...errors import APIError, UpstreamError
from ...logging import get_logger
from ...models.market import ItemStats, MarketItemStats, SubgraphItem
from ...services.batching import gather_in_batches
from ...services.metrics import compute_item_stats, day_windows, eth_volume, pct_change

router = APIRouter(prefix="/api", tags=["stats"])
_log = get_logger()


@router.get("/stats")
async def market_stats() -> list[MarketItemStats]:
    """24h stats for every item plus market-wide 24h volume change.

    Items are processed in groups of ``STATS_BATCH_SIZE``. A failure on one item
    yields a zeroed row for it rather than failing the response.
    """
    two_days_ago, one_day_ago, _ = day_windows()
    try:
        all_items = await get_items()
        market_now = eth_volume(await get_market_transfers(one_day_ago))
        market_prev = eth_volume(await get_market_transfers(two_days_ago, one_day_ago))
    except UpstreamError as exc:
        _log.error("market_stats_failed", error=str(exc))
        raise APIError("Failed to fetch market stats") from exc

    market_change = pct_change(market_now, market_prev)
    _log.info(
        "market_volume",
        volume_24h=round(market_now, 6),
        volume_prev_24h=round(market_prev, 6),
        change_pct=round(market_change, 2),
    )

    async def _one(item: SubgraphItem) -> MarketItemStats:
        try:
            current, previous, floor = await asyncio.gather(
                get_transfers(item.id, since=one_day_ago),
                get_transfers(item.id, since=two_days_ago, until=one_day_ago),
                get_floor_price(item.id),
            )
        except UpstreamError as exc:
            _log.warning("item_stats_degraded", item_id=item.id, error=str(exc))
            return MarketItemStats(item_id=item.id)
        base = compute_item_stats(item, current, previous)
        return MarketItemStats(
            **base.model_dump(),
            floor_price=floor,
            market_volume_change_24h=market_change,
            total_market_volume_24h=market_now,
        )

    stats = await gather_in_batches(all_items, _one, settings.STATS_BATCH_SIZE)
    _log.info("market_stats_computed", items=len(stats))
    return stats


@router.get("/stats/{item_id}")
async def item_stats(item_id: str) -> ItemStats | None:
    """24h stats for one item; ``null`` when the subgraph does not know it."""
    two_days_ago, one_day_ago, _ = day_windows()
    try:
        item, current, previous = await asyncio.gather(
            get_item(item_id),
            get_transfers(item_id, since=one_day_ago),
            get_transfers(item_id, since=two_days_ago, until=one_day_ago),
        )
    except UpstreamError as exc:
        _log.error("item_stats_failed", item_id=item_id, error=str(exc))
        raise APIError("Failed to fetch item stats") from exc
    if item is None:
        return None
    return compute_item_stats(item, current, previous)
