from __future__ import annotations

import time
from collections.abc import Iterable, Sequence

from ..models.market import ItemStats, SubgraphItem, Transfer, from_timestamp

DAY = 86400

TIMEFRAME_SECONDS: dict[str, int] = {"1h": 3600, "4h": 14400, "1d": 86400}


def now_ts() -> int:
    return int(time.time())


def day_windows(now: int | None = None) -> tuple[int, int, int]:
    """Return (two_days_ago, one_day_ago, now) bounding the previous and current 24h."""
    current = now_ts() if now is None else now
    return current - 2 * DAY, current - DAY, current


def eth_volume(transfers: Iterable[Transfer]) -> float:
    return sum(t.total_value_eth for t in transfers)


def items_sold(transfers: Iterable[Transfer]) -> int:
    return sum(t.amount for t in transfers)


def pct_change(current: float, previous: float) -> float:
    """Percentage change vs. a baseline; 0 when the baseline is 0 (not a true rate)."""
    if previous <= 0:
        return 0.0
    return (current - previous) / previous * 100


def price_change(transfers: Sequence[Transfer]) -> float:
    """First vs. last price of a chronologically ordered window.

    Not an open/close over calendar boundaries: fewer than two transfers, or a
    zero first price, give 0.
    """
    if len(transfers) < 2:
        return 0.0
    return pct_change(transfers[-1].price_per_item_eth, transfers[0].price_per_item_eth)


def price_range(transfers: Iterable[Transfer], fallback: float) -> tuple[float, float]:
    prices = [t.price_per_item_eth for t in transfers if t.price_per_item_eth > 0]
    if not prices:
        return fallback, fallback
    return min(prices), max(prices)


def compute_item_stats(
    item: SubgraphItem,
    current: Sequence[Transfer],
    previous: Sequence[Transfer],
) -> ItemStats:
    """24h statistics of one item from its current and previous 24h transfers (ascending)."""
    volume_now = eth_volume(current)
    volume_prev = eth_volume(previous)
    sold_now = items_sold(current)
    sold_prev = items_sold(previous)
    low, high = price_range(current, fallback=item.current_price_eth)
    last_trade = (
        from_timestamp(item.last_trade_timestamp) if item.last_trade_timestamp is not None else None
    )
    return ItemStats(
        item_id=item.id,
        trade_count=item.total_trades,
        total_items_sold_24h=sold_now,
        total_eth_volume_24h=volume_now,
        avg_price=item.current_price_eth,
        min_price=low,
        max_price=high,
        current_price=item.current_price_eth,
        price_24h_ago=current[0].price_per_item_eth if current else 0.0,
        price_change_24h=price_change(current),
        volume_change_24h=pct_change(volume_now, volume_prev),
        items_sold_change_24h=pct_change(sold_now, sold_prev),
        last_trade=last_trade,
    )


def bucket_bounds(timestamp: int, timeframe: str) -> tuple[int, int]:
    """Return the [start, end) interval of ``timeframe`` that contains ``timestamp``.

    Raises KeyError for an unknown timeframe.
    """
    interval = TIMEFRAME_SECONDS[timeframe]
    start = (timestamp // interval) * interval
    return start, start + interval
