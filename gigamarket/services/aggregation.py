from __future__ import annotations

from collections.abc import Iterable

from ..models.market import Listing, OrderBookLevel, Trade, Transfer, from_timestamp


def group_trades(transfers: Iterable[Transfer], limit: int) -> list[Trade]:
    """Collapse purchase transfers into trades keyed by (tx hash, unit price, recipient).

    A transaction that buys several listings at one price emits one transfer per
    listing; they become a single trade with summed quantity and ETH, and
    ``trade_count`` records how many transfers were merged. Each trade keeps the
    timestamp of the first transfer seen for its key.
    The price part of the key is the price text exactly as the subgraph sent
    it, so "0.01" and "0.010" are different prices here.

    Result is newest first and cut to ``limit``. Callers over-fetch the input, so
    heavy grouping can still leave fewer than ``limit`` trades.
    """
    grouped: dict[tuple[str, str, str | None], Trade] = {}
    for t in transfers:
        key = (t.tx_hash, t.price_text, t.recipient)
        existing = grouped.get(key)
        if existing is not None:
            existing.amount += t.amount
            existing.eth_spent += t.total_value_eth
            existing.trade_count += 1
        else:
            grouped[key] = Trade(
                tx=t.tx_hash,
                timestamp=from_timestamp(t.timestamp),
                price=t.price_per_item_eth,
                amount=t.amount,
                eth_spent=t.total_value_eth,
                buyer=t.recipient,
                trade_count=1,
            )
    trades = sorted(grouped.values(), key=lambda tr: tr.timestamp, reverse=True)
    return trades[: max(0, limit)]


def build_order_book(listings: Iterable[Listing], depth: int = 100) -> list[OrderBookLevel]:
    """Aggregate active listings into ask levels, cheapest first, at most ``depth`` rows."""
    levels: dict[float, OrderBookLevel] = {}
    for listing in listings:
        price = listing.price_per_item_eth
        level = levels.get(price)
        if level is not None:
            level.amount += listing.amount_remaining
            level.orders += 1
        else:
            levels[price] = OrderBookLevel(price=price, amount=listing.amount_remaining, orders=1)
    asks = sorted(levels.values(), key=lambda lvl: lvl.price)
    return asks[: max(0, depth)]
