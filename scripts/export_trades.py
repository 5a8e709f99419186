from __future__ import annotations

import argparse
import asyncio
import csv
import json
from pathlib import Path

from gigamarket.clients.subgraph import get_latest_transfers
from gigamarket.config import settings
from gigamarket.models.market import Trade
from gigamarket.services.aggregation import group_trades

FIELDS = ["tx", "timestamp", "price", "amount", "ethSpent", "buyer", "tradeCount"]


async def fetch_trades(item_id: str, limit: int) -> list[Trade]:
    transfers = await get_latest_transfers(item_id, first=limit * settings.TRADES_OVERFETCH)
    return group_trades(transfers, limit)


async def main() -> None:
    ap = argparse.ArgumentParser(description="Export grouped trades of one item")
    ap.add_argument("item_id")
    ap.add_argument("--limit", type=int, default=100)
    ap.add_argument("--format", choices=["json", "csv"], default="json")
    ap.add_argument("--out", default=None)
    args = ap.parse_args()

    trades = await fetch_trades(args.item_id, args.limit)
    rows = [t.model_dump(mode="json", by_alias=True) for t in trades]
    out = args.out or f"data/trades_{args.item_id}.{args.format}"
    Path(out).parent.mkdir(parents=True, exist_ok=True)

    if args.format == "json":
        with open(out, "w", encoding="utf-8") as f:
            json.dump(rows, f, indent=2)
    else:
        with open(out, "w", encoding="utf-8", newline="") as f:
            w = csv.DictWriter(f, fieldnames=FIELDS)
            w.writeheader()
            w.writerows(rows)
    print(f"Wrote {args.format.upper()}: {out} ({len(rows)} trades)")


if __name__ == "__main__":
    asyncio.run(main())
