from __future__ import annotations

from fastapi import APIRouter, Query

from ...clients.subgraph import get_transfers
from ...errors import APIError, UpstreamError
from ...logging import get_logger
from ...models.market import ChartPoint, TimeframeVolume, from_timestamp
from ...services.metrics import TIMEFRAME_SECONDS, bucket_bounds, eth_volume, items_sold

router = APIRouter(prefix="/api", tags=["charts"])
_log = get_logger()


@router.get("/chart-data/{item_id}")
async def chart_data(
    item_id: str,
    timeframe: str = Query("1d", description="Accepted for the UI; the full series is returned"),
) -> list[ChartPoint]:
    """Full price/volume series of an item, oldest first."""
    try:
        transfers = await get_transfers(item_id)
    except UpstreamError as exc:
        _log.error("chart_data_failed", item_id=item_id, error=str(exc))
        raise APIError("Failed to fetch chart data") from exc
    _log.info("chart_data", item_id=item_id, timeframe=timeframe, points=len(transfers))
    return [
        ChartPoint(
            item_id=item_id,
            timestamp=from_timestamp(t.timestamp),
            price=t.price_per_item_eth,
            volume=t.amount,
            eth_volume=t.total_value_eth,
        )
        for t in transfers
    ]


@router.get("/timeframe-data/{item_id}")
async def timeframe_data(
    item_id: str,
    timeframe: str = Query("1d"),
    timestamp: int | None = Query(None, ge=0, description="Any epoch second inside the bucket"),
) -> TimeframeVolume:
    """Items sold and ETH volume of the ``timeframe`` bucket containing ``timestamp``."""
    if timestamp is None:
        raise APIError("Timestamp required", status_code=400)
    if timeframe not in TIMEFRAME_SECONDS:
        raise APIError("Unknown timeframe", status_code=400)
    start, end = bucket_bounds(timestamp, timeframe)
    try:
        transfers = await get_transfers(item_id, since=start, until=end)
    except UpstreamError as exc:
        _log.error("timeframe_data_failed", item_id=item_id, error=str(exc))
        raise APIError("Failed to fetch timeframe data") from exc
    return TimeframeVolume(
        item_id=item_id,
        timeframe=timeframe,
        start_time=start,
        end_time=end,
        total_items_sold=items_sold(transfers),
        total_eth_volume=eth_volume(transfers),
    )
