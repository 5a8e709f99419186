from __future__ import annotations

from fastapi import APIRouter

from ...clients.gameitems import get_item_details
from ...clients.subgraph import get_item_ids
from ...errors import APIError, UpstreamError
from ...logging import get_logger
from ...models.market import ItemDetails

router = APIRouter(prefix="/api", tags=["items"])
_log = get_logger()


@router.get("/items")
async def items() -> list[str]:
    """Every item id known to the subgraph, ordered by id."""
    try:
        ids = await get_item_ids()
    except UpstreamError as exc:
        _log.error("items_failed", error=str(exc))
        raise APIError("Failed to fetch items") from exc
    _log.info("items_listed", count=len(ids))
    return ids


@router.get("/item-details")
async def item_details() -> dict[str, ItemDetails]:
    """Name/image/type lookup keyed by item id, proxied from the game API."""
    try:
        return await get_item_details()
    except UpstreamError as exc:
        _log.error("item_details_failed", error=str(exc))
        raise APIError("Failed to fetch item details") from exc
