from __future__ import annotations

from fastapi import APIRouter

from ...clients.subgraph import get_position
from ...errors import APIError, UpstreamError
from ...logging import get_logger
from ...models.market import UserPosition

router = APIRouter(prefix="/api", tags=["account"])
_log = get_logger()


@router.get("/balance/{user_address}/{item_id}")
async def balance(user_address: str, item_id: str) -> UserPosition:
    """A wallet's position in one item; all zeros when it never traded it."""
    try:
        position = await get_position(user_address, item_id)
    except UpstreamError as exc:
        _log.error("balance_failed", user=user_address, item_id=item_id, error=str(exc))
        raise APIError("Failed to fetch user balance") from exc
    return UserPosition.from_position(position)
