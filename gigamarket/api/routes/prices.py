from __future__ import annotations

from fastapi import APIRouter

from ...clients.prices import get_eth_usd
from ...models.market import EthPrice

router = APIRouter(prefix="/api", tags=["prices"])


@router.get("/eth-price")
async def eth_price() -> EthPrice:
    return await get_eth_usd()
