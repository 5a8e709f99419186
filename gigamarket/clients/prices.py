from __future__ import annotations

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..config import settings
from ..db.cache import get_json, ns, set_json
from ..logging import get_logger
from ..models.market import EthPrice

_log = get_logger()

CACHE_KEY = ns("price", "eth:usd")


def _retryer() -> AsyncRetrying:
    return AsyncRetrying(
        reraise=True,
        stop=stop_after_attempt(settings.RETRY_MAX),
        wait=wait_exponential(multiplier=0.2, min=0.2, max=3),
        retry=retry_if_exception_type(
            (httpx.ReadTimeout, httpx.ConnectTimeout, httpx.HTTPStatusError)
        ),
    )


def _client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.HTTP_TIMEOUT, read=settings.HTTP_TIMEOUT),
        headers={"User-Agent": settings.USER_AGENT},
        http2=True,
    )


async def get_eth_usd() -> EthPrice:
    """Current ETH/USD rate; falls back to ``ETH_USD_FALLBACK`` on any failure."""
    cached = await get_json(CACHE_KEY)
    if isinstance(cached, (int, float)):
        return EthPrice(usd=float(cached))

    try:
        async with _client() as client:
            async for attempt in _retryer():
                with attempt:
                    resp = await client.get(
                        str(settings.ETH_PRICE_URL),
                        params={"ids": "ethereum", "vs_currencies": "usd"},
                    )
                    resp.raise_for_status()
                    usd = float(resp.json()["ethereum"]["usd"])
    except (httpx.HTTPError, ValueError, KeyError, TypeError) as exc:
        _log.warning("eth_price_fallback", error=str(exc), rate=settings.ETH_USD_FALLBACK)
        return EthPrice(usd=settings.ETH_USD_FALLBACK, source="fallback")

    await set_json(CACHE_KEY, usd, ttl=settings.CACHE_TTL_PRICE)
    _log.info("eth_price_fetched", usd=usd)
    return EthPrice(usd=usd)
