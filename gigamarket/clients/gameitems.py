from __future__ import annotations

from typing import Any, cast

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..config import settings
from ..db.cache import get_json, ns, set_json
from ..errors import UpstreamQueryError, UpstreamUnavailable
from ..logging import get_logger
from ..models.market import ItemDetails

_log = get_logger()

CACHE_KEY = ns("meta", "gameitems")


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


def _to_details(entity: dict[str, Any]) -> ItemDetails:
    return ItemDetails(
        id=str(entity["ID_CID"]),
        name=entity.get("NAME_CID"),
        description=entity.get("DESCRIPTION_CID"),
        rarity=entity.get("RARITY_NAME"),
        type=entity.get("TYPE_CID"),
        image=entity.get("IMG_URL_CID") or entity.get("ICON_URL_CID"),
        icon=entity.get("ICON_URL_CID"),
    )


def build_lookup(payload: dict[str, Any]) -> dict[str, ItemDetails]:
    """Reshape the game API's ``entities`` list into an id -> details lookup.

    Entities without an ``ID_CID`` are skipped; a later duplicate id wins.
    """
    entities = payload.get("entities")
    if not isinstance(entities, list):
        raise UpstreamQueryError("game items payload has no entities list")
    lookup: dict[str, ItemDetails] = {}
    for entity in entities:
        if not isinstance(entity, dict) or entity.get("ID_CID") is None:
            continue
        details = _to_details(cast(dict[str, Any], entity))
        lookup[details.id] = details
    return lookup


async def get_item_details() -> dict[str, ItemDetails]:
    """Fetch the full game-item catalogue, cached under ``meta:gameitems`` when enabled."""
    cached = await get_json(CACHE_KEY)
    if isinstance(cached, dict):
        return {k: ItemDetails.model_validate(v) for k, v in cached.items()}

    try:
        async with _client() as client:
            async for attempt in _retryer():
                with attempt:
                    resp = await client.get(str(settings.GAMEITEMS_URL))
                    resp.raise_for_status()
                    payload = resp.json()
    except httpx.HTTPError as exc:
        _log.error("gameitems_fetch_failed", error=str(exc))
        raise UpstreamUnavailable(f"game items API failed: {exc}") from exc
    except ValueError as exc:
        raise UpstreamQueryError("game items API returned invalid JSON") from exc

    if not isinstance(payload, dict):
        raise UpstreamQueryError("game items payload is not an object")
    lookup = build_lookup(payload)
    await set_json(
        CACHE_KEY,
        {k: v.model_dump() for k, v in lookup.items()},
        ttl=settings.CACHE_TTL_METADATA,
    )
    _log.info("gameitems_fetched", count=len(lookup))
    return lookup
