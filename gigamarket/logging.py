from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Callable
from contextvars import ContextVar
from typing import Any, cast

import structlog
from fastapi import Request
from starlette.responses import Response

from . import __version__
from .config import settings

request_id_ctx_var: ContextVar[str | None] = ContextVar("request_id", default=None)


def get_request_id() -> str | None:
    return request_id_ctx_var.get()


def set_request_id(request_id: str | None) -> None:
    request_id_ctx_var.set(request_id)


def configure_logging() -> None:
    level = logging.getLevelName(settings.LOG_LEVEL.upper())
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            _add_service,
            _add_request_id,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level if isinstance(level, int) else logging.INFO),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def _add_service(_logger: Any, _method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    event_dict.setdefault("service", "gigamarket")
    event_dict.setdefault("version", __version__)
    return event_dict


def _add_request_id(_logger: Any, _method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    rid = get_request_id()
    if rid:
        event_dict["request_id"] = rid
    return event_dict


async def request_id_middleware(request: Request, call_next: Callable[[Request], Any]) -> Response:
    """Tag the request with an id and log one ``api_request`` line per call.

    The item id is taken from the matched route when there is one, so every
    per-item endpoint can be filtered on ``item_id``. Upstream failures surface
    as 5xx and are logged at warning level.
    """
    rid = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    set_request_id(rid)
    start = time.perf_counter()
    try:
        response = cast(Response, await call_next(request))
        fields: dict[str, Any] = {
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": round((time.perf_counter() - start) * 1000, 2),
        }
        item_id = request.scope.get("path_params", {}).get("item_id")
        if item_id is not None:
            fields["item_id"] = item_id
        log = get_logger()
        if response.status_code >= 500:
            log.warning("api_request", **fields)
        else:
            log.info("api_request", **fields)
    finally:
        set_request_id(None)
    response.headers["X-Request-ID"] = rid
    return response


def get_logger() -> Any:
    return structlog.get_logger()
