from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from .. import __version__
from ..config import settings
from ..errors import APIError
from ..logging import configure_logging, get_logger, request_id_middleware
from .routes import account, book, charts, health, items, prices, stats


@asynccontextmanager
async def lifespan(app: FastAPI):  # pragma: no cover - integration lifecycle
    log = get_logger()
    log.info("startup", version=__version__, subgraph=str(settings.SUBGRAPH_URL))
    try:
        yield
    finally:
        if settings.CACHE_ENABLED:
            from ..db.cache import get_redis

            await get_redis().aclose()
        log.info("shutdown")


async def api_error_handler(_request: Request, exc: APIError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # Malformed path or query input, e.g. ?limit=abc
    names = [str(err["loc"][-1]) for err in exc.errors() if err.get("loc")]
    message = f"Invalid parameter: {names[0]}" if names else "Invalid request"
    get_logger().info("request_invalid", path=request.url.path, fields=names)
    return JSONResponse(status_code=400, content={"error": message})


def _ui_dir() -> Path | None:
    if not settings.UI_BUILD_DIR:
        return None
    path = Path(settings.UI_BUILD_DIR).resolve()
    return path if (path / "index.html").is_file() else None


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(title="Gigaverse Market API", version=__version__, lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.middleware("http")(request_id_middleware)
    app.add_exception_handler(APIError, api_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_error_handler)  # type: ignore[arg-type]

    app.include_router(health.router)
    app.include_router(items.router)
    app.include_router(stats.router)
    app.include_router(charts.router)
    app.include_router(book.router)
    app.include_router(account.router)
    app.include_router(prices.router)

    ui_dir = _ui_dir()
    if ui_dir is not None:
        # Mounted last so /api routes take precedence
        app.mount("/", StaticFiles(directory=str(ui_dir), html=True), name="ui")
    else:

        @app.get("/", include_in_schema=False)
        async def banner() -> dict[str, object]:
            return {
                "message": "Gigaverse Market API",
                "status": "running",
                "endpoints": {
                    "items": "/api/items",
                    "stats": "/api/stats",
                    "chart": "/api/chart-data/{item_id}",
                    "orderbook": "/api/orderbook/{item_id}",
                    "trades": "/api/trades/{item_id}",
                },
            }

    return app


app = create_app()
