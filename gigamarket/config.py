from __future__ import annotations

from typing import cast

from pydantic import AnyHttpUrl, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=(".env",), env_prefix="", case_sensitive=False)

    SUBGRAPH_URL: AnyHttpUrl = Field(
        default=cast(AnyHttpUrl, "http://localhost:8000/subgraphs/name/giga_sbg1")
    )
    GAMEITEMS_URL: AnyHttpUrl = Field(
        default=cast(AnyHttpUrl, "https://gigaverse.io/api/offchain/gameitems")
    )
    ETH_PRICE_URL: AnyHttpUrl = Field(
        default=cast(AnyHttpUrl, "https://api.coingecko.com/api/v3/simple/price")
    )
    ETH_USD_FALLBACK: float = Field(default=3500.0, gt=0.0)

    # Subgraph paging and aggregation shape
    PAGE_SIZE: int = Field(default=1000, ge=1, le=1000)
    STATS_BATCH_SIZE: int = Field(default=10, ge=1)
    TRADES_OVERFETCH: int = Field(default=3, ge=1)
    ORDERBOOK_DEPTH: int = Field(default=100, ge=1)

    # Recent-trades ticker
    TICKER_BATCH_SIZE: int = Field(default=5, ge=1)
    TICKER_TRADES_PER_ITEM: int = Field(default=3, ge=1)
    TICKER_LIMIT: int = Field(default=40, ge=1)

    HTTP_TIMEOUT: float = Field(default=10.0, gt=0.0)
    USER_AGENT: str = Field(default="Gigamarket/0.1")
    RETRY_MAX: int = Field(default=3, ge=1)

    LOG_LEVEL: str = Field(default="INFO")

    HOST: str = Field(default="0.0.0.0")
    PORT: int = Field(default=3001, ge=1, le=65535)
    # Built UI bundle served at "/" when the directory exists
    UI_BUILD_DIR: str | None = Field(default="build")

    # Optional Redis cache for third-party lookups (metadata, ETH/USD)
    CACHE_ENABLED: bool = Field(default=False)
    REDIS_URL: str = Field(default="redis://localhost:6379/0")
    CACHE_TTL_METADATA: int = Field(default=3600, ge=0)
    CACHE_TTL_PRICE: int = Field(default=120, ge=0)


settings = Settings()
