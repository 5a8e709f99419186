from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, model_validator


def _entity_id(value: Any) -> Any:
    # Subgraph relations arrive as {"id": "0x..."}
    if isinstance(value, dict):
        return value.get("id")
    return value


def _zero_if_null(value: Any) -> Any:
    return 0 if value is None or value == "" else value


# BigInt/BigDecimal come as strings and may be null
ZeroInt = Annotated[int, BeforeValidator(_zero_if_null)]
ZeroFloat = Annotated[float, BeforeValidator(_zero_if_null)]
EntityId = Annotated[str | None, BeforeValidator(_entity_id)]


def from_timestamp(ts: int) -> datetime:
    return datetime.fromtimestamp(int(ts), tz=timezone.utc)


# Subgraph records (aliases are the GraphQL field names)


class Transfer(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str | None = None
    tx_hash: str = Field(default="", alias="txHash")
    timestamp: ZeroInt = Field(default=0, ge=0)  # Unix epoch seconds
    price_per_item_eth: ZeroFloat = Field(default=0.0, alias="pricePerItemETH")
    amount: ZeroInt = 0
    total_value_eth: ZeroFloat = Field(default=0.0, alias="totalValueETH")
    recipient: EntityId = Field(default=None, alias="transferredTo")
    # BigDecimal text as sent, used to key trades without float rounding
    price_text: str = Field(default="", exclude=True)

    @model_validator(mode="before")
    @classmethod
    def keep_price_text(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("price_text"):
            raw = data.get("pricePerItemETH", data.get("price_per_item_eth"))
            if raw is not None:
                data = {**data, "price_text": str(raw)}
        return data


class Listing(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str | None = None
    price_per_item_eth: ZeroFloat = Field(default=0.0, alias="pricePerItemETH")
    amount_remaining: ZeroInt = Field(default=0, alias="amountRemaining")
    amount: ZeroInt = 0
    owner: EntityId = None


class SubgraphItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    total_volume_eth: ZeroFloat = Field(default=0.0, alias="totalVolumeETH")
    total_trades: ZeroInt = Field(default=0, alias="totalTrades")
    total_items_sold: ZeroInt = Field(default=0, alias="totalItemsSold")
    current_price_eth: ZeroFloat = Field(default=0.0, alias="currentPriceETH")
    last_trade_timestamp: int | None = Field(default=None, alias="lastTradeTimestamp")


class Position(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    current_balance: ZeroInt = Field(default=0, alias="currentBalance")
    total_purchased: ZeroInt = Field(default=0, alias="totalPurchased")
    total_sold: ZeroInt = Field(default=0, alias="totalSold")
    avg_purchase_price_eth: ZeroFloat = Field(default=0.0, alias="avgPurchasePriceETH")
    total_spent_eth: ZeroFloat = Field(default=0.0, alias="totalSpentETH")
    total_earned_eth: ZeroFloat = Field(default=0.0, alias="totalEarnedETH")


# API responses (aliases are the JSON keys the UI reads)


class Trade(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    tx: str
    timestamp: datetime
    price: float
    amount: int
    eth_spent: float = Field(..., alias="ethSpent")
    buyer: str | None
    trade_count: int = Field(default=1, alias="tradeCount")


class TickerTrade(Trade):
    item_id: str = Field(..., alias="itemId")
    item_name: str = Field(..., alias="itemName")
    item_icon: str | None = Field(default=None, alias="itemIcon")


class OrderBookLevel(BaseModel):
    price: float
    amount: int
    orders: int = 1


class OrderBook(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    item_id: str = Field(..., alias="itemId")
    asks: list[OrderBookLevel] = []
    last_update: datetime = Field(..., alias="lastUpdate")


class ItemStats(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    item_id: str = Field(..., alias="itemId")
    trade_count: int = Field(default=0, alias="tradeCount")
    total_items_sold_24h: int = Field(default=0, alias="totalItemsSold24h")
    total_eth_volume_24h: float = Field(default=0.0, alias="totalEthVolume24h")
    avg_price: float = Field(default=0.0, alias="avgPrice")
    min_price: float = Field(default=0.0, alias="minPrice")
    max_price: float = Field(default=0.0, alias="maxPrice")
    current_price: float = Field(default=0.0, alias="currentPrice")
    price_24h_ago: float = Field(default=0.0, alias="price24hAgo")
    price_change_24h: float = Field(default=0.0, alias="priceChange24h")
    volume_change_24h: float = Field(default=0.0, alias="volumeChange24h")
    items_sold_change_24h: float = Field(default=0.0, alias="itemsSoldChange24h")
    last_trade: datetime | None = Field(default=None, alias="lastTrade")


class MarketItemStats(ItemStats):
    floor_price: float = Field(default=0.0, alias="floorPrice")
    market_volume_change_24h: float = Field(default=0.0, alias="marketVolumeChange24h")
    total_market_volume_24h: float = Field(default=0.0, alias="totalMarketVolume24h")


class ChartPoint(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    item_id: str = Field(..., alias="itemId")
    timestamp: datetime
    price: float
    volume: int
    eth_volume: float = Field(..., alias="ethVolume")


class TimeframeVolume(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    item_id: str = Field(..., alias="itemId")
    timeframe: str
    start_time: int = Field(..., alias="startTime")
    end_time: int = Field(..., alias="endTime")
    total_items_sold: int = Field(default=0, alias="totalItemsSold")
    total_eth_volume: float = Field(default=0.0, alias="totalEthVolume")


class UserPosition(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    balance: int = 0
    total_purchased: int = Field(default=0, alias="totalPurchased")
    total_sold: int = Field(default=0, alias="totalSold")
    avg_purchase_price: float = Field(default=0.0, alias="avgPurchasePrice")
    total_spent: float = Field(default=0.0, alias="totalSpent")
    total_earned: float = Field(default=0.0, alias="totalEarned")

    @classmethod
    def from_position(cls, position: Position | None) -> UserPosition:
        if position is None:
            return cls()
        return cls(
            balance=position.current_balance,
            total_purchased=position.total_purchased,
            total_sold=position.total_sold,
            avg_purchase_price=position.avg_purchase_price_eth,
            total_spent=position.total_spent_eth,
            total_earned=position.total_earned_eth,
        )


class ItemDetails(BaseModel):
    id: str
    name: str | None = None
    description: str | None = None
    rarity: str | None = None
    type: str | None = None
    image: str | None = None
    icon: str | None = None


class EthPrice(BaseModel):
    usd: float
    source: str = "live"
