"""
Pydantic models for API request/response validation.

This module defines all data models used by the REST API that stands in
for the chat command dispatcher.
"""

from datetime import datetime
from typing import List, Optional, Dict, Any
from uuid import UUID

from pydantic import BaseModel, Field, ConfigDict

from guild_exchange.core.order import Order, OrderResult
from guild_exchange.core.trade import Trade


# ============================================================================
# Request Models
# ============================================================================

class OrderRequest(BaseModel):
    """Request model for submitting a new order (the /buy and /sell commands)."""

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "user_id": "184405311681986560",
            "security": "GAMERS",
            "side": "buy",
            "order_type": "limit",
            "volume": 5,
            "price": 12
        }
    })

    user_id: str = Field(..., description="Submitting user", min_length=1, max_length=64)
    security: str = Field(..., description="Ticker or security id", min_length=1, max_length=64)
    side: str = Field(..., description="Order side: buy or sell", pattern=r'^(buy|sell)$')
    order_type: Optional[str] = Field(
        None,
        description="Order type: limit or market (defaults to limit when a price is given)",
        pattern=r'^(market|limit)$'
    )
    volume: int = Field(1, description="Number of shares", ge=1, le=1_000_000)
    price: Optional[int] = Field(None, description="Limit price in coins", ge=1, le=10_000_000)

    def resolved_order_type(self) -> str:
        """Original command semantics: no price means trade at whatever is available."""
        if self.order_type:
            return self.order_type
        return "limit" if self.price is not None else "market"


class ListSecurityRequest(BaseModel):
    """Request model for listing a guild."""

    actor: str = Field(..., description="Administrator requesting the listing", min_length=1)
    security_id: str = Field(..., description="Guild id", min_length=1, max_length=64)
    ticker: Optional[str] = Field(None, description="Ticker (1-8 alphanumeric characters)")
    listing_price: Optional[int] = Field(None, description="Initial price", ge=1)
    ipo_volume: Optional[int] = Field(None, description="Shares offered by the exchange", ge=0)


class TickerRequest(BaseModel):
    """Request model for the /setticker command."""

    ticker: str = Field(..., description="New ticker", min_length=1, max_length=32)


class MessageEventRequest(BaseModel):
    """One chat message observed in a guild."""

    author_id: str = Field(..., description="Message author", min_length=1)
    is_bot: bool = Field(False, description="Messages written by bots are ignored")


class MemberCountRequest(BaseModel):
    member_count: int = Field(..., ge=0)


class AdminRequest(BaseModel):
    """Request model for halting or resuming trading."""

    actor: str = Field(..., description="Administrator user id", min_length=1)


# ============================================================================
# Response Models
# ============================================================================

class TradeResponse(BaseModel):
    """Response model for a trade."""

    trade_id: UUID = Field(..., description="Unique trade identifier")
    price: int = Field(..., description="Execution price")
    volume: int = Field(..., description="Executed volume")
    buyer: str
    seller: str
    timestamp: datetime = Field(..., description="Trade execution timestamp")
    aggressor_side: str = Field(..., description="Aggressor side (buy/sell)")

    @classmethod
    def from_trade(cls, trade: Trade) -> 'TradeResponse':
        """Create from Trade object."""
        return cls(
            trade_id=trade.trade_id,
            price=trade.price,
            volume=trade.volume,
            buyer=trade.buyer,
            seller=trade.seller,
            timestamp=trade.timestamp,
            aggressor_side=trade.aggressor_side.value.lower()
        )


class OrderResponse(BaseModel):
    """Response model for order submission."""

    order_id: Optional[int] = Field(None, description="Id of the resting remainder, if any")
    status: str = Field(..., description="Order status: filled/partial/pending/cancelled/rejected")
    filled_volume: int = Field(..., description="Volume filled")
    remaining_volume: int = Field(..., description="Volume left resting on the book")
    unfilled_volume: int = Field(0, description="Market-buy volume dropped for lack of coins")
    trades: List[TradeResponse] = Field(default_factory=list, description="List of trades executed")
    message: str
    error: Optional[str] = Field(None, description="Error kind when rejected")
    timestamp: datetime = Field(..., description="Result timestamp")

    @classmethod
    def from_order_result(cls, result: OrderResult) -> 'OrderResponse':
        """Create from OrderResult object."""
        return cls(
            order_id=result.resting.order_id if result.resting else None,
            status=result.status.value.lower(),
            filled_volume=result.order.filled_volume,
            remaining_volume=result.resting.volume if result.resting else 0,
            unfilled_volume=result.unfilled_volume,
            trades=[TradeResponse.from_trade(t) for t in result.trades],
            message=result.message,
            error=result.error.value if result.error else None,
            timestamp=result.timestamp
        )


class PendingOrderResponse(BaseModel):
    """Response model for a resting order."""

    order_id: int
    security_id: str
    side: str
    order_type: str
    volume: int
    original_volume: int
    price: Optional[int] = None
    status: str
    timestamp: datetime

    @classmethod
    def from_order(cls, order: Order) -> 'PendingOrderResponse':
        """Create from Order object."""
        return cls(
            order_id=order.order_id,
            security_id=order.security_id,
            side=order.side.value.lower(),
            order_type=order.kind.value.lower(),
            volume=order.volume,
            original_volume=order.original_volume,
            price=order.price,
            status=order.status.value.lower(),
            timestamp=order.timestamp
        )


class CancelOrderResponse(BaseModel):
    """Response model for order cancellation."""

    order_id: int = Field(..., description="Cancelled order ID")
    cancelled: bool = Field(..., description="Cancellation success status")
    message: str = Field(..., description="Cancellation message")


class PortfolioResponse(BaseModel):
    """Response model for a user's account."""

    user_id: str
    balance: int
    reserved_coins: int
    holdings: Dict[str, int]
    reserved_shares: Dict[str, int]
    tickers: Dict[str, Optional[str]]
    pending_orders: List[Dict[str, Any]]


class PriceResponse(BaseModel):
    """Response model for the /price command."""

    security_id: str
    ticker: Optional[str] = None
    price: int
    true_price: Optional[float] = None
    best_bid: Optional[int] = None
    best_ask: Optional[int] = None


class PricePointResponse(BaseModel):
    price: int
    source: str
    timestamp: datetime


class PriceHistoryResponse(BaseModel):
    """Response model for the /graph command."""

    security_id: str
    ticker: Optional[str] = None
    points: List[PricePointResponse]


class OrderBookResponse(BaseModel):
    """Response model for order book snapshot."""

    security_id: str = Field(..., description="Security id")
    ticker: Optional[str] = None
    timestamp: datetime = Field(..., description="Snapshot timestamp")
    bids: List[List[int]] = Field(..., description="Bid levels [[price, volume, orders], ...]")
    asks: List[List[int]] = Field(..., description="Ask levels [[price, volume, orders], ...]")
    market_buy_volume: int
    market_sell_volume: int
    best_bid: Optional[int] = None
    best_ask: Optional[int] = None
    spread: Optional[int] = None


class SecurityResponse(BaseModel):
    security_id: str
    ticker: Optional[str] = None
    price: int
    shares_outstanding: int


class TradingStatusResponse(BaseModel):
    trading_enabled: bool


class HealthResponse(BaseModel):
    """Response model for health check."""

    status: str = Field(..., description="Service status")
    timestamp: datetime = Field(..., description="Check timestamp")
    version: str = Field(..., description="API version")
    matching_engine: Dict[str, Any] = Field(..., description="Matching engine statistics")


class ErrorResponse(BaseModel):
    """Response model for errors."""

    error: str = Field(..., description="Error type")
    message: str = Field(..., description="Error message")
    detail: Optional[str] = Field(None, description="Additional error details")
    timestamp: datetime = Field(..., description="Error timestamp")
