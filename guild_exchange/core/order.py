"""
Order domain model with enums and validation

This module defines the Order class and related enums representing
orders in the exchange. An order is transient (no id) until the engine
queues its unfilled remainder, at which point it receives a stable id.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Dict, Any, List, TYPE_CHECKING

if TYPE_CHECKING:
    from .trade import Trade
    from ..utils.exceptions import ErrorKind


class OrderKind(Enum):
    """Order kind enumeration."""
    MARKET = "MARKET"
    LIMIT = "LIMIT"
    SYSTEM_SEED = "SYSTEM_SEED"  # System-held offering, priced like a limit order

    def __str__(self) -> str:
        return self.value


class OrderSide(Enum):
    """Order side enumeration."""
    BUY = "BUY"
    SELL = "SELL"

    def __str__(self) -> str:
        return self.value

    @property
    def opposite(self) -> "OrderSide":
        return OrderSide.SELL if self is OrderSide.BUY else OrderSide.BUY


class OrderStatus(Enum):
    """Order status enumeration."""
    PENDING = "PENDING"      # Resting on the book, nothing filled
    PARTIAL = "PARTIAL"      # Partially filled, remainder resting or dropped
    FILLED = "FILLED"        # Completely filled
    CANCELLED = "CANCELLED"  # Cancelled by its owner
    REJECTED = "REJECTED"    # Rejected before touching the book

    def __str__(self) -> str:
        return self.value


@dataclass(slots=True)
class Order:
    """
    Represents an order in the exchange.

    Attributes:
        owner: User id owning the order
        security_id: Security the order trades
        side: Buy or sell
        kind: LIMIT, MARKET or SYSTEM_SEED
        volume: Remaining volume, decremented in place by fills
        price: Limit price (None for market orders)
        order_id: Assigned once the order rests on a book
        timestamp: Order creation time
        status: Current status of the order
        original_volume: Volume at submission
    """

    owner: str
    security_id: str
    side: OrderSide
    kind: OrderKind
    volume: int
    price: Optional[int] = None
    order_id: Optional[int] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    status: OrderStatus = OrderStatus.PENDING
    original_volume: int = field(default=0)

    def __post_init__(self):
        """
        Post-initialization validation and setup.

        Raises:
            ValueError: If order parameters are invalid
        """
        if not self.original_volume:
            self.original_volume = self.volume

        self.validate()

    def validate(self) -> None:
        """
        Validate order parameters.

        Zero or negative volume is allowed here; the engine treats it as a
        no-op submission.

        Raises:
            ValueError: If validation fails
        """
        if self.is_priced:
            if self.price is None:
                raise ValueError(f"{self.kind} orders require a price")
            if self.price <= 0:
                raise ValueError(f"Price must be positive, got {self.price}")
        elif self.price is not None:
            raise ValueError("Market orders cannot carry a price")

        if not self.owner:
            raise ValueError("Owner cannot be empty")

        if not self.security_id:
            raise ValueError("Security id cannot be empty")

    def fill(self, volume: int) -> None:
        """
        Record a fill against this order.

        Raises:
            ValueError: If filled volume is invalid
        """
        if volume <= 0:
            raise ValueError(f"Fill volume must be positive, got {volume}")

        if volume > self.volume:
            raise ValueError(f"Fill volume {volume} exceeds remaining {self.volume}")

        self.volume -= volume
        self.status = OrderStatus.FILLED if self.volume == 0 else OrderStatus.PARTIAL

    @property
    def is_priced(self) -> bool:
        """Limit and system seed orders carry a price."""
        return self.kind in (OrderKind.LIMIT, OrderKind.SYSTEM_SEED)

    @property
    def filled_volume(self) -> int:
        return self.original_volume - self.volume

    @property
    def is_fully_filled(self) -> bool:
        """Check if order is completely filled."""
        return self.volume == 0

    @property
    def is_buy(self) -> bool:
        """Check if this is a buy order."""
        return self.side == OrderSide.BUY

    @property
    def is_sell(self) -> bool:
        """Check if this is a sell order."""
        return self.side == OrderSide.SELL

    def __repr__(self) -> str:
        """String representation of the order."""
        price_str = str(self.price) if self.price is not None else "MARKET"
        return (
            f"Order(id={self.order_id}, owner={self.owner}, "
            f"{self.side.value} {self.volume} {self.security_id} @ {price_str}, "
            f"kind={self.kind.value}, status={self.status.value})"
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert order to dictionary for serialization."""
        return {
            "order_id": self.order_id,
            "owner": self.owner,
            "security_id": self.security_id,
            "side": self.side.value,
            "kind": self.kind.value,
            "volume": self.volume,
            "original_volume": self.original_volume,
            "price": self.price,
            "timestamp": self.timestamp.isoformat(),
            "status": self.status.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Order":
        """Rebuild an order written by to_dict."""
        return cls(
            owner=data["owner"],
            security_id=data["security_id"],
            side=OrderSide(data["side"]),
            kind=OrderKind(data["kind"]),
            volume=int(data["volume"]),
            price=data["price"],
            order_id=data["order_id"],
            timestamp=datetime.fromisoformat(data["timestamp"]),
            status=OrderStatus(data["status"]),
            original_volume=int(data["original_volume"]),
        )


@dataclass
class OrderResult:
    """
    Result of an order submission.

    Attributes:
        order: The order that was submitted
        trades: Trades generated by this order
        status: Final status of the order
        message: Human-readable message about the order result
        timestamp: Time when the result was generated
        resting: The queued remainder, or None when nothing rests
        unfilled_volume: Market-buy volume dropped for lack of coins
        error: Error kind when the order was rejected
    """
    order: Order
    trades: List['Trade']
    status: OrderStatus
    message: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    resting: Optional[Order] = None
    unfilled_volume: int = 0
    error: Optional['ErrorKind'] = None

    @classmethod
    def rejected(cls, order: Order, error: 'ErrorKind', message: str) -> "OrderResult":
        """Build the result of an order refused before it touched the book."""
        return cls(
            order=order,
            trades=[],
            status=OrderStatus.REJECTED,
            message=message,
            error=error,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert order result to dictionary for API serialization."""
        return {
            "order_id": self.resting.order_id if self.resting else None,
            "status": self.status.value,
            "filled_volume": self.order.filled_volume,
            "remaining_volume": self.resting.volume if self.resting else 0,
            "unfilled_volume": self.unfilled_volume,
            "trades": [trade.to_dict() for trade in self.trades],
            "message": self.message,
            "error": self.error.value if self.error else None,
            "timestamp": self.timestamp.isoformat(),
        }

    def is_successful(self) -> bool:
        """Check if the order was accepted."""
        return self.error is None and self.status != OrderStatus.REJECTED
