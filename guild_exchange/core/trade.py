"""
Trade execution domain model

This module defines the Trade class representing a completed trade between
a resting (maker) order and an incoming (taker) order.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID, uuid4

from .order import OrderSide


@dataclass(frozen=True, slots=True)
class Trade:
    """
    Represents a completed trade execution.

    This class is immutable (frozen=True); trades are final once settled.

    Attributes:
        security_id: Security traded
        price: Execution price per share
        volume: Executed number of shares
        buyer: User receiving the shares
        seller: User receiving the coins
        aggressor_side: Side of the incoming order
        maker_order_id: Id of the resting order
        taker_order_id: Id of the incoming order (None while it is transient)
        trade_id: Unique identifier for the trade
        timestamp: Trade execution time
    """

    security_id: str
    price: int
    volume: int
    buyer: str
    seller: str
    aggressor_side: OrderSide
    maker_order_id: int
    taker_order_id: Optional[int] = None
    trade_id: UUID = field(default_factory=uuid4)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self):
        """
        Post-initialization validation.

        Raises:
            ValueError: If trade parameters are invalid
        """
        if self.price <= 0:
            raise ValueError(f"Price must be positive, got {self.price}")

        if self.volume <= 0:
            raise ValueError(f"Volume must be positive, got {self.volume}")

    @property
    def total_value(self) -> int:
        """Coins moved by this trade (price * volume)."""
        return self.price * self.volume

    def to_dict(self) -> dict:
        """
        Convert trade to dictionary for API serialization.

        Returns:
            Dictionary representation of the trade
        """
        return {
            "trade_id": str(self.trade_id),
            "security_id": self.security_id,
            "price": self.price,
            "volume": self.volume,
            "buyer": self.buyer,
            "seller": self.seller,
            "timestamp": self.timestamp.isoformat(),
            "aggressor_side": self.aggressor_side.value,
            "maker_order_id": self.maker_order_id,
            "taker_order_id": self.taker_order_id,
            "total_value": self.total_value,
        }

    def __repr__(self) -> str:
        """String representation of the trade."""
        return (
            f"Trade(id={str(self.trade_id)[:8]}..., "
            f"{self.security_id}, {self.volume} @ {self.price}, "
            f"{self.seller} -> {self.buyer})"
        )
