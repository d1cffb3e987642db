"""
Price level queue management with FIFO ordering

This module defines the PriceLevel class which maintains a queue of resting
order ids at a single price with strict time priority. A level whose price
is None is the unpriced queue for market orders.
"""

from collections import deque
from typing import Optional, Deque, Iterator

from .order import OrderSide


class PriceLevel:
    """
    Manages order ids at a single price level with FIFO ordering.

    Orders are processed in the exact order they were added. A partially
    filled order keeps its place at the head of the queue.

    Attributes:
        price: The price level (None for the market queue)
        side: Buy or sell side
        order_ids: Deque of resting order ids
    """

    def __init__(self, price: Optional[int], side: OrderSide):
        """
        Initialize a price level.

        Args:
            price: The price for this level, None for market orders
            side: The side (BUY or SELL) for this level
        """
        self.price: Optional[int] = price
        self.side: OrderSide = side
        self.order_ids: Deque[int] = deque()

    def append(self, order_id: int) -> None:
        """
        Add an order id to the end of the queue.

        Raises:
            ValueError: If the id is already queued here
        """
        if order_id in self.order_ids:
            raise ValueError(f"Order {order_id} already queued at {self.price}")
        self.order_ids.append(order_id)

    def remove(self, order_id: int) -> bool:
        """
        Remove an order id from anywhere in the queue.

        Returns:
            True if the id was queued here
        """
        try:
            self.order_ids.remove(order_id)
        except ValueError:
            return False
        return True

    def peek(self) -> Optional[int]:
        """Next order id in FIFO order without removing it."""
        if not self.order_ids:
            return None
        return self.order_ids[0]

    def popleft(self) -> Optional[int]:
        """Remove and return the next order id."""
        if not self.order_ids:
            return None
        return self.order_ids.popleft()

    def is_empty(self) -> bool:
        return len(self.order_ids) == 0

    @property
    def is_market(self) -> bool:
        return self.price is None

    def __iter__(self) -> Iterator[int]:
        return iter(self.order_ids)

    def __len__(self) -> int:
        """Number of orders at this level."""
        return len(self.order_ids)

    def __repr__(self) -> str:
        price_str = "MARKET" if self.price is None else str(self.price)
        return f"PriceLevel(price={price_str}, side={self.side.value}, orders={len(self)})"
