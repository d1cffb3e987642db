"""
Registry of resting orders keyed by stable id

Both the order book queues and the per-user pending index refer to resting
orders by id only. Removing an order here drops it from the registry and
from its owner's pending set in a single call.
"""

from typing import Dict, Iterator, List, Optional, Set

from .order import Order
from ..utils.exceptions import InvalidOrderIdException


class OrderArena:
    """
    Owns every resting order across all securities.

    Attributes:
        orders: Resting orders by id
        by_owner: Order ids by owning user
        last_id: Highest id handed out so far
    """

    def __init__(self, last_id: int = 0):
        self.orders: Dict[int, Order] = {}
        self.by_owner: Dict[str, Set[int]] = {}
        self.last_id: int = last_id

    def next_id(self) -> int:
        """Hand out a fresh, never reused order id."""
        self.last_id += 1
        return self.last_id

    def add(self, order: Order) -> int:
        """
        Register a resting order.

        Raises:
            ValueError: If the order has no id or the id is taken
        """
        if order.order_id is None:
            raise ValueError("Resting orders must have an id")
        if order.order_id in self.orders:
            raise ValueError(f"Order {order.order_id} already resting")

        self.orders[order.order_id] = order
        self.by_owner.setdefault(order.owner, set()).add(order.order_id)
        self.last_id = max(self.last_id, order.order_id)
        return order.order_id

    def remove(self, order_id: int) -> Order:
        """
        Drop an order from the registry and its owner's pending set.

        Raises:
            InvalidOrderIdException: If the order is not resting
        """
        order = self.orders.pop(order_id, None)
        if order is None:
            raise InvalidOrderIdException(
                f"Order {order_id} is not resting",
                details={"order_id": order_id}
            )

        owned = self.by_owner.get(order.owner)
        if owned is not None:
            owned.discard(order_id)
            if not owned:
                del self.by_owner[order.owner]

        return order

    def get(self, order_id: int) -> Optional[Order]:
        return self.orders.get(order_id)

    def owns(self, owner: str, order_id: int) -> bool:
        return order_id in self.by_owner.get(owner, ())

    def for_owner(self, owner: str, security_id: Optional[str] = None) -> List[Order]:
        """Resting orders of a user, oldest first."""
        orders = [self.orders[order_id] for order_id in sorted(self.by_owner.get(owner, ()))]
        if security_id is not None:
            orders = [order for order in orders if order.security_id == security_id]
        return orders

    def __contains__(self, order_id: int) -> bool:
        return order_id in self.orders

    def __iter__(self) -> Iterator[Order]:
        return iter(self.orders.values())

    def __len__(self) -> int:
        return len(self.orders)
