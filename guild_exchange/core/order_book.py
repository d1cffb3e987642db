"""
Order book data structure with price-time priority

This module implements the per-security order book: sorted price levels for
limit orders on each side plus one unpriced FIFO queue per side for market
orders. Queues hold order ids; the orders themselves live in the shared
OrderArena so that a single removal updates every view of an order.
"""

from typing import Optional, Dict, List, Tuple, Any, Iterator
from sortedcontainers import SortedDict

from .order import Order, OrderSide, OrderStatus
from .order_arena import OrderArena
from .price_level import PriceLevel
from ..utils.exceptions import (
    InvalidOrderIdException,
    InvalidOrderException,
)


class OrderBook:
    """
    Manages the order book for one security with price-time priority.

    Bids are sorted in descending order and asks in ascending order, so the
    first key on either side is always the most favourable price for an
    incoming order.

    Attributes:
        security_id: Security traded on this book
        arena: Shared registry of resting orders
        bids: Sorted dictionary of bid price levels (descending)
        asks: Sorted dictionary of ask price levels (ascending)
        market_queues: Unpriced FIFO queue per side
    """

    def __init__(self, security_id: str, arena: OrderArena):
        """
        Initialize an order book for a security.

        Args:
            security_id: Security identifier (the guild id)
            arena: Registry shared with every other book of the engine
        """
        self.security_id: str = security_id
        self.arena: OrderArena = arena

        # Bids sorted in descending order (highest price first)
        self.bids: SortedDict = SortedDict(lambda x: -x)

        # Asks sorted in ascending order (lowest price first)
        self.asks: SortedDict = SortedDict()

        self.market_queues: Dict[OrderSide, PriceLevel] = {
            OrderSide.BUY: PriceLevel(None, OrderSide.BUY),
            OrderSide.SELL: PriceLevel(None, OrderSide.SELL),
        }

    def insert_limit(self, order: Order) -> int:
        """
        Queue a priced order at the tail of its price level.

        Returns:
            The id assigned to the resting order

        Raises:
            InvalidOrderException: If the order has no price or belongs elsewhere
        """
        if not order.is_priced:
            raise InvalidOrderException(
                "Cannot add order without price to a price level",
                details={"order_kind": order.kind.value}
            )
        return self._insert(order)

    def insert_market(self, order: Order) -> int:
        """
        Queue an unpriced order at the tail of its side's market queue.

        Returns:
            The id assigned to the resting order
        """
        if order.is_priced:
            raise InvalidOrderException(
                "Priced orders rest on price levels",
                details={"order_kind": order.kind.value, "price": order.price}
            )
        return self._insert(order)

    def insert(self, order: Order) -> int:
        """Queue an order on the structure matching its kind."""
        if order.is_priced:
            return self.insert_limit(order)
        return self.insert_market(order)

    def peek_best(self, incoming: Order) -> Optional[Order]:
        """
        Find the counter-order an incoming order should trade with next.

        Priced orders take resting opposite market orders first, then the
        opposite queue at exactly their own limit price. Market orders take the
        best opposite price level first and fall back to the opposite market
        queue once the priced side is empty.

        Args:
            incoming: The order being matched

        Returns:
            Head of the chosen queue, or None when nothing can trade
        """
        opposite = incoming.side.opposite
        market_head = self._resolve(self.market_queues[opposite].peek())

        if incoming.is_priced:
            if market_head is not None:
                return market_head
            levels = self.asks if incoming.side == OrderSide.BUY else self.bids
            level = levels.get(incoming.price)
            return self._resolve(level.peek()) if level is not None else None

        for level in self.iter_limit_levels(incoming.side):
            return self._resolve(level.peek())
        return market_head

    def iter_limit_levels(self, side: OrderSide) -> Iterator[PriceLevel]:
        """
        Opposite price levels in the order a market order of `side` sweeps them.

        A buyer walks asks upwards, a seller walks bids downwards. Keys are read
        lazily, so the book must not change while the walk is in progress.
        """
        levels = self.asks if side == OrderSide.BUY else self.bids
        for level in levels.values():
            if not level.is_empty():
                yield level

    def pop_or_shrink(self, order: Order, filled: int) -> bool:
        """
        Apply a fill to a resting order.

        A full fill removes the order from the head of its queue and from the
        arena (and therefore from its owner's pending set); a partial fill
        shrinks it in place, keeping its time priority.

        Returns:
            True if the order left the book
        """
        order.fill(filled)
        if not order.is_fully_filled:
            return False

        level = self._level_for(order)
        if level is not None:
            if level.peek() == order.order_id:
                level.popleft()
            else:
                level.remove(order.order_id)
            self._prune(level)
        self.arena.remove(order.order_id)
        return True

    def cancel(self, order_id: int) -> Order:
        """
        Remove a resting order from its queue and from the arena.

        Raises:
            InvalidOrderIdException: If the order is not resting on this book
        """
        order = self.arena.get(order_id)
        if order is None or order.security_id != self.security_id:
            raise InvalidOrderIdException(
                f"Order {order_id} not found",
                details={"order_id": order_id, "security_id": self.security_id}
            )

        level = self._level_for(order)
        if level is None or not level.remove(order_id):
            raise InvalidOrderIdException(
                f"Order {order_id} not queued on {self.security_id}",
                details={"order_id": order_id, "security_id": self.security_id}
            )
        self._prune(level)

        self.arena.remove(order_id)
        order.status = OrderStatus.CANCELLED
        return order

    def get_order(self, order_id: int) -> Optional[Order]:
        """Resting order on this book, or None."""
        order = self.arena.get(order_id)
        if order is None or order.security_id != self.security_id:
            return None
        return order

    def get_best_bid(self) -> Optional[int]:
        if not self.bids:
            return None
        return self.bids.keys()[0]

    def get_best_ask(self) -> Optional[int]:
        if not self.asks:
            return None
        return self.asks.keys()[0]

    @property
    def best_bid(self) -> Optional[int]:
        """Best bid price."""
        return self.get_best_bid()

    @property
    def best_ask(self) -> Optional[int]:
        """Best ask price."""
        return self.get_best_ask()

    @property
    def spread(self) -> Optional[int]:
        """Bid-ask spread."""
        bid = self.best_bid
        ask = self.best_ask
        if bid is None or ask is None:
            return None
        return ask - bid

    def level_volume(self, level: PriceLevel) -> int:
        """Sum of remaining volumes queued at a level."""
        return sum(self.arena.orders[order_id].volume for order_id in level)

    def market_volume(self, side: OrderSide) -> int:
        return self.level_volume(self.market_queues[side])

    def get_price_levels(self, side: OrderSide, levels: int = 10) -> List[Tuple[int, int, int]]:
        """
        Get price levels for a specific side.

        Args:
            side: BUY or SELL
            levels: Number of levels to return

        Returns:
            List of (price, volume, order_count) tuples, best price first
        """
        book = self.bids if side == OrderSide.BUY else self.asks
        result = []

        for i, (price, level) in enumerate(book.items()):
            if i >= levels:
                break
            result.append((price, self.level_volume(level), len(level)))

        return result

    def get_depth(self, levels: int = 10) -> Dict[str, Any]:
        """
        Get order book depth.

        Returns:
            Dictionary with price levels and market queue volumes per side
        """
        return {
            "security_id": self.security_id,
            "bids": [list(entry) for entry in self.get_price_levels(OrderSide.BUY, levels)],
            "asks": [list(entry) for entry in self.get_price_levels(OrderSide.SELL, levels)],
            "market_buy_volume": self.market_volume(OrderSide.BUY),
            "market_sell_volume": self.market_volume(OrderSide.SELL),
            "best_bid": self.best_bid,
            "best_ask": self.best_ask,
            "spread": self.spread,
        }

    def order_count(self) -> int:
        total = sum(len(level) for level in self.bids.values())
        total += sum(len(level) for level in self.asks.values())
        total += sum(len(queue) for queue in self.market_queues.values())
        return total

    def to_dict(self) -> Dict[str, Any]:
        """Queue membership and order, by id."""
        return {
            "bids": [[price, list(level)] for price, level in self.bids.items()],
            "asks": [[price, list(level)] for price, level in self.asks.items()],
            "market": {
                side.value: list(queue) for side, queue in self.market_queues.items()
            },
        }

    @classmethod
    def from_dict(cls, security_id: str, arena: OrderArena, data: Dict[str, Any]) -> "OrderBook":
        """
        Rebuild queues written by to_dict.

        The arena must already hold every referenced order.
        """
        book = cls(security_id, arena)
        for key, side in (("bids", OrderSide.BUY), ("asks", OrderSide.SELL)):
            levels = book.bids if side == OrderSide.BUY else book.asks
            for price, order_ids in data.get(key, []):
                level = PriceLevel(int(price), side)
                for order_id in order_ids:
                    book._check_restored(order_id)
                    level.append(order_id)
                if not level.is_empty():
                    levels[int(price)] = level
        for side_value, order_ids in data.get("market", {}).items():
            queue = book.market_queues[OrderSide(side_value)]
            for order_id in order_ids:
                book._check_restored(order_id)
                queue.append(order_id)
        return book

    def _check_restored(self, order_id: int) -> None:
        order = self.arena.get(order_id)
        if order is None or order.security_id != self.security_id:
            raise InvalidOrderIdException(
                f"Queued order {order_id} missing from registry",
                details={"order_id": order_id, "security_id": self.security_id}
            )

    def _insert(self, order: Order) -> int:
        if order.security_id != self.security_id:
            raise InvalidOrderException(
                f"Order for {order.security_id} sent to book {self.security_id}",
                details={"security_id": order.security_id}
            )
        if order.volume <= 0:
            raise InvalidOrderException(
                "Cannot add order with no remaining volume",
                details={"order_id": order.order_id}
            )

        if order.order_id is None:
            order.order_id = self.arena.next_id()

        level = self._level_for(order, create=True)
        level.append(order.order_id)
        self.arena.add(order)
        return order.order_id

    def _level_for(self, order: Order, create: bool = False) -> Optional[PriceLevel]:
        """Locate the queue an order rests in from its side, kind and price."""
        if not order.is_priced:
            return self.market_queues[order.side]

        book = self.bids if order.side == OrderSide.BUY else self.asks
        level = book.get(order.price)
        if level is None and create:
            level = PriceLevel(order.price, order.side)
            book[order.price] = level
        return level

    def _prune(self, level: PriceLevel) -> None:
        """Drop an emptied price level; market queues are permanent."""
        if level.is_market or not level.is_empty():
            return
        book = self.bids if level.side == OrderSide.BUY else self.asks
        if book.get(level.price) is level:
            del book[level.price]

    def _resolve(self, order_id: Optional[int]) -> Optional[Order]:
        if order_id is None:
            return None
        return self.arena.get(order_id)

    def __repr__(self) -> str:
        """String representation of the order book."""
        return (
            f"OrderBook({self.security_id}: "
            f"{len(self.bids)} bid levels, {len(self.asks)} ask levels, "
            f"best={self.best_bid}/{self.best_ask}, "
            f"{self.order_count()} orders)"
        )
