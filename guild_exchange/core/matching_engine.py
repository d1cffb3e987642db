"""
Core matching and settlement engine.

Accepts buy and sell orders (limit or market), matches them against the
per-security order book in price-time priority, settles every fill on the
ledger, records the traded price and queues any unmatched remainder. The
engine owns all mutable exchange state and serialises every operation on it
behind one lock.
"""

import threading
from collections import deque
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from .admin import ExchangeAdmin
from .ledger import Ledger, SYSTEM_ID
from .order import Order, OrderKind, OrderResult, OrderSide, OrderStatus
from .order_arena import OrderArena
from .order_book import OrderBook
from .price_history import PriceHistory, PricePoint, PriceSource
from .security import Security, true_price_sample
from .trade import Trade
from ..utils.exceptions import (
    BaseExchangeException,
    CorruptStateException,
    InsufficientFundsException,
    InsufficientHoldingsException,
    InvalidOrderException,
    InvalidOrderIdException,
    UnknownSecurityException,
)
from ..utils.logger import get_logger

STATE_VERSION = 1


class MatchingEngine:
    """
    Exchange engine for guild securities.

    Matching rules:
    - A priced order first takes resting opposite market orders (at its own
      price), then the opposite queue at exactly its limit price. It never
      trades at any other level.
    - A market order sweeps opposite price levels best price first, draining
      each level before the next, then takes resting opposite market orders.
    - Two market orders trade at the security's reference price, the last
      recorded price.
    - Within a queue the oldest order trades first; a partial fill keeps its
      place.

    Admission is checked against the user's balance or holdings net of what
    their other resting orders already reserve, before anything is mutated.

    Thread-safe with a single engine-wide lock.
    """

    MAX_TRADE_JOURNAL_SIZE = 10000  # Rolling window for trade history

    def __init__(
        self,
        starting_balance: int = 1000,
        admin_ids: Iterable[str] = (),
        true_price_window: int = 24,
        price_drift_weight: float = 0.25,
        price_scale: float = 10.0,
        log_level: str = "INFO",
    ):
        """
        Initialize the matching engine.

        Args:
            starting_balance: Coins granted to a new account
            admin_ids: Users allowed to halt and resume trading
            true_price_window: Activity samples averaged into the true price
            price_drift_weight: Fraction of the gap to the true price closed per drift step
            price_scale: Coins per unit of activity score
            log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        """
        self.ledger = Ledger(starting_balance=starting_balance)
        self.arena = OrderArena()
        self.order_books: Dict[str, OrderBook] = {}
        self.securities: Dict[str, Security] = {}
        self.history = PriceHistory()
        self.admin = ExchangeAdmin(admin_ids)

        self.true_price_window = true_price_window
        self.price_drift_weight = price_drift_weight
        self.price_scale = price_scale

        self.trade_journal: deque = deque(maxlen=self.MAX_TRADE_JOURNAL_SIZE)
        self.execution_callbacks: List[Callable[[Trade], None]] = []
        self.statistics: Dict[str, int] = {
            "orders_processed": 0,
            "orders_rejected": 0,
            "trades_executed": 0,
            "total_volume": 0,
            "orders_filled": 0,
            "orders_partial": 0,
            "orders_cancelled": 0,
        }
        self.lock = threading.RLock()
        self.logger = get_logger(log_level=log_level)

        self.ledger.open_account(SYSTEM_ID, 0)

    # Listing

    def list_security(
        self,
        security_id: str,
        listing_price: int,
        ipo_volume: int = 0,
    ) -> Security:
        """
        List a guild as a tradable security.

        Writes the listing price as the first history point and, when
        `ipo_volume` is positive, offers that many system-held shares at the
        listing price. Listing an already listed security returns it unchanged.
        """
        with self.lock:
            existing = self.securities.get(security_id)
            if existing is not None:
                return existing

            security = Security(security_id, listing_price, self.true_price_window)
            self.securities[security_id] = security
            self.order_books[security_id] = OrderBook(security_id, self.arena)
            self.history.append(security_id, listing_price, PriceSource.LISTING)
            self.logger.info(f"Listed {security_id} at {listing_price}", security_id=security_id)

            if ipo_volume > 0:
                self.seed_liquidity(security_id, ipo_volume, listing_price)

            return security

    def seed_liquidity(
        self,
        security_id: str,
        volume: int,
        price: Optional[int] = None,
    ) -> OrderResult:
        """
        Offer system-held shares for sale.

        System orders bypass the trading halt and the admission check; the
        price defaults to the security's reference price.
        """
        with self.lock:
            self._require_book(security_id)
            order = Order(
                owner=SYSTEM_ID,
                security_id=security_id,
                side=OrderSide.SELL,
                kind=OrderKind.SYSTEM_SEED,
                volume=volume,
                price=price if price is not None else self.reference_price(security_id),
            )
            return self.submit(order)

    # Orders

    def submit(self, order: Order) -> OrderResult:
        """
        Submit an order to the engine.

        Args:
            order: Transient order (no id yet)

        Returns:
            OrderResult whose `resting` is the queued remainder, or None when
            nothing was queued

        Raises:
            TradingHaltedException: Trading halted and the order is not an exchange seed order
            UnknownSecurityException: Security not listed
            InvalidOrderException: Malformed order
            InsufficientFundsException: Limit buy not covered by free coins
            InsufficientHoldingsException: Sell not covered by free shares
        """
        self.logger.log_order_submission(
            order.owner,
            order.security_id,
            order.kind.value,
            order.side.value,
            order.volume,
            order.price,
        )

        with self.lock:
            try:
                self.admin.check(order)

                if order.volume <= 0:
                    self.statistics["orders_rejected"] += 1
                    return OrderResult(
                        order=order,
                        trades=[],
                        status=OrderStatus.REJECTED,
                        message="Nothing to trade",
                    )

                book = self._require_book(order.security_id)
                self._validate(order)

                if order.owner != SYSTEM_ID:
                    self.ledger.open_account(order.owner)
                    self._check_admission(order)

                trades, out_of_funds = self._fill_against_book(order, book)

                resting = None
                unfilled = 0
                if order.volume > 0 and out_of_funds:
                    unfilled = order.volume
                    order.status = OrderStatus.PARTIAL if trades else OrderStatus.CANCELLED
                elif order.volume > 0:
                    book.insert(order)
                    resting = order
                    order.status = OrderStatus.PARTIAL if trades else OrderStatus.PENDING

                self.statistics["orders_processed"] += 1
                if order.is_fully_filled:
                    self.statistics["orders_filled"] += 1
                elif trades:
                    self.statistics["orders_partial"] += 1

                return OrderResult(
                    order=order,
                    trades=trades,
                    status=order.status,
                    message=self._generate_result_message(order, trades, unfilled),
                    resting=resting,
                    unfilled_volume=unfilled,
                )

            except BaseExchangeException as e:
                self.statistics["orders_rejected"] += 1
                self.logger.warning(
                    f"Order rejected ({e.kind.value}): {e.message}",
                    user_id=order.owner,
                    security_id=order.security_id,
                )
                raise
            except Exception as e:
                self.logger.log_error(f"Error processing order from {order.owner}", e)
                raise

    def cancel(self, owner: str, order_id: int) -> Order:
        """
        Cancel one of the caller's resting orders.

        Raises:
            InvalidOrderIdException: If the id is not in the caller's pending set
        """
        with self.lock:
            if not self.arena.owns(owner, order_id):
                raise InvalidOrderIdException(
                    f"Order {order_id} not found",
                    details={"order_id": order_id, "user_id": owner}
                )

            order = self.arena.get(order_id)
            book = self._require_book(order.security_id)
            book.cancel(order_id)

            self.statistics["orders_cancelled"] += 1
            self.logger.log_order_cancellation(order_id, order.security_id)
            return order

    def list_pending(self, owner: str, security_id: Optional[str] = None) -> List[Order]:
        """Resting orders of a user, oldest first."""
        with self.lock:
            return self.arena.for_owner(owner, security_id)

    def get_order(self, order_id: int) -> Optional[Order]:
        with self.lock:
            return self.arena.get(order_id)

    # Accounts

    def open_account(self, user_id: str) -> bool:
        with self.lock:
            return self.ledger.open_account(user_id)

    def get_balance(self, user_id: str) -> int:
        with self.lock:
            return self.ledger.get_balance(user_id)

    def get_holdings(self, user_id: str, security_id: str) -> int:
        with self.lock:
            return self.ledger.get_holdings(user_id, security_id)

    def get_portfolio(self, user_id: str) -> Dict[str, Any]:
        """Balance, holdings and what resting orders currently reserve."""
        with self.lock:
            portfolio = self.ledger.portfolio(user_id)
            portfolio["reserved_coins"] = self._reserved_coins(user_id)
            portfolio["reserved_shares"] = {
                security_id: self._reserved_shares(user_id, security_id)
                for security_id in portfolio["holdings"]
            }
            portfolio["pending_orders"] = [o.to_dict() for o in self.arena.for_owner(user_id)]
            return portfolio

    # Administration

    def halt_trading(self, actor: str) -> None:
        with self.lock:
            self.admin.halt(actor)
            self.logger.warning(f"Trading halted by {actor}", user_id=actor)

    def resume_trading(self, actor: str) -> None:
        with self.lock:
            self.admin.resume(actor)
            self.logger.info(f"Trading resumed by {actor}", user_id=actor)

    # Prices

    def reference_price(self, security_id: str) -> int:
        """Last recorded price of a security."""
        with self.lock:
            point = self.history.latest(security_id)
            if point is not None:
                return point.price
            return self._require_security(security_id).listing_price

    def get_true_price(self, security_id: str) -> Optional[float]:
        with self.lock:
            return self._require_security(security_id).true_price

    def get_price_history(self, security_id: str, limit: Optional[int] = None) -> List[PricePoint]:
        with self.lock:
            self._require_security(security_id)
            return self.history.series(security_id, limit)

    def apply_activity(
        self,
        security_id: str,
        member_count: int,
        message_count: int,
        author_count: int,
    ) -> int:
        """
        Fold one interval of guild activity into the price.

        The activity sample joins the true-price window; the tradable price
        then closes `price_drift_weight` of its gap to the scaled true price
        and the result is recorded.

        Returns:
            The new tradable price
        """
        with self.lock:
            security = self._require_security(security_id)
            sample = true_price_sample(member_count, message_count, author_count)
            true_price = security.add_sample(sample)

            old_price = self.reference_price(security_id)
            target = true_price * self.price_scale
            new_price = max(1, round(old_price + self.price_drift_weight * (target - old_price)))

            self.history.append(security_id, new_price, PriceSource.DRIFT)
            self.logger.log_price_update(security_id, old_price, new_price, true_price)
            return new_price

    # Introspection

    def get_order_book(self, security_id: str) -> Optional[OrderBook]:
        """Get order book for a security."""
        return self.order_books.get(security_id)

    def is_listed(self, security_id: str) -> bool:
        return security_id in self.securities

    def get_statistics(self) -> Dict[str, Any]:
        with self.lock:
            stats = dict(self.statistics)
            stats["resting_orders"] = len(self.arena)
            stats["securities"] = len(self.securities)
            stats["trading_enabled"] = self.admin.trading_enabled
            return stats

    def register_trade_callback(self, callback: Callable[[Trade], None]) -> None:
        """
        Register a callback to be invoked when trades are executed.

        Args:
            callback: Function called with each Trade
        """
        self.execution_callbacks.append(callback)
        self.logger.info(f"Registered trade callback. Total callbacks: {len(self.execution_callbacks)}")

    def unregister_trade_callback(self, callback: Callable[[Trade], None]) -> None:
        if callback in self.execution_callbacks:
            self.execution_callbacks.remove(callback)

    # Persistence

    def to_dict(self) -> Dict[str, Any]:
        """Complete engine state as plain JSON-compatible data."""
        with self.lock:
            return {
                "version": STATE_VERSION,
                "ledger": self.ledger.to_dict(),
                "last_order_id": self.arena.last_id,
                "orders": [self.arena.orders[i].to_dict() for i in sorted(self.arena.orders)],
                "books": {sid: book.to_dict() for sid, book in self.order_books.items()},
                "securities": {sid: sec.to_dict() for sid, sec in self.securities.items()},
                "history": self.history.to_dict(),
                "trading_enabled": self.admin.trading_enabled,
                "statistics": dict(self.statistics),
            }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], **kwargs) -> "MatchingEngine":
        """
        Rebuild an engine written by to_dict.

        Keyword arguments configure the engine as in the constructor; the
        persisted starting balance wins over the configured one.

        Raises:
            CorruptStateException: If the data cannot be decoded
        """
        engine = cls(**kwargs)
        try:
            if data.get("version") != STATE_VERSION:
                raise ValueError(f"Unsupported state version {data.get('version')}")

            engine.ledger = Ledger.from_dict(data["ledger"])
            engine.ledger.open_account(SYSTEM_ID, 0)

            for order_data in data.get("orders", []):
                engine.arena.add(Order.from_dict(order_data))
            engine.arena.last_id = max(engine.arena.last_id, int(data.get("last_order_id", 0)))

            for security_id, security_data in data.get("securities", {}).items():
                engine.securities[security_id] = Security.from_dict(security_data)
            engine.history = PriceHistory.from_dict(data.get("history", {}))

            for security_id in engine.securities:
                book_data = data.get("books", {}).get(security_id, {})
                engine.order_books[security_id] = OrderBook.from_dict(security_id, engine.arena, book_data)

            queued = sum(book.order_count() for book in engine.order_books.values())
            if queued != len(engine.arena):
                raise ValueError(f"{len(engine.arena)} resting orders but {queued} queued")

            engine.admin.trading_enabled = bool(data.get("trading_enabled", True))
            engine.statistics.update(data.get("statistics", {}))
        except BaseExchangeException as e:
            raise CorruptStateException(f"Corrupt exchange state: {e.message}", details=e.details) from e
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise CorruptStateException(f"Corrupt exchange state: {e}") from e

        engine.logger.info(
            f"Restored {len(engine.securities)} securities and {len(engine.arena)} resting orders"
        )
        return engine

    # Private matching methods

    def _fill_against_book(self, order: Order, book: OrderBook) -> Tuple[List[Trade], bool]:
        """
        Match an incoming order until it is filled or nothing can trade.

        Returns:
            Trades generated and whether an incoming market buy ran out of coins
        """
        trades: List[Trade] = []

        while order.volume > 0:
            maker = book.peek_best(order)
            if maker is None:
                break

            price = self._match_price(order, maker)
            fill_volume = min(order.volume, maker.volume)

            buyer_order = order if order.is_buy else maker
            if buyer_order.owner != SYSTEM_ID and not buyer_order.is_priced:
                # Market buyers reserve nothing up front and pay as they go
                affordable = self._free_coins(buyer_order.owner) // price
                if affordable <= 0:
                    if buyer_order is order:
                        return trades, True
                    book.cancel(maker.order_id)
                    self.statistics["orders_cancelled"] += 1
                    self.logger.log_order_cancellation(
                        maker.order_id, maker.security_id, reason="insufficient funds"
                    )
                    continue
                fill_volume = min(fill_volume, affordable)

            trades.append(self._execute_match(order, maker, fill_volume, price, book))

        return trades, False

    def _execute_match(
        self,
        taker: Order,
        maker: Order,
        volume: int,
        price: int,
        book: OrderBook,
    ) -> Trade:
        """Settle one fill between the incoming order and a resting one."""
        if taker.is_buy:
            buyer, seller = taker.owner, maker.owner
        else:
            buyer, seller = maker.owner, taker.owner

        self.ledger.transfer(buyer, seller, taker.security_id, volume, price)
        taker.fill(volume)
        book.pop_or_shrink(maker, volume)
        self.history.append(taker.security_id, price, PriceSource.TRADE)

        trade = Trade(
            security_id=taker.security_id,
            price=price,
            volume=volume,
            buyer=buyer,
            seller=seller,
            aggressor_side=taker.side,
            maker_order_id=maker.order_id,
            taker_order_id=taker.order_id,
        )
        self.trade_journal.append(trade)

        self.statistics["trades_executed"] += 1
        self.statistics["total_volume"] += volume

        self.logger.log_trade_execution(
            trade.trade_id, trade.security_id, price, volume, buyer, seller
        )

        for callback in self.execution_callbacks:
            try:
                callback(trade)
            except Exception as e:
                self.logger.log_error("Error in trade callback", e)

        return trade

    def _match_price(self, incoming: Order, maker: Order) -> int:
        """Resting price if it has one, else the incoming limit, else the reference price."""
        if maker.is_priced:
            return maker.price
        if incoming.is_priced:
            return incoming.price
        return self.reference_price(incoming.security_id)

    def _check_admission(self, order: Order) -> None:
        """
        Reject orders the user cannot cover once their other resting orders
        are accounted for.

        Market buys are not checked here; they are capped by free coins as
        they fill.
        """
        if order.is_buy:
            if not order.is_priced:
                return
            free = self._free_coins(order.owner)
            cost = order.volume * order.price
            if free - cost < 0:
                raise InsufficientFundsException(
                    f"Insufficient funds: order costs {cost}, {free} coins available",
                    details={"user_id": order.owner, "cost": cost, "available": free}
                )
        else:
            held = self.ledger.get_holdings(order.owner, order.security_id)
            free = held - self._reserved_shares(order.owner, order.security_id)
            if free - order.volume < 0:
                raise InsufficientHoldingsException(
                    f"Insufficient holdings: selling {order.volume}, {free} shares available",
                    details={
                        "user_id": order.owner,
                        "security_id": order.security_id,
                        "volume": order.volume,
                        "available": free,
                    }
                )

    def _reserved_coins(self, user_id: str) -> int:
        """Coins committed to the user's resting limit buys across every security."""
        return sum(
            o.volume * o.price
            for o in self.arena.for_owner(user_id)
            if o.is_buy and o.is_priced
        )

    def _reserved_shares(self, user_id: str, security_id: str) -> int:
        """Shares committed to the user's resting sells of one security."""
        return sum(o.volume for o in self.arena.for_owner(user_id, security_id) if o.is_sell)

    def _free_coins(self, user_id: str) -> int:
        return self.ledger.get_balance(user_id) - self._reserved_coins(user_id)

    def _validate(self, order: Order) -> None:
        if order.order_id is not None:
            raise InvalidOrderException(
                f"Order {order.order_id} was already submitted",
                details={"order_id": order.order_id}
            )
        if order.kind == OrderKind.SYSTEM_SEED and order.owner != SYSTEM_ID:
            raise InvalidOrderException(
                "Only the exchange can place seed orders",
                details={"user_id": order.owner}
            )
        if order.owner == SYSTEM_ID and order.kind != OrderKind.SYSTEM_SEED:
            raise InvalidOrderException(
                "The exchange account only places seed orders",
                details={"user_id": order.owner}
            )
        try:
            order.validate()
        except ValueError as e:
            raise InvalidOrderException(str(e), details={"user_id": order.owner}) from e

    def _require_security(self, security_id: str) -> Security:
        security = self.securities.get(security_id)
        if security is None:
            raise UnknownSecurityException(
                f"Security {security_id} is not listed",
                details={"security_id": security_id}
            )
        return security

    def _require_book(self, security_id: str) -> OrderBook:
        self._require_security(security_id)
        return self.order_books[security_id]

    def _generate_result_message(self, order: Order, trades: List[Trade], unfilled: int) -> str:
        """Generate human-readable result message."""
        if order.is_fully_filled:
            return f"Order fully filled: {order.filled_volume} in {len(trades)} trade(s)"
        if unfilled:
            return (
                f"Out of coins after {order.filled_volume}/{order.original_volume}; "
                f"{unfilled} not bought"
            )
        if trades:
            return f"Order partially filled: {order.filled_volume}/{order.original_volume}, rest queued"
        return "Order added to book"
