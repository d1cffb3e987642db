"""
Order Service - Business logic layer for order operations.

This service handles order submission, cancellation and account queries,
acting as the command dispatcher between the API layer and the engine.
"""

import logging
from typing import Optional, Dict, Any, List

from guild_exchange.core.matching_engine import MatchingEngine
from guild_exchange.core.order import Order, OrderKind, OrderSide, OrderResult
from guild_exchange.core.ticker_registry import TickerRegistry
from guild_exchange.services.persistence import StateStore
from guild_exchange.utils.exceptions import BaseExchangeException
from guild_exchange.utils.validators import validate_order_parameters, validate_user_id


class OrderService:
    """
    Service class for handling order operations.

    Malformed requests raise; well-formed orders the exchange refuses
    (halted, insufficient funds or holdings) come back as a rejected
    OrderResult carrying the error kind, with engine state untouched.
    """

    def __init__(
        self,
        matching_engine: MatchingEngine,
        registry: TickerRegistry,
        store: Optional[StateStore] = None,
        max_volume: int = 1_000_000,
        max_price: int = 10_000_000,
    ):
        """
        Initialize order service.

        Args:
            matching_engine: Reference to the matching engine instance
            registry: Ticker registry used to resolve securities
            store: State store written after every mutation (None to skip)
        """
        self.matching_engine = matching_engine
        self.registry = registry
        self.store = store
        self.max_volume = max_volume
        self.max_price = max_price
        self.logger = logging.getLogger(f"{__name__}.OrderService")
        self.logger.info("OrderService initialized")

    def resolve_security(self, security: str) -> str:
        """Security id for a ticker or raw security id."""
        return self.registry.resolve(security, self.matching_engine.securities)

    def submit_order(
        self,
        user_id: str,
        security: str,
        side: str,
        order_type: str,
        volume=1,
        price=None,
    ) -> OrderResult:
        """
        Submit a new order to the matching engine.

        Args:
            user_id: Submitting user
            security: Ticker or security id
            side: "buy" or "sell"
            order_type: "limit" or "market"
            volume: Number of shares (defaults to one)
            price: Limit price (required for limit orders)

        Returns:
            OrderResult; `resting` holds the queued remainder if any

        Raises:
            InvalidOrderException: If parameters are malformed
            UnknownSecurityException: If the security is not listed
        """
        user_id = validate_user_id(user_id)
        security_id = self.resolve_security(security)
        order_type, side, volume, price = validate_order_parameters(
            security_id, order_type, side, volume, price,
            max_volume=self.max_volume, max_price=self.max_price,
        )

        order = Order(
            owner=user_id,
            security_id=security_id,
            side=OrderSide[side],
            kind=OrderKind[order_type],
            volume=volume,
            price=price,
        )

        self.logger.info(
            f"Submitting order: {user_id} {order_type} {side} "
            f"{volume} {security_id} @ {price or 'MARKET'}"
        )

        try:
            result = self.matching_engine.submit(order)
        except BaseExchangeException as e:
            self.logger.info(f"Order from {user_id} rejected: {e.kind.value}")
            return OrderResult.rejected(order, e.kind, e.message)

        self._persist()

        self.logger.info(
            f"Order from {user_id} processed. Status: {result.status.value}, "
            f"Filled: {order.filled_volume}/{order.original_volume}, "
            f"Trades: {len(result.trades)}"
        )
        return result

    def cancel_order(self, user_id: str, order_id: int) -> Order:
        """
        Cancel one of the user's resting orders.

        Raises:
            InvalidOrderIdException: If the user has no such resting order
        """
        self.logger.info(f"Cancelling order {order_id} for {user_id}")
        order = self.matching_engine.cancel(validate_user_id(user_id), order_id)
        self._persist()
        self.logger.info(f"Order {order_id} cancelled successfully")
        return order

    def list_pending(self, user_id: str, security: Optional[str] = None) -> List[Order]:
        security_id = self.resolve_security(security) if security else None
        return self.matching_engine.list_pending(validate_user_id(user_id), security_id)

    def get_portfolio(self, user_id: str) -> Dict[str, Any]:
        """
        Balance, holdings and pending orders, opening the account on first contact.
        """
        user_id = validate_user_id(user_id)
        if self.matching_engine.open_account(user_id):
            self.logger.info(f"Opened account for {user_id}")
            self._persist()

        portfolio = self.matching_engine.get_portfolio(user_id)
        portfolio["tickers"] = {
            security_id: self.registry.ticker_for(security_id)
            for security_id in portfolio["holdings"]
        }
        return portfolio

    def get_statistics(self) -> Dict[str, Any]:
        """
        Get matching engine statistics.

        Returns:
            Dictionary containing engine statistics
        """
        return self.matching_engine.get_statistics()

    def _persist(self) -> None:
        if self.store is not None:
            self.store.save(self.matching_engine, self.registry)
