"""
Market Data Service - price, history and order book queries.

Read-only views over the engine used by the price, graph and order book
commands.
"""

import logging
from typing import Dict, Any, List, Optional

from guild_exchange.core.matching_engine import MatchingEngine
from guild_exchange.core.ticker_registry import TickerRegistry


class MarketDataService:
    """
    Service class for market data queries.
    """

    def __init__(self, matching_engine: MatchingEngine, registry: TickerRegistry):
        """
        Initialize market data service.

        Args:
            matching_engine: Reference to the matching engine instance
            registry: Ticker registry used to resolve securities
        """
        self.matching_engine = matching_engine
        self.registry = registry
        self.logger = logging.getLogger(f"{__name__}.MarketDataService")
        self.logger.info("MarketDataService initialized")

    def get_price(self, security: str) -> Dict[str, Any]:
        """
        Current price of a security.

        Returns:
            Dictionary with the tradable price, true price and best prices
        """
        security_id = self._resolve(security)
        engine = self.matching_engine
        with engine.lock:
            book = engine.get_order_book(security_id)
            true_price = engine.get_true_price(security_id)
            return {
                "security_id": security_id,
                "ticker": self.registry.ticker_for(security_id),
                "price": engine.reference_price(security_id),
                "true_price": true_price * engine.price_scale if true_price is not None else None,
                "best_bid": book.best_bid,
                "best_ask": book.best_ask,
            }

    def list_prices(self) -> List[Dict[str, Any]]:
        """Price of every listed security."""
        return [self.get_price(security_id) for security_id in sorted(self.matching_engine.securities)]

    def get_history(self, security: str, limit: Optional[int] = None) -> Dict[str, Any]:
        """
        Price series for charting, oldest first.

        Args:
            security: Ticker or security id
            limit: Keep only the most recent points
        """
        security_id = self._resolve(security)
        points = self.matching_engine.get_price_history(security_id, limit)
        return {
            "security_id": security_id,
            "ticker": self.registry.ticker_for(security_id),
            "points": [point.to_dict() for point in points],
        }

    def get_order_book_snapshot(self, security: str, levels: int = 10) -> Dict[str, Any]:
        """
        Get current order book snapshot.

        Args:
            security: Ticker or security id
            levels: Number of price levels to return
        """
        security_id = self._resolve(security)
        with self.matching_engine.lock:
            snapshot = self.matching_engine.get_order_book(security_id).get_depth(levels)
        snapshot["ticker"] = self.registry.ticker_for(security_id)
        return snapshot

    def _resolve(self, security: str) -> str:
        return self.registry.resolve(security, self.matching_engine.securities)
