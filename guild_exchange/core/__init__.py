"""
Core domain models and matching engine logic
"""

from .order import Order, OrderKind, OrderSide, OrderStatus, OrderResult
from .trade import Trade
from .price_level import PriceLevel
from .order_arena import OrderArena
from .order_book import OrderBook
from .ledger import Ledger, SYSTEM_ID
from .price_history import PriceHistory, PricePoint, PriceSource
from .security import Security, true_price_sample
from .admin import ExchangeAdmin
from .ticker_registry import TickerRegistry
from .matching_engine import MatchingEngine

__all__ = [
    "Order",
    "OrderKind",
    "OrderSide",
    "OrderStatus",
    "OrderResult",
    "Trade",
    "PriceLevel",
    "OrderArena",
    "OrderBook",
    "Ledger",
    "SYSTEM_ID",
    "PriceHistory",
    "PricePoint",
    "PriceSource",
    "Security",
    "true_price_sample",
    "ExchangeAdmin",
    "TickerRegistry",
    "MatchingEngine",
]
