"""
Trading halt and resume policy
"""

from typing import Iterable, Set

from .ledger import SYSTEM_ID
from .order import Order, OrderKind
from ..utils.exceptions import TradingHaltedException, UnauthorizedException


class ExchangeAdmin:
    """
    Binary trading state consulted at the top of every submission.

    Only ids in `admin_ids` may flip the state or list securities. Seed orders
    placed by the exchange itself are never halted so it can always provide
    liquidity.
    """

    def __init__(self, admin_ids: Iterable[str] = (), trading_enabled: bool = True):
        self.admin_ids: Set[str] = set(admin_ids)
        self.trading_enabled: bool = trading_enabled

    @property
    def is_halted(self) -> bool:
        return not self.trading_enabled

    def halt(self, actor: str) -> None:
        self.authorize(actor)
        self.trading_enabled = False

    def resume(self, actor: str) -> None:
        self.authorize(actor)
        self.trading_enabled = True

    def check(self, order: Order) -> None:
        """
        Raises:
            TradingHaltedException: If trading is halted and the order is not an exchange seed order
        """
        if self.trading_enabled:
            return
        if order.kind == OrderKind.SYSTEM_SEED and order.owner == SYSTEM_ID:
            return
        raise TradingHaltedException(
            "Trading is currently halted",
            details={"user_id": order.owner, "security_id": order.security_id}
        )

    def authorize(self, actor: str) -> None:
        """
        Raises:
            UnauthorizedException: If `actor` is not a configured administrator
        """
        if actor not in self.admin_ids:
            raise UnauthorizedException(
                f"{actor} is not an exchange administrator",
                details={"user_id": actor}
            )
