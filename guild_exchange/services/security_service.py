"""
Security Service - listing, tickers and trading administration.
"""

import logging
from typing import Dict, Any, Optional

from guild_exchange.core.matching_engine import MatchingEngine
from guild_exchange.core.ticker_registry import TickerRegistry
from guild_exchange.services.persistence import StateStore
from guild_exchange.utils.exceptions import InvalidOrderException, UnknownSecurityException
from guild_exchange.utils.validators import validate_user_id


class SecurityService:
    """
    Service class for listing guilds and managing their tickers.
    """

    def __init__(
        self,
        matching_engine: MatchingEngine,
        registry: TickerRegistry,
        store: Optional[StateStore] = None,
        listing_price: int = 10,
        ipo_volume: int = 1000,
    ):
        self.matching_engine = matching_engine
        self.registry = registry
        self.store = store
        self.listing_price = listing_price
        self.ipo_volume = ipo_volume
        self.logger = logging.getLogger(f"{__name__}.SecurityService")

    def list_security(
        self,
        actor: str,
        security_id: str,
        ticker: Optional[str] = None,
        listing_price: Optional[int] = None,
        ipo_volume: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        List a guild, seed its initial offering and optionally name it.

        Only administrators may list. The ticker is validated before anything
        is listed, so a bad ticker leaves the exchange unchanged.

        Raises:
            UnauthorizedException: If `actor` is not an administrator
            TickerInvalidException: If the ticker is malformed
            TickerConflictException: If the ticker belongs to another security
            InvalidOrderException: If listing parameters are out of range
        """
        self.matching_engine.admin.authorize(validate_user_id(actor))

        if not security_id or not security_id.strip():
            raise InvalidOrderException("Security id cannot be empty")
        security_id = security_id.strip()

        price = self.listing_price if listing_price is None else listing_price
        volume = self.ipo_volume if ipo_volume is None else ipo_volume
        if price <= 0:
            raise InvalidOrderException(
                f"Listing price must be positive, got {price}",
                details={"security_id": security_id}
            )
        if volume < 0:
            raise InvalidOrderException(
                f"Initial offering cannot be negative, got {volume}",
                details={"security_id": security_id}
            )

        with self.matching_engine.lock:
            if ticker is not None:
                self.registry.set_ticker(security_id, ticker)

            already_listed = self.matching_engine.is_listed(security_id)
            self.matching_engine.list_security(security_id, price, volume)

        if not already_listed:
            self.logger.info(f"Listed {security_id} ({self.registry.ticker_for(security_id)})")
        self._persist()
        return self.describe(security_id)

    def set_ticker(self, security_id: str, ticker: str) -> str:
        """
        Rename a listed security.

        Raises:
            UnknownSecurityException: If the security is not listed
            TickerInvalidException: If the ticker is malformed
            TickerConflictException: If the ticker belongs to another security
        """
        with self.matching_engine.lock:
            security_id = self.registry.resolve(security_id, self.matching_engine.securities)
            if not self.matching_engine.is_listed(security_id):
                raise UnknownSecurityException(
                    f"Security {security_id} is not listed",
                    details={"security_id": security_id}
                )
            previous = self.registry.ticker_for(security_id)
            canonical = self.registry.set_ticker(security_id, ticker)

        self.logger.info(f"Ticker of {security_id}: {previous} -> {canonical}")
        self._persist()
        return canonical

    def describe(self, security: str) -> Dict[str, Any]:
        engine = self.matching_engine
        with engine.lock:
            security_id = self.registry.resolve(security, engine.securities)
            if not engine.is_listed(security_id):
                raise UnknownSecurityException(
                    f"Security {security_id} is not listed",
                    details={"security_id": security_id}
                )
            return {
                "security_id": security_id,
                "ticker": self.registry.ticker_for(security_id),
                "price": engine.reference_price(security_id),
                "shares_outstanding": engine.ledger.shares_outstanding(security_id),
            }

    def halt(self, actor: str) -> None:
        self.matching_engine.halt_trading(validate_user_id(actor))
        self._persist()

    def resume(self, actor: str) -> None:
        self.matching_engine.resume_trading(validate_user_id(actor))
        self._persist()

    def _persist(self) -> None:
        if self.store is not None:
            self.store.save(self.matching_engine, self.registry)
