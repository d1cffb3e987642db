"""
Ticker registry

Maps human-readable tickers to security ids. The mapping is a bijection:
every security has at most one ticker and every ticker names one security.
"""

from typing import Dict, Optional, Any

from ..utils.exceptions import TickerConflictException, UnknownSecurityException
from ..utils.validators import normalize_ticker


class TickerRegistry:
    """
    Case-insensitive ticker <-> security id mapping.

    Attributes:
        by_ticker: Security id by canonical (upper case) ticker
        by_security: Canonical ticker by security id
        max_length: Longest accepted ticker
    """

    def __init__(self, max_length: int = 8):
        self.by_ticker: Dict[str, str] = {}
        self.by_security: Dict[str, str] = {}
        self.max_length: int = max_length

    def set_ticker(self, security_id: str, ticker: str) -> str:
        """
        Give a security a new ticker, releasing its previous one.

        Returns:
            The canonical ticker

        Raises:
            TickerInvalidException: If the ticker is malformed
            TickerConflictException: If another security uses the ticker
        """
        canonical = normalize_ticker(ticker, self.max_length)

        owner = self.by_ticker.get(canonical)
        if owner is not None and owner != security_id:
            raise TickerConflictException(
                f"Ticker {canonical} is already used",
                details={"ticker": canonical, "security_id": owner}
            )
        if owner == security_id:
            return canonical

        previous = self.by_security.pop(security_id, None)
        if previous is not None:
            del self.by_ticker[previous]

        self.by_ticker[canonical] = security_id
        self.by_security[security_id] = canonical
        return canonical

    def remove(self, security_id: str) -> Optional[str]:
        ticker = self.by_security.pop(security_id, None)
        if ticker is not None:
            del self.by_ticker[ticker]
        return ticker

    def lookup(self, ticker: str) -> Optional[str]:
        if not ticker:
            return None
        return self.by_ticker.get(ticker.strip().upper())

    def resolve(self, ticker_or_id: str, known_ids=()) -> str:
        """
        Security id for a ticker, or the argument itself if it is a known id.

        Raises:
            UnknownSecurityException: If neither a ticker nor a known id matches
        """
        security_id = self.lookup(ticker_or_id)
        if security_id is not None:
            return security_id
        if ticker_or_id in known_ids or ticker_or_id in self.by_security:
            return ticker_or_id
        raise UnknownSecurityException(
            f"Unknown ticker or security: {ticker_or_id}",
            details={"ticker": ticker_or_id}
        )

    def ticker_for(self, security_id: str) -> Optional[str]:
        return self.by_security.get(security_id)

    def __len__(self) -> int:
        return len(self.by_ticker)

    def to_dict(self) -> Dict[str, Any]:
        return {"max_length": self.max_length, "tickers": dict(self.by_security)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TickerRegistry":
        registry = cls(max_length=int(data.get("max_length", 8)))
        for security_id, ticker in data.get("tickers", {}).items():
            registry.set_ticker(security_id, ticker)
        return registry
