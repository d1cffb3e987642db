"""
Append-only price history per security

Every executed trade, every activity drift step and every listing writes one
point. The tail is the current tradable price; the whole series feeds charts.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Any


class PriceSource(Enum):
    """What produced a price point."""
    LISTING = "LISTING"
    TRADE = "TRADE"
    DRIFT = "DRIFT"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class PricePoint:
    price: int
    source: PriceSource
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "price": self.price,
            "source": self.source.value,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PricePoint":
        return cls(
            price=int(data["price"]),
            source=PriceSource(data["source"]),
            timestamp=datetime.fromisoformat(data["timestamp"]),
        )


class PriceHistory:
    """Per-security sequence of price points; nothing is ever removed."""

    def __init__(self):
        self.series_by_security: Dict[str, List[PricePoint]] = {}

    def append(
        self,
        security_id: str,
        price: int,
        source: PriceSource = PriceSource.TRADE,
        timestamp: Optional[datetime] = None,
    ) -> PricePoint:
        """
        Record a price.

        Raises:
            ValueError: If the price is not positive
        """
        if price <= 0:
            raise ValueError(f"Price must be positive, got {price}")
        point = PricePoint(price, source, timestamp or datetime.now(timezone.utc))
        self.series_by_security.setdefault(security_id, []).append(point)
        return point

    def latest(self, security_id: str) -> Optional[PricePoint]:
        points = self.series_by_security.get(security_id)
        if not points:
            return None
        return points[-1]

    def series(self, security_id: str, limit: Optional[int] = None) -> List[PricePoint]:
        """Points oldest first; `limit` keeps only the most recent ones."""
        points = self.series_by_security.get(security_id, [])
        if limit is not None:
            points = points[-limit:] if limit > 0 else []
        return list(points)

    def __len__(self) -> int:
        return sum(len(points) for points in self.series_by_security.values())

    def to_dict(self) -> Dict[str, Any]:
        return {
            security_id: [point.to_dict() for point in points]
            for security_id, points in self.series_by_security.items()
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PriceHistory":
        history = cls()
        for security_id, points in data.items():
            history.series_by_security[security_id] = [PricePoint.from_dict(p) for p in points]
        return history
