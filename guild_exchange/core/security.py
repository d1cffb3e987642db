"""
Security records and the activity-driven true price
"""

import math
from collections import deque
from typing import Deque, Dict, Any, Optional


def true_price_sample(member_count: int, message_count: int, author_count: int) -> float:
    """
    Activity score of one collection interval.

    ln(members) scaled by messages per distinct author. A quiet interval
    (no authors) or a guild with fewer than one member scores zero.
    """
    if author_count <= 0 or member_count < 1 or message_count <= 0:
        return 0.0
    return math.log(member_count) * (message_count / author_count)


class Security:
    """
    One listed guild.

    Attributes:
        security_id: Guild id
        listing_price: Price written when the security was listed
        samples: Most recent activity samples, newest last
    """

    def __init__(self, security_id: str, listing_price: int, window: int = 24):
        if listing_price <= 0:
            raise ValueError(f"Listing price must be positive, got {listing_price}")
        if window <= 0:
            raise ValueError(f"Sample window must be positive, got {window}")
        self.security_id: str = security_id
        self.listing_price: int = listing_price
        self.samples: Deque[float] = deque(maxlen=window)

    @property
    def window(self) -> int:
        return self.samples.maxlen

    def add_sample(self, sample: float) -> Optional[float]:
        """Fold a sample into the window, dropping the oldest past its size."""
        self.samples.append(sample)
        return self.true_price

    @property
    def true_price(self) -> Optional[float]:
        """Mean of the sample window, None before the first sample."""
        if not self.samples:
            return None
        return sum(self.samples) / len(self.samples)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "security_id": self.security_id,
            "listing_price": self.listing_price,
            "window": self.window,
            "samples": list(self.samples),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Security":
        security = cls(data["security_id"], int(data["listing_price"]), int(data["window"]))
        security.samples.extend(float(s) for s in data.get("samples", []))
        return security

    def __repr__(self) -> str:
        return f"Security({self.security_id}, samples={len(self.samples)}, true_price={self.true_price})"
