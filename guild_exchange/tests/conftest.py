"""
Shared fixtures for the exchange tests.
"""

import pytest

from guild_exchange.core.matching_engine import MatchingEngine
from guild_exchange.tests.helpers import GUILD


@pytest.fixture
def engine():
    """Engine with one listed guild and no initial offering."""
    engine = MatchingEngine(starting_balance=1000, admin_ids=["admin"])
    engine.list_security(GUILD, listing_price=10)
    return engine
