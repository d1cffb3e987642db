"""
Order builders shared by the exchange tests.
"""

from guild_exchange.core.order import Order, OrderKind, OrderSide


GUILD = "guild-1"


def limit(owner, side, volume, price, security_id=GUILD):
    """Build a transient limit order."""
    return Order(
        owner=owner,
        security_id=security_id,
        side=OrderSide[side.upper()],
        kind=OrderKind.LIMIT,
        volume=volume,
        price=price,
    )


def market(owner, side, volume, security_id=GUILD):
    """Build a transient market order."""
    return Order(
        owner=owner,
        security_id=security_id,
        side=OrderSide[side.upper()],
        kind=OrderKind.MARKET,
        volume=volume,
    )


def give_shares(engine, user, volume, price=1, security_id=GUILD):
    """Move system-issued shares to a user through the book."""
    engine.seed_liquidity(security_id, volume, price)
    engine.submit(limit(user, "buy", volume, price, security_id))
