"""
Input validation utilities

This module provides validation functions for order parameters, tickers and
user identifiers to ensure data integrity before anything reaches the engine.
"""

from typing import Optional, Union
from .exceptions import (
    InvalidOrderException,
    TickerInvalidException,
    UnauthorizedException,
)

# Account of the exchange itself; never accepted from callers
SYSTEM_ID = "system"


def sanitize_int(value: Union[str, int], field_name: str = "value") -> int:
    """
    Convert a value to int with proper error handling.

    Coins, prices and volumes are whole numbers; fractional input is rejected
    rather than rounded.

    Args:
        value: Value to convert
        field_name: Name used in the error message

    Returns:
        Integer representation of the value

    Raises:
        InvalidOrderException: If value is not a whole number
    """
    if isinstance(value, bool):
        raise InvalidOrderException(
            f"Invalid {field_name}: {value}",
            details={field_name: value}
        )
    if isinstance(value, int):
        return value
    try:
        text = str(value).strip()
        return int(text)
    except (ValueError, TypeError) as e:
        raise InvalidOrderException(
            f"Invalid {field_name}: {value}",
            details={field_name: value, "error": str(e)}
        )


def validate_price(
    price: Optional[int],
    security_id: str,
    required: bool = False,
    max_price: int = 10_000_000,
) -> bool:
    """
    Validate a price value.

    Args:
        price: Price to validate
        security_id: Security for context
        required: Whether price is required (False for market orders)
        max_price: Maximum acceptable price

    Returns:
        True if price is valid

    Raises:
        InvalidOrderException: If price is missing when required or out of bounds
    """
    if price is None:
        if required:
            raise InvalidOrderException(
                "Price is required for limit orders",
                details={"security_id": security_id}
            )
        return True

    if price <= 0:
        raise InvalidOrderException(
            f"Price must be positive, got {price}",
            details={"security_id": security_id, "price": price}
        )

    if price > max_price:
        raise InvalidOrderException(
            f"Price {price} exceeds maximum {max_price}",
            details={"security_id": security_id, "price": price, "max": max_price}
        )

    return True


def validate_volume(
    volume: int,
    security_id: str,
    max_volume: int = 1_000_000,
) -> bool:
    """
    Validate an order volume.

    Args:
        volume: Number of shares
        security_id: Security for context
        max_volume: Maximum acceptable volume

    Returns:
        True if volume is valid

    Raises:
        InvalidOrderException: If volume is not a positive whole number within bounds
    """
    if volume <= 0:
        raise InvalidOrderException(
            f"Volume must be positive, got {volume}",
            details={"security_id": security_id, "volume": volume}
        )

    if volume > max_volume:
        raise InvalidOrderException(
            f"Volume {volume} exceeds maximum {max_volume}",
            details={"security_id": security_id, "volume": volume, "max": max_volume}
        )

    return True


def normalize_ticker(ticker: str, max_length: int = 8) -> str:
    """
    Validate a ticker and return its canonical (upper case) form.

    Raises:
        TickerInvalidException: If the ticker is empty, too long or not alphanumeric
    """
    if not ticker or not isinstance(ticker, str):
        raise TickerInvalidException(
            f"Invalid ticker: {ticker!r}",
            details={"ticker": ticker}
        )

    ticker = ticker.strip()

    if not 1 <= len(ticker) <= max_length:
        raise TickerInvalidException(
            f"Ticker must be 1-{max_length} characters, got {len(ticker)}",
            details={"ticker": ticker, "max_length": max_length}
        )

    if not (ticker.isascii() and ticker.isalnum()):
        raise TickerInvalidException(
            f"Ticker must be alphanumeric: {ticker}",
            details={"ticker": ticker}
        )

    return ticker.upper()


def validate_user_id(user_id: str) -> str:
    """
    Reject empty user identifiers and the reserved exchange account.

    Raises:
        InvalidOrderException: If the id is empty
        UnauthorizedException: If the id names the exchange account
    """
    if not user_id or not isinstance(user_id, str) or not user_id.strip():
        raise InvalidOrderException(
            "User id cannot be empty",
            details={"user_id": user_id}
        )
    user_id = user_id.strip()
    if user_id == SYSTEM_ID:
        raise UnauthorizedException(
            f"User id {user_id} is reserved for the exchange",
            details={"user_id": user_id}
        )
    return user_id


def validate_order_parameters(
    security_id: str,
    order_type: str,
    side: str,
    volume: Union[str, int],
    price: Optional[Union[str, int]] = None,
    max_volume: int = 1_000_000,
    max_price: int = 10_000_000,
) -> tuple[str, str, int, Optional[int]]:
    """
    Validate all order parameters together.

    Args:
        security_id: Security identifier
        order_type: Type of order (market, limit)
        side: Order side (buy, sell)
        volume: Order volume
        price: Order price (required for limit orders)

    Returns:
        Tuple of (order_type, side, validated_volume, validated_price)

    Raises:
        InvalidOrderException: If any parameter is invalid
    """
    valid_order_types = ["MARKET", "LIMIT"]
    if not order_type or order_type.upper() not in valid_order_types:
        raise InvalidOrderException(
            f"Invalid order type: {order_type}",
            details={"order_type": order_type, "valid_types": valid_order_types}
        )

    valid_sides = ["BUY", "SELL"]
    if not side or side.upper() not in valid_sides:
        raise InvalidOrderException(
            f"Invalid side: {side}",
            details={"side": side, "valid_sides": valid_sides}
        )

    validated_volume = sanitize_int(volume, "volume")
    validate_volume(validated_volume, security_id, max_volume=max_volume)

    validated_price = None
    if price is not None:
        validated_price = sanitize_int(price, "price")

    # Market orders trade at whatever the book offers
    if order_type.upper() == "MARKET":
        validated_price = None

    validate_price(
        validated_price,
        security_id,
        required=order_type.upper() == "LIMIT",
        max_price=max_price,
    )

    return order_type.upper(), side.upper(), validated_volume, validated_price
