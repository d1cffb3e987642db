"""
Custom exceptions for the guild exchange

This module defines a hierarchy of exceptions used throughout the exchange.
Every exception carries an ErrorKind so the command layer can turn it into a
user-visible message or an explicit rejected result without inspecting types.
"""

from enum import Enum


class ErrorKind(Enum):
    """Error kind enumeration."""
    TRADING_HALTED = "TRADING_HALTED"
    INSUFFICIENT_FUNDS = "INSUFFICIENT_FUNDS"
    INSUFFICIENT_HOLDINGS = "INSUFFICIENT_HOLDINGS"
    INVALID_ORDER_ID = "INVALID_ORDER_ID"
    TICKER_CONFLICT = "TICKER_CONFLICT"
    TICKER_INVALID = "TICKER_INVALID"
    UNKNOWN_SECURITY = "UNKNOWN_SECURITY"
    INVALID_ORDER = "INVALID_ORDER"
    UNAUTHORIZED = "UNAUTHORIZED"
    CORRUPT_STATE = "CORRUPT_STATE"

    def __str__(self) -> str:
        return self.value


class BaseExchangeException(Exception):
    """Base exception class for all exchange exceptions."""

    kind: ErrorKind = ErrorKind.INVALID_ORDER

    def __init__(self, message: str, details: dict = None):
        """
        Initialize the exception.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional error context
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


class TradingHaltedException(BaseExchangeException):
    """Raised when a user order arrives while trading is halted."""
    kind = ErrorKind.TRADING_HALTED


class InsufficientFundsException(BaseExchangeException):
    """Raised when a buyer lacks coins once existing reservations are counted."""
    kind = ErrorKind.INSUFFICIENT_FUNDS


class InsufficientHoldingsException(BaseExchangeException):
    """Raised when a seller lacks shares once existing reservations are counted."""
    kind = ErrorKind.INSUFFICIENT_HOLDINGS


class InvalidOrderIdException(BaseExchangeException):
    """Raised when cancelling or looking up an order that is not resting."""
    kind = ErrorKind.INVALID_ORDER_ID


class TickerConflictException(BaseExchangeException):
    """Raised when registering a ticker already used by another security."""
    kind = ErrorKind.TICKER_CONFLICT


class TickerInvalidException(BaseExchangeException):
    """Raised when a ticker violates the length or character-set rules."""
    kind = ErrorKind.TICKER_INVALID


class UnknownSecurityException(BaseExchangeException):
    """Raised when a ticker or security id is not listed."""
    kind = ErrorKind.UNKNOWN_SECURITY


class InvalidOrderException(BaseExchangeException):
    """Raised when an order contains invalid parameters or fails validation."""
    kind = ErrorKind.INVALID_ORDER


class UnauthorizedException(BaseExchangeException):
    """Raised when a non-administrator attempts an administrative action."""
    kind = ErrorKind.UNAUTHORIZED


class CorruptStateException(BaseExchangeException):
    """Raised when persisted state cannot be decoded."""
    kind = ErrorKind.CORRUPT_STATE
