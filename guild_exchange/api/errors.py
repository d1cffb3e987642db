"""
HTTP status codes for exchange error kinds.
"""

from fastapi import status

from guild_exchange.utils.exceptions import ErrorKind


STATUS_BY_KIND = {
    ErrorKind.TRADING_HALTED: status.HTTP_409_CONFLICT,
    ErrorKind.INSUFFICIENT_FUNDS: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INSUFFICIENT_HOLDINGS: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INVALID_ORDER_ID: status.HTTP_404_NOT_FOUND,
    ErrorKind.TICKER_CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.TICKER_INVALID: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorKind.UNKNOWN_SECURITY: status.HTTP_404_NOT_FOUND,
    ErrorKind.INVALID_ORDER: status.HTTP_400_BAD_REQUEST,
    ErrorKind.UNAUTHORIZED: status.HTTP_403_FORBIDDEN,
    ErrorKind.CORRUPT_STATE: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def http_status_for(kind: ErrorKind) -> int:
    return STATUS_BY_KIND.get(kind, status.HTTP_400_BAD_REQUEST)
