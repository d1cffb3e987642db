"""
REST API endpoints for guild listings, tickers, activity events and
trading administration.
"""

import logging

from fastapi import APIRouter, HTTPException, Depends, status

from guild_exchange.api.models import (
    ListSecurityRequest,
    SecurityResponse,
    TickerRequest,
    MessageEventRequest,
    MemberCountRequest,
    AdminRequest,
    TradingStatusResponse,
    ErrorResponse
)
from guild_exchange.services.activity_service import ActivityService
from guild_exchange.services.security_service import SecurityService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["securities"])


_security_service: SecurityService = None
_activity_service: ActivityService = None


def get_security_service() -> SecurityService:
    """Dependency to get SecurityService instance."""
    if _security_service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Security service not initialized"
        )
    return _security_service


def set_security_service(service: SecurityService) -> None:
    """Set the global SecurityService instance."""
    global _security_service
    _security_service = service


def get_activity_service() -> ActivityService:
    """Dependency to get ActivityService instance."""
    if _activity_service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Activity service not initialized"
        )
    return _activity_service


def set_activity_service(service: ActivityService) -> None:
    """Set the global ActivityService instance."""
    global _activity_service
    _activity_service = service


@router.post(
    "/securities",
    response_model=SecurityResponse,
    status_code=status.HTTP_201_CREATED,
    summary="List a guild",
    description="List a guild on the exchange and offer its initial shares. "
                "Listing an already listed guild only updates its ticker.",
    responses={
        403: {"description": "Not an administrator", "model": ErrorResponse},
        409: {"description": "Ticker taken", "model": ErrorResponse},
        422: {"description": "Invalid ticker", "model": ErrorResponse}
    }
)
async def list_security(
    request: ListSecurityRequest,
    service: SecurityService = Depends(get_security_service)
) -> SecurityResponse:
    listing = service.list_security(
        request.actor,
        request.security_id,
        ticker=request.ticker,
        listing_price=request.listing_price,
        ipo_volume=request.ipo_volume
    )
    return SecurityResponse(**listing)


@router.get(
    "/securities/{security}",
    response_model=SecurityResponse,
    summary="Describe a guild",
    responses={404: {"description": "Unknown security", "model": ErrorResponse}}
)
async def describe_security(
    security: str,
    service: SecurityService = Depends(get_security_service)
) -> SecurityResponse:
    return SecurityResponse(**service.describe(security))


@router.put(
    "/securities/{security}/ticker",
    response_model=SecurityResponse,
    summary="Set ticker",
    description="Rename a guild. The previous ticker is released.",
    responses={
        404: {"description": "Unknown security", "model": ErrorResponse},
        409: {"description": "Ticker taken", "model": ErrorResponse},
        422: {"description": "Invalid ticker", "model": ErrorResponse}
    }
)
async def set_ticker(
    security: str,
    request: TickerRequest,
    service: SecurityService = Depends(get_security_service)
) -> SecurityResponse:
    ticker = service.set_ticker(security, request.ticker)
    return SecurityResponse(**service.describe(ticker))


@router.post(
    "/securities/{security_id}/messages",
    status_code=status.HTTP_202_ACCEPTED,
    summary="Record a chat message",
    description="Count one message towards the guild's next activity sample"
)
async def record_message(
    security_id: str,
    event: MessageEventRequest,
    service: ActivityService = Depends(get_activity_service)
) -> dict:
    if event.is_bot:
        return {"recorded": False}
    service.record_message(security_id, event.author_id)
    return {"recorded": True}


@router.put(
    "/securities/{security_id}/members",
    status_code=status.HTTP_202_ACCEPTED,
    summary="Update member count"
)
async def set_member_count(
    security_id: str,
    request: MemberCountRequest,
    service: ActivityService = Depends(get_activity_service)
) -> dict:
    service.set_member_count(security_id, request.member_count)
    return {"member_count": request.member_count}


@router.post(
    "/admin/halt",
    response_model=TradingStatusResponse,
    tags=["admin"],
    summary="Halt trading",
    responses={403: {"description": "Not an administrator", "model": ErrorResponse}}
)
async def halt_trading(
    request: AdminRequest,
    service: SecurityService = Depends(get_security_service)
) -> TradingStatusResponse:
    service.halt(request.actor)
    logger.warning(f"Trading halted by {request.actor}")
    return TradingStatusResponse(trading_enabled=False)


@router.post(
    "/admin/resume",
    response_model=TradingStatusResponse,
    tags=["admin"],
    summary="Resume trading",
    responses={403: {"description": "Not an administrator", "model": ErrorResponse}}
)
async def resume_trading(
    request: AdminRequest,
    service: SecurityService = Depends(get_security_service)
) -> TradingStatusResponse:
    service.resume(request.actor)
    logger.info(f"Trading resumed by {request.actor}")
    return TradingStatusResponse(trading_enabled=True)
