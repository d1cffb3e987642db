"""
REST API endpoints for user accounts.
"""

import logging

from fastapi import APIRouter, HTTPException, Depends, status

from guild_exchange.api.models import PortfolioResponse
from guild_exchange.services.order_service import OrderService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/accounts", tags=["accounts"])

_order_service: OrderService = None


def get_order_service() -> OrderService:
    """Dependency to get OrderService instance."""
    if _order_service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Order service not initialized"
        )
    return _order_service


def set_order_service(service: OrderService) -> None:
    """Set the global OrderService instance."""
    global _order_service
    _order_service = service


@router.get(
    "/{user_id}",
    response_model=PortfolioResponse,
    summary="Get portfolio",
    description="Balance, holdings and pending orders. The first lookup "
                "opens the account with the starting balance."
)
async def get_portfolio(
    user_id: str,
    order_service: OrderService = Depends(get_order_service)
) -> PortfolioResponse:
    portfolio = order_service.get_portfolio(user_id)
    return PortfolioResponse(**portfolio)
