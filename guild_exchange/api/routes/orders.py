"""
REST API endpoints for order operations.

Provides endpoints for order submission, cancellation and the pending
order list of a user.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Depends, Query, Response, status

from guild_exchange.api.errors import http_status_for
from guild_exchange.api.models import (
    OrderRequest,
    OrderResponse,
    PendingOrderResponse,
    CancelOrderResponse,
    ErrorResponse
)
from guild_exchange.services.order_service import OrderService

logger = logging.getLogger(__name__)

# Create router
router = APIRouter(prefix="/api/v1/orders", tags=["orders"])


# Dependency injection for OrderService
# This will be overridden in main.py with actual instance
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


@router.post(
    "",
    response_model=OrderResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit a new order",
    description="Buy or sell shares of a guild. Without a price the order "
                "trades against whatever the book offers.",
    responses={
        201: {
            "description": "Order accepted (filled, partially filled or resting)",
            "model": OrderResponse
        },
        400: {
            "description": "Order rejected for insufficient coins or shares",
            "model": OrderResponse
        },
        404: {
            "description": "Unknown security",
            "model": ErrorResponse
        },
        409: {
            "description": "Trading is halted",
            "model": OrderResponse
        },
        422: {
            "description": "Validation error",
            "model": ErrorResponse
        },
        503: {
            "description": "Service unavailable"
        }
    }
)
async def submit_order(
    order_request: OrderRequest,
    response: Response,
    order_service: OrderService = Depends(get_order_service)
) -> OrderResponse:
    """
    Submit a new order.

    Rejected orders come back with the rejection reason in `error` and
    a matching HTTP status; the exchange state is left untouched.
    """
    result = order_service.submit_order(
        user_id=order_request.user_id,
        security=order_request.security,
        side=order_request.side,
        order_type=order_request.resolved_order_type(),
        volume=order_request.volume,
        price=order_request.price
    )

    if result.error is not None:
        response.status_code = http_status_for(result.error)

    return OrderResponse.from_order_result(result)


@router.delete(
    "/{order_id}",
    response_model=CancelOrderResponse,
    summary="Cancel an order",
    description="Cancel one of your resting orders",
    responses={
        200: {
            "description": "Order cancelled successfully",
            "model": CancelOrderResponse
        },
        404: {
            "description": "No such resting order for this user",
            "model": ErrorResponse
        }
    }
)
async def cancel_order(
    order_id: int,
    user_id: str = Query(..., min_length=1, description="Owner of the order"),
    order_service: OrderService = Depends(get_order_service)
) -> CancelOrderResponse:
    order = order_service.cancel_order(user_id, order_id)
    return CancelOrderResponse(
        order_id=order.order_id,
        cancelled=True,
        message=f"Order {order.order_id} cancelled ({order.volume} shares unfilled)"
    )


@router.get(
    "",
    response_model=List[PendingOrderResponse],
    summary="List pending orders",
    description="Resting orders of a user, oldest first"
)
async def list_orders(
    user_id: str = Query(..., min_length=1),
    security: Optional[str] = Query(None, description="Ticker or security id filter"),
    order_service: OrderService = Depends(get_order_service)
) -> List[PendingOrderResponse]:
    orders = order_service.list_pending(user_id, security)
    return [PendingOrderResponse.from_order(order) for order in orders]
