"""
REST API endpoints for market data.

Provides endpoints for prices, price history and order book snapshots.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Depends, Query, status

from guild_exchange.api.models import (
    OrderBookResponse,
    PriceResponse,
    PriceHistoryResponse,
    ErrorResponse
)
from guild_exchange.services.market_data_service import MarketDataService

logger = logging.getLogger(__name__)

# Create router
router = APIRouter(prefix="/api/v1", tags=["market-data"])


# Dependency injection for MarketDataService
_market_data_service: MarketDataService = None


def get_market_data_service() -> MarketDataService:
    """Dependency to get MarketDataService instance."""
    if _market_data_service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Market data service not initialized"
        )
    return _market_data_service


def set_market_data_service(service: MarketDataService) -> None:
    """Set the global MarketDataService instance."""
    global _market_data_service
    _market_data_service = service


@router.get(
    "/prices",
    response_model=List[PriceResponse],
    summary="List prices",
    description="Current price of every listed guild"
)
async def list_prices(
    service: MarketDataService = Depends(get_market_data_service)
) -> List[PriceResponse]:
    return [PriceResponse(**entry) for entry in service.list_prices()]


@router.get(
    "/prices/{security}",
    response_model=PriceResponse,
    summary="Get price",
    description="Current price of a guild by ticker or id",
    responses={
        404: {
            "description": "Unknown security",
            "model": ErrorResponse
        }
    }
)
async def get_price(
    security: str,
    service: MarketDataService = Depends(get_market_data_service)
) -> PriceResponse:
    return PriceResponse(**service.get_price(security))


@router.get(
    "/prices/{security}/history",
    response_model=PriceHistoryResponse,
    summary="Get price history",
    description="Price series of a guild for charting, oldest first",
    responses={
        404: {
            "description": "Unknown security",
            "model": ErrorResponse
        }
    }
)
async def get_price_history(
    security: str,
    limit: Optional[int] = Query(default=None, ge=1, le=10_000, description="Most recent points only"),
    service: MarketDataService = Depends(get_market_data_service)
) -> PriceHistoryResponse:
    return PriceHistoryResponse(**service.get_history(security, limit))


@router.get(
    "/orderbook/{security}",
    response_model=OrderBookResponse,
    summary="Get order book snapshot",
    description="Retrieve current order book snapshot for a guild",
    responses={
        200: {
            "description": "Order book snapshot retrieved successfully",
            "model": OrderBookResponse
        },
        404: {
            "description": "Unknown security",
            "model": ErrorResponse
        }
    }
)
async def get_orderbook(
    security: str,
    levels: int = Query(default=10, ge=1, le=100, description="Number of price levels to return"),
    service: MarketDataService = Depends(get_market_data_service)
) -> OrderBookResponse:
    """
    Get order book snapshot.

    Returns aggregated limit levels per side plus the volume waiting in
    the market order queues.
    """
    snapshot = service.get_order_book_snapshot(security, levels)
    return OrderBookResponse(timestamp=datetime.now(timezone.utc), **snapshot)
