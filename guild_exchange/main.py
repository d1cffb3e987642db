"""
FastAPI Application - Main Entry Point

REST API for the guild stock exchange: users trade shares of chat guilds
whose prices follow guild activity.
"""

import logging
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError

from guild_exchange.config import get_settings
from guild_exchange.core.matching_engine import MatchingEngine
from guild_exchange.services.activity_service import ActivityService
from guild_exchange.services.market_data_service import MarketDataService
from guild_exchange.services.order_service import OrderService
from guild_exchange.services.persistence import StateStore
from guild_exchange.services.security_service import SecurityService
from guild_exchange.utils.exceptions import BaseExchangeException
from guild_exchange.utils.logger import get_logger

# Import routers
from guild_exchange.api.errors import http_status_for
from guild_exchange.api.routes import accounts, market_data, orders, securities
from guild_exchange.api.models import HealthResponse, ErrorResponse

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Global instances
matching_engine: MatchingEngine = None
state_store: StateStore = None
order_service: OrderService = None
market_data_service: MarketDataService = None
security_service: SecurityService = None
activity_service: ActivityService = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup and shutdown events.

    Restores the exchange from its state file on startup, starts the
    activity pricing task, and saves the exchange on shutdown.
    """
    # Startup
    logger.info("=" * 80)
    logger.info("Starting Guild Exchange API")
    logger.info("=" * 80)

    global matching_engine, state_store, order_service, market_data_service
    global security_service, activity_service

    settings = get_settings()
    get_logger(
        log_level=settings.log_level,
        log_dir=Path(settings.log_dir) if settings.log_dir else None,
        use_json=settings.use_json_logs,
    )

    # Restore matching engine
    logger.info(f"Restoring exchange state from {settings.state_file}...")
    state_store = StateStore(settings.state_file)
    matching_engine, registry = state_store.restore(
        starting_balance=settings.starting_balance,
        admin_ids=settings.admin_ids,
        true_price_window=settings.true_price_window,
        price_drift_weight=settings.price_drift_weight,
        price_scale=settings.price_scale,
        log_level=settings.log_level,
    )
    registry.max_length = settings.ticker_max_length

    # Initialize services
    logger.info("Initializing services...")
    order_service = OrderService(
        matching_engine,
        registry,
        store=state_store,
        max_volume=settings.max_order_volume,
        max_price=settings.max_price,
    )
    market_data_service = MarketDataService(matching_engine, registry)
    security_service = SecurityService(
        matching_engine,
        registry,
        store=state_store,
        listing_price=settings.listing_price,
        ipo_volume=settings.ipo_volume,
    )
    activity_service = ActivityService(
        matching_engine,
        registry,
        store=state_store,
        interval_seconds=settings.activity_interval_seconds,
    )

    # Set service instances in routers
    orders.set_order_service(order_service)
    accounts.set_order_service(order_service)
    market_data.set_market_data_service(market_data_service)
    securities.set_security_service(security_service)
    securities.set_activity_service(activity_service)

    # Start background tasks
    logger.info("Starting background tasks...")
    await activity_service.start()

    logger.info("API startup complete!")
    logger.info("=" * 80)

    yield

    # Shutdown
    logger.info("=" * 80)
    logger.info("Shutting down API...")
    logger.info("=" * 80)

    logger.info("Stopping background tasks...")
    await activity_service.stop()

    state_store.save(matching_engine, registry)
    logger.info("API shutdown complete!")


# Create FastAPI application
app = FastAPI(
    title="Guild Exchange API",
    description="""
    Stock market for chat guilds. Every listed guild is a security whose
    price follows the activity of its members.

    ## Endpoints
    * **POST /api/v1/orders**: Buy or sell shares
    * **DELETE /api/v1/orders/{order_id}**: Cancel a resting order
    * **GET /api/v1/orders**: List your resting orders
    * **GET /api/v1/accounts/{user_id}**: Balance and holdings
    * **GET /api/v1/prices/{security}**: Current price
    * **GET /api/v1/prices/{security}/history**: Price series for charting
    * **GET /api/v1/orderbook/{security}**: Order book snapshot
    * **PUT /api/v1/securities/{security}/ticker**: Rename a guild
    """,
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc"
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Request ID middleware
@app.middleware("http")
async def add_request_id(request: Request, call_next):
    """Add unique request ID to each request for tracking."""
    request_id = str(uuid.uuid4())
    request.state.request_id = request_id

    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id

    return response


# Logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all incoming requests and responses."""
    request_id = getattr(request.state, "request_id", "unknown")

    logger.info(
        f"Request [{request_id}]: {request.method} {request.url.path} "
        f"from {request.client.host if request.client else 'unknown'}"
    )

    response = await call_next(request)

    logger.info(
        f"Response [{request_id}]: {response.status_code}"
    )

    return response


# Exception handlers
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle Pydantic validation errors."""
    request_id = getattr(request.state, "request_id", "unknown")
    logger.warning(f"Validation error [{request_id}]: {exc.errors()}")

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=ErrorResponse(
            error="ValidationError",
            message="Request validation failed",
            detail=str(exc.errors()),
            timestamp=datetime.now(timezone.utc)
        ).model_dump(mode='json')
    )


@app.exception_handler(BaseExchangeException)
async def exchange_exception_handler(request: Request, exc: BaseExchangeException):
    """Map exchange errors to HTTP status codes by their kind."""
    request_id = getattr(request.state, "request_id", "unknown")
    status_code = http_status_for(exc.kind)
    if status_code >= 500:
        logger.error(f"{exc.kind.value} [{request_id}]: {exc.message}")
    else:
        logger.warning(f"{exc.kind.value} [{request_id}]: {exc.message}")

    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(
            error=exc.kind.value,
            message=exc.message,
            detail=str(exc.details) if exc.details else None,
            timestamp=datetime.now(timezone.utc)
        ).model_dump(mode='json')
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle all unhandled exceptions."""
    request_id = getattr(request.state, "request_id", "unknown")
    logger.error(f"Unhandled exception [{request_id}]: {str(exc)}", exc_info=True)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(
            error="InternalServerError",
            message="An internal error occurred",
            detail="Contact support with request ID: " + request_id,
            timestamp=datetime.now(timezone.utc)
        ).model_dump(mode='json')
    )


# Health check endpoint
@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["health"],
    summary="Health check",
    description="Check API and matching engine health status"
)
async def health_check() -> HealthResponse:
    """
    Health check endpoint.

    Returns service status and matching engine statistics.
    """
    stats = matching_engine.get_statistics() if matching_engine else {}

    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc),
        version="1.0.0",
        matching_engine=stats
    )


# Include routers
app.include_router(orders.router)
app.include_router(accounts.router)
app.include_router(market_data.router)
app.include_router(securities.router)


# Root endpoint
@app.get("/", tags=["root"])
async def root():
    """Root endpoint with API information."""
    return {
        "name": "Guild Exchange API",
        "version": "1.0.0",
        "status": "operational",
        "docs": "/docs",
        "health": "/health"
    }


if __name__ == "__main__":
    import uvicorn
    settings = get_settings()
    uvicorn.run(
        "guild_exchange.main:app",
        host=settings.backend_host,
        port=settings.backend_port,
        log_level=settings.log_level.lower()
    )
