"""
Airline Booking Core API - Main Application Entry Point

The transactional core of an airline reservation system:
- Atomic multi-passenger booking with a storage-level guard against double-booking
- Payments validated to the cent against the recomputed booking cost
- Time-windowed cancellation with additive refund ledger entries
- Structured logging with request correlation and Prometheus metrics
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from airline_booking.api.middleware import RequestLoggingMiddleware
from airline_booking.api.router import api_router
from airline_booking.core.config import get_settings
from airline_booking.core.exceptions import BookingCoreError
from airline_booking.core.logging import get_logger, setup_logging
from airline_booking.core.metrics import metrics_endpoint
from airline_booking.services.cache_service import close_redis, get_cache_stats, get_redis

settings = get_settings()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    logger.info(
        "booking_core_starting",
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
        modification_window_hours=settings.MODIFICATION_WINDOW_HOURS,
    )

    if settings.REDIS_ENABLED and await get_redis() is None:
        logger.warning("seat_map_cache_offline")

    try:
        yield
    finally:
        await close_redis()
        logger.info("booking_core_stopped")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Airline booking transaction core: seats, bookings, payments and refunds",
    lifespan=lifespan,
)

app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
    allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
    expose_headers=["X-Request-ID", "X-Response-Time"],
)

app.include_router(api_router)


@app.exception_handler(BookingCoreError)
async def booking_core_error_handler(request: Request, exc: BookingCoreError) -> JSONResponse:
    log = logger.warning if exc.status_code < 500 else logger.error
    log("request_rejected", code=exc.code, status_code=exc.status_code, message=exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.to_dict()})


@app.get("/health", tags=["Health"])
async def health():
    """Liveness for load balancers. The cache is reported but never fails the check."""
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "cache": await get_cache_stats(),
    }


@app.get("/metrics", tags=["Health"], include_in_schema=False)
async def metrics():
    return metrics_endpoint()
