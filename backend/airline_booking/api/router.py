"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter

from airline_booking.api.routes import bookings, flights, passengers, payments

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(flights.router)
api_router.include_router(bookings.router)
api_router.include_router(passengers.router)
api_router.include_router(payments.router)
