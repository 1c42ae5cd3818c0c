"""
Flight seat endpoints. The seat map is cached in Redis; availability checks
for specific seats always hit the database.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from airline_booking.core.logging import get_logger
from airline_booking.db.session import get_db
from airline_booking.domain.status import SeatClass
from airline_booking.schemas.seat import (
    AvailabilitySummaryResponse,
    SeatAvailabilityEntry,
    SeatAvailabilityRequest,
    SeatAvailabilityResponse,
    SeatMapEntry,
    SeatMapResponse,
)
from airline_booking.services import seat_inventory
from airline_booking.services.cache_service import get_cached_seat_map, set_cached_seat_map

logger = get_logger(__name__)
router = APIRouter(prefix="/flights", tags=["Flights"])


@router.get("/{flight_id}/seats", response_model=SeatMapResponse)
async def get_seat_map_endpoint(
    flight_id: int,
    seat_class: Optional[SeatClass] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    """
    Seat map of a flight, ordered First to Economy.
    Cached for a short TTL and invalidated whenever a seat on the flight is taken or released.
    """
    class_key = seat_class.value if seat_class else None
    cached = await get_cached_seat_map(flight_id, class_key)
    if cached:
        logger.info("seat_map_cache_hit", flight_id=flight_id)
        cached["cached"] = True
        return SeatMapResponse(**cached)

    seats = await seat_inventory.get_seat_map(db, flight_id, seat_class)
    response_data = {
        "flight_id": flight_id,
        "seats": [SeatMapEntry(**seat).model_dump(mode="json") for seat in seats],
        "cached": False,
    }
    await set_cached_seat_map(flight_id, class_key, response_data)
    return SeatMapResponse(**response_data)


@router.get("/{flight_id}/seats/summary", response_model=AvailabilitySummaryResponse)
async def get_availability_summary_endpoint(
    flight_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Seat counts and price range per class."""
    classes = await seat_inventory.get_availability_summary(db, flight_id)
    return {"flight_id": flight_id, "classes": classes}


@router.post("/{flight_id}/seats/availability", response_model=SeatAvailabilityResponse)
async def check_availability_endpoint(
    flight_id: int,
    request: SeatAvailabilityRequest,
    db: AsyncSession = Depends(get_db),
):
    """Whether each requested seat is free on this flight. Never cached."""
    availability = await seat_inventory.check_seats_availability(db, flight_id, request.seat_ids)
    return SeatAvailabilityResponse(
        flight_id=flight_id,
        seats=[SeatAvailabilityEntry.model_validate(a) for a in availability],
        all_available=all(a.available for a in availability),
    )
