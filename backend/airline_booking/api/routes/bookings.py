"""
Booking endpoints: create, view, modify and cancel.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from airline_booking.core.clock import Clock, get_clock
from airline_booking.core.logging import get_logger
from airline_booking.core.security import get_current_client_id
from airline_booking.db.session import after_commit, get_db
from airline_booking.schemas.booking import (
    BookingCancelResponse,
    BookingCreate,
    BookingDetailResponse,
    BookingListResponse,
    BookingResponse,
    BookingUpdate,
)
from airline_booking.schemas.passenger import PassengerCreate, PassengerResponse
from airline_booking.services import booking_service, passenger_service
from airline_booking.services.cache_service import invalidate_seat_map_cache

logger = get_logger(__name__)
router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.post("/", response_model=BookingDetailResponse, status_code=status.HTTP_201_CREATED)
async def create_booking_endpoint(
    booking_data: BookingCreate,
    client_id: int = Depends(get_current_client_id),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """
    Book one or more seats on a flight.

    The booking and all passengers are created atomically in `pending`
    status. If any seat is taken (including by a simultaneous request) the
    whole request fails with 409 SEAT_CONFLICT and nothing is stored.
    """
    booking = await booking_service.create_booking(
        db,
        client_id,
        booking_data.flight_id,
        [p.model_dump() for p in booking_data.passengers],
        clock,
        support=booking_data.support,
        fasttrack=booking_data.fasttrack,
    )
    after_commit(db, invalidate_seat_map_cache, booking_data.flight_id)
    return booking


@router.get("/", response_model=BookingListResponse)
async def list_bookings_endpoint(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    client_id: int = Depends(get_current_client_id),
    db: AsyncSession = Depends(get_db),
):
    """List the authenticated client's bookings, newest first."""
    bookings, total = await booking_service.list_client_bookings(db, client_id, page, page_size)
    return {"bookings": bookings, "total": total, "page": page, "page_size": page_size}


@router.get("/{booking_id}", response_model=BookingDetailResponse)
async def get_booking_endpoint(
    booking_id: int,
    client_id: int = Depends(get_current_client_id),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Booking with passengers, recomputed total cost and whether it can still be modified."""
    return await booking_service.get_booking_details(db, client_id, booking_id, clock)


@router.patch("/{booking_id}", response_model=BookingDetailResponse)
async def update_booking_endpoint(
    booking_id: int,
    changes: BookingUpdate,
    client_id: int = Depends(get_current_client_id),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Toggle service flags and re-seat passengers. Closes 24 hours before departure."""
    booking = await booking_service.update_booking(
        db,
        client_id,
        booking_id,
        clock,
        support=changes.support,
        fasttrack=changes.fasttrack,
        seat_changes=[c.model_dump() for c in changes.seat_changes],
    )
    if changes.seat_changes:
        after_commit(db, invalidate_seat_map_cache, booking["flight_id"])
    return booking


@router.delete("/{booking_id}", response_model=BookingCancelResponse)
async def cancel_booking_endpoint(
    booking_id: int,
    client_id: int = Depends(get_current_client_id),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Cancel a booking and release its seats. A paid booking is refunded in the same transaction."""
    result = await booking_service.cancel_booking(db, client_id, booking_id, clock)
    booking = result["booking"]
    after_commit(db, invalidate_seat_map_cache, booking.flight_id)
    return BookingCancelResponse(
        message="Booking cancelled successfully",
        booking=BookingResponse.model_validate(booking),
        refund=result["refund"],
    )


@router.post(
    "/{booking_id}/passengers",
    response_model=PassengerResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_passenger_endpoint(
    booking_id: int,
    passenger_data: PassengerCreate,
    client_id: int = Depends(get_current_client_id),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Add a passenger on a free seat to an existing booking."""
    passenger = await passenger_service.add_passenger(
        db, client_id, booking_id, passenger_data.model_dump(), clock
    )
    after_commit(db, invalidate_seat_map_cache, passenger["flight_id"])
    return passenger


@router.get("/{booking_id}/passengers", response_model=list[PassengerResponse])
async def list_passengers_endpoint(
    booking_id: int,
    client_id: int = Depends(get_current_client_id),
    db: AsyncSession = Depends(get_db),
):
    return await passenger_service.list_passengers(db, client_id, booking_id)
