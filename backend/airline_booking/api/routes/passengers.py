"""
Passenger endpoints. All changes are subject to booking ownership and the
24-hour modification window.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from airline_booking.core.clock import Clock, get_clock
from airline_booking.core.security import get_current_client_id
from airline_booking.db.session import after_commit, get_db
from airline_booking.schemas.passenger import (
    PassengerRemoveResponse,
    PassengerResponse,
    PassengerUpdate,
    SeatChangeRequest,
)
from airline_booking.services import passenger_service
from airline_booking.services.cache_service import invalidate_seat_map_cache

router = APIRouter(prefix="/passengers", tags=["Passengers"])


@router.get("/{passenger_id}", response_model=PassengerResponse)
async def get_passenger_endpoint(
    passenger_id: int,
    client_id: int = Depends(get_current_client_id),
    db: AsyncSession = Depends(get_db),
):
    return await passenger_service.get_passenger(db, client_id, passenger_id)


@router.patch("/{passenger_id}", response_model=PassengerResponse)
async def update_passenger_endpoint(
    passenger_id: int,
    changes: PassengerUpdate,
    client_id: int = Depends(get_current_client_id),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Edit a passenger's personal details."""
    return await passenger_service.update_passenger(
        db, client_id, passenger_id, changes.model_dump(exclude_unset=True), clock
    )


@router.put("/{passenger_id}/seat", response_model=PassengerResponse)
async def change_seat_endpoint(
    passenger_id: int,
    seat_change: SeatChangeRequest,
    client_id: int = Depends(get_current_client_id),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Move a passenger to another free seat on the same flight."""
    passenger = await passenger_service.change_seat(db, client_id, passenger_id, seat_change.seat_id, clock)
    after_commit(db, invalidate_seat_map_cache, passenger["flight_id"])
    return passenger


@router.delete("/{passenger_id}", response_model=PassengerRemoveResponse)
async def remove_passenger_endpoint(
    passenger_id: int,
    client_id: int = Depends(get_current_client_id),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Remove a passenger. The last passenger of a booking cannot be removed; cancel the booking instead."""
    booking = await passenger_service.remove_passenger(db, client_id, passenger_id, clock)
    after_commit(db, invalidate_seat_map_cache, booking.flight_id)
    return PassengerRemoveResponse(
        message="Passenger removed successfully",
        passenger_id=passenger_id,
        booking_id=booking.id,
    )
