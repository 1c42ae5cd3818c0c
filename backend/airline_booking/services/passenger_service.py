"""
Per-passenger maintenance on an existing booking.

Every operation requires the booking to be owned by the caller and still
modifiable (not terminal, more than the modification window before
departure). A booking never drops to zero passengers: removing the last one is
refused and the caller has to cancel the booking instead.
"""

from datetime import date

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from airline_booking.core.clock import Clock
from airline_booking.core.config import get_settings
from airline_booking.core.exceptions import NotFoundError, PolicyDeniedError, ValidationError
from airline_booking.core.logging import get_logger
from airline_booking.domain import policy
from airline_booking.domain.validation import validate_passenger
from airline_booking.models.booking import Booking, Passenger
from airline_booking.models.flight import Flight, Seat
from airline_booking.services import booking_lifecycle, seat_inventory
from airline_booking.services.booking_service import (
    booking_passengers,
    ensure_seats_free,
    new_passenger,
    passenger_view,
)

logger = get_logger(__name__)
settings = get_settings()

EDITABLE_FIELDS = ("first_name", "last_name", "date_of_birth", "passport_no", "nationality", "gender", "phone")


async def _get_passenger(db: AsyncSession, passenger_id: int) -> Passenger:
    result = await db.execute(select(Passenger).where(Passenger.id == passenger_id))
    passenger = result.scalar_one_or_none()
    if not passenger:
        raise NotFoundError(f"Passenger {passenger_id} not found", code="PASSENGER_NOT_FOUND")
    return passenger


async def _modifiable_booking(
    db: AsyncSession,
    client_id: int,
    booking_id: int,
    clock: Clock,
) -> tuple[Booking, Flight]:
    booking = await booking_lifecycle.get_owned_booking(db, client_id, booking_id, for_update=True)
    flight = await seat_inventory.get_flight(db, booking.flight_id)
    policy.ensure_can_modify(booking.status, flight.departure_time, clock.now())
    return booking, flight


async def _view(db: AsyncSession, passenger: Passenger) -> dict:
    result = await db.execute(select(Seat).where(Seat.id == passenger.seat_id))
    return passenger_view(passenger, result.scalar_one())


async def _passenger_count(db: AsyncSession, booking_id: int) -> int:
    result = await db.execute(select(func.count(Passenger.id)).where(Passenger.booking_id == booking_id))
    return result.scalar_one()


def _validate(data: dict, clock: Clock) -> None:
    errors = validate_passenger(data, clock.now().date())
    if errors:
        raise ValidationError(
            "Passenger validation failed",
            code="PASSENGER_VALIDATION_ERROR",
            details=[{"passenger": 1, "errors": errors}],
        )


async def get_passenger(db: AsyncSession, client_id: int, passenger_id: int) -> dict:
    passenger = await _get_passenger(db, passenger_id)
    await booking_lifecycle.get_owned_booking(db, client_id, passenger.booking_id)
    return await _view(db, passenger)


async def list_passengers(db: AsyncSession, client_id: int, booking_id: int) -> list[dict]:
    booking = await booking_lifecycle.get_owned_booking(db, client_id, booking_id)
    return await booking_passengers(db, booking.id)


async def add_passenger(db: AsyncSession, client_id: int, booking_id: int, data: dict, clock: Clock) -> dict:
    booking, flight = await _modifiable_booking(db, client_id, booking_id, clock)

    if await _passenger_count(db, booking.id) >= settings.MAX_PASSENGERS_PER_BOOKING:
        raise PolicyDeniedError(
            f"A booking can hold at most {settings.MAX_PASSENGERS_PER_BOOKING} passengers",
            code="TOO_MANY_PASSENGERS",
        )

    _validate(data, clock)
    await ensure_seats_free(db, flight.id, [data["seat_id"]])

    passenger = new_passenger(booking, data)
    db.add(passenger)
    await seat_inventory.claim_seats(db, flight.id, [data["seat_id"]])
    await db.refresh(passenger)

    logger.info("passenger_added", booking_id=booking.id, passenger_id=passenger.id, seat_id=passenger.seat_id)
    return await _view(db, passenger)


async def update_passenger(
    db: AsyncSession,
    client_id: int,
    passenger_id: int,
    changes: dict,
    clock: Clock,
) -> dict:
    """Edit personal details. The merged record is validated as a whole."""
    passenger = await _get_passenger(db, passenger_id)
    await _modifiable_booking(db, client_id, passenger.booking_id, clock)

    merged = {field: getattr(passenger, field) for field in EDITABLE_FIELDS}
    merged["date_of_birth"] = passenger.date_of_birth.isoformat()
    merged.update({k: v for k, v in changes.items() if k in EDITABLE_FIELDS and v is not None})
    _validate(merged, clock)

    for field in EDITABLE_FIELDS:
        if field not in changes or changes[field] is None:
            continue
        value = changes[field]
        if field == "date_of_birth":
            value = date.fromisoformat(str(value))
        elif isinstance(value, str) and field != "passport_no":
            value = value.strip()
        setattr(passenger, field, value)

    await db.flush()
    await db.refresh(passenger)
    logger.info(
        "passenger_updated",
        passenger_id=passenger.id,
        fields=sorted(k for k, v in changes.items() if v is not None),
    )
    return await _view(db, passenger)


async def change_seat(db: AsyncSession, client_id: int, passenger_id: int, seat_id: int, clock: Clock) -> dict:
    passenger = await _get_passenger(db, passenger_id)
    booking, flight = await _modifiable_booking(db, client_id, passenger.booking_id, clock)

    await ensure_seats_free(db, flight.id, [seat_id])
    old_seat_id = passenger.seat_id
    passenger.seat_id = seat_id
    await seat_inventory.claim_seats(db, flight.id, [seat_id])
    await db.refresh(passenger)

    logger.info(
        "passenger_seat_changed",
        booking_id=booking.id,
        passenger_id=passenger.id,
        old_seat_id=old_seat_id,
        new_seat_id=seat_id,
    )
    return await _view(db, passenger)


async def remove_passenger(db: AsyncSession, client_id: int, passenger_id: int, clock: Clock) -> Booking:
    passenger = await _get_passenger(db, passenger_id)
    booking, _ = await _modifiable_booking(db, client_id, passenger.booking_id, clock)

    if await _passenger_count(db, booking.id) <= 1:
        raise PolicyDeniedError(
            "Cannot remove the last passenger. Cancel the booking instead.",
            code="LAST_PASSENGER",
        )

    await db.delete(passenger)
    await db.flush()
    logger.info("passenger_removed", booking_id=booking.id, passenger_id=passenger_id)
    return booking
