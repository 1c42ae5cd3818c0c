"""
Booking transaction orchestrator.

Creating a booking is one unit of work: the booking row and one passenger row
per requested seat are inserted together, and the seat claim is decided by the
passengers' partial unique index (see ``seat_inventory``). Any failure rolls
the whole request back, so a failed booking leaves nothing behind.

Checks run in a fixed order and the first failure wins:
  a. flight exists                         FLIGHT_NOT_FOUND
  b. flight is Scheduled, not departed     FLIGHT_NOT_AVAILABLE / FLIGHT_DEPARTED
  c. every passenger passes validation     PASSENGER_VALIDATION_ERROR
  d. every requested seat is free          SEAT_CONFLICT
  e. no seat requested twice               SEAT_CONFLICT
"""

import random
import string
import time
from datetime import date
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from airline_booking.core.clock import Clock
from airline_booking.core.exceptions import (
    ConflictError,
    NotFoundError,
    PolicyDeniedError,
    SeatConflictError,
    ValidationError,
)
from airline_booking.core.logging import get_logger
from airline_booking.core.metrics import booking_latency, record_booking_attempt, record_cancellation
from airline_booking.domain import policy
from airline_booking.domain.status import BookingStatus
from airline_booking.domain.validation import validate_passenger
from airline_booking.models.booking import Booking, Passenger
from airline_booking.models.flight import Flight, Seat
from airline_booking.services import booking_lifecycle, payment_service, seat_inventory
from airline_booking.services.cost_service import calculate_booking_cost

logger = get_logger(__name__)

BOOKING_NUMBER_PREFIX = "BK"
BOOKING_NUMBER_LENGTH = 8
MAX_BOOKING_NUMBER_ATTEMPTS = 5


def make_booking_number() -> str:
    alphabet = string.ascii_uppercase + string.digits
    return BOOKING_NUMBER_PREFIX + "".join(random.choices(alphabet, k=BOOKING_NUMBER_LENGTH))


async def _unique_booking_number(db: AsyncSession) -> str:
    for _ in range(MAX_BOOKING_NUMBER_ATTEMPTS):
        candidate = make_booking_number()
        existing = await db.execute(select(Booking.id).where(Booking.booking_number == candidate))
        if existing.scalar_one_or_none() is None:
            return candidate
    raise ConflictError("Could not allocate a booking number, please retry", code="BOOKING_NUMBER_COLLISION")


def duplicate_ids(ids: list[int]) -> list[int]:
    seen, duplicates = set(), []
    for item_id in ids:
        if item_id in seen and item_id not in duplicates:
            duplicates.append(item_id)
        seen.add(item_id)
    return duplicates


def validate_passengers(passengers: list[dict], clock: Clock) -> None:
    today = clock.now().date()
    problems = []
    for index, data in enumerate(passengers, start=1):
        errors = validate_passenger(data, today)
        if errors:
            problems.append({"passenger": index, "errors": errors})
    if problems:
        raise ValidationError(
            "Passenger validation failed",
            code="PASSENGER_VALIDATION_ERROR",
            details=problems,
        )


async def ensure_seats_free(db: AsyncSession, flight_id: int, seat_ids: list[int]) -> None:
    """Raise SEAT_CONFLICT listing every requested seat that cannot be taken."""
    availability = await seat_inventory.check_seats_availability(db, flight_id, seat_ids)
    unavailable = [a.seat_id for a in availability if not a.available]
    if unavailable:
        logger.warning("seat_conflict", flight_id=flight_id, seat_ids=unavailable, source="availability")
        raise SeatConflictError(unavailable)

    duplicates = duplicate_ids(seat_ids)
    if duplicates:
        raise SeatConflictError(duplicates, message="The same seat was requested more than once")


async def booking_passengers(db: AsyncSession, booking_id: int) -> list[dict]:
    """Passengers of a booking joined with their seat's number, class and price."""
    result = await db.execute(
        select(Passenger, Seat)
        .join(Seat, Seat.id == Passenger.seat_id)
        .where(Passenger.booking_id == booking_id)
        .order_by(Passenger.id)
    )
    return [passenger_view(passenger, seat) for passenger, seat in result.all()]


def passenger_view(passenger: Passenger, seat: Seat) -> dict:
    return {
        "id": passenger.id,
        "booking_id": passenger.booking_id,
        "flight_id": passenger.flight_id,
        "seat_id": seat.id,
        "seat_no": seat.seat_no,
        "seat_class": seat.seat_class,
        "price": seat.price,
        "first_name": passenger.first_name,
        "last_name": passenger.last_name,
        "date_of_birth": passenger.date_of_birth,
        "passport_no": passenger.passport_no,
        "nationality": passenger.nationality,
        "gender": passenger.gender,
        "phone": passenger.phone,
    }


async def _details(db: AsyncSession, booking: Booking, flight: Flight, clock: Clock) -> dict:
    passengers = await booking_passengers(db, booking.id)
    cost = await calculate_booking_cost(db, booking.id)
    payments = await payment_service.list_booking_payments(db, booking.id)
    latest = payments[-1] if payments else None

    return {
        "id": booking.id,
        "booking_number": booking.booking_number,
        "client_id": booking.client_id,
        "flight_id": booking.flight_id,
        "status": booking.status,
        "support": booking.support,
        "fasttrack": booking.fasttrack,
        "created_at": booking.created_at,
        "flight_number": flight.flight_number,
        "departure_time": flight.departure_time,
        "passengers": passengers,
        "total_cost": {"amount": cost.amount, "currency": cost.currency},
        "can_modify": policy.can_modify(booking.status, flight.departure_time, clock.now()),
        "latest_payment": payment_service.payment_receipt(latest, booking) if latest else None,
    }


async def create_booking(
    db: AsyncSession,
    client_id: int,
    flight_id: int,
    passengers: list[dict],
    clock: Clock,
    support: bool = False,
    fasttrack: bool = False,
) -> dict:
    """Create a pending booking with its passengers in one transaction."""
    start = time.perf_counter()
    try:
        flight = await seat_inventory.get_flight(db, flight_id)
        policy.ensure_flight_bookable(flight.status, flight.departure_time, clock.now())
        validate_passengers(passengers, clock)

        seat_ids = [p["seat_id"] for p in passengers]
        await ensure_seats_free(db, flight.id, seat_ids)

        booking = Booking(
            booking_number=await _unique_booking_number(db),
            client_id=client_id,
            flight_id=flight.id,
            status=BookingStatus.PENDING,
            support=support,
            fasttrack=fasttrack,
        )
        db.add(booking)
        await db.flush()

        for data in passengers:
            db.add(new_passenger(booking, data))
        await seat_inventory.claim_seats(db, flight.id, seat_ids)
        await db.refresh(booking)
    except SeatConflictError:
        record_booking_attempt("seat_conflict")
        raise
    except (NotFoundError, PolicyDeniedError, ValidationError):
        record_booking_attempt("rejected")
        raise
    finally:
        booking_latency.observe(time.perf_counter() - start)

    record_booking_attempt("success")
    details = await _details(db, booking, flight, clock)
    logger.info(
        "booking_created",
        booking_id=booking.id,
        booking_number=booking.booking_number,
        client_id=client_id,
        flight_id=flight.id,
        seats=seat_ids,
        total=str(details["total_cost"]["amount"]),
    )
    return details


def new_passenger(booking: Booking, data: dict) -> Passenger:
    return Passenger(
        booking_id=booking.id,
        flight_id=booking.flight_id,
        seat_id=data["seat_id"],
        first_name=data["first_name"].strip(),
        last_name=data["last_name"].strip(),
        date_of_birth=date.fromisoformat(str(data["date_of_birth"])),
        passport_no=data["passport_no"],
        nationality=data["nationality"].strip(),
        gender=data.get("gender"),
        phone=data.get("phone") or None,
        holds_seat=True,
    )


async def get_booking_details(db: AsyncSession, client_id: int, booking_id: int, clock: Clock) -> dict:
    booking = await booking_lifecycle.get_owned_booking(db, client_id, booking_id)
    flight = await seat_inventory.get_flight(db, booking.flight_id)
    return await _details(db, booking, flight, clock)


async def list_client_bookings(
    db: AsyncSession,
    client_id: int,
    page: int = 1,
    page_size: int = 20,
) -> tuple[list[dict], int]:
    """Client's bookings, newest first, with flight number and passenger count."""
    total_result = await db.execute(select(func.count(Booking.id)).where(Booking.client_id == client_id))
    total = total_result.scalar_one()

    result = await db.execute(
        select(Booking, Flight.flight_number, Flight.departure_time)
        .join(Flight, Flight.id == Booking.flight_id)
        .where(Booking.client_id == client_id)
        .order_by(Booking.created_at.desc(), Booking.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    rows = result.all()

    counts: dict[int, int] = {}
    if rows:
        count_result = await db.execute(
            select(Passenger.booking_id, func.count(Passenger.id))
            .where(Passenger.booking_id.in_([booking.id for booking, _, _ in rows]))
            .group_by(Passenger.booking_id)
        )
        counts = dict(count_result.all())

    bookings = [
        {
            "id": booking.id,
            "booking_number": booking.booking_number,
            "client_id": booking.client_id,
            "flight_id": booking.flight_id,
            "status": booking.status,
            "support": booking.support,
            "fasttrack": booking.fasttrack,
            "created_at": booking.created_at,
            "flight_number": flight_number,
            "departure_time": departure_time,
            "passenger_count": counts.get(booking.id, 0),
        }
        for booking, flight_number, departure_time in rows
    ]
    return bookings, total


async def update_booking(
    db: AsyncSession,
    client_id: int,
    booking_id: int,
    clock: Clock,
    support: Optional[bool] = None,
    fasttrack: Optional[bool] = None,
    seat_changes: Optional[list[dict]] = None,
) -> dict:
    """
    Toggle service flags and re-seat passengers while the booking can still be modified.
    Each new seat must be free at the moment of the claim; a passenger's current
    seat counts as held.
    """
    booking = await booking_lifecycle.get_owned_booking(db, client_id, booking_id, for_update=True)
    flight = await seat_inventory.get_flight(db, booking.flight_id)
    policy.ensure_can_modify(booking.status, flight.departure_time, clock.now())

    if support is not None:
        booking.support = support
    if fasttrack is not None:
        booking.fasttrack = fasttrack

    if seat_changes:
        repeated = duplicate_ids([change["passenger_id"] for change in seat_changes])
        if repeated:
            raise ValidationError(
                "Each passenger can appear only once in seat_changes",
                details={"duplicate_passenger_ids": repeated},
            )

        result = await db.execute(select(Passenger).where(Passenger.booking_id == booking.id))
        passengers = {p.id: p for p in result.scalars().all()}
        for change in seat_changes:
            if change["passenger_id"] not in passengers:
                raise NotFoundError(
                    f"Passenger {change['passenger_id']} not found in this booking",
                    code="PASSENGER_NOT_FOUND",
                )

        new_seat_ids = [change["seat_id"] for change in seat_changes]
        await ensure_seats_free(db, flight.id, new_seat_ids)
        for change in seat_changes:
            passengers[change["passenger_id"]].seat_id = change["seat_id"]
        await seat_inventory.claim_seats(db, flight.id, new_seat_ids)

    await db.flush()
    await db.refresh(booking)
    logger.info(
        "booking_updated",
        booking_id=booking.id,
        support=booking.support,
        fasttrack=booking.fasttrack,
        seat_changes=len(seat_changes or []),
    )
    return await _details(db, booking, flight, clock)


async def cancel_booking(db: AsyncSession, client_id: int, booking_id: int, clock: Clock) -> dict:
    """
    Cancel a booking inside the modification window.

    An unpaid booking is simply cancelled. A paid one is refunded in the same
    transaction; if the refund fails the cancellation rolls back with it.
    """
    booking = await booking_lifecycle.get_owned_booking(db, client_id, booking_id, for_update=True)
    if booking.status == BookingStatus.CANCELLED:
        raise ConflictError("Booking is already cancelled", code="ALREADY_CANCELLED")

    flight = await seat_inventory.get_flight(db, booking.flight_id)
    policy.ensure_can_cancel(booking.status, flight.departure_time, clock.now())

    refund_receipt = None
    payment = await payment_service.get_completed_payment(db, booking.id)
    if payment:
        refund = await payment_service.issue_refund(db, payment, clock)
        refund_receipt = payment_service.payment_receipt(refund, booking)

    await booking_lifecycle.mark_booking_cancelled(db, booking)
    record_cancellation(refunded=payment is not None)

    logger.info(
        "booking_cancelled",
        booking_id=booking.id,
        client_id=client_id,
        flight_id=booking.flight_id,
        refunded=payment is not None,
    )
    return {"booking": booking, "refund": refund_receipt}


async def complete_flight_bookings(db: AsyncSession, flight_id: int, clock: Clock) -> int:
    """Move every confirmed booking of a departed flight to completed. Returns the count."""
    flight = await seat_inventory.get_flight(db, flight_id)
    if not policy.has_departed(flight.departure_time, clock.now()):
        raise PolicyDeniedError("Flight has not departed yet", code="FLIGHT_NOT_DEPARTED")

    result = await db.execute(
        update(Booking)
        .where(Booking.flight_id == flight.id, Booking.status == BookingStatus.CONFIRMED)
        .values(status=BookingStatus.COMPLETED)
        .execution_options(synchronize_session=False)
    )
    logger.info("flight_bookings_completed", flight_id=flight.id, bookings=result.rowcount)
    return result.rowcount
