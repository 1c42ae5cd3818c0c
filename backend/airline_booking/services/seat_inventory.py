"""
Seat inventory: which of an airplane's seats are free on a given flight.

ATOMIC CHECK-AND-CLAIM
======================

Problem:
  Two clients request seat 12A on the same flight at the same moment. Both
  availability reads see the seat free, both insert a passenger, and the seat
  is sold twice.

Solution:
  The availability read is advisory. The authoritative guard is the partial
  unique index on passengers (flight_id, seat_id) WHERE holds_seat. Passenger
  rows are inserted in the same transaction as the read; ``claim_seats``
  flushes them, and if the index rejects the insert the unit of work is
  rolled back and the caller gets SEAT_CONFLICT. Exactly one of the racing
  transactions can commit.

  Cancelling a booking flips holds_seat to false on its passengers, which
  takes them out of the index and frees the seats without deleting history.

Seats are per-airplane rows shared by every flight the airplane flies;
occupancy is always derived per flight from non-cancelled passenger rows.
"""

import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from airline_booking.core.exceptions import NotFoundError, SeatConflictError
from airline_booking.core.logging import get_logger
from airline_booking.core.metrics import seat_claim_conflicts
from airline_booking.domain.status import BookingStatus, SeatClass
from airline_booking.models.booking import Booking, Passenger
from airline_booking.models.flight import Flight, Seat

logger = get_logger(__name__)

_SEAT_NO_PATTERN = re.compile(r"^(\d+)(.*)$")


@dataclass
class SeatAvailability:
    seat_id: int
    available: bool
    seat_no: Optional[str] = None
    seat_class: Optional[SeatClass] = None
    price: Optional[Decimal] = None
    reason: Optional[str] = None  # held, unknown_seat, wrong_airplane


def _seat_sort_key(seat: Seat):
    match = _SEAT_NO_PATTERN.match(seat.seat_no)
    if match:
        return (seat.seat_class.rank, int(match.group(1)), match.group(2))
    return (seat.seat_class.rank, 0, seat.seat_no)


async def get_flight(db: AsyncSession, flight_id: int) -> Flight:
    result = await db.execute(select(Flight).where(Flight.id == flight_id))
    flight = result.scalar_one_or_none()
    if not flight:
        raise NotFoundError(f"Flight {flight_id} not found", code="FLIGHT_NOT_FOUND")
    return flight


async def held_seat_ids(db: AsyncSession, flight_id: int, seat_ids: Optional[list[int]] = None) -> set[int]:
    """Seat ids held on the flight by passengers of non-cancelled bookings."""
    query = (
        select(Passenger.seat_id)
        .join(Booking, Booking.id == Passenger.booking_id)
        .where(
            Passenger.flight_id == flight_id,
            Booking.status != BookingStatus.CANCELLED,
        )
    )
    if seat_ids is not None:
        query = query.where(Passenger.seat_id.in_(seat_ids))
    result = await db.execute(query)
    return set(result.scalars().all())


async def check_seats_availability(
    db: AsyncSession,
    flight_id: int,
    seat_ids: list[int],
) -> list[SeatAvailability]:
    """
    Availability of each requested seat, in request order.
    Unknown seats and seats of another airplane are reported unavailable.
    """
    flight = await get_flight(db, flight_id)
    if not seat_ids:
        return []

    result = await db.execute(select(Seat).where(Seat.id.in_(seat_ids)))
    seats = {seat.id: seat for seat in result.scalars().all()}
    held = await held_seat_ids(db, flight_id, seat_ids)

    availability = []
    for seat_id in seat_ids:
        seat = seats.get(seat_id)
        if seat is None:
            availability.append(SeatAvailability(seat_id=seat_id, available=False, reason="unknown_seat"))
            continue

        entry = SeatAvailability(
            seat_id=seat_id,
            available=True,
            seat_no=seat.seat_no,
            seat_class=seat.seat_class,
            price=seat.price,
        )
        if seat.airplane_id != flight.airplane_id:
            entry.available = False
            entry.reason = "wrong_airplane"
        elif seat_id in held:
            entry.available = False
            entry.reason = "held"
        availability.append(entry)

    return availability


async def claim_seats(db: AsyncSession, flight_id: int, seat_ids: list[int]) -> None:
    """
    Flush pending passenger rows so the seat index can accept or reject them.
    A uniqueness violation rolls the unit of work back and becomes SEAT_CONFLICT.
    """
    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        seat_claim_conflicts.inc()
        availability = await check_seats_availability(db, flight_id, seat_ids)
        taken = [a.seat_id for a in availability if not a.available]
        logger.warning("seat_conflict", flight_id=flight_id, seat_ids=taken or seat_ids, source="storage")
        raise SeatConflictError(taken or list(seat_ids))


async def get_seat_map(
    db: AsyncSession,
    flight_id: int,
    seat_class: Optional[SeatClass] = None,
) -> list[dict]:
    """All seats of the flight's airplane with class, price and availability."""
    flight = await get_flight(db, flight_id)

    query = select(Seat).where(Seat.airplane_id == flight.airplane_id)
    if seat_class is not None:
        query = query.where(Seat.seat_class == seat_class)
    result = await db.execute(query)
    seats = sorted(result.scalars().all(), key=_seat_sort_key)
    held = await held_seat_ids(db, flight_id)

    return [
        {
            "seat_id": seat.id,
            "seat_no": seat.seat_no,
            "seat_class": seat.seat_class,
            "price": seat.price,
            "available": seat.id not in held,
        }
        for seat in seats
    ]


async def get_availability_summary(db: AsyncSession, flight_id: int) -> list[dict]:
    """Per seat class: total, booked and available counts plus the price range."""
    flight = await get_flight(db, flight_id)

    result = await db.execute(
        select(
            Seat.seat_class,
            func.count(Seat.id),
            func.min(Seat.price),
            func.max(Seat.price),
        )
        .where(Seat.airplane_id == flight.airplane_id)
        .group_by(Seat.seat_class)
    )
    rows = result.all()

    booked_result = await db.execute(
        select(Seat.seat_class, func.count(Passenger.id))
        .join(Passenger, Passenger.seat_id == Seat.id)
        .join(Booking, Booking.id == Passenger.booking_id)
        .where(
            Passenger.flight_id == flight_id,
            Booking.status != BookingStatus.CANCELLED,
        )
        .group_by(Seat.seat_class)
    )
    booked = {seat_class: count for seat_class, count in booked_result.all()}

    summary = []
    for seat_class, total, min_price, max_price in sorted(rows, key=lambda r: r[0].rank):
        taken = booked.get(seat_class, 0)
        summary.append(
            {
                "seat_class": seat_class,
                "total_seats": total,
                "booked_seats": taken,
                "available_seats": total - taken,
                "min_price": min_price,
                "max_price": max_price,
            }
        )
    return summary
