"""
Booking ownership lookups and status changes shared by the booking,
passenger and payment services.

Status changes are conditional updates:

    UPDATE bookings SET status = :target WHERE id = :id AND status = :expected

Zero affected rows means a concurrent transaction moved the booking first;
the caller gets the conflict instead of silently overwriting the other
transaction's outcome.
"""

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from airline_booking.core.exceptions import AccessDeniedError, BookingCoreError, ConflictError, NotFoundError
from airline_booking.core.logging import get_logger
from airline_booking.domain.status import BookingStatus, ensure_transition
from airline_booking.models.booking import Booking, Passenger

logger = get_logger(__name__)


async def get_owned_booking(
    db: AsyncSession,
    client_id: int,
    booking_id: int,
    for_update: bool = False,
) -> Booking:
    query = select(Booking).where(Booking.id == booking_id)
    if for_update:
        query = query.with_for_update()
    result = await db.execute(query)
    booking = result.scalar_one_or_none()

    if not booking:
        raise NotFoundError(f"Booking {booking_id} not found", code="BOOKING_NOT_FOUND")
    if booking.client_id != client_id:
        logger.warning("booking_access_denied", booking_id=booking_id, client_id=client_id)
        raise AccessDeniedError("You do not have access to this booking")
    return booking


async def transition_booking(
    db: AsyncSession,
    booking: Booking,
    target: BookingStatus,
    conflict: BookingCoreError,
) -> Booking:
    """Move ``booking`` to ``target`` if nobody else moved it first; raise ``conflict`` otherwise."""
    current = booking.status
    ensure_transition(current, target)

    result = await db.execute(
        update(Booking)
        .where(Booking.id == booking.id, Booking.status == current)
        .values(status=target)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        logger.warning(
            "booking_transition_lost_race",
            booking_id=booking.id,
            expected=current.value,
            target=target.value,
        )
        raise conflict

    await db.refresh(booking)
    return booking


async def release_seats(db: AsyncSession, booking_id: int) -> None:
    await db.execute(
        update(Passenger)
        .where(Passenger.booking_id == booking_id)
        .values(holds_seat=False)
        .execution_options(synchronize_session=False)
    )


async def mark_booking_cancelled(db: AsyncSession, booking: Booking) -> Booking:
    """Cancel the booking and take its passengers out of the seat guard."""
    await transition_booking(
        db,
        booking,
        BookingStatus.CANCELLED,
        ConflictError("Booking is already cancelled", code="ALREADY_CANCELLED"),
    )
    await release_seats(db, booking.id)
    return booking
