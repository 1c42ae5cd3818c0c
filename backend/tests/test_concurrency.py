"""
Concurrency tests: racing sessions against one database.

Each task uses its own session, the way concurrent requests do. The tests
check the storage-level outcome, not timing: exactly one winner per seat,
exactly one refund per payment.
"""

import asyncio
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from airline_booking.core.exceptions import BookingCoreError, ConflictError, SeatConflictError
from airline_booking.models import Passenger, Payment
from airline_booking.services import booking_service, payment_service, seat_inventory
from airline_booking.services.seat_inventory import SeatAvailability
from conftest import passenger_data


async def _attempt(session_factory, operation):
    """Run one unit of work; return its result or the domain error it raised."""
    async with session_factory() as session:
        try:
            result = await operation(session)
            await session.commit()
            return result
        except BookingCoreError as e:
            await session.rollback()
            return e


@pytest.mark.asyncio
async def test_concurrent_bookings_same_seat(session_factory, seed, clock):
    """Two clients racing for 12A: one booking, one SEAT_CONFLICT."""

    def create(client_id):
        return lambda session: booking_service.create_booking(
            session, client_id, seed.flight_id, [passenger_data(seed.seats["12A"])], clock
        )

    results = await asyncio.gather(
        _attempt(session_factory, create(seed.client_id)),
        _attempt(session_factory, create(seed.other_client_id)),
    )

    successes = [r for r in results if isinstance(r, dict)]
    conflicts = [r for r in results if isinstance(r, SeatConflictError)]
    assert len(successes) == 1
    assert len(conflicts) == 1
    assert conflicts[0].details == {"unavailable_seats": [seed.seats["12A"]]}

    async with session_factory() as session:
        holders = await session.execute(
            select(func.count(Passenger.id)).where(
                Passenger.flight_id == seed.flight_id,
                Passenger.seat_id == seed.seats["12A"],
            )
        )
        assert holders.scalar_one() == 1


@pytest.mark.asyncio
async def test_many_clients_few_seats(session_factory, seed, clock):
    """Ten attempts over three seats never hold a seat twice."""
    seat_nos = ["12A", "12B", "12C"]

    def create(i):
        seat_id = seed.seats[seat_nos[i % len(seat_nos)]]
        return lambda session: booking_service.create_booking(
            session, seed.client_id, seed.flight_id, [passenger_data(seat_id)], clock
        )

    results = await asyncio.gather(*(_attempt(session_factory, create(i)) for i in range(10)))

    assert sum(isinstance(r, dict) for r in results) == 3
    assert sum(isinstance(r, SeatConflictError) for r in results) == 7

    async with session_factory() as session:
        rows = await session.execute(
            select(Passenger.seat_id, func.count(Passenger.id))
            .where(Passenger.flight_id == seed.flight_id, Passenger.holds_seat.is_(True))
            .group_by(Passenger.seat_id)
        )
        assert all(count == 1 for _, count in rows.all())


@pytest.mark.asyncio
async def test_storage_guard_catches_stale_availability(session_factory, seed, clock, book, monkeypatch):
    """Even when the availability read is wrong, the seat index refuses the second holder."""
    await book(["12A"])

    async def everything_free(db, flight_id, seat_ids):
        return [SeatAvailability(seat_id=s, available=True) for s in seat_ids]

    monkeypatch.setattr(seat_inventory, "check_seats_availability", everything_free)

    result = await _attempt(
        session_factory,
        lambda session: booking_service.create_booking(
            session, seed.other_client_id, seed.flight_id, [passenger_data(seed.seats["12A"])], clock
        ),
    )
    assert isinstance(result, SeatConflictError)
    assert result.code == "SEAT_CONFLICT"
    assert result.seat_ids == [seed.seats["12A"]]


@pytest.mark.asyncio
async def test_concurrent_refunds(session_factory, seed, clock, book, pay):
    """Two refunds of one booking: one succeeds, the ledger nets to zero."""
    details = await book(["12A", "12B"])
    await pay(details)

    def refund(session):
        return payment_service.process_refund(session, seed.client_id, details["id"], clock)

    results = await asyncio.gather(
        _attempt(session_factory, refund),
        _attempt(session_factory, refund),
    )

    assert sum(isinstance(r, dict) for r in results) == 1
    failures = [r for r in results if isinstance(r, BookingCoreError)]
    assert len(failures) == 1
    assert isinstance(failures[0], ConflictError)

    async with session_factory() as session:
        amounts = (await session.execute(select(Payment.amount).where(Payment.booking_id == details["id"]))).scalars().all()
    assert len(amounts) == 2
    assert sum(amounts) == Decimal("0")


@pytest.mark.asyncio
async def test_concurrent_payments(session_factory, seed, clock, book):
    """Two payments of one booking: one completes, the other is rejected."""
    details = await book(["12A"])

    def pay(session):
        return payment_service.process_payment(
            session, seed.client_id, details["id"], Decimal("300.00"), "USD", clock
        )

    results = await asyncio.gather(_attempt(session_factory, pay), _attempt(session_factory, pay))

    assert sum(isinstance(r, dict) for r in results) == 1
    assert sum(isinstance(r, BookingCoreError) for r in results) == 1

    async with session_factory() as session:
        count = await session.execute(select(func.count(Payment.id)).where(Payment.booking_id == details["id"]))
        assert count.scalar_one() == 1
