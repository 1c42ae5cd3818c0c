"""
Pytest fixtures for the test database, seeded flight data, a controllable
clock, and an authenticated HTTP client.

Every test gets its own SQLite database file, so tests are isolated and
concurrent sessions inside one test really contend on the same store.
"""

import os

os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from types import SimpleNamespace
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from airline_booking.core.clock import FixedClock, get_clock
from airline_booking.core.security import create_access_token
from airline_booking.db.base import Base
from airline_booking.db.session import (
    AFTER_COMMIT_KEY,
    create_engine,
    create_session_factory,
    get_db,
    run_after_commit,
)
from airline_booking.domain.status import FlightStatus, SeatClass
from airline_booking.main import app
from airline_booking.models import Airplane, Airport, Client, Flight, Seat
from airline_booking.services import booking_service, payment_service

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
DEPARTURE = NOW + timedelta(days=30)

SEAT_LAYOUT = [
    ("1A", SeatClass.FIRST, "1500.00"),
    ("2A", SeatClass.BUSINESS, "900.00"),
    ("8A", SeatClass.PREMIUM_ECONOMY, "450.00"),
    ("12A", SeatClass.ECONOMY, "300.00"),
    ("12B", SeatClass.ECONOMY, "600.00"),
    ("12C", SeatClass.ECONOMY, "300.00"),
    ("14A", SeatClass.ECONOMY, "250.00"),
]


def passenger_data(seat_id: int, **overrides) -> dict:
    data = {
        "seat_id": seat_id,
        "first_name": "Jane",
        "last_name": "O'Neil",
        "date_of_birth": "1988-04-12",
        "passport_no": "AB1234567",
        "nationality": "Canadian",
        "gender": "Female",
        "phone": "+1 (555) 010-2030",
    }
    data.update(overrides)
    return data


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(NOW)


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'booking_test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return create_session_factory(engine)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def seed(session_factory) -> SimpleNamespace:
    """Two clients, one airplane with a small cabin, and flights in several states."""
    async with session_factory() as session:
        alice = Client(email="alice@example.com", first_name="Alice", last_name="Archer")
        bob = Client(email="bob@example.com", first_name="Bob", last_name="Baker")
        jfk = Airport(code="JFK", name="John F. Kennedy International", city="New York")
        lax = Airport(code="LAX", name="Los Angeles International", city="Los Angeles")
        plane = Airplane(registration_number="N12345", type="A320")
        other_plane = Airplane(registration_number="N99999", type="E190")
        session.add_all([alice, bob, jfk, lax, plane, other_plane])
        await session.flush()

        seats = {
            seat_no: Seat(airplane_id=plane.id, seat_no=seat_no, seat_class=seat_class, price=Decimal(price))
            for seat_no, seat_class, price in SEAT_LAYOUT
        }
        foreign_seat = Seat(airplane_id=other_plane.id, seat_no="1A", seat_class=SeatClass.ECONOMY, price=Decimal("100.00"))
        session.add_all([*seats.values(), foreign_seat])

        def flight(number, departure, status=FlightStatus.SCHEDULED):
            return Flight(
                flight_number=number,
                departure_time=departure,
                arrival_time=departure + timedelta(hours=6),
                status=status,
                airplane_id=plane.id,
                origin_airport_id=jfk.id,
                destination_airport_id=lax.id,
            )

        scheduled = flight("AB100", DEPARTURE)
        second = flight("AB101", DEPARTURE + timedelta(days=1))
        delayed = flight("AB200", DEPARTURE, FlightStatus.DELAYED)
        departed = flight("AB300", NOW - timedelta(hours=2))
        session.add_all([scheduled, second, delayed, departed])
        await session.commit()

        return SimpleNamespace(
            client_id=alice.id,
            other_client_id=bob.id,
            flight_id=scheduled.id,
            second_flight_id=second.id,
            delayed_flight_id=delayed.id,
            departed_flight_id=departed.id,
            departure=DEPARTURE,
            seats={seat_no: seat.id for seat_no, seat in seats.items()},
            foreign_seat_id=foreign_seat.id,
        )


@pytest_asyncio.fixture
async def book(session_factory, clock, seed):
    """Create and commit a booking through the service layer."""

    async def _book(seat_nos, client_id=None, flight_id=None):
        async with session_factory() as session:
            details = await booking_service.create_booking(
                session,
                client_id or seed.client_id,
                flight_id or seed.flight_id,
                [passenger_data(seed.seats[s], passport_no=f"PP{1000000 + i}") for i, s in enumerate(seat_nos)],
                clock,
            )
            await session.commit()
        return details

    return _book


@pytest_asyncio.fixture
async def pay(session_factory, clock, seed):
    """Pay a booking in full and commit."""

    async def _pay(details, client_id=None):
        async with session_factory() as session:
            receipt = await payment_service.process_payment(
                session,
                client_id or seed.client_id,
                details["id"],
                details["total_cost"]["amount"],
                details["total_cost"]["currency"],
                clock,
            )
            await session.commit()
        return receipt

    return _pay


@pytest_asyncio.fixture
async def client(session_factory, clock) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client wired to the per-test database and the fixed clock."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                session.info.pop(AFTER_COMMIT_KEY, None)
                await session.rollback()
                raise
            await run_after_commit(session)

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(seed) -> dict:
    """Authorization headers with a bearer token for the first client."""
    token = create_access_token(data={"sub": str(seed.client_id)})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def other_auth_headers(seed) -> dict:
    token = create_access_token(data={"sub": str(seed.other_client_id)})
    return {"Authorization": f"Bearer {token}"}
