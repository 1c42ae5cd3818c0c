"""
Tests for health, metrics, request tracing and token handling.
"""

from datetime import datetime, timedelta, timezone

import pytest
from httpx import AsyncClient

from airline_booking.core.clock import FixedClock, SystemClock
from airline_booking.core.exceptions import SeatConflictError
from airline_booking.core.security import create_access_token


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    response = await client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["cache"] == {"status": "disabled"}


@pytest.mark.asyncio
async def test_metrics(client: AsyncClient):
    response = await client.get("/metrics")
    assert response.status_code == 200
    assert "booking_attempts_total" in response.text


@pytest.mark.asyncio
async def test_request_id_echoed(client: AsyncClient):
    response = await client.get("/health", headers={"X-Request-ID": "trace-42"})
    assert response.headers["X-Request-ID"] == "trace-42"

    generated = await client.get("/health")
    assert generated.headers["X-Request-ID"]
    assert generated.headers["X-Response-Time"].endswith("ms")


@pytest.mark.asyncio
async def test_expired_token_rejected(client: AsyncClient, seed):
    token = create_access_token({"sub": str(seed.client_id)}, expires_minutes=-1)
    response = await client.get("/api/v1/bookings/", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_token_without_subject_rejected(client: AsyncClient, seed):
    token = create_access_token({"role": "client"})
    response = await client.get("/api/v1/bookings/", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


def test_fixed_clock_moves_only_when_told():
    start = datetime(2026, 1, 1, tzinfo=timezone.utc)
    clock = FixedClock(start)
    assert clock.now() == start
    clock.advance(timedelta(hours=5))
    assert clock.now() == start + timedelta(hours=5)
    clock.set(datetime(2026, 2, 1))
    assert clock.now() == datetime(2026, 2, 1, tzinfo=timezone.utc)


def test_system_clock_is_utc():
    assert SystemClock().now().tzinfo is not None


def test_error_payload_shape():
    error = SeatConflictError([3, 4])
    assert error.status_code == 409
    assert error.to_dict() == {
        "code": "SEAT_CONFLICT",
        "message": "One or more selected seats are already booked",
        "details": {"unavailable_seats": [3, 4]},
    }
