"""
Tests for cancellation, refunds and the 24-hour window.
"""

from datetime import timedelta
from decimal import Decimal

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from airline_booking.core.exceptions import PolicyDeniedError
from airline_booking.domain.status import BookingStatus, PaymentStatus
from airline_booking.models import Booking, Payment
from airline_booking.services import booking_service


async def _payments(session_factory, booking_id):
    async with session_factory() as session:
        result = await session.execute(
            select(Payment).where(Payment.booking_id == booking_id).order_by(Payment.id)
        )
        return list(result.scalars().all())


@pytest.mark.asyncio
async def test_cancel_unpaid_booking(client: AsyncClient, auth_headers, seed, book):
    details = await book(["12A"])
    response = await client.delete(f"/api/v1/bookings/{details['id']}", headers=auth_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["booking"]["status"] == "cancelled"
    assert data["refund"] is None

    # the seat is free again
    rebook = await book(["12A"], client_id=seed.other_client_id)
    assert rebook["status"] == "pending"


@pytest.mark.asyncio
async def test_cancel_paid_booking_refunds(client: AsyncClient, auth_headers, seed, book, pay, clock, session_factory):
    """Departure in 30 hours: refund row of -900, original refunded, booking cancelled."""
    details = await book(["12A", "12B"])
    original = await pay(details)
    clock.set(seed.departure - timedelta(hours=30))

    response = await client.delete(f"/api/v1/bookings/{details['id']}", headers=auth_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["booking"]["status"] == "cancelled"
    assert Decimal(data["refund"]["amount"]) == Decimal("-900")
    assert data["refund"]["refund_of_id"] == original["payment_id"]

    payments = await _payments(session_factory, details["id"])
    assert len(payments) == 2
    assert payments[0].status == PaymentStatus.REFUNDED
    assert payments[1].status == PaymentStatus.REFUNDED
    assert payments[1].amount == -payments[0].amount
    assert sum(p.amount for p in payments) == Decimal("0")


@pytest.mark.asyncio
async def test_cancel_inside_window_rejected(client: AsyncClient, auth_headers, seed, book, pay, clock, session_factory):
    """Departure in 10 hours: cancellation is a policy denial and nothing changes."""
    details = await book(["12A", "12B"])
    await pay(details)
    clock.set(seed.departure - timedelta(hours=10))

    response = await client.delete(f"/api/v1/bookings/{details['id']}", headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "CANCELLATION_NOT_ALLOWED"

    view = await client.get(f"/api/v1/bookings/{details['id']}", headers=auth_headers)
    assert view.json()["status"] == "confirmed"
    payments = await _payments(session_factory, details["id"])
    assert [p.status for p in payments] == [PaymentStatus.COMPLETED]


@pytest.mark.asyncio
async def test_cancel_twice(client: AsyncClient, auth_headers, book):
    details = await book(["12A"])
    first = await client.delete(f"/api/v1/bookings/{details['id']}", headers=auth_headers)
    assert first.status_code == 200

    second = await client.delete(f"/api/v1/bookings/{details['id']}", headers=auth_headers)
    assert second.status_code == 409
    assert second.json()["error"]["code"] == "ALREADY_CANCELLED"


@pytest.mark.asyncio
async def test_cancel_foreign_booking(client: AsyncClient, other_auth_headers, book):
    details = await book(["12A"])
    response = await client.delete(f"/api/v1/bookings/{details['id']}", headers=other_auth_headers)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_refund_endpoint(client: AsyncClient, auth_headers, book, pay, session_factory):
    details = await book(["12A"])
    await pay(details)

    response = await client.post(f"/api/v1/payments/booking/{details['id']}/refund", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["booking"]["status"] == "cancelled"
    assert Decimal(response.json()["refund"]["amount"]) == Decimal("-300")

    again = await client.post(f"/api/v1/payments/booking/{details['id']}/refund", headers=auth_headers)
    assert again.status_code == 409
    assert again.json()["error"]["code"] == "ALREADY_CANCELLED"

    status = await client.get(f"/api/v1/payments/booking/{details['id']}", headers=auth_headers)
    assert status.json()["payment_status"] == "refunded"

    history = await client.get("/api/v1/payments/history", headers=auth_headers)
    assert Decimal(history.json()["bookings"][0]["net_amount"]) == Decimal("0")


@pytest.mark.asyncio
async def test_refund_requires_payment(client: AsyncClient, auth_headers, book):
    details = await book(["12A"])
    response = await client.post(f"/api/v1/payments/booking/{details['id']}/refund", headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_BOOKING_STATUS"


@pytest.mark.asyncio
async def test_refund_inside_window(client: AsyncClient, auth_headers, seed, book, pay, clock):
    details = await book(["12A"])
    await pay(details)
    clock.set(seed.departure - timedelta(hours=2))

    response = await client.post(f"/api/v1/payments/booking/{details['id']}/refund", headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "REFUND_NOT_ALLOWED"


@pytest.mark.asyncio
async def test_completed_flight_bookings(session_factory, seed, book, pay, clock):
    """After departure confirmed bookings complete; pending ones are left alone and nothing can be cancelled."""
    paid = await book(["12A"])
    await pay(paid)
    unpaid = await book(["12B"])

    async with session_factory() as session:
        with pytest.raises(PolicyDeniedError) as exc_info:
            await booking_service.complete_flight_bookings(session, seed.flight_id, clock)
        assert exc_info.value.code == "FLIGHT_NOT_DEPARTED"

    clock.set(seed.departure + timedelta(hours=8))
    async with session_factory() as session:
        completed = await booking_service.complete_flight_bookings(session, seed.flight_id, clock)
        await session.commit()
    assert completed == 1

    async with session_factory() as session:
        statuses = dict((await session.execute(select(Booking.id, Booking.status))).all())
        assert statuses[paid["id"]] == BookingStatus.COMPLETED
        assert statuses[unpaid["id"]] == BookingStatus.PENDING

        with pytest.raises(PolicyDeniedError) as exc_info:
            await booking_service.cancel_booking(session, seed.client_id, paid["id"], clock)
        assert exc_info.value.code == "CANCELLATION_NOT_ALLOWED"
