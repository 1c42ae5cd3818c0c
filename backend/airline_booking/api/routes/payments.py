"""
Payment endpoints: amount validation, payment, receipts, history and refunds.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from airline_booking.core.clock import Clock, get_clock
from airline_booking.core.security import get_current_client_id
from airline_booking.db.session import after_commit, get_db
from airline_booking.schemas.booking import BookingCancelResponse, BookingResponse
from airline_booking.schemas.payment import (
    PaymentCreate,
    PaymentHistoryResponse,
    PaymentReceipt,
    PaymentStatusResponse,
    PaymentValidateRequest,
    PaymentValidateResponse,
)
from airline_booking.services import booking_lifecycle, payment_service
from airline_booking.services.cache_service import invalidate_seat_map_cache

router = APIRouter(prefix="/payments", tags=["Payments"])


@router.post("/validate", response_model=PaymentValidateResponse)
async def validate_payment_endpoint(
    request: PaymentValidateRequest,
    client_id: int = Depends(get_current_client_id),
    db: AsyncSession = Depends(get_db),
):
    """Check an amount against the booking's recomputed cost without charging anything."""
    await booking_lifecycle.get_owned_booking(db, client_id, request.booking_id)
    expected = await payment_service.validate_payment_amount(
        db, request.booking_id, request.amount, request.currency
    )
    return PaymentValidateResponse(valid=True, amount=expected.amount, currency=expected.currency)


@router.post("/", response_model=PaymentReceipt, status_code=status.HTTP_201_CREATED)
async def process_payment_endpoint(
    request: PaymentCreate,
    client_id: int = Depends(get_current_client_id),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Pay a pending booking. The amount must equal the booking cost exactly."""
    return await payment_service.process_payment(
        db, client_id, request.booking_id, request.amount, request.currency, clock
    )


@router.get("/history", response_model=PaymentHistoryResponse)
async def payment_history_endpoint(
    client_id: int = Depends(get_current_client_id),
    db: AsyncSession = Depends(get_db),
):
    return {"bookings": await payment_service.get_payment_history(db, client_id)}


@router.get("/booking/{booking_id}", response_model=PaymentStatusResponse)
async def payment_status_endpoint(
    booking_id: int,
    client_id: int = Depends(get_current_client_id),
    db: AsyncSession = Depends(get_db),
):
    return await payment_service.get_payment_status(db, client_id, booking_id)


@router.post("/booking/{booking_id}/refund", response_model=BookingCancelResponse)
async def refund_endpoint(
    booking_id: int,
    client_id: int = Depends(get_current_client_id),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Refund a paid booking and cancel it. Only possible more than 24 hours before departure."""
    result = await payment_service.process_refund(db, client_id, booking_id, clock)
    booking = result["booking"]
    after_commit(db, invalidate_seat_map_cache, booking.flight_id)
    return BookingCancelResponse(
        message="Refund processed and booking cancelled",
        booking=BookingResponse.model_validate(booking),
        refund=result["refund"],
    )


@router.get("/{payment_id}", response_model=PaymentReceipt)
async def payment_receipt_endpoint(
    payment_id: int,
    client_id: int = Depends(get_current_client_id),
    db: AsyncSession = Depends(get_db),
):
    return await payment_service.get_payment_receipt(db, client_id, payment_id)
