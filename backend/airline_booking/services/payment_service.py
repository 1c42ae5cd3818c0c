"""
Payment validation, processing and refunds.

A payment is accepted only when its amount and currency exactly equal the
booking cost recomputed at that moment. Processing is one synchronous
transaction: the booking moves pending -> confirmed and a completed payment
row is written, or neither happens.

Refunds never rewrite history. ``issue_refund`` is the only code path that
creates a refund: a new row with the negated amount and ``refund_of_id``
pointing at the original, which itself becomes ``refunded``. After a refund
the payment amounts of a booking sum to zero.
"""

from decimal import Decimal, InvalidOperation
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from airline_booking.core.clock import Clock
from airline_booking.core.config import get_settings
from airline_booking.core.exceptions import (
    AccessDeniedError,
    ConflictError,
    InvalidPaymentAmountError,
    NotFoundError,
    PolicyDeniedError,
    ValidationError,
)
from airline_booking.core.logging import get_logger
from airline_booking.core.metrics import record_cancellation, record_payment_attempt, refunds_issued
from airline_booking.domain.money import Money, to_decimal
from airline_booking.domain.policy import can_modify
from airline_booking.domain.status import BookingStatus, PaymentStatus, ensure_transition
from airline_booking.models.booking import Booking
from airline_booking.models.payment import Payment
from airline_booking.services import booking_lifecycle
from airline_booking.services.cost_service import calculate_booking_cost
from airline_booking.services.seat_inventory import get_flight

logger = get_logger(__name__)
settings = get_settings()


def _validate_payment_input(amount, currency: str) -> tuple[Decimal, str]:
    """Shape checks only. The amount is returned unrounded for the exact-cost comparison."""
    try:
        value = to_decimal(amount)
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError("Amount must be a number", details={"field": "amount"})

    if not value.is_finite():
        raise ValidationError("Amount must be a number", details={"field": "amount"})
    if value <= 0:
        raise ValidationError("Amount must be greater than zero", details={"field": "amount"})
    if value > settings.MAX_PAYMENT_AMOUNT:
        raise ValidationError(
            f"Amount cannot exceed {settings.MAX_PAYMENT_AMOUNT}",
            details={"field": "amount"},
        )
    if not isinstance(currency, str) or currency.upper() not in settings.SUPPORTED_CURRENCIES:
        raise ValidationError(
            f"Currency must be one of: {', '.join(settings.SUPPORTED_CURRENCIES)}",
            details={"field": "currency"},
        )
    return value, currency.upper()


def payment_receipt(payment: Payment, booking: Booking) -> dict:
    return {
        "payment_id": payment.id,
        "booking_id": booking.id,
        "booking_number": booking.booking_number,
        "amount": payment.amount,
        "currency": payment.currency,
        "status": payment.status,
        "processed_at": payment.processed_at,
        "refund_of_id": payment.refund_of_id,
    }


async def _get_booking(db: AsyncSession, booking_id: int) -> Booking:
    result = await db.execute(select(Booking).where(Booking.id == booking_id))
    booking = result.scalar_one_or_none()
    if not booking:
        raise NotFoundError(f"Booking {booking_id} not found", code="BOOKING_NOT_FOUND")
    return booking


async def get_completed_payment(db: AsyncSession, booking_id: int) -> Optional[Payment]:
    """The booking's completed positive payment, if any. At most one exists."""
    result = await db.execute(
        select(Payment).where(
            Payment.booking_id == booking_id,
            Payment.status == PaymentStatus.COMPLETED,
            Payment.amount > 0,
        )
    )
    return result.scalar_one_or_none()


async def validate_payment_amount(
    db: AsyncSession,
    booking_id: int,
    amount,
    currency: str,
) -> Money:
    """
    Compare the provided amount with the recomputed booking cost.
    The provided amount is not rounded: 899.995 against a 900.00 cost is a mismatch.
    Returns the expected cost; raises INVALID_PAYMENT_AMOUNT with both values on mismatch.
    """
    await _get_booking(db, booking_id)
    expected = await calculate_booking_cost(db, booking_id)
    provided_amount = to_decimal(amount)
    provided_currency = currency.upper()

    if provided_amount != expected.amount or provided_currency != expected.currency:
        logger.warning(
            "payment_amount_mismatch",
            booking_id=booking_id,
            provided=f"{provided_amount} {provided_currency}",
            expected=str(expected),
        )
        raise InvalidPaymentAmountError(
            provided_amount,
            provided_currency,
            expected.amount,
            expected.currency,
        )
    return expected


async def process_payment(
    db: AsyncSession,
    client_id: int,
    booking_id: int,
    amount,
    currency: str,
    clock: Clock,
) -> dict:
    """
    Pay for a pending booking.

    Checks, first failure wins: input shape, booking exists, owned, pending,
    no completed payment yet, exact amount. Then the booking is confirmed with
    a conditional update and the completed payment row is inserted. The
    partial unique index on completed payments rejects a concurrent duplicate.
    """
    try:
        value, currency = _validate_payment_input(amount, currency)
    except ValidationError:
        record_payment_attempt("rejected")
        raise

    booking = await booking_lifecycle.get_owned_booking(db, client_id, booking_id, for_update=True)

    if booking.status != BookingStatus.PENDING:
        record_payment_attempt("rejected")
        raise PolicyDeniedError(
            f"Booking is already {booking.status.value}. Only pending bookings can be paid.",
            code="INVALID_BOOKING_STATUS",
        )

    if await get_completed_payment(db, booking.id):
        record_payment_attempt("rejected")
        raise ConflictError("Payment has already been completed for this booking", code="PAYMENT_ALREADY_EXISTS")

    try:
        expected = await validate_payment_amount(db, booking.id, value, currency)
    except InvalidPaymentAmountError:
        record_payment_attempt("amount_mismatch")
        raise

    await booking_lifecycle.transition_booking(
        db,
        booking,
        BookingStatus.CONFIRMED,
        PolicyDeniedError("Booking is no longer pending", code="INVALID_BOOKING_STATUS"),
    )

    payment = Payment(
        booking_id=booking.id,
        amount=expected.amount,
        currency=expected.currency,
        status=PaymentStatus.COMPLETED,
        processed_at=clock.now(),
    )
    db.add(payment)
    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        record_payment_attempt("rejected")
        raise ConflictError("Payment has already been completed for this booking", code="PAYMENT_ALREADY_EXISTS")
    await db.refresh(payment)

    record_payment_attempt("completed")
    logger.info(
        "payment_completed",
        payment_id=payment.id,
        booking_id=booking.id,
        amount=str(payment.amount),
        currency=payment.currency,
    )
    return payment_receipt(payment, booking)


async def issue_refund(db: AsyncSession, payment: Payment, clock: Clock) -> Payment:
    """
    Reverse a completed payment: mark it refunded and insert the negated ledger row.
    Raises REFUND_ALREADY_PROCESSED when another transaction reversed it first.
    """
    already = ConflictError("Refund has already been processed for this payment", code="REFUND_ALREADY_PROCESSED")
    if payment.status == PaymentStatus.REFUNDED:
        raise already
    ensure_transition(payment.status, PaymentStatus.REFUNDED)

    result = await db.execute(
        update(Payment)
        .where(Payment.id == payment.id, Payment.status == PaymentStatus.COMPLETED)
        .values(status=PaymentStatus.REFUNDED)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise already

    refund = Payment(
        booking_id=payment.booking_id,
        amount=-payment.amount,
        currency=payment.currency,
        status=PaymentStatus.REFUNDED,
        processed_at=clock.now(),
        refund_of_id=payment.id,
    )
    db.add(refund)
    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        raise already

    await db.refresh(payment)
    await db.refresh(refund)

    refunds_issued.inc()
    logger.info(
        "refund_issued",
        payment_id=payment.id,
        refund_id=refund.id,
        booking_id=payment.booking_id,
        amount=str(refund.amount),
    )
    return refund


async def process_refund(db: AsyncSession, client_id: int, booking_id: int, clock: Clock) -> dict:
    """Refund a confirmed, paid booking inside the modification window and cancel it."""
    booking = await booking_lifecycle.get_owned_booking(db, client_id, booking_id, for_update=True)

    if booking.status == BookingStatus.CANCELLED:
        raise ConflictError("Booking is already cancelled", code="ALREADY_CANCELLED")
    if booking.status != BookingStatus.CONFIRMED:
        raise PolicyDeniedError("Only confirmed bookings can be refunded", code="INVALID_BOOKING_STATUS")

    payment = await get_completed_payment(db, booking.id)
    if not payment:
        raise PolicyDeniedError("No completed payment found for this booking", code="NO_PAYMENT_FOUND")

    flight = await get_flight(db, booking.flight_id)
    if not can_modify(booking.status, flight.departure_time, clock.now()):
        raise PolicyDeniedError(
            f"Refunds are not allowed within {settings.MODIFICATION_WINDOW_HOURS} hours of departure",
            code="REFUND_NOT_ALLOWED",
        )

    refund = await issue_refund(db, payment, clock)
    await booking_lifecycle.mark_booking_cancelled(db, booking)
    record_cancellation(refunded=True)

    logger.info("booking_cancelled", booking_id=booking.id, refunded=True, via="refund")
    return {"booking": booking, "refund": payment_receipt(refund, booking)}


async def get_payment_receipt(db: AsyncSession, client_id: int, payment_id: int) -> dict:
    result = await db.execute(select(Payment).where(Payment.id == payment_id))
    payment = result.scalar_one_or_none()
    if not payment:
        raise NotFoundError(f"Payment {payment_id} not found", code="PAYMENT_NOT_FOUND")

    booking = await _get_booking(db, payment.booking_id)
    if booking.client_id != client_id:
        raise AccessDeniedError("You do not have access to this payment")
    return payment_receipt(payment, booking)


async def list_booking_payments(db: AsyncSession, booking_id: int) -> list[Payment]:
    result = await db.execute(
        select(Payment)
        .where(Payment.booking_id == booking_id)
        .order_by(Payment.processed_at.asc(), Payment.id.asc())
    )
    return list(result.scalars().all())


async def get_payment_status(db: AsyncSession, client_id: int, booking_id: int) -> dict:
    """Latest payment of an owned booking, or ``not_paid`` when there is none."""
    booking = await booking_lifecycle.get_owned_booking(db, client_id, booking_id)
    payments = await list_booking_payments(db, booking.id)

    status = {
        "booking_id": booking.id,
        "booking_number": booking.booking_number,
        "booking_status": booking.status,
        "payment_status": "not_paid",
    }
    if payments:
        latest = payments[-1]
        status.update(
            payment_status=latest.status.value,
            payment_id=latest.id,
            amount=latest.amount,
            currency=latest.currency,
            processed_at=latest.processed_at,
        )
    return status


async def get_payment_history(db: AsyncSession, client_id: int) -> list[dict]:
    """Every payment of the client's bookings, grouped by booking, newest booking first."""
    result = await db.execute(
        select(Payment, Booking)
        .join(Booking, Booking.id == Payment.booking_id)
        .where(Booking.client_id == client_id)
        .order_by(Booking.created_at.desc(), Booking.id.desc(), Payment.id.asc())
    )

    history: dict[int, dict] = {}
    for payment, booking in result.all():
        entry = history.setdefault(
            booking.id,
            {
                "booking_id": booking.id,
                "booking_number": booking.booking_number,
                "booking_status": booking.status,
                "net_amount": Decimal("0.00"),
                "payments": [],
            },
        )
        entry["payments"].append(payment_receipt(payment, booking))
        entry["net_amount"] += payment.amount
    return list(history.values())
