"""
Typed error outcomes raised by the booking core.

Every error carries a stable machine-readable ``code``, a human message and an
optional ``details`` payload. The HTTP layer renders them as
``{"error": {"code": ..., "message": ..., "details": ...}}`` using the
``status_code`` of the taxonomy class.
"""

from typing import Any, Optional


class BookingCoreError(Exception):
    status_code: int = 500
    default_code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, code: Optional[str] = None, details: Any = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.details = details

    def to_dict(self) -> dict:
        payload = {"code": self.code, "message": self.message}
        if self.details is not None:
            payload["details"] = self.details
        return payload


class NotFoundError(BookingCoreError):
    """Unknown flight, booking, passenger or payment id."""

    status_code = 404
    default_code = "NOT_FOUND"


class ValidationError(BookingCoreError):
    """Malformed input that passed schema parsing but not business validation."""

    status_code = 422
    default_code = "VALIDATION_ERROR"


class ConflictError(BookingCoreError):
    """Seat already held, duplicate payment, already-cancelled booking."""

    status_code = 409
    default_code = "CONFLICT"


class PolicyDeniedError(BookingCoreError):
    """Data is consistent but a business rule forbids the operation."""

    status_code = 400
    default_code = "POLICY_DENIED"


class AccessDeniedError(BookingCoreError):
    status_code = 403
    default_code = "ACCESS_DENIED"


class InvalidStatusTransition(BookingCoreError):
    status_code = 409
    default_code = "INVALID_STATUS_TRANSITION"


class SeatConflictError(ConflictError):
    default_code = "SEAT_CONFLICT"

    def __init__(self, seat_ids: list[int], message: str = "One or more selected seats are already booked"):
        super().__init__(message, details={"unavailable_seats": list(seat_ids)})
        self.seat_ids = list(seat_ids)


class InvalidPaymentAmountError(PolicyDeniedError):
    default_code = "INVALID_PAYMENT_AMOUNT"

    def __init__(self, provided_amount, provided_currency: str, expected_amount, expected_currency: str):
        super().__init__(
            "Payment amount does not match booking cost",
            details={
                "provided_amount": str(provided_amount),
                "provided_currency": provided_currency,
                "expected_amount": str(expected_amount),
                "expected_currency": expected_currency,
            },
        )
        self.provided_amount = provided_amount
        self.expected_amount = expected_amount
