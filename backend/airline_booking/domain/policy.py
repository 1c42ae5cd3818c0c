"""
Time-windowed business rules.

``can_modify`` is the single gate for passenger edits, seat changes, service
flag toggles and cancellation (paid or not). It is evaluated against the
injected clock on every call and never cached.
"""

from datetime import datetime, timedelta
from typing import Optional

from airline_booking.core.clock import as_utc
from airline_booking.core.config import get_settings
from airline_booking.core.exceptions import PolicyDeniedError
from airline_booking.domain.status import BookingStatus, FlightStatus

settings = get_settings()

MODIFICATION_WINDOW = timedelta(hours=settings.MODIFICATION_WINDOW_HOURS)


def can_modify(
    status: BookingStatus,
    departure_time: datetime,
    now: datetime,
    window: Optional[timedelta] = None,
) -> bool:
    """True iff the booking is not terminal and departure is strictly more than the window away."""
    if status.is_terminal:
        return False
    window = MODIFICATION_WINDOW if window is None else window
    return as_utc(departure_time) - as_utc(now) > window


def ensure_can_modify(status: BookingStatus, departure_time: datetime, now: datetime) -> None:
    if not can_modify(status, departure_time, now):
        raise PolicyDeniedError(
            f"Bookings cannot be modified within {settings.MODIFICATION_WINDOW_HOURS} hours of departure",
            code="MODIFICATION_NOT_ALLOWED",
        )


def ensure_can_cancel(status: BookingStatus, departure_time: datetime, now: datetime) -> None:
    if not can_modify(status, departure_time, now):
        raise PolicyDeniedError(
            f"Bookings cannot be cancelled within {settings.MODIFICATION_WINDOW_HOURS} hours of departure",
            code="CANCELLATION_NOT_ALLOWED",
        )


def ensure_flight_bookable(flight_status: FlightStatus, departure_time: datetime, now: datetime) -> None:
    if flight_status != FlightStatus.SCHEDULED:
        raise PolicyDeniedError(
            f"Flight is not available for booking (status: {flight_status.value})",
            code="FLIGHT_NOT_AVAILABLE",
        )
    if has_departed(departure_time, now):
        raise PolicyDeniedError("Cannot book a flight that has already departed", code="FLIGHT_DEPARTED")


def has_departed(departure_time: datetime, now: datetime) -> bool:
    return as_utc(departure_time) <= as_utc(now)
