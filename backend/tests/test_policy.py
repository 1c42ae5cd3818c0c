"""
Tests for the modification window, flight bookability, passenger validation
and money arithmetic.
"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from airline_booking.core.clock import FixedClock, as_utc
from airline_booking.core.exceptions import PolicyDeniedError
from airline_booking.domain.money import Money
from airline_booking.domain.policy import can_modify, ensure_can_cancel, ensure_flight_bookable
from airline_booking.domain.status import BookingStatus, FlightStatus
from airline_booking.domain.validation import validate_passenger

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
TODAY = date(2026, 3, 1)


def valid_passenger(**overrides) -> dict:
    data = {
        "first_name": "Mary-Ann",
        "last_name": "D'Souza",
        "date_of_birth": "1975-01-31",
        "passport_no": "X1234567",
        "nationality": "Indian",
    }
    data.update(overrides)
    return data


# --- can_modify ---


def test_can_modify_well_before_departure():
    """Pending and confirmed bookings are modifiable far from departure."""
    departure = NOW + timedelta(days=3)
    assert can_modify(BookingStatus.PENDING, departure, NOW)
    assert can_modify(BookingStatus.CONFIRMED, departure, NOW)


def test_can_modify_false_exactly_at_window_boundary():
    """Exactly 24 hours before departure is already too late."""
    departure = NOW + timedelta(hours=24)
    assert not can_modify(BookingStatus.CONFIRMED, departure, NOW)
    assert can_modify(BookingStatus.CONFIRMED, departure + timedelta(seconds=1), NOW)


def test_can_modify_false_for_terminal_states():
    departure = NOW + timedelta(days=10)
    assert not can_modify(BookingStatus.CANCELLED, departure, NOW)
    assert not can_modify(BookingStatus.COMPLETED, departure, NOW)


def test_can_modify_follows_clock():
    """Advancing the clock closes the window without touching the booking."""
    clock = FixedClock(NOW)
    departure = NOW + timedelta(hours=30)
    assert can_modify(BookingStatus.CONFIRMED, departure, clock.now())
    clock.advance(timedelta(hours=20))
    assert not can_modify(BookingStatus.CONFIRMED, departure, clock.now())


def test_can_modify_accepts_naive_departure_as_utc():
    """SQLite hands back naive datetimes; they are read as UTC."""
    departure = (NOW + timedelta(hours=25)).replace(tzinfo=None)
    assert can_modify(BookingStatus.PENDING, departure, NOW)
    assert as_utc(departure) == NOW + timedelta(hours=25)


def test_ensure_can_cancel_reports_cancellation_code():
    with pytest.raises(PolicyDeniedError) as exc_info:
        ensure_can_cancel(BookingStatus.CONFIRMED, NOW + timedelta(hours=10), NOW)
    assert exc_info.value.code == "CANCELLATION_NOT_ALLOWED"
    assert exc_info.value.status_code == 400


# --- flight bookability ---


def test_flight_must_be_scheduled():
    with pytest.raises(PolicyDeniedError) as exc_info:
        ensure_flight_bookable(FlightStatus.BOARDING, NOW + timedelta(days=1), NOW)
    assert exc_info.value.code == "FLIGHT_NOT_AVAILABLE"


def test_flight_departed():
    with pytest.raises(PolicyDeniedError) as exc_info:
        ensure_flight_bookable(FlightStatus.SCHEDULED, NOW, NOW)
    assert exc_info.value.code == "FLIGHT_DEPARTED"


# --- passenger validation ---


def test_valid_passenger_has_no_errors():
    assert validate_passenger(valid_passenger(gender="Other", phone="+44 20 7946 0958"), TODAY) == []


@pytest.mark.parametrize(
    "overrides,message",
    [
        ({"first_name": ""}, "First name is required"),
        ({"first_name": "R2D2"}, "First name can only contain letters, spaces, hyphens, and apostrophes"),
        ({"last_name": "x" * 51}, "Last name must be at most 50 characters"),
        ({"date_of_birth": "31/01/1975"}, "Date of birth must be a valid ISO date"),
        ({"date_of_birth": "2026-03-02"}, "Date of birth cannot be in the future"),
        ({"date_of_birth": "1900-01-01"}, "Age cannot exceed 120 years"),
        ({"passport_no": "ab12345"}, "Passport number must be 6-20 uppercase letters and digits"),
        ({"passport_no": "A1B2"}, "Passport number must be 6-20 uppercase letters and digits"),
        ({"nationality": "  "}, "Nationality is required"),
        ({"gender": "Unknown"}, "Gender must be Male, Female, or Other"),
        ({"phone": "call me"}, "Phone number format is invalid"),
    ],
)
def test_invalid_passenger_fields(overrides, message):
    assert message in validate_passenger(valid_passenger(**overrides), TODAY)


def test_validation_collects_every_error():
    errors = validate_passenger({"first_name": "", "last_name": "", "nationality": ""}, TODAY)
    assert len(errors) == 5


# --- money ---


def test_money_is_quantized_and_comparable():
    assert Money(Decimal("900"), "usd") == Money(Decimal("900.00"), "USD")
    assert Money(Decimal("899.99"), "USD") != Money(Decimal("900.00"), "USD")


def test_money_add_and_negate():
    total = Money(Decimal("300"), "USD").add(Money(Decimal("600"), "USD"))
    assert total.amount == Decimal("900.00")
    assert total.negate().amount == Decimal("-900.00")
    with pytest.raises(ValueError):
        total.add(Money(Decimal("1"), "EUR"))
