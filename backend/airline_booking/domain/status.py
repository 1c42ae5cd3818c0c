"""
Status enums and their transition tables.

Bookings and payments move only along the edges listed here; anything else
raises ``InvalidStatusTransition``. Terminal states have no outgoing edges.

    pending   --[payment completes]--> confirmed --[flight serviced]--> completed
    pending   --[cancel]-------------> cancelled
    confirmed --[cancel in window]---> cancelled
"""

from enum import Enum

from airline_booking.core.exceptions import InvalidStatusTransition


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"

    @property
    def is_terminal(self) -> bool:
        return not BOOKING_TRANSITIONS[self]


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    REFUNDED = "refunded"
    FAILED = "failed"


class FlightStatus(str, Enum):
    SCHEDULED = "Scheduled"
    DELAYED = "Delayed"
    CANCELLED = "Cancelled"
    BOARDING = "Boarding"
    DEPARTED = "Departed"
    ARRIVED = "Arrived"
    COMPLETED = "Completed"


class SeatClass(str, Enum):
    ECONOMY = "Economy"
    PREMIUM_ECONOMY = "Premium Economy"
    BUSINESS = "Business"
    FIRST = "First"

    @property
    def rank(self) -> int:
        """Seat map ordering: First comes first."""
        return _SEAT_CLASS_RANK[self]


_SEAT_CLASS_RANK = {
    SeatClass.FIRST: 0,
    SeatClass.BUSINESS: 1,
    SeatClass.PREMIUM_ECONOMY: 2,
    SeatClass.ECONOMY: 3,
}

BOOKING_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.CONFIRMED, BookingStatus.CANCELLED}),
    BookingStatus.CONFIRMED: frozenset({BookingStatus.CANCELLED, BookingStatus.COMPLETED}),
    BookingStatus.CANCELLED: frozenset(),
    BookingStatus.COMPLETED: frozenset(),
}

# Refund rows are inserted directly as REFUNDED and never transition.
PAYMENT_TRANSITIONS: dict[PaymentStatus, frozenset[PaymentStatus]] = {
    PaymentStatus.PENDING: frozenset({PaymentStatus.COMPLETED, PaymentStatus.FAILED}),
    PaymentStatus.COMPLETED: frozenset({PaymentStatus.REFUNDED}),
    PaymentStatus.REFUNDED: frozenset(),
    PaymentStatus.FAILED: frozenset(),
}

_TABLES = {
    BookingStatus: BOOKING_TRANSITIONS,
    PaymentStatus: PAYMENT_TRANSITIONS,
}


def can_transition(current, target) -> bool:
    table = _TABLES[type(current)]
    return target in table[current]


def ensure_transition(current, target) -> None:
    if type(current) is not type(target) or not can_transition(current, target):
        raise InvalidStatusTransition(
            f"Cannot move {type(current).__name__} from '{current.value}' to '{target.value}'",
            details={"from": current.value, "to": target.value},
        )
