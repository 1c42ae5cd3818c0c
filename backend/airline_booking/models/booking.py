"""
Bookings and their passengers.

Key design decisions:
- A passenger carries a denormalized copy of its booking's flight_id so the
  seat guard can be a plain index on the passengers table.
- ``holds_seat`` is true while the owning booking is not cancelled. The partial
  unique index on (flight_id, seat_id) WHERE holds_seat is the authoritative
  guard against double-booking: concurrent claims on one seat cannot both
  commit, whatever the availability check saw.
- Cost is never stored on the booking; it is recomputed from seat prices.
"""

from sqlalchemy import Boolean, Column, Date, ForeignKey, Index, Integer, String, text

from airline_booking.db.base import Base, TimestampMixin, enum_type
from airline_booking.domain.status import BookingStatus


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    booking_number = Column(String(10), unique=True, nullable=False)
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=False, index=True)
    flight_id = Column(Integer, ForeignKey("flights.id"), nullable=False, index=True)
    status = Column(enum_type(BookingStatus, "booking_status"), nullable=False, default=BookingStatus.PENDING)
    support = Column(Boolean, nullable=False, default=False)
    fasttrack = Column(Boolean, nullable=False, default=False)

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, number={self.booking_number}, status={self.status})>"


class Passenger(Base, TimestampMixin):
    __tablename__ = "passengers"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=False, index=True)
    flight_id = Column(Integer, ForeignKey("flights.id"), nullable=False)
    seat_id = Column(Integer, ForeignKey("seats.id"), nullable=False)
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    date_of_birth = Column(Date, nullable=False)
    passport_no = Column(String(20), nullable=False)
    nationality = Column(String(50), nullable=False)
    gender = Column(String(10), nullable=True)
    phone = Column(String(30), nullable=True)
    holds_seat = Column(Boolean, nullable=False, default=True)

    __table_args__ = (
        Index(
            "uq_passengers_flight_seat_held",
            "flight_id",
            "seat_id",
            unique=True,
            postgresql_where=text("holds_seat"),
            sqlite_where=text("holds_seat = 1"),
        ),
    )

    def __repr__(self) -> str:
        return f"<Passenger(id={self.id}, booking={self.booking_id}, seat={self.seat_id})>"
