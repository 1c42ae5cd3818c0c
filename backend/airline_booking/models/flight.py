"""
Read-only flight directory: airports, airplanes, their seats, and flights.

Key design decisions:
- Seats belong to an airplane, not to a flight. Every flight flown by the same
  airplane shares its seat layout and prices; per-flight occupancy is derived
  from passenger rows.
- Seat number is unique per airplane.
- Index on flight departure time for upcoming-flight lookups.
"""

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)

from airline_booking.db.base import Base, TimestampMixin, enum_type
from airline_booking.domain.status import FlightStatus, SeatClass


class Airport(Base):
    __tablename__ = "airports"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(3), unique=True, nullable=False)
    name = Column(String(255), nullable=False)
    city = Column(String(100), nullable=False)

    def __repr__(self) -> str:
        return f"<Airport(code={self.code})>"


class Airplane(Base):
    __tablename__ = "airplanes"

    id = Column(Integer, primary_key=True, index=True)
    registration_number = Column(String(20), unique=True, nullable=False)
    type = Column(String(50), nullable=False)

    def __repr__(self) -> str:
        return f"<Airplane(id={self.id}, registration={self.registration_number})>"


class Seat(Base):
    __tablename__ = "seats"

    id = Column(Integer, primary_key=True, index=True)
    airplane_id = Column(Integer, ForeignKey("airplanes.id"), nullable=False, index=True)
    seat_no = Column(String(5), nullable=False)
    seat_class = Column(enum_type(SeatClass, "seat_class"), nullable=False)
    price = Column(Numeric(10, 2), nullable=False)

    __table_args__ = (
        UniqueConstraint("airplane_id", "seat_no", name="uq_airplane_seat_no"),
        CheckConstraint("price >= 0", name="check_seat_price_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<Seat(id={self.id}, seat_no={self.seat_no}, class={self.seat_class})>"


class Flight(Base, TimestampMixin):
    __tablename__ = "flights"

    id = Column(Integer, primary_key=True, index=True)
    flight_number = Column(String(10), unique=True, nullable=False)
    departure_time = Column(DateTime(timezone=True), nullable=False)
    arrival_time = Column(DateTime(timezone=True), nullable=False)
    status = Column(enum_type(FlightStatus, "flight_status"), nullable=False, default=FlightStatus.SCHEDULED)
    airplane_id = Column(Integer, ForeignKey("airplanes.id"), nullable=False)
    origin_airport_id = Column(Integer, ForeignKey("airports.id"), nullable=False)
    destination_airport_id = Column(Integer, ForeignKey("airports.id"), nullable=False)

    __table_args__ = (
        Index("ix_flights_departure_time", "departure_time"),
        CheckConstraint("arrival_time > departure_time", name="check_flight_arrival_after_departure"),
    )

    def __repr__(self) -> str:
        return f"<Flight(id={self.id}, number={self.flight_number}, status={self.status})>"
