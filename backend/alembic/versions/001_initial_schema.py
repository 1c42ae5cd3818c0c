"""Initial schema: directory tables, bookings, passengers, payments.

Revision ID: 001
Revises: None
Create Date: 2026-10-18
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        "clients",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("first_name", sa.String(50), nullable=False),
        sa.Column("last_name", sa.String(50), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index("ix_clients_id", "clients", ["id"])
    op.create_index("ix_clients_email", "clients", ["email"], unique=True)

    op.create_table(
        "airports",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("code", sa.String(3), nullable=False, unique=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("city", sa.String(100), nullable=False),
    )
    op.create_index("ix_airports_id", "airports", ["id"])

    op.create_table(
        "airplanes",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("registration_number", sa.String(20), nullable=False, unique=True),
        sa.Column("type", sa.String(50), nullable=False),
    )
    op.create_index("ix_airplanes_id", "airplanes", ["id"])

    op.create_table(
        "seats",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("airplane_id", sa.Integer(), sa.ForeignKey("airplanes.id"), nullable=False),
        sa.Column("seat_no", sa.String(5), nullable=False),
        sa.Column("seat_class", sa.String(20), nullable=False),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        sa.UniqueConstraint("airplane_id", "seat_no", name="uq_airplane_seat_no"),
        sa.CheckConstraint("price >= 0", name="check_seat_price_non_negative"),
        sa.CheckConstraint(
            "seat_class IN ('Economy', 'Premium Economy', 'Business', 'First')",
            name="seat_class",
        ),
    )
    op.create_index("ix_seats_id", "seats", ["id"])
    op.create_index("ix_seats_airplane_id", "seats", ["airplane_id"])

    op.create_table(
        "flights",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("flight_number", sa.String(10), nullable=False, unique=True),
        sa.Column("departure_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("arrival_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'Scheduled'")),
        sa.Column("airplane_id", sa.Integer(), sa.ForeignKey("airplanes.id"), nullable=False),
        sa.Column("origin_airport_id", sa.Integer(), sa.ForeignKey("airports.id"), nullable=False),
        sa.Column("destination_airport_id", sa.Integer(), sa.ForeignKey("airports.id"), nullable=False),
        *_timestamps(),
        sa.CheckConstraint("arrival_time > departure_time", name="check_flight_arrival_after_departure"),
        sa.CheckConstraint(
            "status IN ('Scheduled', 'Delayed', 'Cancelled', 'Boarding', 'Departed', 'Arrived', 'Completed')",
            name="flight_status",
        ),
    )
    op.create_index("ix_flights_id", "flights", ["id"])
    op.create_index("ix_flights_departure_time", "flights", ["departure_time"])

    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("booking_number", sa.String(10), nullable=False, unique=True),
        sa.Column("client_id", sa.Integer(), sa.ForeignKey("clients.id"), nullable=False),
        sa.Column("flight_id", sa.Integer(), sa.ForeignKey("flights.id"), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'pending'")),
        sa.Column("support", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("fasttrack", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.CheckConstraint(
            "status IN ('pending', 'confirmed', 'cancelled', 'completed')",
            name="booking_status",
        ),
    )
    op.create_index("ix_bookings_id", "bookings", ["id"])
    op.create_index("ix_bookings_client_id", "bookings", ["client_id"])
    op.create_index("ix_bookings_flight_id", "bookings", ["flight_id"])

    op.create_table(
        "passengers",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("booking_id", sa.Integer(), sa.ForeignKey("bookings.id"), nullable=False),
        sa.Column("flight_id", sa.Integer(), sa.ForeignKey("flights.id"), nullable=False),
        sa.Column("seat_id", sa.Integer(), sa.ForeignKey("seats.id"), nullable=False),
        sa.Column("first_name", sa.String(50), nullable=False),
        sa.Column("last_name", sa.String(50), nullable=False),
        sa.Column("date_of_birth", sa.Date(), nullable=False),
        sa.Column("passport_no", sa.String(20), nullable=False),
        sa.Column("nationality", sa.String(50), nullable=False),
        sa.Column("gender", sa.String(10), nullable=True),
        sa.Column("phone", sa.String(30), nullable=True),
        sa.Column("holds_seat", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index("ix_passengers_id", "passengers", ["id"])
    op.create_index("ix_passengers_booking_id", "passengers", ["booking_id"])
    # THE SEAT GUARD: at most one seat-holding passenger per (flight, seat).
    # Passengers of cancelled bookings drop out of the index (holds_seat = false),
    # so history is kept while the seat becomes free again.
    op.create_index(
        "uq_passengers_flight_seat_held",
        "passengers",
        ["flight_id", "seat_id"],
        unique=True,
        postgresql_where=sa.text("holds_seat"),
        sqlite_where=sa.text("holds_seat = 1"),
    )

    op.create_table(
        "payments",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("booking_id", sa.Integer(), sa.ForeignKey("bookings.id"), nullable=False),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'pending'")),
        sa.Column("processed_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("refund_of_id", sa.Integer(), sa.ForeignKey("payments.id"), nullable=True, unique=True),
        *_timestamps(),
        sa.CheckConstraint(
            "status IN ('pending', 'completed', 'refunded', 'failed')",
            name="payment_status",
        ),
    )
    op.create_index("ix_payments_id", "payments", ["id"])
    op.create_index("ix_payments_booking_id", "payments", ["booking_id"])
    # One completed charge per booking; refund rows (negative) are exempt.
    op.create_index(
        "uq_payments_completed_per_booking",
        "payments",
        ["booking_id"],
        unique=True,
        postgresql_where=sa.text("status = 'completed' AND amount > 0"),
        sqlite_where=sa.text("status = 'completed' AND amount > 0"),
    )


def downgrade() -> None:
    op.drop_table("payments")
    op.drop_table("passengers")
    op.drop_table("bookings")
    op.drop_table("flights")
    op.drop_table("seats")
    op.drop_table("airplanes")
    op.drop_table("airports")
    op.drop_table("clients")
