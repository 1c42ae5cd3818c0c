"""
Payment ledger.

Rows are never rewritten into something else: a refund is a new row with the
negated amount and ``refund_of_id`` pointing at the payment it reverses, while
the original only changes status to ``refunded``.

Storage guards:
- at most one completed positive payment per booking (partial unique index)
- a payment can be reversed at most once (unique refund_of_id)
"""

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, Numeric, String, text

from airline_booking.db.base import Base, TimestampMixin, enum_type
from airline_booking.domain.status import PaymentStatus


class Payment(Base, TimestampMixin):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=False, index=True)
    amount = Column(Numeric(10, 2), nullable=False)
    currency = Column(String(3), nullable=False)
    status = Column(enum_type(PaymentStatus, "payment_status"), nullable=False, default=PaymentStatus.PENDING)
    processed_at = Column(DateTime(timezone=True), nullable=False)
    refund_of_id = Column(Integer, ForeignKey("payments.id"), nullable=True, unique=True)

    __table_args__ = (
        Index(
            "uq_payments_completed_per_booking",
            "booking_id",
            unique=True,
            postgresql_where=text("status = 'completed' AND amount > 0"),
            sqlite_where=text("status = 'completed' AND amount > 0"),
        ),
    )

    def __repr__(self) -> str:
        return f"<Payment(id={self.id}, booking={self.booking_id}, amount={self.amount}, status={self.status})>"
