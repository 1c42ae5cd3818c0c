"""
Pydantic schemas for payment requests and responses.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from airline_booking.domain.status import BookingStatus, PaymentStatus


class PaymentCreate(BaseModel):
    booking_id: int
    amount: Decimal
    currency: str = Field(default="USD", min_length=3, max_length=3)


class PaymentValidateRequest(PaymentCreate):
    pass


class PaymentValidateResponse(BaseModel):
    valid: bool
    amount: Decimal
    currency: str


class PaymentReceipt(BaseModel):
    payment_id: int
    booking_id: int
    booking_number: str
    amount: Decimal
    currency: str
    status: PaymentStatus
    processed_at: datetime
    refund_of_id: Optional[int] = None


class PaymentStatusResponse(BaseModel):
    booking_id: int
    booking_number: str
    booking_status: BookingStatus
    payment_status: str  # a PaymentStatus value, or "not_paid"
    payment_id: Optional[int] = None
    amount: Optional[Decimal] = None
    currency: Optional[str] = None
    processed_at: Optional[datetime] = None


class BookingPayments(BaseModel):
    booking_id: int
    booking_number: str
    booking_status: BookingStatus
    net_amount: Decimal
    payments: list[PaymentReceipt]


class PaymentHistoryResponse(BaseModel):
    bookings: list[BookingPayments]
