"""
Pydantic schemas for booking-related request/response validation.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from airline_booking.core.config import get_settings
from airline_booking.domain.status import BookingStatus
from airline_booking.schemas.passenger import PassengerCreate, PassengerResponse
from airline_booking.schemas.payment import PaymentReceipt

settings = get_settings()


class BookingCreate(BaseModel):
    flight_id: int
    passengers: list[PassengerCreate] = Field(..., min_length=1, max_length=settings.MAX_PASSENGERS_PER_BOOKING)
    support: bool = False
    fasttrack: bool = False


class SeatChange(BaseModel):
    passenger_id: int
    seat_id: int


class BookingUpdate(BaseModel):
    support: Optional[bool] = None
    fasttrack: Optional[bool] = None
    seat_changes: list[SeatChange] = Field(default_factory=list)


class BookingResponse(BaseModel):
    id: int
    booking_number: str
    client_id: int
    flight_id: int
    status: BookingStatus
    support: bool
    fasttrack: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class MoneyResponse(BaseModel):
    amount: Decimal
    currency: str


class BookingDetailResponse(BookingResponse):
    flight_number: str
    departure_time: datetime
    passengers: list[PassengerResponse]
    total_cost: MoneyResponse
    can_modify: bool
    latest_payment: Optional[PaymentReceipt] = None


class BookingSummary(BookingResponse):
    flight_number: str
    departure_time: datetime
    passenger_count: int


class BookingListResponse(BaseModel):
    bookings: list[BookingSummary]
    total: int
    page: int
    page_size: int


class BookingCancelResponse(BaseModel):
    message: str
    booking: BookingResponse
    refund: Optional[PaymentReceipt] = None
