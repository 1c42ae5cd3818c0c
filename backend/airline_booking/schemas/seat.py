"""
Pydantic schemas for seat maps and availability.
"""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from airline_booking.domain.status import SeatClass


class SeatMapEntry(BaseModel):
    seat_id: int
    seat_no: str
    seat_class: SeatClass
    price: Decimal
    available: bool


class SeatMapResponse(BaseModel):
    flight_id: int
    seats: list[SeatMapEntry]
    cached: bool = False


class SeatClassSummary(BaseModel):
    seat_class: SeatClass
    total_seats: int
    booked_seats: int
    available_seats: int
    min_price: Decimal
    max_price: Decimal


class AvailabilitySummaryResponse(BaseModel):
    flight_id: int
    classes: list[SeatClassSummary]


class SeatAvailabilityRequest(BaseModel):
    seat_ids: list[int] = Field(..., min_length=1)


class SeatAvailabilityEntry(BaseModel):
    seat_id: int
    available: bool
    seat_no: Optional[str] = None
    seat_class: Optional[SeatClass] = None
    price: Optional[Decimal] = None
    reason: Optional[str] = None

    model_config = {"from_attributes": True}


class SeatAvailabilityResponse(BaseModel):
    flight_id: int
    seats: list[SeatAvailabilityEntry]
    all_available: bool
