"""
Pydantic schemas for passenger requests and responses.

Request fields are deliberately loose strings: business validation
(name charset, passport format, date of birth range) happens in the domain
layer so every problem of every passenger is reported together.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from airline_booking.domain.status import SeatClass


class PassengerCreate(BaseModel):
    seat_id: int
    first_name: str
    last_name: str
    date_of_birth: str
    passport_no: str
    nationality: str
    gender: Optional[str] = None
    phone: Optional[str] = None


class PassengerUpdate(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    date_of_birth: Optional[str] = None
    passport_no: Optional[str] = None
    nationality: Optional[str] = None
    gender: Optional[str] = None
    phone: Optional[str] = None


class SeatChangeRequest(BaseModel):
    seat_id: int = Field(..., gt=0)


class PassengerResponse(BaseModel):
    id: int
    booking_id: int
    flight_id: int
    seat_id: int
    seat_no: str
    seat_class: SeatClass
    price: Decimal
    first_name: str
    last_name: str
    date_of_birth: date
    passport_no: str
    nationality: str
    gender: Optional[str]
    phone: Optional[str]


class PassengerRemoveResponse(BaseModel):
    message: str
    passenger_id: int
    booking_id: int
