"""
Booking cost: the sum of seat prices over the booking's current passengers.
Always recomputed from storage, never stored on the booking.
"""

from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from airline_booking.core.config import get_settings
from airline_booking.domain.money import Money
from airline_booking.models.booking import Passenger
from airline_booking.models.flight import Seat

settings = get_settings()


async def calculate_booking_cost(db: AsyncSession, booking_id: int) -> Money:
    result = await db.execute(
        select(Seat.price)
        .join(Passenger, Passenger.seat_id == Seat.id)
        .where(Passenger.booking_id == booking_id)
    )
    total = sum((Decimal(price) for price in result.scalars().all()), Decimal("0"))
    return Money(total, settings.FARE_CURRENCY)
