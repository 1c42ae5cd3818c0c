from airline_booking.models.client import Client
from airline_booking.models.flight import Airplane, Airport, Flight, Seat
from airline_booking.models.booking import Booking, Passenger
from airline_booking.models.payment import Payment

__all__ = ["Client", "Airport", "Airplane", "Flight", "Seat", "Booking", "Passenger", "Payment"]
