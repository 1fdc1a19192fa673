"""
SQLAlchemy Models for the seat reservation engine

Import all models here for easy access and to ensure proper relationship setup.
"""
from reservation.core.database import Base

from reservation.models.route import Route
from reservation.models.bus_type import BusType
from reservation.models.bus import Bus
from reservation.models.trip import Trip, TripStatus
from reservation.models.booking import Booking, BookingStatus, HOLDING_STATUSES
from reservation.models.booking_seat import BookingSeat

__all__ = [
    "Base",
    "Route",
    "BusType",
    "Bus",
    "Trip",
    "TripStatus",
    "Booking",
    "BookingStatus",
    "HOLDING_STATUSES",
    "BookingSeat",
]
