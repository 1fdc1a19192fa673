"""Pydantic schemas for Trip resources"""
from datetime import datetime
from decimal import Decimal
from typing import List

from reservation.models.trip import TripStatus
from reservation.schemas.base import CamelModel


class TripResponse(CamelModel):
    id: int
    route_id: int
    bus_id: int
    departure_at: datetime
    arrival_at: datetime
    capacity: int
    available_seats: int
    price: Decimal
    status: TripStatus


class SeatMapResponse(CamelModel):
    trip_id: int
    capacity: int
    available_seats: int
    status: TripStatus
    held_seat_numbers: List[int]
    free_seat_numbers: List[int]

    @classmethod
    def from_seat_map(cls, seat_map):
        return cls(
            trip_id=seat_map.trip_id,
            capacity=seat_map.capacity,
            available_seats=seat_map.available_seats,
            status=seat_map.status,
            held_seat_numbers=seat_map.held_seat_numbers,
            free_seat_numbers=seat_map.free_seat_numbers,
        )
