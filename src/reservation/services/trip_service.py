"""
Trip scheduling and seat availability lookups
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from reservation.models import Bus, Route, Trip, TripStatus
from reservation.services.errors import BookingValidationError, TripUnavailableError
from reservation.services.pricing import trip_price
from reservation.services.seat_ledger import SeatLedger

logger = logging.getLogger(__name__)


@dataclass
class SeatMap:
    trip_id: int
    capacity: int
    available_seats: int
    status: TripStatus
    held_seat_numbers: List[int] = field(default_factory=list)

    @property
    def free_seat_numbers(self) -> List[int]:
        held = set(self.held_seat_numbers)
        return [n for n in range(1, self.capacity + 1) if n not in held]


class TripService:
    """Service for trip scheduling and read-only seat lookups"""

    @staticmethod
    async def schedule_trip(
        db: AsyncSession,
        route_id: int,
        bus_id: int,
        departure_at: datetime,
        arrival_at: datetime,
        is_peak: bool = False,
    ) -> Trip:
        """
        Schedule a departure. Capacity comes from the bus type and the
        per-seat price from the route distance and the bus type rate.
        """
        if arrival_at <= departure_at:
            raise BookingValidationError("Arrival must be after departure")

        async with db.begin():
            route = await db.get(Route, route_id)
            if route is None or not route.is_active:
                raise BookingValidationError(f"Route {route_id} not found or inactive")

            result = await db.execute(select(Bus).where(Bus.id == bus_id))
            bus = result.scalar_one_or_none()
            if bus is None or not bus.is_active:
                raise BookingValidationError(f"Bus {bus_id} not found or inactive")

            capacity = bus.bus_type.total_seats
            trip = Trip(
                route_id=route.id,
                bus_id=bus.id,
                departure_at=departure_at,
                arrival_at=arrival_at,
                capacity=capacity,
                available_seats=capacity,
                price=trip_price(route.distance, bus.bus_type.rate_per_km, is_peak=is_peak),
                status=TripStatus.SCHEDULED,
            )
            db.add(trip)
            await db.flush()

        logger.info(
            f"🚌 Scheduled trip {trip.id}: {route.origin} -> {route.destination} at {departure_at}, "
            f"{capacity} seats @ {trip.price}",
            extra={'trip_id': trip.id},
        )
        return trip

    @staticmethod
    async def get_trip(db: AsyncSession, trip_id: int) -> Trip:
        async with db.begin():
            trip = await db.get(Trip, trip_id)
        if trip is None:
            raise TripUnavailableError.not_found(trip_id)
        return trip

    @staticmethod
    async def get_seat_map(db: AsyncSession, trip_id: int) -> SeatMap:
        """Held and free seat numbers, for re-selecting after a seat conflict"""
        async with db.begin():
            trip = await db.get(Trip, trip_id, populate_existing=True)
            if trip is None:
                raise TripUnavailableError.not_found(trip_id)
            held = await SeatLedger.held_seat_numbers(db, trip_id)

        return SeatMap(
            trip_id=trip.id,
            capacity=trip.capacity,
            available_seats=trip.available_seats,
            status=trip.status,
            held_seat_numbers=sorted(held),
        )
