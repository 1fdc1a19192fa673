"""
Trip scheduling and seat map tests
"""
from datetime import timedelta
from decimal import Decimal

import pytest
import pytest_asyncio

from reservation.models import Bus, BusType, Route, TripStatus
from reservation.services import (
    BookingService,
    BookingValidationError,
    TripService,
    TripUnavailableError,
)
from conftest import SEAT_PRICE, START_TIME

DEPARTURE = START_TIME + timedelta(days=2)


@pytest_asyncio.fixture
async def fleet(session_factory):
    """One route, one active and one retired bus of a 29-seat type"""
    async with session_factory() as db:
        async with db.begin():
            bus_type = BusType(name="Limousine", total_seats=29, rate_per_km=Decimal("1150"))
            route = Route(origin="Ho Chi Minh", destination="Da Lat", distance=300, estimated_duration=420)
            db.add_all([bus_type, route])
            await db.flush()

            active = Bus(bus_number="LIM-001", bus_type_id=bus_type.id)
            retired = Bus(bus_number="LIM-002", bus_type_id=bus_type.id, is_active=False)
            db.add_all([active, retired])
            await db.flush()

    return {"route_id": route.id, "bus_id": active.id, "retired_bus_id": retired.id}


@pytest.mark.asyncio
async def test_schedule_trip_derives_capacity_and_price(session_factory, fleet):
    async with session_factory() as db:
        trip = await TripService.schedule_trip(
            db,
            route_id=fleet["route_id"],
            bus_id=fleet["bus_id"],
            departure_at=DEPARTURE,
            arrival_at=DEPARTURE + timedelta(hours=7),
        )

    assert trip.capacity == 29
    assert trip.available_seats == 29
    assert trip.status == TripStatus.SCHEDULED
    # 300 km * 1150 = 345000
    assert trip.price == Decimal("345000")


@pytest.mark.asyncio
async def test_schedule_peak_trip(session_factory, fleet):
    async with session_factory() as db:
        trip = await TripService.schedule_trip(
            db,
            route_id=fleet["route_id"],
            bus_id=fleet["bus_id"],
            departure_at=DEPARTURE,
            arrival_at=DEPARTURE + timedelta(hours=7),
            is_peak=True,
        )

    # 345000 * 1.2 = 414000
    assert trip.price == Decimal("414000")


@pytest.mark.asyncio
async def test_schedule_trip_rejects_bad_input(session_factory, fleet):
    async with session_factory() as db:
        with pytest.raises(BookingValidationError):
            await TripService.schedule_trip(
                db, fleet["route_id"], fleet["bus_id"], DEPARTURE, DEPARTURE
            )

    async with session_factory() as db:
        with pytest.raises(BookingValidationError):
            await TripService.schedule_trip(
                db, fleet["route_id"], fleet["retired_bus_id"], DEPARTURE, DEPARTURE + timedelta(hours=7)
            )

    async with session_factory() as db:
        with pytest.raises(BookingValidationError):
            await TripService.schedule_trip(
                db, 999, fleet["bus_id"], DEPARTURE, DEPARTURE + timedelta(hours=7)
            )


@pytest.mark.asyncio
async def test_get_trip_missing(session_factory):
    async with session_factory() as db:
        with pytest.raises(TripUnavailableError) as exc_info:
            await TripService.get_trip(db, 999)

    assert exc_info.value.status_code == 404


@pytest.mark.asyncio
async def test_seat_map_tracks_holds(session_factory, make_trip, clock):
    trip = await make_trip(capacity=6)
    async with session_factory() as db:
        booking = await BookingService.create_booking(db, "alice", trip.id, [2, 5], SEAT_PRICE * 2, clock)

    async with session_factory() as db:
        seat_map = await TripService.get_seat_map(db, trip.id)

    assert seat_map.held_seat_numbers == [2, 5]
    assert seat_map.free_seat_numbers == [1, 3, 4, 6]
    assert seat_map.available_seats == 4

    async with session_factory() as db:
        await BookingService.fail_payment(db, booking.id, clock)
    async with session_factory() as db:
        seat_map = await TripService.get_seat_map(db, trip.id)

    assert seat_map.held_seat_numbers == []
    assert seat_map.available_seats == 6
