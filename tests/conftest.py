"""
Shared fixtures: a file-backed SQLite store per test, a frozen clock and
trip/booking factories.

SQLite serializes writers with BEGIN IMMEDIATE, which stands in for the
PostgreSQL trip row lock (FOR UPDATE is not emitted on SQLite).
"""
import os

os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("EXPIRY_WORKER_ENABLED", "false")
os.environ.setdefault("LOG_JSON", "false")

from datetime import datetime, timedelta
from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy import event, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import selectinload
from sqlalchemy.pool import NullPool

from reservation.core.database import Base
from reservation.models import Booking, BookingSeat, Bus, BusType, Route, Trip, TripStatus

START_TIME = datetime(2026, 1, 5, 8, 0, 0)
SEAT_PRICE = Decimal("150000")


class FrozenClock:
    """Clock that only moves when a test advances it"""

    def __init__(self, start: datetime = START_TIME):
        self.current = start

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current += timedelta(**kwargs)
        return self.current


@pytest_asyncio.fixture
async def engine(tmp_path):
    """Fresh database file with the schema created"""
    test_engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'reservation.db'}",
        connect_args={"timeout": 30},
        poolclass=NullPool,
    )

    @event.listens_for(test_engine.sync_engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        # Let SQLAlchemy emit BEGIN itself
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(test_engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def make_trip(session_factory):
    """Factory creating a route, a bus and a scheduled trip with `capacity` seats"""

    async def _make_trip(
        capacity: int = 40,
        price: Decimal = SEAT_PRICE,
        status: TripStatus = TripStatus.SCHEDULED,
    ) -> Trip:
        async with session_factory() as db:
            async with db.begin():
                bus_type = BusType(
                    name=f"Coach-{capacity}-{os.urandom(3).hex()}",
                    total_seats=capacity,
                    rate_per_km=Decimal("1250"),
                )
                route = Route(origin="Ha Noi", destination="Hai Phong", distance=120)
                db.add_all([bus_type, route])
                await db.flush()

                bus = Bus(bus_number=f"BUS-{os.urandom(3).hex()}", bus_type_id=bus_type.id)
                db.add(bus)
                await db.flush()

                trip = Trip(
                    route_id=route.id,
                    bus_id=bus.id,
                    departure_at=START_TIME + timedelta(days=1),
                    arrival_at=START_TIME + timedelta(days=1, hours=3),
                    capacity=capacity,
                    available_seats=capacity,
                    price=price,
                    status=status,
                )
                db.add(trip)
                await db.flush()
        return trip

    return _make_trip


@pytest.fixture
def ledger_state(session_factory):
    """Read (available_seats, held seat count) for a trip in a fresh session"""

    async def _ledger_state(trip_id: int):
        async with session_factory() as db:
            trip = await db.get(Trip, trip_id)
            held = await db.scalar(
                select(func.count(BookingSeat.id)).where(BookingSeat.trip_id == trip_id)
            )
            return trip.available_seats, held

    return _ledger_state


@pytest.fixture
def load_booking(session_factory):
    """Reload a booking with its seats in a fresh session"""

    async def _load_booking(booking_id: int) -> Booking:
        async with session_factory() as db:
            result = await db.execute(
                select(Booking).where(Booking.id == booking_id).options(selectinload(Booking.seats))
            )
            return result.scalar_one()

    return _load_booking
