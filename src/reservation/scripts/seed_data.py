"""
Seed script to populate database with sample routes, buses and trips

Usage:
    python -m reservation.scripts.seed_data
"""
import asyncio
from datetime import timedelta
from decimal import Decimal

from sqlalchemy import select

from reservation.core.clock import utcnow
from reservation.core.database import AsyncSessionLocal, init_db
from reservation.models import Bus, BusType, Route
from reservation.services import TripService


async def create_bus_types(db):
    """Create sample bus types"""
    bus_types_data = [
        {"name": "Standard", "description": "Seated coach", "total_seats": 45, "rate_per_km": Decimal("1200")},
        {"name": "Sleeper", "description": "Two-deck sleeper bus", "total_seats": 40, "rate_per_km": Decimal("1500")},
        {"name": "Limousine", "description": "Premium limousine van", "total_seats": 9, "rate_per_km": Decimal("2500")},
    ]

    bus_types = []
    for data in bus_types_data:
        result = await db.execute(select(BusType).where(BusType.name == data["name"]))
        existing = result.scalar_one_or_none()

        if existing:
            print(f"Bus type {data['name']} already exists, skipping...")
            bus_types.append(existing)
            continue

        bus_type = BusType(**data)
        db.add(bus_type)
        bus_types.append(bus_type)
        print(f"Created bus type: {bus_type.name} ({bus_type.total_seats} seats)")

    await db.flush()
    return bus_types


async def create_buses(db, bus_types):
    """Create two buses per bus type"""
    buses = []
    for bus_type in bus_types:
        for index in range(1, 3):
            bus_number = f"{bus_type.name[:3].upper()}-{index:03d}"
            result = await db.execute(select(Bus).where(Bus.bus_number == bus_number))
            existing = result.scalar_one_or_none()

            if existing:
                print(f"Bus {bus_number} already exists, skipping...")
                buses.append(existing)
                continue

            bus = Bus(bus_number=bus_number, bus_type_id=bus_type.id)
            db.add(bus)
            buses.append(bus)
            print(f"Created bus: {bus_number}")

    await db.flush()
    return buses


async def create_routes(db):
    """Create sample routes"""
    routes_data = [
        {"origin": "Ha Noi", "destination": "Hai Phong", "distance": 120, "estimated_duration": 150},
        {"origin": "Ha Noi", "destination": "Sa Pa", "distance": 320, "estimated_duration": 360},
        {"origin": "Ho Chi Minh", "destination": "Da Lat", "distance": 300, "estimated_duration": 420},
        {"origin": "Da Nang", "destination": "Hue", "distance": 100, "estimated_duration": 150},
    ]

    routes = []
    for data in routes_data:
        result = await db.execute(
            select(Route).where(
                Route.origin == data["origin"],
                Route.destination == data["destination"],
            )
        )
        existing = result.scalar_one_or_none()

        if existing:
            print(f"Route {data['origin']} -> {data['destination']} already exists, skipping...")
            routes.append(existing)
            continue

        route = Route(**data)
        db.add(route)
        routes.append(route)
        print(f"Created route: {route.origin} -> {route.destination}")

    await db.flush()
    return routes


async def seed_database():
    """Main seeding function"""
    print("Starting database seeding...")
    await init_db()

    async with AsyncSessionLocal() as db:
        try:
            print("\n=== Creating Bus Types and Buses ===")
            bus_types = await create_bus_types(db)
            buses = await create_buses(db, bus_types)

            print("\n=== Creating Routes ===")
            routes = await create_routes(db)

            await db.commit()
            bus_ids = [bus.id for bus in buses]
            route_ids = [(route.id, route.estimated_duration) for route in routes]
        except Exception as e:
            print(f"Error during seeding: {e}")
            await db.rollback()
            raise

    print("\n=== Scheduling Trips ===")
    departure_base = utcnow().replace(minute=0, second=0, microsecond=0) + timedelta(days=1)
    trips = []
    async with AsyncSessionLocal() as db:
        for day in range(3):
            for index, (route_id, duration) in enumerate(route_ids):
                departure_at = departure_base + timedelta(days=day, hours=2 * index)
                trip = await TripService.schedule_trip(
                    db,
                    route_id=route_id,
                    bus_id=bus_ids[(day + index) % len(bus_ids)],
                    departure_at=departure_at,
                    arrival_at=departure_at + timedelta(minutes=duration),
                    is_peak=departure_at.weekday() >= 5,
                )
                trips.append(trip)
                print(f"  - Trip {trip.id}: route {route_id} at {departure_at}, "
                      f"{trip.capacity} seats @ {trip.price}")

    print("\n=== Seeding Complete! ===")
    print(f"Created {len(bus_types)} bus types, {len(buses)} buses, "
          f"{len(routes)} routes, {len(trips)} trips")


if __name__ == "__main__":
    asyncio.run(seed_database())
