"""
Concurrency test: verify no double booking when requests overlap
"""
import asyncio
import random
from collections import Counter

import pytest
from sqlalchemy import select

from reservation.models import BookingSeat
from reservation.services import (
    BookingService,
    CapacityExceededError,
    ReservationError,
    SeatConflictError,
)
from conftest import SEAT_PRICE


async def attempt_booking(session_factory, clock, trip_id, user_id, seat_numbers):
    """Attempt a booking in its own session, as a separate request would"""
    async with session_factory() as db:
        try:
            booking = await BookingService.create_booking(
                db, user_id, trip_id, seat_numbers, SEAT_PRICE * len(seat_numbers), clock
            )
            return {"user_id": user_id, "success": True, "booking": booking}
        except ReservationError as e:
            return {"user_id": user_id, "success": False, "error": e}


@pytest.mark.asyncio
async def test_same_seats_only_one_winner(session_factory, make_trip, clock, ledger_state):
    """
    Ten users race for seats 1-5: exactly one wins, the rest get SeatConflict
    """
    trip = await make_trip(capacity=40)
    target_seats = [1, 2, 3, 4, 5]

    results = await asyncio.gather(*[
        attempt_booking(session_factory, clock, trip.id, f"user-{i}", target_seats)
        for i in range(10)
    ])

    winners = [r for r in results if r["success"]]
    losers = [r for r in results if not r["success"]]

    assert len(winners) == 1
    assert all(isinstance(r["error"], SeatConflictError) for r in losers)
    assert all(r["error"].seat_numbers == target_seats for r in losers)

    available, held = await ledger_state(trip.id)
    assert (available, held) == (35, 5)


@pytest.mark.asyncio
async def test_last_seats_capacity_race(session_factory, make_trip, clock, ledger_state):
    """
    Capacity 2, two users request two different seats each: one succeeds
    """
    trip = await make_trip(capacity=2)

    results = await asyncio.gather(
        attempt_booking(session_factory, clock, trip.id, "alice", [1, 2]),
        attempt_booking(session_factory, clock, trip.id, "bob", [1, 2]),
        attempt_booking(session_factory, clock, trip.id, "carol", [2]),
    )

    winners = [r for r in results if r["success"]]
    assert len(winners) >= 1
    for r in results:
        if not r["success"]:
            assert isinstance(r["error"], (SeatConflictError, CapacityExceededError))

    available, held = await ledger_state(trip.id)
    assert available + held == 2
    assert available >= 0


@pytest.mark.asyncio
async def test_two_requests_for_one_seat(session_factory, make_trip, clock, ledger_state):
    """
    Capacity 2, two concurrent requests for seat 1: one booking, one SeatConflict
    """
    trip = await make_trip(capacity=2)

    results = await asyncio.gather(
        attempt_booking(session_factory, clock, trip.id, "alice", [1]),
        attempt_booking(session_factory, clock, trip.id, "bob", [1]),
    )

    winners = [r for r in results if r["success"]]
    losers = [r for r in results if not r["success"]]
    assert len(winners) == 1
    assert len(losers) == 1
    assert isinstance(losers[0]["error"], SeatConflictError)
    assert losers[0]["error"].seat_numbers == [1]
    assert winners[0]["booking"].seat_numbers == [1]

    available, held = await ledger_state(trip.id)
    assert (available, held) == (1, 1)


@pytest.mark.asyncio
async def test_overlapping_requests_never_double_allocate(session_factory, make_trip, clock, ledger_state):
    """
    Many random overlapping requests: every seat ends up with at most one
    holder and available_seats + held seats == capacity
    """
    capacity = 20
    trip = await make_trip(capacity=capacity)
    rng = random.Random(42)

    requests = [
        sorted(rng.sample(range(1, capacity + 1), rng.randint(1, 4)))
        for _ in range(25)
    ]

    results = await asyncio.gather(*[
        attempt_booking(session_factory, clock, trip.id, f"user-{i}", seats)
        for i, seats in enumerate(requests)
    ])

    async with session_factory() as db:
        rows = await db.execute(
            select(BookingSeat.seat_number).where(BookingSeat.trip_id == trip.id)
        )
        seat_holders = Counter(rows.scalars().all())

    assert all(count == 1 for count in seat_holders.values())

    won_seats = sorted(
        n for r in results if r["success"] for n in r["booking"].seat_numbers
    )
    assert won_seats == sorted(seat_holders)

    available, held = await ledger_state(trip.id)
    assert held == len(won_seats)
    assert available + held == capacity
