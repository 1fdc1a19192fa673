"""
Seat ledger tests: check-and-decrement, conflicts and capped release
"""
import pytest

from reservation.models import BookingStatus
from reservation.services import (
    Actor,
    BookingService,
    CapacityExceededError,
    SeatConflictError,
    SeatLedger,
    TripUnavailableError,
)
from conftest import SEAT_PRICE


@pytest.mark.asyncio
async def test_reserve_decrements_available_seats(session_factory, make_trip, ledger_state):
    trip = await make_trip(capacity=10)

    async with session_factory() as db:
        updated = await SeatLedger.reserve(db, trip.id, [1, 2, 3])

    assert updated.available_seats == 7
    available, _ = await ledger_state(trip.id)
    assert available == 7


@pytest.mark.asyncio
async def test_reserve_capacity_exceeded_changes_nothing(session_factory, make_trip, ledger_state):
    trip = await make_trip(capacity=3)

    async with session_factory() as db:
        with pytest.raises(CapacityExceededError) as exc_info:
            await SeatLedger.reserve(db, trip.id, [1, 2, 3, 4])

    assert exc_info.value.requested == 4
    assert exc_info.value.available == 3
    assert exc_info.value.to_dict()["error"] == "CapacityExceeded"
    available, held = await ledger_state(trip.id)
    assert (available, held) == (3, 0)


@pytest.mark.asyncio
async def test_reserve_reports_conflicting_seats(session_factory, make_trip, clock, ledger_state):
    trip = await make_trip(capacity=10)
    async with session_factory() as db:
        await BookingService.create_booking(db, "alice", trip.id, [4, 5], SEAT_PRICE * 2, clock)

    async with session_factory() as db:
        with pytest.raises(SeatConflictError) as exc_info:
            await SeatLedger.reserve(db, trip.id, [3, 4, 5])

    assert exc_info.value.seat_numbers == [4, 5]
    assert exc_info.value.to_dict()["seatNumbers"] == [4, 5]
    available, held = await ledger_state(trip.id)
    assert (available, held) == (8, 2)


@pytest.mark.asyncio
async def test_reserve_missing_trip(session_factory):
    async with session_factory() as db:
        with pytest.raises(TripUnavailableError) as exc_info:
            await SeatLedger.reserve(db, 999, [1])

    assert exc_info.value.status_code == 404


@pytest.mark.asyncio
async def test_release_returns_seats(session_factory, make_trip):
    trip = await make_trip(capacity=10)
    async with session_factory() as db:
        await SeatLedger.reserve(db, trip.id, [1, 2, 3])

    async with session_factory() as db:
        updated = await SeatLedger.release(db, trip.id, 2)

    assert updated.available_seats == 9


@pytest.mark.asyncio
async def test_release_never_exceeds_capacity(session_factory, make_trip, ledger_state):
    """A release larger than what is held caps at capacity instead of failing"""
    trip = await make_trip(capacity=5)
    async with session_factory() as db:
        await SeatLedger.reserve(db, trip.id, [1])

    async with session_factory() as db:
        updated = await SeatLedger.release(db, trip.id, 3)

    assert updated.available_seats == 5
    available, _ = await ledger_state(trip.id)
    assert available == 5


@pytest.mark.asyncio
async def test_held_seat_numbers_respects_hold_statuses(session_factory, make_trip, clock):
    trip = await make_trip(capacity=10)
    async with session_factory() as db:
        paid = await BookingService.create_booking(db, "alice", trip.id, [1, 2], SEAT_PRICE * 2, clock)
    async with session_factory() as db:
        await BookingService.create_booking(db, "bob", trip.id, [7], SEAT_PRICE, clock)
    async with session_factory() as db:
        await BookingService.update_payment_status(
            db, paid.id, BookingStatus.COMPLETED, Actor("alice"), clock
        )

    async with session_factory() as db:
        all_held = await SeatLedger.held_seat_numbers(db, trip.id)
        pending_only = await SeatLedger.held_seat_numbers(db, trip.id, (BookingStatus.PENDING,))

    assert all_held == {1, 2, 7}
    assert pending_only == {7}


@pytest.mark.asyncio
async def test_reserve_joins_caller_transaction(session_factory, make_trip, ledger_state):
    """Rolling back the caller's transaction undoes the decrement"""
    trip = await make_trip(capacity=10)

    async with session_factory() as db:
        transaction = await db.begin()
        await SeatLedger.reserve(db, trip.id, [1, 2])
        await transaction.rollback()

    available, _ = await ledger_state(trip.id)
    assert available == 10
