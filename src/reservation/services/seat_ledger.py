"""
Seat Ledger - the single source of truth for "is seat N on trip T held"

Both mutations lock the trip row (SELECT ... FOR UPDATE) for the rest of the
surrounding transaction, so concurrent reservations on one trip serialize
on that lock instead of on any in-process mutex. Whichever transaction
commits first wins; losers get SeatConflictError / CapacityExceededError
and must retry with a fresh seat selection.
"""
import logging
from contextlib import asynccontextmanager
from typing import Iterable, Set

from sqlalchemy import select
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession

from reservation.core import metrics
from reservation.core.database import is_lock_timeout
from reservation.models import Booking, BookingSeat, Trip, HOLDING_STATUSES
from reservation.services.errors import (
    CapacityExceededError,
    SeatConflictError,
    SeatLedgerBusyError,
    StorageError,
    TripUnavailableError,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def ledger_transaction(db: AsyncSession):
    """Join the caller's transaction, or run in a new one"""
    if db.in_transaction():
        yield
    else:
        async with db.begin():
            yield


class SeatLedger:
    """Per-trip available-seat counter and seat-assignment accounting"""

    @staticmethod
    async def lock_trip(db: AsyncSession, trip_id: int) -> Trip:
        """Lock the trip row for the rest of the transaction and return fresh state"""
        query = (
            select(Trip)
            .where(Trip.id == trip_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        try:
            result = await db.execute(query)
        except DBAPIError as e:
            if is_lock_timeout(e):
                logger.warning(f"⏳ Timed out waiting for trip {trip_id} lock", extra={'trip_id': trip_id})
                raise SeatLedgerBusyError() from e
            raise StorageError(f"Failed to lock trip {trip_id}") from e

        trip = result.scalar_one_or_none()
        if trip is None:
            raise TripUnavailableError.not_found(trip_id)
        return trip

    @staticmethod
    async def held_seat_numbers(
        db: AsyncSession,
        trip_id: int,
        hold_statuses: Iterable = HOLDING_STATUSES,
    ) -> Set[int]:
        """Seat numbers assigned to bookings in `hold_statuses` on the trip"""
        query = (
            select(BookingSeat.seat_number)
            .join(Booking, BookingSeat.booking_id == Booking.id)
            .where(Booking.trip_id == trip_id)
            .where(Booking.status.in_(list(hold_statuses)))
        )
        result = await db.execute(query)
        return set(result.scalars().all())

    @staticmethod
    async def reserve(
        db: AsyncSession,
        trip_id: int,
        seat_numbers: Iterable[int],
        hold_statuses: Iterable = HOLDING_STATUSES,
    ) -> Trip:
        """
        Check and take `seat_numbers` on the trip.

        Locks the trip, checks capacity, then checks none of the seats is
        held by a booking in `hold_statuses`, and only then decrements
        `available_seats`. A failed check raises before anything changes.
        """
        seat_numbers = list(seat_numbers)

        async with ledger_transaction(db):
            trip = await SeatLedger.lock_trip(db, trip_id)

            if trip.available_seats < len(seat_numbers):
                metrics.capacity_exceeded_total.inc()
                logger.info(
                    f"🚫 Trip {trip_id}: {len(seat_numbers)} seats requested, {trip.available_seats} available",
                    extra={'trip_id': trip_id, 'seat_numbers': seat_numbers},
                )
                raise CapacityExceededError(trip_id, len(seat_numbers), trip.available_seats)

            held = await SeatLedger.held_seat_numbers(db, trip_id, hold_statuses)
            conflicts = held.intersection(seat_numbers)
            if conflicts:
                metrics.seat_conflicts_total.inc()
                logger.info(
                    f"🚫 Trip {trip_id}: seats {sorted(conflicts)} already held",
                    extra={'trip_id': trip_id, 'seat_numbers': sorted(conflicts)},
                )
                raise SeatConflictError(trip_id, conflicts)

            trip.available_seats -= len(seat_numbers)
            await db.flush()

        return trip

    @staticmethod
    async def release(db: AsyncSession, trip_id: int, seat_count: int) -> Trip:
        """
        Return `seat_count` seats to the trip.

        Never raises the counter above capacity. The caller deletes the seat
        assignment rows in the same transaction.
        """
        async with ledger_transaction(db):
            trip = await SeatLedger.lock_trip(db, trip_id)

            restored = trip.available_seats + seat_count
            if restored > trip.capacity:
                logger.warning(
                    f"⚠️ Trip {trip_id}: release of {seat_count} seats would exceed capacity "
                    f"({trip.available_seats}/{trip.capacity}), capping",
                    extra={'trip_id': trip_id},
                )
                restored = trip.capacity

            trip.available_seats = restored
            await db.flush()

        return trip
