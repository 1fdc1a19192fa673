"""
Booking Service - the reservation state machine

    pending -> completed   (payment confirmed, seats stay held)
    pending -> failed      (payment failed, seats released)
    pending -> cancelled   (owner/admin cancel or expiry sweep, seats released)

completed, failed and cancelled are terminal. Every seat-releasing
transition goes through `_release`, which locks the booking row, locks the
trip row, returns the seats to the ledger and deletes the seat assignments
in one transaction. Lock order is always booking -> trip -> seat rows.
"""
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Dict, List, Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.exc import DBAPIError, IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from reservation.core import metrics
from reservation.core.clock import Clock, system_clock
from reservation.core.config import settings
from reservation.core.database import is_lock_timeout
from reservation.models import Booking, BookingSeat, BookingStatus, Trip
from reservation.services.errors import (
    AlreadyTerminalError,
    BookingAccessDeniedError,
    BookingNotFoundError,
    BookingValidationError,
    NotCancellableError,
    ReservationError,
    SeatConflictError,
    SeatLedgerBusyError,
    StorageError,
    TripUnavailableError,
)
from reservation.services.pricing import generate_booking_reference
from reservation.services.seat_ledger import SeatLedger

logger = logging.getLogger(__name__)


def default_grace_period() -> timedelta:
    return timedelta(minutes=settings.BOOKING_GRACE_PERIOD_MINUTES)


@dataclass(frozen=True)
class Actor:
    """Who is acting on a booking"""
    user_id: str
    is_admin: bool = False

    def can_manage(self, booking: Booking) -> bool:
        return self.is_admin or booking.user_id == self.user_id


@dataclass
class ReleaseSummary:
    booking_id: int
    booking_reference: str
    trip_id: int
    status: BookingStatus
    seats_released: int
    seat_numbers: List[int]
    available_seats: int


@dataclass
class BookingTimeout:
    booking_id: int
    status: BookingStatus
    created_at: datetime
    expires_at: datetime
    time_remaining_seconds: int
    expired: bool


@dataclass
class BookingStats:
    total: int = 0
    by_status: Dict[str, int] = field(default_factory=dict)
    seats_held: int = 0
    revenue: Decimal = Decimal("0")


class BookingService:
    """Service for the booking lifecycle"""

    # ==================== Creation ====================

    @staticmethod
    def _validate_seat_request(seat_numbers: Sequence[int]) -> List[int]:
        seat_numbers = list(seat_numbers or [])
        if not seat_numbers:
            raise BookingValidationError("At least one seat must be selected")

        if len(seat_numbers) > settings.MAX_SEATS_PER_BOOKING:
            raise BookingValidationError(
                f"Cannot book more than {settings.MAX_SEATS_PER_BOOKING} seats at once"
            )

        seen, duplicates = set(), set()
        for number in seat_numbers:
            if number in seen:
                duplicates.add(number)
            seen.add(number)
        if duplicates:
            raise BookingValidationError(
                f"Duplicate seat numbers in request: {sorted(duplicates)}"
            )

        return seat_numbers

    @staticmethod
    async def create_booking(
        db: AsyncSession,
        user_id: str,
        trip_id: int,
        seat_numbers: Sequence[int],
        expected_amount,
        clock: Clock = system_clock,
    ) -> Booking:
        """
        Create a PENDING booking holding `seat_numbers` on the trip.

        The seat ledger check-and-decrement, the booking row and its seat
        assignments commit together or not at all. `created_at` is taken
        when the transaction starts.
        """
        seat_numbers = BookingService._validate_seat_request(seat_numbers)
        try:
            expected_amount = Decimal(str(expected_amount))
        except ArithmeticError:
            raise BookingValidationError(f"Invalid total amount: {expected_amount!r}")
        if not expected_amount.is_finite() or expected_amount <= 0:
            raise BookingValidationError("Total amount must be positive")

        start_time = time.time()
        try:
            async with db.begin():
                created_at = clock.now()

                trip = await db.get(Trip, trip_id)
                if trip is None:
                    raise TripUnavailableError.not_found(trip_id)
                if not trip.is_bookable:
                    raise TripUnavailableError(
                        trip_id, f"Trip {trip_id} is {trip.status.value}, not open for booking"
                    )

                unknown = sorted(n for n in seat_numbers if not trip.has_seat(n))
                if unknown:
                    raise BookingValidationError(
                        f"Seats {unknown} do not exist on trip {trip_id} (1-{trip.capacity})"
                    )

                fare = trip.price * len(seat_numbers)
                if expected_amount != fare:
                    raise BookingValidationError(
                        f"Total amount {expected_amount} does not match fare {fare} "
                        f"for {len(seat_numbers)} seat(s)"
                    )

                trip = await SeatLedger.reserve(db, trip_id, seat_numbers)
                if not trip.is_bookable:
                    # status changed while we waited for the trip lock
                    raise TripUnavailableError(trip_id)

                booking = await BookingService._insert_booking(
                    db, user_id, trip_id, fare, created_at
                )

                booking.seats.extend(
                    BookingSeat(trip_id=trip_id, seat_number=number, created_at=created_at)
                    for number in sorted(seat_numbers)
                )
                try:
                    await db.flush()
                except IntegrityError as e:
                    # uq_trip_seat_number caught what the ledger check should have
                    logger.error(
                        f"❌ Seat uniqueness constraint hit on trip {trip_id} for {seat_numbers}",
                        extra={'trip_id': trip_id, 'seat_numbers': seat_numbers},
                    )
                    raise SeatConflictError(trip_id, seat_numbers) from e
        except ReservationError:
            raise
        except DBAPIError as e:
            if is_lock_timeout(e):
                raise SeatLedgerBusyError() from e
            logger.exception(f"❌ Booking creation failed on trip {trip_id}")
            raise StorageError(f"Booking creation failed on trip {trip_id}") from e
        except SQLAlchemyError as e:
            logger.exception(f"❌ Booking creation failed on trip {trip_id}")
            raise StorageError(f"Booking creation failed on trip {trip_id}") from e
        finally:
            metrics.booking_creation_duration_seconds.observe(time.time() - start_time)

        metrics.bookings_created_total.inc()
        logger.info(
            f"🎫 Booking {booking.booking_reference} held seats {booking.seat_numbers} on trip {trip_id}",
            extra={
                'booking_id': booking.id,
                'booking_reference': booking.booking_reference,
                'trip_id': trip_id,
                'user_id': user_id,
                'seat_numbers': booking.seat_numbers,
            },
        )
        return booking

    @staticmethod
    async def _insert_booking(
        db: AsyncSession,
        user_id: str,
        trip_id: int,
        total_amount: Decimal,
        created_at: datetime,
    ) -> Booking:
        """Insert the booking row, drawing a new reference when one collides"""
        for attempt in range(1, settings.BOOKING_REFERENCE_ATTEMPTS + 1):
            booking = Booking(
                user_id=user_id,
                trip_id=trip_id,
                booking_reference=generate_booking_reference(),
                status=BookingStatus.PENDING,
                total_amount=total_amount,
                created_at=created_at,
                updated_at=created_at,
                seats=[],
            )
            try:
                async with db.begin_nested():
                    db.add(booking)
                    await db.flush()
            except IntegrityError:
                logger.warning(
                    f"⚠️ Booking reference {booking.booking_reference} collided "
                    f"(attempt {attempt}/{settings.BOOKING_REFERENCE_ATTEMPTS})"
                )
                continue
            return booking

        raise StorageError("Could not allocate a unique booking reference")

    # ==================== Transitions ====================

    @staticmethod
    async def _lock_booking(db: AsyncSession, booking_id: int) -> Booking:
        query = (
            select(Booking)
            .where(Booking.id == booking_id)
            .options(selectinload(Booking.seats))
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        try:
            result = await db.execute(query)
        except DBAPIError as e:
            if is_lock_timeout(e):
                raise SeatLedgerBusyError("Booking is busy, retry") from e
            raise StorageError(f"Failed to lock booking {booking_id}") from e

        booking = result.scalar_one_or_none()
        if booking is None:
            raise BookingNotFoundError(booking_id)
        return booking

    @staticmethod
    async def _release(
        db: AsyncSession,
        booking: Booking,
        final_status: BookingStatus,
        now: datetime,
    ) -> ReleaseSummary:
        """
        Shared release path for cancel, payment failure and expiry.

        The booking row must already be locked and PENDING.
        """
        seat_numbers = booking.seat_numbers

        trip = await SeatLedger.release(db, booking.trip_id, len(seat_numbers))

        booking.seats.clear()
        booking.status = final_status
        booking.updated_at = now
        if final_status == BookingStatus.CANCELLED:
            booking.cancelled_at = now
        await db.flush()

        return ReleaseSummary(
            booking_id=booking.id,
            booking_reference=booking.booking_reference,
            trip_id=booking.trip_id,
            status=final_status,
            seats_released=len(seat_numbers),
            seat_numbers=seat_numbers,
            available_seats=trip.available_seats,
        )

    @staticmethod
    async def confirm_payment(
        db: AsyncSession,
        booking_id: int,
        clock: Clock = system_clock,
    ) -> Booking:
        """PENDING -> COMPLETED. Seats were already taken at creation."""
        try:
            async with db.begin():
                booking = await BookingService._lock_booking(db, booking_id)
                if booking.status != BookingStatus.PENDING:
                    raise AlreadyTerminalError(booking_id, booking.status)

                now = clock.now()
                booking.status = BookingStatus.COMPLETED
                booking.completed_at = now
                booking.updated_at = now
        except ReservationError:
            raise
        except SQLAlchemyError as e:
            logger.exception(f"❌ Confirming booking {booking_id} failed")
            raise StorageError(f"Confirming booking {booking_id} failed") from e

        metrics.bookings_confirmed_total.inc()
        logger.info(
            f"✅ Booking {booking.booking_reference} confirmed",
            extra={'booking_id': booking.id, 'booking_reference': booking.booking_reference},
        )
        return booking

    @staticmethod
    async def fail_payment(
        db: AsyncSession,
        booking_id: int,
        clock: Clock = system_clock,
    ) -> ReleaseSummary:
        """PENDING -> FAILED, releasing the seats the same way a cancel does"""
        try:
            async with db.begin():
                booking = await BookingService._lock_booking(db, booking_id)
                if booking.status != BookingStatus.PENDING:
                    raise AlreadyTerminalError(booking_id, booking.status)

                summary = await BookingService._release(db, booking, BookingStatus.FAILED, clock.now())
        except ReservationError:
            raise
        except SQLAlchemyError as e:
            logger.exception(f"❌ Failing booking {booking_id} failed")
            raise StorageError(f"Failing booking {booking_id} failed") from e

        metrics.record_release_metrics('failed', summary.seats_released)
        logger.info(
            f"💳 Payment failed for booking {summary.booking_reference}, released {summary.seats_released} seats",
            extra={'booking_id': booking_id, 'seats_released': summary.seats_released},
        )
        return summary

    @staticmethod
    async def update_payment_status(
        db: AsyncSession,
        booking_id: int,
        payment_status: BookingStatus,
        actor: Actor,
        clock: Clock = system_clock,
    ):
        """
        Apply a payment outcome reported for a booking.

        Returns the booking for COMPLETED and a ReleaseSummary for FAILED.
        """
        if payment_status not in (BookingStatus.COMPLETED, BookingStatus.FAILED):
            raise BookingValidationError(
                f"Payment status must be completed or failed, got {payment_status.value}"
            )

        booking = await BookingService.get_booking(db, booking_id, actor)
        if payment_status == BookingStatus.COMPLETED:
            return await BookingService.confirm_payment(db, booking.id, clock)
        return await BookingService.fail_payment(db, booking.id, clock)

    @staticmethod
    async def cancel_booking(
        db: AsyncSession,
        booking_id: int,
        actor: Actor,
        clock: Clock = system_clock,
    ) -> ReleaseSummary:
        """
        Cancel a PENDING booking and release its seats.

        Completed bookings need a refund policy and are not cancellable here.
        """
        try:
            async with db.begin():
                booking = await BookingService._lock_booking(db, booking_id)
                if not actor.can_manage(booking):
                    raise BookingAccessDeniedError(booking_id)
                if booking.status != BookingStatus.PENDING:
                    raise NotCancellableError(booking_id, booking.status)

                summary = await BookingService._release(db, booking, BookingStatus.CANCELLED, clock.now())
        except ReservationError:
            raise
        except SQLAlchemyError as e:
            logger.exception(f"❌ Cancelling booking {booking_id} failed")
            raise StorageError(f"Cancelling booking {booking_id} failed") from e

        metrics.record_release_metrics('cancelled', summary.seats_released)
        logger.info(
            f"🗑️ Booking {summary.booking_reference} cancelled by {actor.user_id}, "
            f"released {summary.seats_released} seats",
            extra={
                'booking_id': booking_id,
                'user_id': actor.user_id,
                'trip_id': summary.trip_id,
                'seats_released': summary.seats_released,
            },
        )
        return summary

    @staticmethod
    async def expire_booking(
        db: AsyncSession,
        booking_id: int,
        grace_period: Optional[timedelta] = None,
        clock: Clock = system_clock,
    ) -> Optional[ReleaseSummary]:
        """
        Release one stale PENDING booking for the expiry sweep.

        Re-checks under the booking lock; a booking that was paid, cancelled
        or already expired in the meantime is left alone and None returned.
        """
        if grace_period is None:
            grace_period = default_grace_period()
        async with db.begin():
            booking = await BookingService._lock_booking(db, booking_id)
            now = clock.now()
            if not booking.is_stale(now, grace_period):
                return None

            summary = await BookingService._release(db, booking, BookingStatus.CANCELLED, now)

        metrics.record_release_metrics('expired', summary.seats_released)
        logger.info(
            f"⏰ Expired booking {summary.booking_reference} - released {summary.seats_released} seats",
            extra={
                'booking_id': booking_id,
                'trip_id': summary.trip_id,
                'seats_released': summary.seats_released,
            },
        )
        return summary

    # ==================== Queries ====================

    @staticmethod
    async def get_booking(db: AsyncSession, booking_id: int, actor: Actor) -> Booking:
        """Get a specific booking with its seats loaded"""
        async with db.begin():
            query = (
                select(Booking)
                .where(Booking.id == booking_id)
                .options(selectinload(Booking.seats))
                .execution_options(populate_existing=True)
            )
            result = await db.execute(query)
            booking = result.scalar_one_or_none()

        if booking is None:
            raise BookingNotFoundError(booking_id)
        if not actor.can_manage(booking):
            raise BookingAccessDeniedError(booking_id)
        return booking

    @staticmethod
    async def get_booking_by_reference(db: AsyncSession, reference: str) -> Booking:
        async with db.begin():
            query = (
                select(Booking)
                .where(Booking.booking_reference == reference.upper())
                .options(selectinload(Booking.seats))
                .execution_options(populate_existing=True)
            )
            result = await db.execute(query)
            booking = result.scalar_one_or_none()

        if booking is None:
            raise BookingNotFoundError(reference)
        return booking

    @staticmethod
    async def list_user_bookings(
        db: AsyncSession,
        user_id: str,
        status: Optional[BookingStatus] = None,
    ) -> List[Booking]:
        """Get all bookings for a user, newest first"""
        query = (
            select(Booking)
            .where(Booking.user_id == user_id)
            .options(selectinload(Booking.seats))
            .order_by(Booking.created_at.desc(), Booking.id.desc())
        )
        if status:
            query = query.where(Booking.status == status)

        async with db.begin():
            result = await db.execute(query)
            return list(result.scalars().all())

    @staticmethod
    async def get_booking_timeout(
        db: AsyncSession,
        booking_id: int,
        actor: Actor,
        grace_period: Optional[timedelta] = None,
        clock: Clock = system_clock,
    ) -> BookingTimeout:
        """How long an unpaid booking has left. Derived only, nothing is changed."""
        if grace_period is None:
            grace_period = default_grace_period()
        booking = await BookingService.get_booking(db, booking_id, actor)

        now = clock.now()
        expires_at = booking.expires_at(grace_period)
        remaining = 0
        if booking.is_pending:
            remaining = max(0, int((expires_at - now).total_seconds()))

        return BookingTimeout(
            booking_id=booking.id,
            status=booking.status,
            created_at=booking.created_at,
            expires_at=expires_at,
            time_remaining_seconds=remaining,
            expired=now >= expires_at,
        )

    @staticmethod
    async def get_booking_stats(db: AsyncSession) -> BookingStats:
        """Booking counts per status and revenue of completed bookings"""
        async with db.begin():
            result = await db.execute(
                select(Booking.status, func.count(Booking.id)).group_by(Booking.status)
            )
            counts = {status.value: count for status, count in result.all()}

            revenue = await db.scalar(
                select(func.coalesce(func.sum(Booking.total_amount), 0))
                .where(Booking.status == BookingStatus.COMPLETED)
            )
            seats_held = await db.scalar(select(func.count(BookingSeat.id)))

        by_status = {status.value: counts.get(status.value, 0) for status in BookingStatus}
        return BookingStats(
            total=sum(by_status.values()),
            by_status=by_status,
            seats_held=seats_held or 0,
            revenue=Decimal(str(revenue or 0)),
        )
