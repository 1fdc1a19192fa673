"""
Background worker that releases stale PENDING bookings

Runs one sweep as soon as it starts and then every
EXPIRY_SWEEP_INTERVAL_SECONDS. Each stale booking is released in its own
transaction through BookingService.expire_booking, the same release path
an explicit cancel takes. A booking that fails is logged and picked up
again by the next sweep.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker

from reservation.core import metrics
from reservation.core.clock import Clock, system_clock
from reservation.core.config import settings
from reservation.core.database import AsyncSessionLocal
from reservation.models import Booking, BookingStatus
from reservation.services.booking_service import BookingService, default_grace_period

logger = logging.getLogger(__name__)


@dataclass
class SweepResult:
    expired_booking_ids: List[int] = field(default_factory=list)
    failed_booking_ids: List[int] = field(default_factory=list)
    skipped_booking_ids: List[int] = field(default_factory=list)
    seats_released: int = 0


class ExpiryWorker:
    """Background worker for expiring unpaid bookings"""

    def __init__(
        self,
        session_factory: async_sessionmaker = AsyncSessionLocal,
        clock: Clock = system_clock,
        interval_seconds: Optional[float] = None,
        grace_period: Optional[timedelta] = None,
    ):
        self.session_factory = session_factory
        self.clock = clock
        self.interval_seconds = (
            settings.EXPIRY_SWEEP_INTERVAL_SECONDS if interval_seconds is None else interval_seconds
        )
        self.grace_period = default_grace_period() if grace_period is None else grace_period
        self.running = False
        self.task: Optional[asyncio.Task] = None

    async def start(self):
        """Start the background worker"""
        if self.running:
            logger.warning("⚠️  Expiry worker already running")
            return

        self.running = True
        self.task = asyncio.create_task(self._run())
        logger.info(
            f"✅ Expiry worker started (interval: {self.interval_seconds}s, "
            f"grace period: {self.grace_period})"
        )

    async def stop(self):
        """Stop the background worker"""
        if not self.running:
            return

        self.running = False
        if self.task:
            self.task.cancel()
            try:
                await self.task
            except asyncio.CancelledError:
                pass
            self.task = None
        logger.info("🛑 Expiry worker stopped")

    async def _run(self):
        """Main worker loop: sweep now, then on every interval"""
        while self.running:
            try:
                await self.sweep_once()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"❌ Error in expiry worker: {e}", exc_info=True)

            try:
                await asyncio.sleep(self.interval_seconds)
            except asyncio.CancelledError:
                break

    async def _find_stale_booking_ids(self) -> List[int]:
        cutoff = self.clock.now() - self.grace_period
        async with self.session_factory() as db:
            result = await db.execute(
                select(Booking.id)
                .where(Booking.status == BookingStatus.PENDING)
                .where(Booking.created_at <= cutoff)
                .order_by(Booking.created_at, Booking.id)
            )
            return list(result.scalars().all())

    @metrics.track_time(metrics.expiry_sweep_duration_seconds)
    async def sweep_once(self) -> SweepResult:
        """
        Release every PENDING booking whose grace period has run out.

        Idempotent: bookings that are no longer pending are not selected,
        and the per-booking release re-checks under lock.
        """
        metrics.expiry_sweeps_total.inc()
        sweep = SweepResult()

        candidate_ids = await self._find_stale_booking_ids()
        if not candidate_ids:
            return sweep

        logger.info(f"⏰ Expiring {len(candidate_ids)} bookings...")

        for booking_id in candidate_ids:
            try:
                async with self.session_factory() as db:
                    summary = await BookingService.expire_booking(
                        db, booking_id, grace_period=self.grace_period, clock=self.clock
                    )
            except Exception as e:
                metrics.expiry_sweep_failures_total.inc()
                sweep.failed_booking_ids.append(booking_id)
                logger.error(
                    f"❌ Failed to expire booking {booking_id}, will retry next sweep: {e}",
                    exc_info=True,
                    extra={'booking_id': booking_id},
                )
                continue

            if summary is None:
                sweep.skipped_booking_ids.append(booking_id)
                continue

            sweep.expired_booking_ids.append(booking_id)
            sweep.seats_released += summary.seats_released

        logger.info(
            f"✅ Sweep done: {len(sweep.expired_booking_ids)} expired, "
            f"{len(sweep.failed_booking_ids)} failed, {sweep.seats_released} seats released"
        )
        return sweep


# Global worker instance
expiry_worker = ExpiryWorker()


async def start_expiry_worker():
    """Start the expiry worker"""
    await expiry_worker.start()


async def stop_expiry_worker():
    """Stop the expiry worker"""
    await expiry_worker.stop()
