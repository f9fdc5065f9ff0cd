"""
Expiry reclaimer

Backstop that returns seats of abandoned pending bookings to inventory. Each
booking is expired in its own unit of work after re-checking, under its row
lock, that it is still pending and still past its expiry. Running several
reclaimers at once, or racing a confirmation, therefore never double-releases.
"""

import asyncio
import logging
from decimal import Decimal
from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from cinebook.config import Settings, settings as default_settings
from cinebook.core.clock import Clock, ensure_utc, utcnow
from cinebook.core.database import DatabaseManager, db_manager
from cinebook.core.exceptions import LockContentionError
from cinebook.core.metrics import MetricsCollector, metrics_collector
from cinebook.models.booking import Booking, BookingStatus
from cinebook.schemas.booking import ReclaimResponse
from cinebook.services import inventory, ledger
from cinebook.services.occupancy import recompute_show_occupancy

logger = logging.getLogger(__name__)


async def expire_booking(session: AsyncSession, booking: Booking, almost_full_threshold: Decimal) -> int:
    """
    Mark a pending booking expired and release its held seats.

    Must run inside the unit of work that holds the booking row lock. Returns
    the number of seats released.
    """
    booking.status = BookingStatus.EXPIRED
    seats = await inventory.lock_seats(session, [bs.seat_id for bs in booking.booking_seats])
    released = inventory.release_seats(seats, only_held=True)
    await recompute_show_occupancy(session, booking.show_id, almost_full_threshold)
    return released


class ExpiryReclaimer:
    """Sweeps pending bookings whose hold window has elapsed"""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        db: Optional[DatabaseManager] = None,
        clock: Optional[Clock] = None,
        metrics: Optional[MetricsCollector] = None
    ):
        self.settings = settings or default_settings
        self.db = db or db_manager
        self.clock = clock or utcnow
        self.metrics = metrics or metrics_collector
        self.logger = logging.getLogger(__name__)

    async def reclaim_expired(self) -> ReclaimResponse:
        """Expire every pending booking past its window; returns how many were reclaimed"""
        async with self.metrics.track_booking_operation("reclaim"):
            now = self.clock()
            reclaimed = 0
            after_id = None

            while True:
                async with self.db.session_factory() as session:
                    candidate_ids = await ledger.find_expired_booking_ids(
                        session, now, self.settings.RECLAIM_BATCH_SIZE, after_id
                    )
                if not candidate_ids:
                    break

                for booking_id in candidate_ids:
                    try:
                        if await self._reclaim_one(booking_id):
                            reclaimed += 1
                    except LockContentionError:
                        # Left pending; the next sweep picks it up again
                        self.logger.warning(f"Skipped reclaiming booking {booking_id}: lock contention")

                after_id = candidate_ids[-1]
                if len(candidate_ids) < self.settings.RECLAIM_BATCH_SIZE:
                    break

            self.metrics.record_reclaimed(reclaimed)
            if reclaimed:
                self.logger.info(f"Reclaimed {reclaimed} expired bookings")
            return ReclaimResponse(reclaimed_count=reclaimed)

    async def _reclaim_one(self, booking_id: UUID) -> bool:
        async with self.db.atomic_transaction(self.settings.DB_ISOLATION_LEVEL) as session:
            # SKIP LOCKED: a row held by another sweeper or a confirmation is theirs to settle
            booking = await ledger.get_booking_for_update(session, booking_id, skip_locked=True)
            if booking is None:
                return False

            now = self.clock()
            if booking.status != BookingStatus.PENDING or not ensure_utc(booking.expires_at) < now:
                self.logger.debug(f"Booking {booking_id} no longer reclaimable ({booking.status.value})")
                return False

            released = await expire_booking(session, booking, self.settings.ALMOST_FULL_THRESHOLD_PERCENT)
            self.metrics.record_booking_status_change(BookingStatus.EXPIRED.value)
            self.logger.info(f"Booking {booking.reference} expired, {released} seats released")
            return True

    async def run_periodically(self, interval_seconds: Optional[int] = None):
        """Run sweeps forever; cancel the task to stop"""
        interval = interval_seconds or self.settings.RECLAIM_INTERVAL_SECONDS
        self.logger.info(f"Expiry reclaimer started, interval {interval}s")
        while True:
            try:
                await self.reclaim_expired()
            except Exception as e:
                self.logger.error(f"Expiry sweep failed: {type(e).__name__}: {e}", exc_info=True)
            await asyncio.sleep(interval)
