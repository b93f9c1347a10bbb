"""Reservation Sweep Job

Periodically removes expired stock reservations:
- Holds past their TTL already stop counting towards availability at read time
- This job physically deletes them and logs which orders they belonged to
- Reclaims holds orphaned by a process that crashed between reserve and confirm/cancel

Owned by the application lifespan: started on startup, cancelled on shutdown.
"""

import asyncio
import logging
from datetime import datetime, timedelta

import config
from models.reservation import ReservationDTO
from services.inventory import InventoryService

logger = logging.getLogger(__name__)


class ReservationSweepJob:

    def __init__(self, inventory_service: InventoryService, interval_seconds: int | None = None):
        self.inventory_service = inventory_service
        self.interval_seconds = interval_seconds or config.RESERVATION_SWEEP_INTERVAL_SECONDS
        self._task: asyncio.Task | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> list[ReservationDTO]:
        """Run one sweep cycle. Errors are logged, never raised."""
        try:
            expired = await self.inventory_service.cleanup_expired_reservations()
            if expired:
                logger.info(f"[Reservation Sweep] ✅ Removed {len(expired)} expired reservation(s)")
            return expired
        except Exception as e:
            logger.error(f"[Reservation Sweep] ❌ Sweep failed: {e}", exc_info=True)
            return []

    async def _run(self):
        logger.info(f"[Reservation Sweep] Scheduler started (interval: {self.interval_seconds}s)")
        while True:
            try:
                await asyncio.sleep(self.interval_seconds)
                await self.run_once()
                logger.debug(
                    f"[Reservation Sweep] Next sweep at "
                    f"{(datetime.now() + timedelta(seconds=self.interval_seconds)).strftime('%Y-%m-%d %H:%M:%S')}"
                )
            except asyncio.CancelledError:
                logger.info("[Reservation Sweep] Scheduler cancelled")
                raise

    async def start(self):
        if self.is_running:
            logger.warning("[Reservation Sweep] Already running")
            return
        self._task = asyncio.create_task(self._run())

    async def stop(self):
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            logger.info("[Reservation Sweep] Scheduler stopped")
        self._task = None
