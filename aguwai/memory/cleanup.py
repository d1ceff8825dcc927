"""MemoryJanitor — runs the memory retention policy on an APScheduler interval."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from aguwai.config import settings
from aguwai.memory.store import MemoryStoreError

if TYPE_CHECKING:
    from aguwai.memory.models import CleanupReport
    from aguwai.memory.store import MemoryStore

logger = logging.getLogger(__name__)

CLEANUP_JOB_ID = "memory_cleanup"


class MemoryJanitor:
    """Owns the recurring cleanup job.

    Args:
        store: MemoryStore whose ``run_cleanup`` is invoked.
        interval_hours: Time between runs (default from settings).
    """

    def __init__(self, store: MemoryStore, interval_hours: float | None = None) -> None:
        self._store = store
        self._interval_hours = interval_hours or settings.cleanup_interval_hours
        self._scheduler = AsyncIOScheduler(timezone="UTC")
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    # -- Lifecycle -------------------------------------------------------------

    async def start(self) -> None:
        """Register the interval job and start the scheduler."""
        self._scheduler.add_job(
            self.run_now,
            trigger=IntervalTrigger(hours=self._interval_hours, timezone="UTC"),
            id=CLEANUP_JOB_ID,
            name="Memory cleanup",
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        self._scheduler.start()
        self._running = True
        logger.info("Memory janitor started (every %.1fh)", self._interval_hours)

    async def stop(self) -> None:
        """Shut down the scheduler."""
        if self._running:
            self._scheduler.shutdown(wait=False)
            self._running = False
            logger.info("Memory janitor stopped")

    # -- Jobs ------------------------------------------------------------------

    async def run_now(self) -> CleanupReport | None:
        """Run one cleanup pass. A failed pass is logged and the schedule continues."""
        try:
            return await self._store.run_cleanup()
        except MemoryStoreError:
            logger.exception("Memory cleanup failed; will retry on the next interval")
            return None
