"""
Retention worker.

Background asyncio task that evicts position reports older than the
retention window on a fixed interval. Runs independently of request
handling and holds no locks; a failed run is logged and the loop carries on.
"""

import asyncio
import logging
from datetime import timedelta
from typing import Optional

from tracking_service.app.core.config import Settings, settings as default_settings
from tracking_service.app.core.exceptions import AppException
from tracking_service.app.core.reliability import with_deadline
from tracking_service.app.services.store import GeospatialStore

logger = logging.getLogger(__name__)


class RetentionWorker:
    """Periodic eviction loop bound to an async session factory."""

    def __init__(self, session_factory, config: Settings = default_settings):
        self.session_factory = session_factory
        self.config = config
        self._task: Optional[asyncio.Task] = None

    async def run_once(self, deadline: Optional[float] = None) -> int:
        """One eviction pass. Returns the number of deleted reports."""
        async with self.session_factory() as session:
            store = GeospatialStore(session, self.config)
            return await with_deadline(
                store.evict_older_than(timedelta(hours=self.config.retention_hours)),
                deadline,
                "evict_older_than",
            )

    async def _loop(self) -> None:
        while True:
            try:
                await self.run_once()
            except AppException as exc:
                logger.error("Eviction run failed", extra={"error_code": exc.error_code, "error": exc.message})
            except Exception:
                logger.exception("Eviction run crashed")
            await asyncio.sleep(self.config.eviction_interval_seconds)

    def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._loop(), name="retention-worker")
            logger.info(
                "Retention worker started",
                extra={
                    "retention_hours": self.config.retention_hours,
                    "interval_seconds": self.config.eviction_interval_seconds,
                },
            )

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Retention worker stopped")
