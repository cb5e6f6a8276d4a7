"""
Expiry Sweeper - recurring deletion of expired sightings

Runs as an asyncio task inside the API process. Each cycle opens its own
session, calls SightingStore.delete_expired() in a worker thread and logs the
count. The sweeper keeps no state between cycles, so a failed cycle only
means expired rows live until the next one.
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy.orm import sessionmaker

from wildlife_tracker.models import utcnow
from wildlife_tracker.services.sighting_store import DEFAULT_EXPIRY_WINDOW, SightingStore

logger = logging.getLogger(__name__)

DEFAULT_SWEEP_INTERVAL = timedelta(minutes=30)


class ExpirySweeper:
    """Periodically removes sightings whose last activity is past the expiry window."""

    def __init__(
        self,
        session_factory: sessionmaker,
        expiry_window: timedelta = DEFAULT_EXPIRY_WINDOW,
        interval: timedelta = DEFAULT_SWEEP_INTERVAL,
        clock: Callable[[], datetime] = utcnow,
    ):
        if interval <= timedelta(0):
            raise ValueError("interval must be positive")
        self.session_factory = session_factory
        self.expiry_window = expiry_window
        self.interval = interval
        self._clock = clock
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def run_once(self) -> int:
        """
        Run a single sweep.

        Returns:
            Number of sightings deleted
        """
        db = self.session_factory()
        try:
            store = SightingStore(db, expiry_window=self.expiry_window, clock=self._clock)
            deleted = store.delete_expired()
        finally:
            db.close()

        logger.info(f"Expired sightings cleaned up: {deleted} deleted")
        return deleted

    async def _run_forever(self) -> None:
        seconds = self.interval.total_seconds()
        while True:
            await asyncio.sleep(seconds)
            try:
                await asyncio.to_thread(self.run_once)
            except Exception:
                # Retried on the next cycle
                logger.exception("Error cleaning up expired sightings")

    def start(self) -> None:
        """Schedule the sweep loop on the running event loop."""
        if self.running:
            return
        self._task = asyncio.create_task(self._run_forever(), name="expiry-sweeper")
        logger.info(f"Expiry sweeper started (every {self.interval}, window {self.expiry_window})")

    async def stop(self) -> None:
        """Cancel the sweep loop and wait for it to finish."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        finally:
            self._task = None
        logger.info("Expiry sweeper stopped")
