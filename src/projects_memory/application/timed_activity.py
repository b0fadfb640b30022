"""
Timed activity runner.

Drives the session's single timed-activity slot with an asyncio tick loop.
At most one loop runs at a time; cancelling stops it immediately.
"""

import asyncio
import logging
import time
from collections.abc import Callable

from projects_memory.domain.constants import DEFAULT_TICK_INTERVAL
from projects_memory.domain.session import SessionContext, TimedActivityProgress

logger = logging.getLogger(__name__)


class TimedActivityRunner:
    def __init__(
        self,
        session: SessionContext,
        tick_interval: float = DEFAULT_TICK_INTERVAL,
        clock: Callable[[], float] = time.time,
        on_tick: Callable[[TimedActivityProgress], None] | None = None,
        on_complete: Callable[[], None] | None = None,
    ):
        self.session = session
        self.tick_interval = tick_interval
        self.clock = clock
        self.on_tick = on_tick
        self.on_complete = on_complete
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, duration_ms: int) -> bool:
        """
        Start a timed activity and its tick loop. Must be called from a running
        event loop. Returns False (no-op) if an activity is already active.
        """
        loop = asyncio.get_running_loop()
        if not self.session.start_timed_activity(duration_ms, self.clock()):
            logger.debug("Timed activity already active; start ignored")
            return False
        if not self.running:
            self._task = loop.create_task(self._loop())
        logger.info(f"Timed activity started for {duration_ms / 60000:.1f} min")
        return True

    def tick(self) -> TimedActivityProgress | None:
        """Advance once. No-op (returns None) when nothing is active."""
        progress = self.session.tick_timed_activity(self.clock())
        if progress is None:
            return None
        if self.on_tick:
            self.on_tick(progress)
        if progress.completed:
            logger.info("Timed activity complete")
            if self.on_complete:
                self.on_complete()
        return progress

    async def _loop(self) -> None:
        while True:
            progress = self.tick()
            if progress is None or progress.completed:
                return
            await asyncio.sleep(self.tick_interval)

    def cancel(self) -> None:
        """Clear the slot and stop the tick loop."""
        self.session.cancel_timed_activity()
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def wait(self) -> None:
        """Wait for the current loop to finish (completion or cancellation)."""
        task = self._task
        if task is None:
            return
        try:
            await task
        except asyncio.CancelledError:
            pass
