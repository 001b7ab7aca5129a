"""Fixed-interval background runner with a busy flag so passes never overlap."""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, Set

logger = logging.getLogger(__name__)


class ReconcileScheduler:
    """Fires ``tick`` every ``interval_sec`` on the event loop.

    A pass still running when the next one is due is skipped, not queued.
    Exceptions are logged at the pass boundary so the timer keeps going.
    """

    def __init__(self, tick: Callable[[], Awaitable[Any]], interval_sec: float) -> None:
        self._tick = tick
        self._interval = interval_sec
        self._busy = False
        self._task: Optional[asyncio.Task] = None
        self._inflight: Set[asyncio.Task] = set()

    @property
    def busy(self) -> bool:
        return self._busy

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> bool:
        """Run one pass unless one is already in flight. Returns whether it ran."""
        if self._busy:
            logger.debug("Reconcile pass still running, skipping")
            return False
        self._busy = True
        try:
            result = await self._tick()
            logger.debug("Reconcile pass: %s", result)
        except Exception as e:
            logger.warning("Reconcile pass failed: %s", e)
        finally:
            self._busy = False
        return True

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            if self._busy:
                logger.debug("Reconcile pass still running, skipping")
                continue
            task = asyncio.create_task(self.run_once())
            self._inflight.add(task)
            task.add_done_callback(self._inflight.discard)

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop())
        logger.info("Reconcile scheduler started (interval %.1fs)", self._interval)

    async def stop(self, timeout: float = 5.0) -> None:
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        if self._inflight:
            await asyncio.wait(set(self._inflight), timeout=timeout)
        logger.info("Reconcile scheduler stopped")
