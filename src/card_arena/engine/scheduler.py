"""Background timeout watcher and finished-battle pruning.

Timeouts are still enacted only when checked; this task just does the
checking periodically so stuck battles do not wait for a manual poll.
"""

import asyncio
import logging

from .battle import BattleEngine

logger = logging.getLogger(__name__)


class TimeoutWatcher:
    """Periodically calls BattleEngine.sweep_timeouts."""

    def __init__(self, engine: BattleEngine, interval: float) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.engine = engine
        self.interval = interval
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="battle-timeout-watcher")
        logger.info(f"Timeout watcher started (every {self.interval}s)")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Timeout watcher stopped")

    async def run_once(self) -> list[int]:
        """Run a single sweep, then prune old finished battles.

        Returns:
            IDs of battles that were ended by this sweep
        """
        ended = await self.engine.sweep_timeouts()
        if ended:
            logger.info(f"Timeout sweep ended battles: {ended}")
        self.engine.prune_finished_battles()
        return ended

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self.run_once()
            except Exception:
                # Keep watching; the next sweep retries the same battles
                logger.exception("Timeout sweep failed")
