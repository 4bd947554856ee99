"""Periodic eviction of expired pending voice entries.

Runs independently of processing cycles so stale entries are reclaimed
even when no batches arrive.
"""

import asyncio
import traceback
from typing import Optional

from utils.logger import logger
from voice.registry import PendingVoiceRegistry


class VoiceSweeper:
    """Background task that removes registry entries older than the TTL.

    Args:
        registry: Registry to sweep
        ttl_ms: Maximum entry age in milliseconds
        interval_ms: Time between sweeps in milliseconds
    """

    def __init__(self, registry: PendingVoiceRegistry, ttl_ms: int, interval_ms: int):
        self.registry = registry
        self.ttl_ms = ttl_ms
        self.interval_ms = interval_ms
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def sweep_once(self) -> int:
        """Run a single sweep pass. Returns the number of evicted entries."""
        expired = self.registry.sweep_expired(self.ttl_ms)
        for key in expired:
            logger.debug(f"Evicting expired pending voice entry {key}")
        return len(expired)

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_ms / 1000)
            try:
                self.sweep_once()
            except Exception as e:
                trace = traceback.format_exc()
                logger.error(f"Voice sweep failed: {e}\n{trace}")

    def start(self) -> asyncio.Task:
        """Schedule the sweep loop on the running event loop.

        Returns the existing task if the sweeper is already running.
        """
        if self.running:
            return self._task
        self._task = asyncio.get_running_loop().create_task(self._run(), name="voice-sweeper")
        logger.info(f"Voice sweeper started (interval={self.interval_ms}ms, ttl={self.ttl_ms}ms)")
        return self._task

    def cancel(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()

    async def stop(self) -> None:
        """Cancel the sweep loop and wait for it to finish."""
        task = self._task
        if task is None:
            return
        self.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Voice sweeper stopped")
