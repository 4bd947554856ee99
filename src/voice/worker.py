"""Background worker that drives voice transcription cycles.

The Flask webhook runs on request threads, while downloads and provider
calls are async. The worker owns a dedicated event loop in a daemon thread:
it starts the sweeper, then periodically looks up the stored messages for
the registry's pending keys (oldest first) and runs one transcription
cycle over them. Placeholders whose audio is gone never enter a batch.

Usage:
    worker = VoiceWorker(voice_pipeline)
    worker.start()
    ...
    worker.stop()
"""

import asyncio
import threading
import traceback
from typing import Callable, List, Optional

from models import ChatMessage
from utils.logger import logger
from voice.pipeline import VoiceTranscriptionPipeline
from voice.settings import VOICE_PLACEHOLDER

BatchFetcher = Callable[[List[str]], List[ChatMessage]]


def _fetch_placeholder_messages(keys: List[str]) -> List[ChatMessage]:
    from messages_db import get_messages_by_keys
    return get_messages_by_keys(keys, content=VOICE_PLACEHOLDER)


class VoiceWorker:
    """Runs ``transcribe_pending_voice`` on a fixed poll interval.

    Args:
        pipeline: Pipeline whose registry and sweeper the worker drives
        fetch_batch: ``fetch_batch(keys) -> [ChatMessage]`` in key order,
                     defaults to placeholder messages from the message store
    """

    def __init__(
        self,
        pipeline: VoiceTranscriptionPipeline,
        fetch_batch: Optional[BatchFetcher] = None,
    ):
        self.pipeline = pipeline
        self._fetch_batch = fetch_batch or _fetch_placeholder_messages
        self._thread: Optional[threading.Thread] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._stop_event: Optional[asyncio.Event] = None
        self._ready = threading.Event()

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def build_batch(self) -> List[ChatMessage]:
        """Stored placeholder messages for the oldest pending entries."""
        keys = self.pipeline.registry.keys()
        if not keys:
            return []
        candidates = self._fetch_batch(keys)
        batch = [m for m in candidates if m.key in self.pipeline.registry]
        return batch[:self.pipeline.settings.batch_size]

    async def run_cycle(self) -> int:
        """Run one transcription cycle. Returns the size of the batch processed."""
        batch = self.build_batch()
        if batch:
            logger.debug(f"Voice worker: processing batch of {len(batch)} message(s)")
            await self.pipeline.transcribe_pending_voice(batch)
        return len(batch)

    async def _run(self) -> None:
        self._stop_event = asyncio.Event()
        self._ready.set()
        self.pipeline.start_voice_sweeper()
        interval = self.pipeline.settings.poll_interval_ms / 1000
        try:
            while not self._stop_event.is_set():
                try:
                    await self.run_cycle()
                except Exception as e:
                    trace = traceback.format_exc()
                    logger.error(f"Voice worker cycle failed: {e}\n{trace}")
                try:
                    await asyncio.wait_for(self._stop_event.wait(), timeout=interval)
                except asyncio.TimeoutError:
                    pass
        finally:
            await self.pipeline.stop_voice_sweeper()

    def _thread_main(self) -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        self._loop = loop
        try:
            loop.run_until_complete(self._run())
            loop.run_until_complete(loop.shutdown_default_executor())
        finally:
            loop.close()
            self._loop = None
            logger.info("Voice worker stopped")

    def start(self) -> None:
        if self.is_running:
            return
        self._ready.clear()
        self._thread = threading.Thread(target=self._thread_main, name="voice-worker", daemon=True)
        self._thread.start()
        self._ready.wait(timeout=5)
        logger.info("Voice worker started")

    def stop(self, timeout: float = 5.0) -> None:
        """Signal the loop to finish, stop the sweeper and join the thread."""
        if not self.is_running:
            return
        loop = self._loop
        if loop is not None and self._stop_event is not None:
            loop.call_soon_threadsafe(self._stop_event.set)
        self._thread.join(timeout=timeout)
        if self._thread.is_alive():
            logger.warning("Voice worker did not stop within timeout")
