"""Out-of-band transcription of voice messages.

Voice notes arrive as ``[Voice Message]`` placeholders. Ingestion registers
a deferred audio download for each one (``add_pending_voice``); later, each
processing batch is passed to ``transcribe_pending_voice`` which downloads
and transcribes a bounded number of them and rewrites the placeholder to
``[Voice: <transcript>]``.

Failures never propagate: a message whose audio cannot be fetched or
transcribed simply keeps its placeholder. Every attempted entry is removed
from the registry whatever the outcome.

Usage:
    >>> from voice import voice_pipeline
    >>> voice_pipeline.add_pending_voice(msg_id, chat_jid, download)
    >>> await voice_pipeline.transcribe_pending_voice(messages)
"""

import asyncio
import inspect
import traceback
from typing import Any, Awaitable, Callable, Iterable, Optional, Protocol

from utils.exceptions import DownloadFailure, StageTimeoutError, TranscriptionFailure
from utils.logger import logger
from voice.registry import AudioDownloader, PendingVoiceEntry, PendingVoiceRegistry, make_key
from voice.settings import VOICE_PLACEHOLDER, VoiceSettings
from voice.sweeper import VoiceSweeper
from voice.timeout import with_timeout

TranscribeFn = Callable[[AudioDownloader], Awaitable[Optional[str]]]
UpdateContentFn = Callable[[str, str, str], Any]


class VoiceMessageLike(Protocol):
    id: str
    chat_jid: str
    content: str


def _default_transcribe() -> TranscribeFn:
    from transcription import transcribe_audio
    return transcribe_audio


def _default_update_content() -> UpdateContentFn:
    from messages_db import update_message_content
    return update_message_content


def format_voice_content(transcript: str) -> str:
    return f"[Voice: {transcript}]"


class VoiceTranscriptionPipeline:
    """Correlates voice placeholders with pending audio and transcribes them.

    Args:
        registry: Shared pending-voice registry (created from settings if omitted)
        transcribe: Async provider call ``transcribe(download_audio) -> str | None``
        update_content: Persistence sink ``update_content(message_id, chat_jid, content)``,
                        a plain function or a coroutine function
        settings: Pipeline tunables (loaded from config if omitted)
    """

    def __init__(
        self,
        registry: Optional[PendingVoiceRegistry] = None,
        transcribe: Optional[TranscribeFn] = None,
        update_content: Optional[UpdateContentFn] = None,
        settings: Optional[VoiceSettings] = None,
    ):
        self.settings = settings or VoiceSettings.from_config()
        self.registry = registry or PendingVoiceRegistry(capacity=self.settings.max_pending_voice)
        self._transcribe = transcribe
        self._update_content = update_content
        self._sweeper: Optional[VoiceSweeper] = None

    @property
    def transcribe(self) -> TranscribeFn:
        if self._transcribe is None:
            self._transcribe = _default_transcribe()
        return self._transcribe

    @property
    def update_content(self) -> UpdateContentFn:
        if self._update_content is None:
            self._update_content = _default_update_content()
        return self._update_content

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    def add_pending_voice(self, message_id: str, chat_jid: str, download_audio: AudioDownloader) -> None:
        """Register the deferred audio download for a newly received voice message."""
        self.registry.insert(message_id, chat_jid, download_audio)
        logger.debug(f"Voice: registered pending entry {make_key(message_id, chat_jid)}")

    # ------------------------------------------------------------------
    # Processing cycle
    # ------------------------------------------------------------------

    async def transcribe_pending_voice(self, messages: Iterable[VoiceMessageLike]) -> None:
        """Transcribe voice placeholders in ``messages`` that have pending audio.

        Messages are handled in order. At most ``max_voice_per_cycle`` downloads
        are attempted; once the cap is reached the rest of the batch is left
        for a later cycle. Matching messages are updated in place.
        """
        attempted = 0
        for message in messages:
            if message.content != VOICE_PLACEHOLDER:
                continue
            if attempted >= self.settings.max_voice_per_cycle:
                logger.debug(f"Voice: per-cycle cap reached ({attempted}), deferring the rest of the batch")
                break

            key = make_key(message.id, message.chat_jid)
            entry = self.registry.lookup(message.id, message.chat_jid)
            if entry is None:
                logger.debug(f"Voice: no pending entry for {key} (missing_pending)")
                continue

            if entry.is_expired(self.settings.voice_ttl_ms, self.registry.now()):
                logger.warning(f"Voice: entry {key} expired, skipping (expired)")
                self.registry.remove(message.id, message.chat_jid)
                continue

            attempted += 1
            try:
                await self._process(message, entry, key)
            finally:
                self.registry.remove(message.id, message.chat_jid)

    async def _process(self, message: VoiceMessageLike, entry: PendingVoiceEntry, key: str) -> None:
        try:
            audio = await self._download(entry, key)
            transcript = await self._transcribe_audio(audio, key)
        except (StageTimeoutError, DownloadFailure, TranscriptionFailure) as e:
            logger.warning(f"Voice: transcription failed for {key}, keeping placeholder: {e}")
            return

        text = (transcript or "").strip()
        if not text:
            logger.info(f"Voice: empty transcript for {key} (provider disabled or empty)")
            return

        message.content = format_voice_content(text)
        self._persist(message.id, message.chat_jid, message.content)
        logger.info(f"Voice message transcribed: {key}")

    async def _download(self, entry: PendingVoiceEntry, key: str) -> bytes:
        try:
            return await with_timeout(entry.download_audio(), self.settings.download_timeout_ms, "download")
        except StageTimeoutError:
            raise
        except Exception as e:
            raise DownloadFailure(key, str(e)) from e

    async def _transcribe_audio(self, audio: bytes, key: str) -> Optional[str]:
        async def buffered() -> bytes:
            return audio

        try:
            return await with_timeout(self.transcribe(buffered), self.settings.transcribe_timeout_ms, "transcribe")
        except StageTimeoutError:
            raise
        except Exception as e:
            raise TranscriptionFailure(key, str(e)) from e

    def _persist(self, message_id: str, chat_jid: str, content: str) -> None:
        """Hand the new content to the persistence sink without waiting on it.

        Coroutine sinks are scheduled on the running loop. Plain callables run
        in the loop's default executor, off the event loop thread.
        """
        key = make_key(message_id, chat_jid)
        try:
            sink = self.update_content
            if inspect.iscoroutinefunction(sink):
                pending = sink(message_id, chat_jid, content)
            else:
                loop = asyncio.get_running_loop()
                pending = loop.run_in_executor(None, sink, message_id, chat_jid, content)
            _spawn(pending, f"persist {key}")
        except Exception as e:
            trace = traceback.format_exc()
            logger.error(f"Voice: failed to persist transcript for {key}: {e}\n{trace}")

    # ------------------------------------------------------------------
    # Sweeper lifecycle
    # ------------------------------------------------------------------

    def start_voice_sweeper(self) -> VoiceSweeper:
        """Start periodic TTL eviction on the running event loop."""
        if self._sweeper is None:
            self._sweeper = VoiceSweeper(
                self.registry,
                ttl_ms=self.settings.voice_ttl_ms,
                interval_ms=self.settings.sweep_interval_ms,
            )
        self._sweeper.start()
        return self._sweeper

    async def stop_voice_sweeper(self) -> None:
        if self._sweeper is not None:
            await self._sweeper.stop()


_background_tasks: "set[asyncio.Future]" = set()


def _spawn(awaitable: Awaitable[Any], label: str) -> None:
    task = asyncio.ensure_future(awaitable)
    _background_tasks.add(task)

    def _log_failure(t: "asyncio.Future") -> None:
        _background_tasks.discard(t)
        if not t.cancelled() and t.exception() is not None:
            logger.error(f"Voice: background task '{label}' failed: {t.exception()}")

    task.add_done_callback(_log_failure)

