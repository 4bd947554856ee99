"""Voice message transcription pipeline.

Main exports:
    - voice_pipeline: Process-wide pipeline instance
    - add_pending_voice / transcribe_pending_voice / start_voice_sweeper:
      Shortcuts bound to ``voice_pipeline``
    - PendingVoiceRegistry, PendingVoiceEntry: Bounded pending-audio registry
    - VoiceTranscriptionPipeline: Per-batch transcription driver
    - VoiceSweeper: Periodic TTL eviction
    - VoiceWorker: Background thread running cycles
    - with_timeout: Deadline guard for awaited stages
"""

from voice.registry import PendingVoiceEntry, PendingVoiceRegistry, make_key
from voice.settings import (
    MAX_PENDING_VOICE,
    MAX_VOICE_PER_CYCLE,
    VOICE_DOWNLOAD_TIMEOUT_MS,
    VOICE_PLACEHOLDER,
    VOICE_SWEEP_INTERVAL_MS,
    VOICE_TRANSCRIBE_TIMEOUT_MS,
    VOICE_TTL_MS,
    VoiceSettings,
)
from voice.sweeper import VoiceSweeper
from voice.timeout import with_timeout
from voice.pipeline import VoiceTranscriptionPipeline, format_voice_content
from voice.worker import VoiceWorker

voice_pipeline = VoiceTranscriptionPipeline()

add_pending_voice = voice_pipeline.add_pending_voice
transcribe_pending_voice = voice_pipeline.transcribe_pending_voice
start_voice_sweeper = voice_pipeline.start_voice_sweeper

__all__ = [
    "MAX_PENDING_VOICE",
    "MAX_VOICE_PER_CYCLE",
    "VOICE_DOWNLOAD_TIMEOUT_MS",
    "VOICE_PLACEHOLDER",
    "VOICE_SWEEP_INTERVAL_MS",
    "VOICE_TRANSCRIBE_TIMEOUT_MS",
    "VOICE_TTL_MS",
    "PendingVoiceEntry",
    "PendingVoiceRegistry",
    "VoiceSettings",
    "VoiceSweeper",
    "VoiceTranscriptionPipeline",
    "VoiceWorker",
    "add_pending_voice",
    "format_voice_content",
    "make_key",
    "start_voice_sweeper",
    "transcribe_pending_voice",
    "voice_pipeline",
    "with_timeout",
]
