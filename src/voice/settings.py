"""Tunables for the voice transcription pipeline.

Defaults are module constants; every value can be overridden through an
environment variable (or .env entry) of the same name.
"""

from dataclasses import dataclass

from config import Config, config as default_config

VOICE_PLACEHOLDER = "[Voice Message]"

MAX_PENDING_VOICE = 500
MAX_VOICE_PER_CYCLE = 2
VOICE_TTL_MS = 30 * 60 * 1000
VOICE_DOWNLOAD_TIMEOUT_MS = 5_000
VOICE_TRANSCRIBE_TIMEOUT_MS = 10_000
VOICE_SWEEP_INTERVAL_MS = 5 * 60_000

# Background worker polling
VOICE_POLL_INTERVAL_MS = 2_000
VOICE_BATCH_SIZE = 50


@dataclass(frozen=True)
class VoiceSettings:
    max_pending_voice: int = MAX_PENDING_VOICE
    max_voice_per_cycle: int = MAX_VOICE_PER_CYCLE
    voice_ttl_ms: int = VOICE_TTL_MS
    download_timeout_ms: int = VOICE_DOWNLOAD_TIMEOUT_MS
    transcribe_timeout_ms: int = VOICE_TRANSCRIBE_TIMEOUT_MS
    sweep_interval_ms: int = VOICE_SWEEP_INTERVAL_MS
    poll_interval_ms: int = VOICE_POLL_INTERVAL_MS
    batch_size: int = VOICE_BATCH_SIZE

    @classmethod
    def from_config(cls, cfg: Config = default_config) -> "VoiceSettings":
        return cls(
            max_pending_voice=cfg.get_int("MAX_PENDING_VOICE", MAX_PENDING_VOICE),
            max_voice_per_cycle=cfg.get_int("MAX_VOICE_PER_CYCLE", MAX_VOICE_PER_CYCLE),
            voice_ttl_ms=cfg.get_int("VOICE_TTL_MS", VOICE_TTL_MS),
            download_timeout_ms=cfg.get_int("VOICE_DOWNLOAD_TIMEOUT_MS", VOICE_DOWNLOAD_TIMEOUT_MS),
            transcribe_timeout_ms=cfg.get_int("VOICE_TRANSCRIBE_TIMEOUT_MS", VOICE_TRANSCRIBE_TIMEOUT_MS),
            sweep_interval_ms=cfg.get_int("VOICE_SWEEP_INTERVAL_MS", VOICE_SWEEP_INTERVAL_MS),
            poll_interval_ms=cfg.get_int("VOICE_POLL_INTERVAL_MS", VOICE_POLL_INTERVAL_MS),
            batch_size=cfg.get_int("VOICE_BATCH_SIZE", VOICE_BATCH_SIZE),
        )
