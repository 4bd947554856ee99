"""Voice note transcription.

``transcribe_audio`` is the single entry point used by the voice pipeline.
It never raises: a disabled provider, an empty download, an unknown
provider or an API failure all yield ``None``.
"""

import traceback
from typing import Awaitable, Callable, Optional

from transcription.config import TranscriptionConfig, load_transcription_config
from transcription.providers import PROVIDERS, WhisperAPITranscriber
from utils.exceptions import ExternalAPIError, MissingConfigError
from utils.logger import logger


async def transcribe_audio(
    download_audio: Callable[[], Awaitable[bytes]],
    transcription_config: Optional[TranscriptionConfig] = None,
) -> Optional[str]:
    """Download a voice note and transcribe it with the configured provider.

    Args:
        download_audio: Deferred fetch of the raw audio bytes
        transcription_config: Overrides the config loaded from file/env

    Returns:
        Transcript text, or None when no transcript is available
    """
    cfg = transcription_config or load_transcription_config()
    if not cfg.enabled:
        return None

    try:
        audio = await download_audio()
        if not audio:
            logger.error("Failed to download audio message: empty buffer")
            return None

        logger.debug(f"Downloaded audio message ({len(audio)} bytes)")

        provider = PROVIDERS.get(cfg.provider)
        if provider is None:
            logger.error(f"Unknown transcription provider: {cfg.provider}")
            return None

        return await provider.transcribe(audio, cfg.model)
    except MissingConfigError as e:
        logger.warning(f"Transcription skipped: {e}")
        return None
    except ExternalAPIError as e:
        logger.error(f"Transcription failed: {e}")
        return None
    except Exception as e:
        trace = traceback.format_exc()
        logger.error(f"Transcription error: {e}\n{trace}")
        return None


__all__ = [
    "PROVIDERS",
    "TranscriptionConfig",
    "WhisperAPITranscriber",
    "load_transcription_config",
    "transcribe_audio",
]
