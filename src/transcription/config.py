"""Transcription provider configuration.

Read on every transcription call so that enabling/disabling or switching
provider takes effect without a restart.

Sources, in order:
    1. JSON file at ``TRANSCRIPTION_CONFIG_PATH`` (default
       ``.transcription.config.json`` in the working directory), e.g.
       ``{"enabled": true, "provider": "groq", "model": "whisper-large-v3"}``
    2. ``TRANSCRIPTION_ENABLED`` / ``TRANSCRIPTION_PROVIDER`` /
       ``TRANSCRIPTION_MODEL`` environment keys

An unreadable or invalid file disables transcription.
"""

import json
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, ValidationError

from config import Config, config as default_config
from utils.logger import logger

DEFAULT_CONFIG_FILENAME = ".transcription.config.json"
DEFAULT_PROVIDER = "groq"


class TranscriptionConfig(BaseModel):
    provider: str = Field(default=DEFAULT_PROVIDER, description="Provider name (groq, openai)")
    model: Optional[str] = Field(default=None, description="Provider model, provider default if unset")
    enabled: bool = Field(default=False)


def _config_path(cfg: Config) -> Path:
    return Path(cfg.get("TRANSCRIPTION_CONFIG_PATH", DEFAULT_CONFIG_FILENAME))


def load_transcription_config(cfg: Config = default_config) -> TranscriptionConfig:
    path = _config_path(cfg)
    if path.is_file():
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return TranscriptionConfig.model_validate(data)
        except (OSError, ValueError, ValidationError) as e:
            logger.warning(f"Transcription config {path} invalid, disabling: {e}")
            return TranscriptionConfig(enabled=False)

    if cfg.get("TRANSCRIPTION_ENABLED") is None:
        logger.warning("Transcription config not found, disabling")
        return TranscriptionConfig(enabled=False)

    return TranscriptionConfig(
        provider=cfg.get("TRANSCRIPTION_PROVIDER", DEFAULT_PROVIDER),
        model=cfg.get("TRANSCRIPTION_MODEL") or None,
        enabled=cfg.get_bool("TRANSCRIPTION_ENABLED", False),
    )
