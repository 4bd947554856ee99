"""Configuration management for the voice transcription service.

Loads configuration from environment variables and .env file.
Supports both local development and Docker deployments.
"""

import os
from pathlib import Path
from typing import Any, Optional


_TRUE_VALUES = {"1", "true", "t", "yes", "y", "on"}

# Keys read by the service when no .env file is present
ENV_KEYS = (
    "LOG_LEVEL", "LOG_DIR", "PORT", "MESSAGES_DB_PATH", "WAHA_API_KEY",
    "GROQ_API_KEY", "OPENAI_API_KEY",
    "TRANSCRIPTION_CONFIG_PATH", "TRANSCRIPTION_ENABLED",
    "TRANSCRIPTION_PROVIDER", "TRANSCRIPTION_MODEL",
    "MAX_PENDING_VOICE", "MAX_VOICE_PER_CYCLE", "VOICE_TTL_MS",
    "VOICE_DOWNLOAD_TIMEOUT_MS", "VOICE_TRANSCRIBE_TIMEOUT_MS",
    "VOICE_SWEEP_INTERVAL_MS", "VOICE_POLL_INTERVAL_MS", "VOICE_BATCH_SIZE",
)


def find_env_file() -> Optional[Path]:
    """Find the .env file by searching up the directory tree.

    Searches from the current file's directory upward to find .env file.
    This handles both running from src/ directory and project root.

    Returns:
        Path to .env file if found, None otherwise
    """
    current_dir = Path(__file__).parent.resolve()

    for parent in [current_dir] + list(current_dir.parents):
        env_path = parent / ".env"
        if env_path.is_file():
            return env_path
        # Stop at project root indicators
        if (parent / "pyproject.toml").exists() or (parent / ".git").exists():
            break

    return None


class Config:
    """Configuration manager that loads from .env file and environment variables.

    Environment variables take precedence over .env file values.
    Attribute access is case-insensitive for convenience.
    """

    def __init__(self, env_file: Optional[str] = None):
        """Initialize configuration.

        Args:
            env_file: Optional path to .env file. If not provided, will search
                      for .env file in parent directories.
        """
        self._attributes: dict[str, str] = {}

        if env_file:
            env_path = Path(env_file)
            if not env_path.is_absolute():
                env_path = Path(__file__).parent / env_file
        else:
            env_path = find_env_file()

        if env_path and env_path.is_file():
            self._load_env_file(env_path)
        else:
            self._load_from_environ()

    def _load_env_file(self, path: Path) -> None:
        """Load configuration from .env file.

        Args:
            path: Path to the .env file
        """
        with open(path, "r", encoding="utf-8") as file:
            for line in file:
                line = line.strip()
                if not line or line.startswith("#") or "=" not in line:
                    continue

                key, value = line.split("=", 1)
                key = key.strip()
                value = value.strip().strip('"').strip("'")

                # Only set in os.environ if not already set (env vars take precedence)
                if key not in os.environ:
                    os.environ[key] = value

                self._attributes[key] = os.environ.get(key, value)
                self._attributes[key.lower()] = os.environ.get(key, value)

    def _load_from_environ(self) -> None:
        """Load configuration from environment variables only."""
        for key in ENV_KEYS:
            value = os.environ.get(key)
            if value:
                self._attributes[key] = value
                self._attributes[key.lower()] = value

    def __getattr__(self, name: str) -> str:
        """Get configuration value by attribute name.

        Environment variables are consulted first so that values changed at
        runtime (tests, container restarts with new env) are picked up.

        Args:
            name: Configuration key (case-insensitive)

        Returns:
            Configuration value as string

        Raises:
            AttributeError: If configuration key is not found
        """
        if name.startswith("_"):
            raise AttributeError(f"'Config' object has no attribute '{name}'")

        env_value = os.environ.get(name) or os.environ.get(name.upper())
        if env_value:
            return env_value

        if name in self._attributes:
            return self._attributes[name]
        if name.lower() in self._attributes:
            return self._attributes[name.lower()]

        raise AttributeError(f"'Config' object has no attribute '{name}'")

    def get(self, name: str, default: Any = None) -> Any:
        """Get configuration value with optional default.

        Args:
            name: Configuration key (case-insensitive)
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        try:
            return getattr(self, name)
        except AttributeError:
            return default

    def get_int(self, name: str, default: int) -> int:
        """Get configuration value as int, falling back to default when unset.

        Raises:
            ValueError: If the value is set but not an integer
        """
        value = self.get(name)
        if value is None or str(value).strip() == "":
            return default
        return int(value)

    def get_bool(self, name: str, default: bool) -> bool:
        """Get configuration value as bool (1/true/yes/on), default when unset."""
        value = self.get(name)
        if value is None or str(value).strip() == "":
            return default
        return str(value).strip().lower() in _TRUE_VALUES


# Create singleton config instance
config = Config()
