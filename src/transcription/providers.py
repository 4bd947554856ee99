"""Speech-to-text providers behind the OpenAI-compatible audio API.

Groq exposes the same ``audio.transcriptions`` endpoint as OpenAI, so both
providers share one client implementation with a different base URL.
"""

import asyncio
from typing import Dict, Optional

from openai import AsyncOpenAI

from config import config
from utils.exceptions import ExternalAPIError, MissingConfigError

GROQ_BASE_URL = "https://api.groq.com/openai/v1"


class WhisperAPITranscriber:
    """Transcribes voice notes through an OpenAI-compatible Whisper endpoint.

    Args:
        name: Provider name, used in logs
        api_key_name: Config key holding the API key
        default_model: Model used when none is configured
        base_url: API base URL (None for the OpenAI default)
    """

    def __init__(
        self,
        name: str,
        api_key_name: str,
        default_model: str,
        base_url: Optional[str] = None,
    ):
        self.name = name
        self.api_key_name = api_key_name
        self.default_model = default_model
        self.base_url = base_url
        self._clients: Dict[str, AsyncOpenAI] = {}
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def _client(self, api_key: str) -> AsyncOpenAI:
        """Client for ``api_key``, reused across calls on the same event loop.

        The client's connection pool is bound to the loop that first used it,
        so a new loop starts a fresh cache.
        """
        loop = asyncio.get_running_loop()
        if loop is not self._loop:
            self._clients = {}
            self._loop = loop
        client = self._clients.get(api_key)
        if client is None:
            client = AsyncOpenAI(api_key=api_key, base_url=self.base_url)
            self._clients[api_key] = client
        return client

    async def transcribe(self, audio: bytes, model: Optional[str] = None) -> Optional[str]:
        """Send the audio to the provider.

        Raises:
            MissingConfigError: If the provider API key is not configured
            ExternalAPIError: If the API call fails
        """
        api_key = config.get(self.api_key_name)
        if not api_key:
            raise MissingConfigError(self.api_key_name)

        try:
            client = self._client(api_key)
            transcription = await client.audio.transcriptions.create(
                file=("voice.ogg", audio, "audio/ogg"),
                model=model or self.default_model,
                response_format="text",
            )
        except Exception as e:
            raise ExternalAPIError(self.name, str(e), status_code=getattr(e, "status_code", None)) from e

        if isinstance(transcription, str):
            return transcription
        return getattr(transcription, "text", None)


PROVIDERS = {
    "groq": WhisperAPITranscriber(
        name="Groq",
        api_key_name="GROQ_API_KEY",
        default_model="whisper-large-v3",
        base_url=GROQ_BASE_URL,
    ),
    "openai": WhisperAPITranscriber(
        name="OpenAI",
        api_key_name="OPENAI_API_KEY",
        default_model="whisper-1",
    ),
}
