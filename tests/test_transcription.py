import asyncio
import json

import pytest

import transcription
from transcription import TranscriptionConfig, load_transcription_config, transcribe_audio
from transcription import providers
from utils.exceptions import ExternalAPIError, MissingConfigError


class FakeTranscriptions:
    def __init__(self, result):
        self.result = result
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


class FakeAsyncOpenAI:
    """Stands in for openai.AsyncOpenAI and records how it was built."""

    instances = []
    result = "hello from the api"

    def __init__(self, api_key=None, base_url=None):
        self.api_key = api_key
        self.base_url = base_url
        self.audio = type("Audio", (), {})()
        self.audio.transcriptions = FakeTranscriptions(FakeAsyncOpenAI.result)
        FakeAsyncOpenAI.instances.append(self)


@pytest.fixture
def fake_openai(monkeypatch):
    FakeAsyncOpenAI.instances = []
    FakeAsyncOpenAI.result = "hello from the api"
    monkeypatch.setattr(providers, "AsyncOpenAI", FakeAsyncOpenAI)
    return FakeAsyncOpenAI


@pytest.fixture
def no_config_file(tmp_path, monkeypatch):
    monkeypatch.setenv("TRANSCRIPTION_CONFIG_PATH", str(tmp_path / "missing.json"))
    for key in ("TRANSCRIPTION_ENABLED", "TRANSCRIPTION_PROVIDER", "TRANSCRIPTION_MODEL"):
        monkeypatch.delenv(key, raising=False)


def _download(data=b"ogg"):
    async def download():
        return data
    return download


# ---------------------------------------------------------------------------
# Config loading
# ---------------------------------------------------------------------------

def test_config_from_json_file(tmp_path, monkeypatch) -> None:
    path = tmp_path / "transcription.json"
    path.write_text(json.dumps({"provider": "groq", "model": "whisper-large-v3-turbo", "enabled": True}))
    monkeypatch.setenv("TRANSCRIPTION_CONFIG_PATH", str(path))

    cfg = load_transcription_config()

    assert cfg == TranscriptionConfig(provider="groq", model="whisper-large-v3-turbo", enabled=True)


def test_invalid_config_file_disables(tmp_path, monkeypatch) -> None:
    path = tmp_path / "transcription.json"
    path.write_text("{not json")
    monkeypatch.setenv("TRANSCRIPTION_CONFIG_PATH", str(path))

    assert load_transcription_config().enabled is False


def test_missing_config_without_env_disables(no_config_file) -> None:
    assert load_transcription_config().enabled is False


def test_missing_config_falls_back_to_env(no_config_file, monkeypatch) -> None:
    monkeypatch.setenv("TRANSCRIPTION_ENABLED", "true")
    monkeypatch.setenv("TRANSCRIPTION_PROVIDER", "openai")

    cfg = load_transcription_config()

    assert cfg.enabled is True
    assert cfg.provider == "openai"
    assert cfg.model is None


# ---------------------------------------------------------------------------
# transcribe_audio
# ---------------------------------------------------------------------------

def test_disabled_returns_none_without_downloading() -> None:
    called = []

    async def download():
        called.append(1)
        return b"ogg"

    result = asyncio.run(transcribe_audio(download, TranscriptionConfig(enabled=False)))

    assert result is None
    assert called == []


def test_empty_buffer_returns_none(fake_openai, monkeypatch) -> None:
    monkeypatch.setenv("GROQ_API_KEY", "gsk-test")

    result = asyncio.run(transcribe_audio(_download(b""), TranscriptionConfig(enabled=True)))

    assert result is None
    assert fake_openai.instances == []


def test_unknown_provider_returns_none() -> None:
    cfg = TranscriptionConfig(enabled=True, provider="carrier-pigeon")

    assert asyncio.run(transcribe_audio(_download(), cfg)) is None


def test_download_error_returns_none() -> None:
    async def broken():
        raise ConnectionError("network")

    assert asyncio.run(transcribe_audio(broken, TranscriptionConfig(enabled=True))) is None


def test_groq_provider_uploads_audio(fake_openai, monkeypatch) -> None:
    monkeypatch.setenv("GROQ_API_KEY", "gsk-test")

    result = asyncio.run(transcribe_audio(_download(b"ogg-bytes"), TranscriptionConfig(enabled=True)))

    assert result == "hello from the api"
    client = fake_openai.instances[0]
    assert client.api_key == "gsk-test"
    assert client.base_url == providers.GROQ_BASE_URL
    call = client.audio.transcriptions.calls[0]
    assert call["file"] == ("voice.ogg", b"ogg-bytes", "audio/ogg")
    assert call["model"] == "whisper-large-v3"
    assert call["response_format"] == "text"


def test_configured_model_overrides_default(fake_openai, monkeypatch) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    cfg = TranscriptionConfig(enabled=True, provider="openai", model="gpt-4o-transcribe")

    asyncio.run(transcribe_audio(_download(), cfg))

    client = fake_openai.instances[0]
    assert client.base_url is None
    assert client.audio.transcriptions.calls[0]["model"] == "gpt-4o-transcribe"


def test_missing_api_key_returns_none(fake_openai, monkeypatch) -> None:
    monkeypatch.delenv("GROQ_API_KEY", raising=False)

    result = asyncio.run(transcribe_audio(_download(), TranscriptionConfig(enabled=True)))

    assert result is None
    assert fake_openai.instances == []


def test_api_error_returns_none(fake_openai, monkeypatch) -> None:
    monkeypatch.setenv("GROQ_API_KEY", "gsk-test")
    fake_openai.result = RuntimeError("429 rate limited")

    assert asyncio.run(transcribe_audio(_download(), TranscriptionConfig(enabled=True))) is None


def test_loads_config_when_not_given(tmp_path, monkeypatch, fake_openai) -> None:
    path = tmp_path / "transcription.json"
    path.write_text(json.dumps({"provider": "groq", "enabled": True}))
    monkeypatch.setenv("TRANSCRIPTION_CONFIG_PATH", str(path))
    monkeypatch.setenv("GROQ_API_KEY", "gsk-test")

    assert asyncio.run(transcription.transcribe_audio(_download())) == "hello from the api"


# ---------------------------------------------------------------------------
# Provider errors
# ---------------------------------------------------------------------------

def test_provider_raises_missing_config_without_key(monkeypatch) -> None:
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)

    with pytest.raises(MissingConfigError) as excinfo:
        asyncio.run(providers.PROVIDERS["openai"].transcribe(b"ogg"))

    assert excinfo.value.details == {"config_key": "OPENAI_API_KEY"}


def test_provider_wraps_api_errors(fake_openai, monkeypatch) -> None:
    monkeypatch.setenv("GROQ_API_KEY", "gsk-test")
    fake_openai.result = RuntimeError("503 unavailable")

    with pytest.raises(ExternalAPIError) as excinfo:
        asyncio.run(providers.PROVIDERS["groq"].transcribe(b"ogg"))

    assert excinfo.value.service == "Groq"
    assert "503 unavailable" in str(excinfo.value)


def test_provider_reuses_client_within_a_loop(fake_openai, monkeypatch) -> None:
    monkeypatch.setenv("GROQ_API_KEY", "gsk-test")
    provider = providers.PROVIDERS["groq"]

    async def twice():
        first = await provider.transcribe(b"one")
        second = await provider.transcribe(b"two")
        return first, second

    assert asyncio.run(twice()) == ("hello from the api", "hello from the api")
    assert len(fake_openai.instances) == 1
    assert len(fake_openai.instances[0].audio.transcriptions.calls) == 2


def test_provider_builds_new_client_for_new_key(fake_openai, monkeypatch) -> None:
    provider = providers.PROVIDERS["groq"]

    async def rotate():
        monkeypatch.setenv("GROQ_API_KEY", "gsk-old")
        await provider.transcribe(b"one")
        monkeypatch.setenv("GROQ_API_KEY", "gsk-new")
        await provider.transcribe(b"two")

    asyncio.run(rotate())

    assert [client.api_key for client in fake_openai.instances] == ["gsk-old", "gsk-new"]
