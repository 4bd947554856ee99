import os
import tempfile

# Must be set before the logger module is imported
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="voice-logs-"))
os.environ.setdefault("LOG_LEVEL", "DEBUG")

import pytest

from models import ChatMessage
from voice.registry import PendingVoiceRegistry
from voice.settings import MAX_PENDING_VOICE, VOICE_PLACEHOLDER


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start: float = 1_700_000_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def registry(clock) -> PendingVoiceRegistry:
    return PendingVoiceRegistry(capacity=MAX_PENDING_VOICE, clock=clock)


@pytest.fixture
def messages_db_path(tmp_path, monkeypatch):
    path = tmp_path / "messages.db"
    monkeypatch.setenv("MESSAGES_DB_PATH", str(path))
    from messages_db import init_messages_db
    init_messages_db()
    return path


def make_message(message_id: str = "msg-1", chat_jid: str = "group@g.us",
                 content: str = VOICE_PLACEHOLDER, **kwargs) -> ChatMessage:
    return ChatMessage(
        id=message_id,
        chat_jid=chat_jid,
        sender=kwargs.pop("sender", "user@s.whatsapp.net"),
        sender_name=kwargs.pop("sender_name", "User"),
        content=content,
        **kwargs,
    )


def audio_source(data: bytes = b"audio"):
    """Deferred downloader that records how often it was invoked."""
    calls = []

    async def download() -> bytes:
        calls.append(1)
        return data

    download.calls = calls
    return download
