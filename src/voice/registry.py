"""Bounded registry of voice messages whose audio has not been fetched yet.

Entries are keyed by ``"<message_id>:<chat_jid>"`` and kept in insertion
order, so the oldest entry is always the first one still present. The
registry never grows past its capacity: inserting into a full registry
drops the oldest entry first.

All operations take a single lock, since the webhook thread inserts while
the worker loop looks up, removes and sweeps.
"""

import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional

from utils.logger import logger
from voice.settings import MAX_PENDING_VOICE

AudioDownloader = Callable[[], Awaitable[bytes]]


def now_ms() -> float:
    """Current wall-clock time in milliseconds."""
    return time.time() * 1000


def make_key(message_id: str, chat_jid: str) -> str:
    return f"{message_id}:{chat_jid}"


@dataclass
class PendingVoiceEntry:
    """A registered, not-yet-fetched audio handle.

    Attributes:
        download_audio: Deferred fetch of the raw audio bytes, invoked at most once
        chat_jid: Conversation the audio belongs to
        created_at: Insertion time in milliseconds
    """

    download_audio: AudioDownloader
    chat_jid: str
    created_at: float

    def age_ms(self, now: float) -> float:
        return now - self.created_at

    def is_expired(self, ttl_ms: int, now: float) -> bool:
        return self.age_ms(now) > ttl_ms


class PendingVoiceRegistry:
    """Capacity-bounded, insertion-ordered store of pending voice entries.

    Args:
        capacity: Maximum number of entries kept at once
        clock: Callable returning the current time in milliseconds
    """

    def __init__(self, capacity: int = MAX_PENDING_VOICE, clock: Callable[[], float] = now_ms):
        if capacity < 1:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self.capacity = capacity
        self._clock = clock
        self._entries: "OrderedDict[str, PendingVoiceEntry]" = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def keys(self) -> List[str]:
        """Snapshot of the keys, oldest first."""
        with self._lock:
            return list(self._entries.keys())

    def insert(self, message_id: str, chat_jid: str, download_audio: AudioDownloader) -> Optional[str]:
        """Register a deferred audio download for a message.

        A key that is already registered is replaced and becomes the newest
        entry. Otherwise, when the registry is full the oldest entry is evicted.

        Returns:
            The evicted key, if capacity forced an eviction
        """
        key = make_key(message_id, chat_jid)
        entry = PendingVoiceEntry(download_audio=download_audio, chat_jid=chat_jid, created_at=self._clock())
        evicted: Optional[str] = None

        with self._lock:
            if key in self._entries:
                del self._entries[key]
            elif len(self._entries) >= self.capacity:
                evicted, _ = self._entries.popitem(last=False)
            self._entries[key] = entry
            size = len(self._entries)

        if evicted is not None:
            logger.warning(f"Pending voice registry at capacity ({size}), dropped oldest entry {evicted}")
        return evicted

    def lookup(self, message_id: str, chat_jid: str) -> Optional[PendingVoiceEntry]:
        with self._lock:
            return self._entries.get(make_key(message_id, chat_jid))

    def remove(self, message_id: str, chat_jid: str) -> bool:
        """Delete the entry if present. Returns True if something was removed."""
        with self._lock:
            return self._entries.pop(make_key(message_id, chat_jid), None) is not None

    def sweep_expired(self, ttl_ms: int, now: Optional[float] = None) -> List[str]:
        """Remove every entry older than ``ttl_ms``.

        Args:
            ttl_ms: Maximum allowed age in milliseconds
            now: Reference time in milliseconds (defaults to the registry clock)

        Returns:
            Keys of the removed entries, oldest first
        """
        if now is None:
            now = self._clock()
        with self._lock:
            expired = [key for key, entry in self._entries.items() if entry.is_expired(ttl_ms, now)]
            for key in expired:
                del self._entries[key]
        return expired

    def now(self) -> float:
        return self._clock()
