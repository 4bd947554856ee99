"""WhatsApp webhook payload handling.

Turns WAHA webhook payloads into ``ChatMessage`` objects, stores them and,
for voice notes, registers a deferred media download with the voice
pipeline. Audio is never fetched here: the download only runs if and when
a transcription cycle picks the message up.

Usage:
    >>> from whatsapp.handler import handle_incoming_message
    >>> msg = handle_incoming_message(payload, voice_pipeline)
"""

from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

from config import config
from models import ChatMessage
from utils.exceptions import InvalidPayloadError, MediaDownloadError
from utils.logger import logger
from voice.settings import VOICE_PLACEHOLDER

MEDIA_DOWNLOAD_TIMEOUT_S = 30


# =============================================================================
# Message Content Types
# =============================================================================


class ContentType(str, Enum):
    """Enumeration of supported message content types."""
    TEXT = "text"
    IMAGE = "image"
    VOICE = "voice"
    VIDEO = "video"
    DOCUMENT = "document"
    STICKER = "sticker"
    LOCATION = "location"
    CONTACT = "contact"
    UNKNOWN = "unknown"


# Display content for media without a caption
_MEDIA_PLACEHOLDERS = {
    ContentType.IMAGE: "[Image]",
    ContentType.VIDEO: "[Video]",
    ContentType.DOCUMENT: "[Document]",
    ContentType.STICKER: "[Sticker]",
    ContentType.LOCATION: "[Location]",
    ContentType.CONTACT: "[Contact]",
}


def should_process(payload: Dict[str, Any]) -> bool:
    """Filter out acks, newsletters, broadcasts and notification events."""
    sender = payload.get("from") or ""
    if payload.get("event") == "message_ack" or \
            sender.endswith("@newsletter") or \
            sender.endswith("@broadcast") or \
            payload.get("_data", {}).get("type") in ["e2e_notification", "notification_template"]:
        return False

    return True


def detect_content_type(payload: Dict[str, Any]) -> ContentType:
    """Classify a payload by WAHA ``_data.type``, falling back to MIME type."""
    has_media = payload.get("hasMedia", False)
    data_type = (payload.get("_data", {}).get("type") or "").lower()

    if data_type == "location":
        return ContentType.LOCATION
    if data_type in ["vcard", "contact"]:
        return ContentType.CONTACT

    if has_media:
        if data_type == "image":
            return ContentType.IMAGE
        elif data_type in ["ptt", "audio"]:  # ptt = push-to-talk (voice memo)
            return ContentType.VOICE
        elif data_type == "video":
            return ContentType.VIDEO
        elif data_type == "document":
            return ContentType.DOCUMENT
        elif data_type == "sticker":
            return ContentType.STICKER

        mime_type = ((payload.get("media") or {}).get("mimetype") or "").lower()
        if mime_type.startswith("image/"):
            return ContentType.IMAGE
        elif mime_type.startswith("audio/"):
            return ContentType.VOICE
        elif mime_type.startswith("video/"):
            return ContentType.VIDEO
        elif mime_type.startswith("application/"):
            return ContentType.DOCUMENT

    if payload.get("body"):
        return ContentType.TEXT
    return ContentType.UNKNOWN


def is_voice_payload(payload: Dict[str, Any]) -> bool:
    return detect_content_type(payload) == ContentType.VOICE


def _chat_jid(payload: Dict[str, Any]) -> str:
    """Conversation JID: the peer for outgoing messages, the sender chat otherwise."""
    if payload.get("fromMe"):
        return payload.get("to") or ""
    return payload.get("from") or ""


def create_chat_message(payload: Dict[str, Any]) -> ChatMessage:
    """Build a ChatMessage from a WAHA message payload.

    Voice notes get the voice placeholder as content; other media without a
    caption get a type placeholder.

    Raises:
        InvalidPayloadError: If the payload has no message ID or chat
    """
    message_id = payload.get("id")
    chat_jid = _chat_jid(payload)
    if not message_id or not chat_jid:
        raise InvalidPayloadError("missing message id or chat", payload)

    content_type = detect_content_type(payload)
    if content_type == ContentType.VOICE:
        content = VOICE_PLACEHOLDER
    else:
        content = payload.get("body") or _MEDIA_PLACEHOLDERS.get(content_type, "")

    data = payload.get("_data", {})
    return ChatMessage(
        id=str(message_id),
        chat_jid=chat_jid,
        sender=payload.get("participant") or payload.get("from") or "",
        sender_name=data.get("notifyName") or "",
        content=content,
        timestamp=str(payload.get("timestamp") or "0"),
        is_from_me=bool(payload.get("fromMe", False)),
    )


def make_media_downloader(media_url: str) -> Callable[[], Awaitable[bytes]]:
    """Return a deferred async download of a WAHA media URL.

    Raises (when awaited):
        MediaDownloadError: On HTTP or transport errors
    """
    async def download() -> bytes:
        headers = {}
        api_key = config.get("WAHA_API_KEY")
        if api_key:
            headers["X-Api-Key"] = api_key
        try:
            async with httpx.AsyncClient(timeout=MEDIA_DOWNLOAD_TIMEOUT_S) as client:
                response = await client.get(media_url, headers=headers)
                response.raise_for_status()
                return response.content
        except httpx.HTTPError as e:
            raise MediaDownloadError(media_url, str(e)) from e

    return download


def handle_incoming_message(
    payload: Dict[str, Any],
    pipeline: Any,
    store: Optional[Callable[[ChatMessage], None]] = None,
) -> ChatMessage:
    """Store an incoming message and register voice audio for transcription.

    Args:
        payload: WAHA message payload
        pipeline: Object exposing ``add_pending_voice(message_id, chat_jid, download_audio)``
        store: Persistence callback, defaults to ``messages_db.store_message``

    Returns:
        The stored ChatMessage
    """
    if store is None:
        from messages_db import store_message
        store = store_message

    message = create_chat_message(payload)
    store(message)

    if message.content == VOICE_PLACEHOLDER:
        media_url = (payload.get("media") or {}).get("url")
        if media_url:
            pipeline.add_pending_voice(message.id, message.chat_jid, make_media_downloader(media_url))
        else:
            logger.warning(f"Voice message {message.key} has no media URL, cannot transcribe")

    logger.debug(f"Processed message: {message.key} || {message.content[:80]}")
    return message
