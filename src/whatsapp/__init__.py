"""WhatsApp integration module.

Handles WAHA webhook payloads: filtering, conversion to ChatMessage and
registration of voice notes for transcription.

Main exports:
    - handle_incoming_message: Store a message and register voice audio
    - create_chat_message: Build a ChatMessage from a payload
    - should_process: Webhook event filter
    - ContentType: Enum of message content types
"""

from whatsapp.handler import (
    ContentType,
    create_chat_message,
    detect_content_type,
    handle_incoming_message,
    is_voice_payload,
    make_media_downloader,
    should_process,
)

__all__ = [
    "ContentType",
    "create_chat_message",
    "detect_content_type",
    "handle_incoming_message",
    "is_voice_payload",
    "make_media_downloader",
    "should_process",
]
