"""Chat message model shared by ingestion, persistence and the voice pipeline."""

from typing import Any, Dict

from pydantic import BaseModel, Field


class ChatMessage(BaseModel):
    """A single chat message as stored and passed through processing cycles.

    ``content`` is mutable: the voice pipeline rewrites placeholder content
    in place once a transcript is available.

    Attributes:
        id: WhatsApp message ID
        chat_jid: Conversation JID (``...@c.us`` or ``...@g.us``)
        sender: Sender JID
        sender_name: Display name of the sender
        content: Display text of the message
        timestamp: Unix timestamp as string
        is_from_me: Whether the message was sent by the connected account
    """

    id: str = Field(..., description="Message ID")
    chat_jid: str = Field(..., description="Chat JID")
    sender: str = Field(default="", description="Sender JID")
    sender_name: str = Field(default="", description="Sender display name")
    content: str = Field(default="", description="Display content")
    timestamp: str = Field(default="0", description="Unix timestamp")
    is_from_me: bool = Field(default=False)

    @property
    def key(self) -> str:
        """Composite key used to correlate the message with pending audio."""
        return f"{self.id}:{self.chat_jid}"

    def to_row(self) -> Dict[str, Any]:
        """Flatten to a dict matching the messages table columns."""
        return {
            "id": self.id,
            "chat_jid": self.chat_jid,
            "sender": self.sender,
            "sender_name": self.sender_name,
            "content": self.content,
            "timestamp": self.timestamp,
            "is_from_me": 1 if self.is_from_me else 0,
        }
