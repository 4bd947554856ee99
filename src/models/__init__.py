"""Message models.

Classes:
    - ChatMessage: A chat message with mutable display content

Usage:
    from models import ChatMessage

    msg = ChatMessage(id="ABC123", chat_jid="972501234567@c.us", content="Hello!")
"""

from .message import ChatMessage

__all__ = ["ChatMessage"]
