"""Wire models for the WebSocket delivery channel."""

import time
import uuid

from pydantic import BaseModel, Field


class ContentPayload(BaseModel):
    """Message content payload."""
    type: str = "text"
    text: str = ""


class TypingResponse(BaseModel):
    """Typing indicator."""
    type: str = "typing"
    conversation_id: str = ""
    is_typing: bool = True


class MessageResponse(BaseModel):
    """One chat bubble. `reply_to` is set only on a reply."""
    type: str = "message"
    conversation_id: str = ""
    msg_id: str = Field(default_factory=lambda: uuid.uuid4().hex[:12])
    reply_to: str | None = None
    content: ContentPayload = Field(default_factory=ContentPayload)
    timestamp: int = Field(default_factory=lambda: int(time.time()))
