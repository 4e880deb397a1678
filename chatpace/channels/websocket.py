"""WebSocket message sink backed by an aiohttp WebSocket."""

from __future__ import annotations

from typing import Any

from aiohttp import web
from loguru import logger
from pydantic import BaseModel

from chatpace.channels.models import ContentPayload, MessageResponse, TypingResponse
from chatpace.delivery.sink import MessageSink


class WebSocketSink(MessageSink):
    """Delivers typing indicators and messages as JSON frames over one WebSocket.

    The channel is the client's conversation id. A reply target may be a
    message id string or any object with a ``msg_id`` attribute.
    """

    name = "websocket"

    def __init__(self, ws: web.WebSocketResponse, max_message_length: int = 4000):
        self._ws = ws
        self.max_message_length = max_message_length

    async def send_typing(self, channel: str) -> None:
        await self._send(TypingResponse(conversation_id=channel))

    async def send(self, channel: str, text: str, *, reply_to: Any | None = None) -> None:
        if len(text) > self.max_message_length:
            raise ValueError(f"message of {len(text)} chars exceeds {self.max_message_length}")
        await self._send(MessageResponse(
            conversation_id=channel,
            reply_to=self._reply_id(reply_to),
            content=ContentPayload(text=text),
        ))

    async def _send(self, msg: BaseModel) -> None:
        """Send a Pydantic model as JSON. Raises when the socket is gone."""
        if self._ws.closed:
            raise ConnectionResetError("WebSocket is closed")
        await self._ws.send_json(msg.model_dump())
        logger.debug(f"WebSocketSink: sent {msg.type}")

    @staticmethod
    def _reply_id(reply_to: Any | None) -> str | None:
        if reply_to is None:
            return None
        return str(getattr(reply_to, "msg_id", reply_to))
