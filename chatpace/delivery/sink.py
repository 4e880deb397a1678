"""Message sink interface for chat platforms."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class MessageSink(ABC):
    """
    Abstract chat platform client the delivery engine writes to.

    Implementations raise on a failed send; the pacer logs the failure and
    keeps going.
    """

    name: str = "base"

    #: Largest message the platform accepts, in characters.
    max_message_length: int = 2000

    @abstractmethod
    async def send_typing(self, channel: str) -> None:
        """Show a typing indicator in *channel*."""
        pass

    @abstractmethod
    async def send(self, channel: str, text: str, *, reply_to: Any | None = None) -> None:
        """
        Post *text* to *channel*.

        Args:
            channel: Target channel or conversation id.
            text: Message content, at most ``max_message_length`` characters.
            reply_to: Message to reply to, if any.
        """
        pass
