"""Pacer: turns chunks into timed typing/send operations."""

from __future__ import annotations

import asyncio
import random
from typing import TYPE_CHECKING, Any, Awaitable, Callable

from loguru import logger

from chatpace.config.schema import HumanizerDegree
from chatpace.delivery.errors import SinkSendFailure
from chatpace.delivery.segmenter import FENCE

if TYPE_CHECKING:
    from chatpace.config.schema import DeliveryConfig
    from chatpace.delivery.sink import MessageSink

# (chunk, chunk continues an open fence) -> text to send
TextTransform = Callable[[str, bool], str]


class Pacer:
    """Sends chunks to a sink in order, with humanlike timing.

    NONE/LIGHT send back-to-back with a typing pulse before each chunk.
    MEDIUM and up send the session's first chunk at once, then show typing for
    a length-based duration before every later chunk and pause between chunks
    of a segment. HEAVY also runs each chunk through the text transform.

    The first successful send goes out as a reply when a reply target exists;
    every later send is a plain message.
    """

    def __init__(
        self,
        sink: "MessageSink",
        channel: str,
        config: "DeliveryConfig",
        *,
        reply_to: Any | None = None,
        transform: TextTransform | None = None,
        rng: random.Random | None = None,
        session_id: str = "-",
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._sink = sink
        self._channel = channel
        self._config = config
        self._reply_to = reply_to
        self._transform = transform
        self._rng = rng or random.Random()
        self._session_id = session_id
        self._sleep = sleep

        self._first_chunk_pending = True
        self.replied = False
        self.sent_count = 0
        self.failures: list[SinkSendFailure] = []

    def typing_delay(self, text: str) -> float:
        """Seconds of simulated typing before *text* is sent."""
        pacing = self._config.pacing
        delay_ms = min(len(text) * pacing.type_speed_ms_per_char, pacing.max_typing_ms)
        delay_ms = max(delay_ms, pacing.min_visible_typing_ms)
        if FENCE in text:
            delay_ms = max(delay_ms, pacing.min_visible_typing_ms * pacing.code_typing_factor)
        return delay_ms / 1000.0

    async def pulse_typing(self) -> None:
        try:
            await self._sink.send_typing(self._channel)
        except Exception as e:
            logger.warning(f"[pacer:{self._session_id}] send_typing failed: {e}")

    async def deliver(self, chunks: list[str]) -> int:
        """Send the chunks of one segment. Returns how many sends succeeded."""
        prepared = self._prepare(chunks)
        sent = 0

        for i, text in enumerate(prepared):
            if not self._config.typing_enabled:
                await self.pulse_typing()
                sent += await self._send(text)
                continue

            if self._first_chunk_pending:
                self._first_chunk_pending = False
            else:
                await self.pulse_typing()
                delay = self.typing_delay(text)
                logger.debug(f"[pacer:{self._session_id}] typing for {delay * 1000:.0f}ms")
                await self._sleep(delay)

            sent += await self._send(text)

            if i < len(prepared) - 1:
                await self._pause()

        return sent

    async def notify(self, text: str) -> None:
        """Best-effort user notice: a reply if the reply slot is unused, else a channel post."""
        if self._reply_to is not None and not self.replied:
            try:
                await self._sink.send(self._channel, text, reply_to=self._reply_to)
                self.replied = True
                return
            except Exception as e:
                logger.warning(f"[pacer:{self._session_id}] notice reply failed, posting to channel: {e}")
        try:
            await self._sink.send(self._channel, text)
        except Exception as e:
            logger.warning(f"[pacer:{self._session_id}] failed to post notice: {e}")

    def _prepare(self, chunks: list[str]) -> list[str]:
        """Apply the HEAVY transform, tracking fences that span chunks."""
        if self._config.humanizer_degree < HumanizerDegree.HEAVY or self._transform is None:
            return [c for c in chunks if c.strip()]

        prepared = []
        inside_fence = False
        for chunk in chunks:
            text = self._transform(chunk, inside_fence)
            if chunk.count(FENCE) % 2:
                inside_fence = not inside_fence
            if text.strip():
                prepared.append(text)
        return prepared

    async def _send(self, text: str) -> int:
        reply_to = self._reply_to if not self.replied else None
        try:
            if reply_to is not None:
                await self._sink.send(self._channel, text, reply_to=reply_to)
            else:
                await self._sink.send(self._channel, text)
        except Exception as e:
            failure = SinkSendFailure(self._channel, text, e)
            self.failures.append(failure)
            logger.exception(f"[pacer:{self._session_id}] {failure}, continuing")
            return 0

        if reply_to is not None:
            self.replied = True
        self.sent_count += 1
        preview = text if len(text) <= 100 else f"{text[:100]}..."
        logger.debug(f"[pacer:{self._session_id}] sent message {self.sent_count}: {preview!r}")
        return 1

    async def _pause(self) -> None:
        pacing = self._config.pacing
        thinking = self._rng.random() < pacing.thinking_pause_chance
        pause_ms = self._rng.uniform(pacing.min_pause_ms, pacing.max_pause_ms)

        if not thinking:
            logger.debug(f"[pacer:{self._session_id}] pausing for {pause_ms:.0f}ms")
            await self._sleep(pause_ms / 1000.0)
            return

        pause_ms = max(pause_ms * pacing.thinking_pause_factor, pacing.min_visible_typing_ms)
        logger.debug(f"[pacer:{self._session_id}] pausing for {pause_ms:.0f}ms (thinking pause)")
        await self._sleep(pause_ms / 3000.0)
        await self.pulse_typing()
        await self._sleep(pause_ms * 2 / 3000.0)
