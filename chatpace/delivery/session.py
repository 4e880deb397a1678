"""Stream session: drives segmenter, chunker and pacer against a live model stream."""

from __future__ import annotations

import asyncio
import random
import time
import uuid
from typing import TYPE_CHECKING, Any, AsyncIterable

from loguru import logger
from pydantic import ValidationError

from chatpace.delivery.chunker import chunk
from chatpace.delivery.errors import (
    InactivityTimeout,
    TransportError,
    UpstreamBlocked,
    UpstreamStopped,
)
from chatpace.delivery.humanizer import Humanizer, clean_output
from chatpace.delivery.models import (
    BlockFragment,
    CutReason,
    DeliveryResult,
    Segment,
    SessionStatus,
    StopFragment,
    TextFragment,
    ToolCallFragment,
    parse_fragment,
)
from chatpace.delivery.pacer import Pacer, TextTransform
from chatpace.delivery.segmenter import Segmenter

if TYPE_CHECKING:
    from chatpace.config.schema import DeliveryConfig
    from chatpace.delivery.sink import MessageSink


class StreamSession:
    """Delivers one generation request to one channel.

    State machine:
        RUNNING → block/stop fragment → ERROR (notice, no flush)
        RUNNING → tool call fragment → FUNCTION_CALL (flush first)
        RUNNING → stream ends → COMPLETED (flush, placeholder if nothing was sent)
        RUNNING → no fragment within the inactivity timeout → TIMEOUT
        RUNNING → stream raises → ERROR

    Fragments are handled strictly in order and every send triggered by a
    fragment finishes before the next fragment is pulled.
    """

    def __init__(
        self,
        stream: AsyncIterable[Any],
        sink: "MessageSink",
        channel: str,
        config: "DeliveryConfig",
        *,
        reply_to: Any | None = None,
        transform: TextTransform | None = None,
        rng: random.Random | None = None,
        session_id: str | None = None,
    ):
        if sink.max_message_length < config.max_message_length:
            raise ValueError(
                f"sink '{sink.name}' accepts {sink.max_message_length} chars, "
                f"less than max_message_length={config.max_message_length}"
            )
        self.session_id = session_id or uuid.uuid4().hex[:12]
        self._stream = stream
        self._sink = sink
        self._channel = channel
        self._config = config

        self._segmenter = Segmenter(config.humanizer_degree, config.segmenter)
        self._pacer = Pacer(
            sink,
            channel,
            config,
            reply_to=reply_to,
            transform=transform or Humanizer(),
            rng=rng,
            session_id=self.session_id,
        )

        self.status = SessionStatus.RUNNING
        self.accumulated_model_text: list[str] = []
        self.last_activity_at = time.monotonic()
        self._fragments = 0
        self._characters = 0
        self._after_sentence = False
        self._started_at = 0.0

    @property
    def sent_count(self) -> int:
        return self._pacer.sent_count

    @property
    def tag(self) -> str:
        return f"[session:{self.session_id}]"

    async def run(self) -> DeliveryResult:
        """Consume the stream to a terminal state and return the outcome."""
        if self.status is not SessionStatus.RUNNING:
            raise RuntimeError(f"{self.tag} already finished with status {self.status.value}")

        self._started_at = self.last_activity_at = time.monotonic()
        logger.info(f"{self.tag} streaming to channel {self._channel} (degree={self._config.humanizer_degree.name})")
        await self._pacer.pulse_typing()

        iterator = self._stream.__aiter__()
        try:
            while True:
                try:
                    raw = await asyncio.wait_for(
                        iterator.__anext__(), timeout=self._config.inactivity_timeout_s
                    )
                except StopAsyncIteration:
                    return await self._complete()
                except asyncio.TimeoutError:
                    return await self._timeout()
                except Exception as e:
                    return await self._transport_error(e)

                self.last_activity_at = time.monotonic()
                self._fragments += 1
                try:
                    fragment = parse_fragment(raw)
                except (ValidationError, ValueError, TypeError) as e:
                    return await self._transport_error(e)
                result = await self._handle(fragment)
                if result is not None:
                    return result
        finally:
            await self._close_stream(iterator)

    async def _handle(self, fragment) -> DeliveryResult | None:
        if isinstance(fragment, TextFragment):
            if fragment.text:
                self.accumulated_model_text.append(fragment.text)
                self._characters += len(fragment.text)
                for segment in self._segmenter.feed(fragment.text):
                    await self._deliver(segment)
            return None

        if isinstance(fragment, BlockFragment):
            error = UpstreamBlocked(fragment.reason)
            logger.warning(f"{self.tag} {error}")
            await self._pacer.notify(self._config.notices.blocked.format(reason=fragment.reason))
            return self._finish(SessionStatus.ERROR, error=error)

        if isinstance(fragment, StopFragment):
            error = UpstreamStopped(fragment.reason)
            logger.warning(f"{self.tag} {error}")
            await self._pacer.notify(self._config.notices.stopped.format(reason=fragment.reason))
            return self._finish(SessionStatus.ERROR, error=error)

        if isinstance(fragment, ToolCallFragment):
            if self._segmenter.inside_code_block:
                logger.warning(f"{self.tag} tool call arrived inside a code block, flushing incomplete block")
            segment = self._segmenter.flush()
            if segment is not None:
                await self._deliver(segment)
            call = fragment.tool_call
            logger.info(f"{self.tag} tool call requested: {call.name}({call.args})")
            return self._finish(SessionStatus.FUNCTION_CALL, tool_call=call)

        raise TypeError(f"Unhandled fragment: {fragment!r}")

    async def _deliver(self, segment: Segment) -> None:
        """Clean, chunk and send one segment; returns once every chunk is sent."""
        text = segment.text
        if self._after_sentence:
            # The space that separated two sentences is not sent.
            text = text.lstrip(" \t")
        self._after_sentence = segment.reason is CutReason.SENTENCE_END
        text = clean_output(text, self._config.bot_name)
        chunks = chunk(text, self._config.max_message_length)
        if not chunks:
            return
        logger.debug(f"{self.tag} segment ({segment.reason.value}, {len(text)} chars) -> {len(chunks)} chunk(s)")
        await self._pacer.deliver(chunks)

    async def _complete(self) -> DeliveryResult:
        segment = self._segmenter.flush()
        if segment is not None:
            await self._deliver(segment)
        if self._pacer.sent_count == 0:
            logger.warning(f"{self.tag} stream completed without sending any messages")
            await self._pacer.deliver([self._config.empty_response_text])
        result = self._finish(SessionStatus.COMPLETED)
        logger.info(
            f"{self.tag} completed: {result.sent_count} message(s), "
            f"{result.fragments} fragment(s), {result.elapsed_s:.2f}s"
        )
        return result

    async def _timeout(self) -> DeliveryResult:
        error = InactivityTimeout(self._config.inactivity_timeout_s)
        logger.warning(f"{self.tag} timed out: {error}")
        await self._pacer.notify(self._config.notices.timeout)
        return self._finish(SessionStatus.TIMEOUT, error=error)

    async def _transport_error(self, exc: Exception) -> DeliveryResult:
        logger.exception(f"{self.tag} stream failed on channel {self._channel}")
        error = TransportError(str(exc))
        error.__cause__ = exc
        await self._pacer.notify(self._config.notices.error.format(error=exc))
        return self._finish(SessionStatus.ERROR, error=error)

    def _finish(self, status: SessionStatus, **kwargs: Any) -> DeliveryResult:
        self.status = status
        return DeliveryResult(
            status=status,
            session_id=self.session_id,
            sent_count=self._pacer.sent_count,
            accumulated_model_text=list(self.accumulated_model_text),
            fragments=self._fragments,
            characters=self._characters,
            elapsed_s=time.monotonic() - self._started_at,
            **kwargs,
        )

    async def _close_stream(self, iterator: Any) -> None:
        aclose = getattr(iterator, "aclose", None)
        if aclose is None:
            return
        try:
            await aclose()
        except Exception as e:
            logger.debug(f"{self.tag} error while closing stream: {e}")
