import asyncio
from dataclasses import dataclass, field
from typing import Any

import pytest

from chatpace.config.schema import DeliveryConfig, HumanizerDegree, PacingConfig
from chatpace.delivery.sink import MessageSink


# ---------------------------------------------------------------------------
# Fake sink
# ---------------------------------------------------------------------------

@dataclass
class SinkCall:
    kind: str  # "typing" | "send"
    channel: str
    text: str | None = None
    reply_to: Any | None = None


class RecordingSink(MessageSink):
    """Sink that records every call. No network."""

    name = "recording"

    def __init__(self, max_message_length: int = 2000, fail_on: set[int] | None = None, send_delay: float = 0.0):
        self.max_message_length = max_message_length
        self.calls: list[SinkCall] = []
        self._fail_on = fail_on or set()  # 1-based indexes of send attempts that raise
        self._send_delay = send_delay
        self._attempts = 0

    async def send_typing(self, channel: str) -> None:
        self.calls.append(SinkCall("typing", channel))

    async def send(self, channel: str, text: str, *, reply_to: Any | None = None) -> None:
        self._attempts += 1
        if self._send_delay:
            await asyncio.sleep(self._send_delay)
        if self._attempts in self._fail_on:
            raise RuntimeError(f"send #{self._attempts} rejected")
        self.calls.append(SinkCall("send", channel, text, reply_to))

    @property
    def sends(self) -> list[SinkCall]:
        return [c for c in self.calls if c.kind == "send"]

    @property
    def texts(self) -> list[str]:
        return [c.text for c in self.sends]


@dataclass
class TriggerMessage:
    msg_id: str = "trigger-1"


# ---------------------------------------------------------------------------
# Stream helpers
# ---------------------------------------------------------------------------

async def stream_of(*fragments: Any, delay: float = 0.0):
    """Async generator yielding fragments, optionally sleeping before each."""
    for fragment in fragments:
        if delay:
            await asyncio.sleep(delay)
        yield fragment


async def stalled_stream(*fragments: Any, stall: float = 10.0):
    """Yield fragments, then hang."""
    for fragment in fragments:
        yield fragment
    await asyncio.sleep(stall)
    yield {"text": "too late"}


async def failing_stream(*fragments: Any, exc: Exception | None = None):
    for fragment in fragments:
        yield fragment
    raise exc or ConnectionError("upstream went away")


@dataclass
class SleepRecorder:
    """Stand-in for asyncio.sleep that records durations instead of waiting."""

    calls: list[float] = field(default_factory=list)

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


def make_config(degree: HumanizerDegree = HumanizerDegree.NONE, **overrides: Any) -> DeliveryConfig:
    """Config with zero pacing so tests run instantly."""
    pacing = PacingConfig(
        type_speed_ms_per_char=0,
        max_typing_ms=0,
        min_visible_typing_ms=0,
        min_pause_ms=0,
        max_pause_ms=0,
    )
    values: dict[str, Any] = {"humanizer_degree": degree, "pacing": pacing}
    values.update(overrides)
    return DeliveryConfig(**values)


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def trigger() -> TriggerMessage:
    return TriggerMessage()
