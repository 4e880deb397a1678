"""Segmenter: buffers streaming text and releases spans that are safe to send."""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

from loguru import logger

from chatpace.config.schema import HumanizerDegree
from chatpace.delivery.models import CutReason, Segment

if TYPE_CHECKING:
    from chatpace.config.schema import SegmenterConfig

FENCE = "```"

# A period followed by whitespace or the end of the buffer, or a full-width stop.
_SENTENCE_END = re.compile(r"\.(?=\s|$)|。")
_TRAILING_WORD = re.compile(r"[A-Za-z.]+$")


class FenceState(enum.Enum):
    OUTSIDE = "outside"
    INSIDE = "inside"  # buffer starts with an opening fence that is not yet closed


@dataclass(frozen=True)
class SegmenterState:
    buffer: str = ""
    fence: FenceState = FenceState.OUTSIDE


def find_sentence_end(text: str, abbreviations: tuple[str, ...]) -> int:
    """Return the index just past the first sentence end in *text*, or -1."""
    for match in _SENTENCE_END.finditer(text):
        if match.group() == "。":
            return match.end()
        before = text[:match.start()]
        if before and before[-1].isdigit():
            continue
        word = _TRAILING_WORD.search(before)
        if word and word.group().lower() in abbreviations:
            continue
        return match.end()
    return -1


def _safe_cut(buffer: str, limit: int) -> int:
    """Cut position <= limit that does not leave a fence prefix dangling at the cut."""
    cut = limit
    while cut > max(limit - 2, 0) and buffer[cut - 1] == "`":
        cut -= 1
    return cut if cut > 0 else limit


def step(
    state: SegmenterState,
    degree: HumanizerDegree,
    config: "SegmenterConfig",
) -> tuple[SegmenterState, Segment | None]:
    """One transition of the segmenter.

    Returns the new state and the segment cut by this transition, if any.
    The state is returned unchanged when more input is needed.
    """
    buffer = state.buffer

    if state.fence is FenceState.INSIDE:
        close = buffer.find(FENCE, len(FENCE))
        if close != -1:
            end = close + len(FENCE)
            return (
                SegmenterState(buffer[end:], FenceState.OUTSIDE),
                Segment(buffer[:end], CutReason.CODE_BLOCK_CLOSED),
            )
        if len(buffer) >= config.code_block_flush_size:
            logger.warning(
                f"Segmenter: code block exceeded {config.code_block_flush_size} chars "
                f"without closing, force-flushing {len(buffer)} chars"
            )
            return SegmenterState(), Segment(buffer, CutReason.OVERSIZED_CODE)
        return state, None

    fence = buffer.find(FENCE)
    newline = buffer.find("\n")
    sentence = -1
    if degree is HumanizerDegree.HEAVY:
        sentence = find_sentence_end(buffer, config.abbreviations)

    # Earliest break wins; ties go to the fence, then the newline.
    breaks = [(i, kind) for i, kind in ((fence, "fence"), (newline, "newline"), (sentence, "sentence")) if i != -1]
    if breaks:
        index, kind = min(breaks, key=lambda b: b[0])
        if kind == "fence":
            if index > 0:
                return replace(state, buffer=buffer[index:]), Segment(buffer[:index], CutReason.BEFORE_CODE)
            close = buffer.find(FENCE, len(FENCE))
            if close != -1:
                end = close + len(FENCE)
                return replace(state, buffer=buffer[end:]), Segment(buffer[:end], CutReason.CODE_BLOCK_CLOSED)
            return replace(state, fence=FenceState.INSIDE), None
        if kind == "newline":
            return replace(state, buffer=buffer[index + 1:]), Segment(buffer[:index + 1], CutReason.NEWLINE)
        return replace(state, buffer=buffer[index:]), Segment(buffer[:index], CutReason.SENTENCE_END)

    if len(buffer) >= config.regular_flush_size:
        cut = _safe_cut(buffer, config.regular_flush_size)
        return replace(state, buffer=buffer[cut:]), Segment(buffer[:cut], CutReason.OVERSIZED_REGULAR)

    return state, None


class Segmenter:
    """Online segmentation of a model's text stream.

    Fence integrity comes first: a fenced code block is only ever released
    whole (or force-flushed when it grows past the code safety limit). Outside
    fences, text is released at newlines, at sentence ends when the humanizer
    degree is HEAVY, or in fixed-size slices once the buffer grows past the
    regular safety limit.
    """

    def __init__(self, degree: HumanizerDegree, config: "SegmenterConfig"):
        self._degree = degree
        self._config = config
        self._state = SegmenterState()

    @property
    def state(self) -> SegmenterState:
        return self._state

    @property
    def inside_code_block(self) -> bool:
        return self._state.fence is FenceState.INSIDE

    @property
    def pending(self) -> str:
        return self._state.buffer

    def feed(self, fragment: str) -> list[Segment]:
        """Append a fragment and return every segment it completes."""
        state = replace(self._state, buffer=self._state.buffer + fragment)
        segments: list[Segment] = []
        while True:
            new_state, segment = step(state, self._degree, self._config)
            if segment is not None:
                segments.append(segment)
            elif new_state == state:
                break
            state = new_state
        self._state = state
        return segments

    def flush(self) -> Segment | None:
        """Release whatever is left in the buffer and reset."""
        state, self._state = self._state, SegmenterState()
        if not state.buffer:
            return None
        complete = state.fence is FenceState.OUTSIDE
        if not complete:
            logger.warning(
                "Segmenter: final flush while still inside a code block, the block may be incomplete"
            )
        return Segment(state.buffer, CutReason.FINAL_FLUSH, complete=complete)
