"""Data models for the delivery engine: fragments, segments and results."""

from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass, field
from typing import Annotated, Any, Literal, Union

import json_repair
from pydantic import BaseModel, Field, TypeAdapter, field_validator

from chatpace.delivery.errors import DeliveryError


class ToolCall(BaseModel):
    """A tool invocation requested by the model."""
    id: str = Field(default_factory=lambda: uuid.uuid4().hex[:12])
    name: str
    args: dict[str, Any] = Field(default_factory=dict)

    @field_validator("args", mode="before")
    @classmethod
    def _parse_args(cls, value: Any) -> Any:
        # Providers stream arguments as JSON text that is not always valid.
        if value is None:
            return {}
        if isinstance(value, str):
            if not value.strip():
                return {}
            parsed = json_repair.loads(value)
            return parsed if isinstance(parsed, dict) else {"value": parsed}
        return value


class TextFragment(BaseModel):
    """Incremental model text."""
    type: Literal["text"] = "text"
    text: str


class BlockFragment(BaseModel):
    """The provider blocked the response."""
    type: Literal["block"] = "block"
    reason: str = "unknown"


class StopFragment(BaseModel):
    """The provider stopped the response abnormally."""
    type: Literal["stop"] = "stop"
    reason: str = "unknown"


class ToolCallFragment(BaseModel):
    """The model wants a tool executed before it continues."""
    type: Literal["tool_call"] = "tool_call"
    tool_call: ToolCall


Fragment = Annotated[
    Union[TextFragment, BlockFragment, StopFragment, ToolCallFragment],
    Field(discriminator="type"),
]

_fragment_adapter: TypeAdapter[Fragment] = TypeAdapter(Fragment)


def parse_fragment(raw: Any) -> Fragment:
    """Normalize a provider fragment into a fragment model.

    Accepts fragment models, tagged dicts (``{"type": "text", ...}``) and the
    provider-neutral shape ``{"text"} | {"blockReason"} | {"stopReason"} |
    {"toolCall": {"name", "args"}}``.
    """
    if isinstance(raw, (TextFragment, BlockFragment, StopFragment, ToolCallFragment)):
        return raw
    if isinstance(raw, str):
        return TextFragment(text=raw)
    if not isinstance(raw, dict):
        raise TypeError(f"Unsupported fragment type: {type(raw).__name__}")

    if "type" in raw:
        return _fragment_adapter.validate_python(raw)
    if "blockReason" in raw:
        return BlockFragment(reason=str(raw["blockReason"]))
    if "stopReason" in raw:
        return StopFragment(reason=str(raw["stopReason"]))
    if "toolCall" in raw:
        return ToolCallFragment(tool_call=ToolCall.model_validate(raw["toolCall"]))
    if "text" in raw:
        return TextFragment(text=raw["text"] or "")
    raise ValueError(f"Unrecognized fragment keys: {sorted(raw)}")


class CutReason(str, enum.Enum):
    """Why the segmenter released a span of text."""

    CODE_BLOCK_CLOSED = "code_block_closed"
    BEFORE_CODE = "before_code"
    NEWLINE = "newline"
    SENTENCE_END = "sentence_end"
    OVERSIZED_REGULAR = "oversized_regular"
    OVERSIZED_CODE = "oversized_code"
    FINAL_FLUSH = "final_flush"


@dataclass(frozen=True)
class Segment:
    """A finalized span of text that is safe to send as one unit."""

    text: str
    reason: CutReason
    complete: bool = True  # False for a final flush taken inside an open fence


class SessionStatus(str, enum.Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    FUNCTION_CALL = "function_call"
    ERROR = "error"
    TIMEOUT = "timeout"


@dataclass
class DeliveryResult:
    """Terminal outcome of a stream session, returned to the caller."""

    status: SessionStatus
    session_id: str
    sent_count: int = 0
    accumulated_model_text: list[str] = field(default_factory=list)
    tool_call: ToolCall | None = None
    error: DeliveryError | None = None
    fragments: int = 0
    characters: int = 0
    elapsed_s: float = 0.0

    @property
    def model_text(self) -> str:
        return "".join(self.accumulated_model_text)
