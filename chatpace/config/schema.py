"""Configuration schema using Pydantic."""

from enum import IntEnum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class HumanizerDegree(IntEnum):
    """How hard delivery tries to look like a person typing."""

    NONE = 0
    LIGHT = 1
    MEDIUM = 2
    HEAVY = 3


class SegmenterConfig(BaseModel):
    """Buffer flush thresholds for the segmenter."""

    model_config = ConfigDict(frozen=True)

    regular_flush_size: int = Field(default=500, gt=0)
    code_block_flush_size: int = Field(default=15000, gt=0)
    abbreviations: tuple[str, ...] = (
        "vs", "mr", "mrs", "dr", "prof", "inc", "ltd", "co", "etc", "e.g", "i.e",
    )


class PacingConfig(BaseModel):
    """Typing simulation timings, all in milliseconds."""

    model_config = ConfigDict(frozen=True)

    type_speed_ms_per_char: float = Field(default=10, ge=0)
    max_typing_ms: float = Field(default=4000, ge=0)
    min_visible_typing_ms: float = Field(default=750, ge=0)
    code_typing_factor: float = Field(default=1.25, ge=1)
    min_pause_ms: float = Field(default=250, ge=0)
    max_pause_ms: float = Field(default=1500, ge=0)
    thinking_pause_chance: float = Field(default=0.25, ge=0, le=1)
    thinking_pause_factor: float = Field(default=1.5, ge=1)

    @model_validator(mode="after")
    def _check_ranges(self) -> "PacingConfig":
        if self.min_pause_ms > self.max_pause_ms:
            raise ValueError("min_pause_ms must not exceed max_pause_ms")
        return self


class NoticeConfig(BaseModel):
    """User-facing notices for terminal outcomes. `{reason}`/`{error}` are filled in."""

    model_config = ConfigDict(frozen=True)

    blocked: str = "Response blocked. Reason: {reason}."
    stopped: str = "Response stopped. Reason: {reason}."
    error: str = "An error occurred while streaming: {error}"
    timeout: str = "The response timed out. Please try again."


class DeliveryConfig(BaseModel):
    """Per-session delivery settings. Never shared as mutable global state."""

    model_config = ConfigDict(frozen=True)

    humanizer_degree: HumanizerDegree = HumanizerDegree.LIGHT
    max_message_length: int = Field(default=1950, gt=0)
    inactivity_timeout_ms: float = Field(default=120000, gt=0)
    bot_name: str | None = None
    empty_response_text: str = "..."
    segmenter: SegmenterConfig = Field(default_factory=SegmenterConfig)
    pacing: PacingConfig = Field(default_factory=PacingConfig)
    notices: NoticeConfig = Field(default_factory=NoticeConfig)

    @property
    def inactivity_timeout_s(self) -> float:
        return self.inactivity_timeout_ms / 1000.0

    @property
    def typing_enabled(self) -> bool:
        return self.humanizer_degree >= HumanizerDegree.MEDIUM
