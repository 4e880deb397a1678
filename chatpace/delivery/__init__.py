"""Streaming response delivery: segmenting, chunking and pacing model output."""

from chatpace.delivery.chunker import chunk
from chatpace.delivery.models import (
    CutReason,
    DeliveryResult,
    Segment,
    SessionStatus,
    ToolCall,
    parse_fragment,
)
from chatpace.delivery.pacer import Pacer
from chatpace.delivery.resume import build_resume_messages
from chatpace.delivery.segmenter import Segmenter
from chatpace.delivery.session import StreamSession
from chatpace.delivery.sink import MessageSink

__all__ = [
    "CutReason",
    "DeliveryResult",
    "MessageSink",
    "Pacer",
    "Segment",
    "Segmenter",
    "SessionStatus",
    "StreamSession",
    "ToolCall",
    "build_resume_messages",
    "chunk",
    "parse_fragment",
]
