"""Chat platform sinks."""

from chatpace.channels.websocket import WebSocketSink

__all__ = ["WebSocketSink"]
