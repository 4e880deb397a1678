"""Tests for the aiohttp WebSocket sink."""

import aiohttp
import pytest
from aiohttp import web
from aiohttp import test_utils

from chatpace.channels.websocket import WebSocketSink
from chatpace.delivery.session import StreamSession

from tests.conftest import TriggerMessage, make_config, stream_of


def _make_app() -> web.Application:
    async def handle_ws(request: web.Request) -> web.WebSocketResponse:
        ws = web.WebSocketResponse()
        await ws.prepare(request)
        sink = WebSocketSink(ws)
        stream = stream_of({"text": "hello\n"}, {"text": "```py\nprint(1)\n```"})
        session = StreamSession(stream, sink, "conv-1", make_config(), reply_to=TriggerMessage("m-1"))
        await session.run()
        await ws.close()
        return ws

    app = web.Application()
    app.router.add_get("/ws", handle_ws)
    return app


class TestWebSocketSink:
    @pytest.mark.asyncio
    async def test_session_frames_over_websocket(self):
        async with test_utils.TestClient(test_utils.TestServer(_make_app())) as client:
            ws = await client.ws_connect("/ws")
            frames = []
            async for msg in ws:
                if msg.type == aiohttp.WSMsgType.TEXT:
                    frames.append(msg.json())

        messages = [f for f in frames if f["type"] == "message"]
        assert [m["content"]["text"] for m in messages] == ["hello\n", "```py\nprint(1)\n```"]
        assert messages[0]["reply_to"] == "m-1"
        assert messages[1]["reply_to"] is None
        assert all(f["conversation_id"] == "conv-1" for f in frames)
        assert frames[0]["type"] == "typing"

    @pytest.mark.asyncio
    async def test_closed_socket_raises(self):
        class ClosedWS:
            closed = True

        sink = WebSocketSink(ClosedWS())
        with pytest.raises(ConnectionResetError):
            await sink.send("conv", "hi")

    @pytest.mark.asyncio
    async def test_oversized_message_raises(self):
        class OpenWS:
            closed = False

            async def send_json(self, data):
                raise AssertionError("should not be sent")

        sink = WebSocketSink(OpenWS(), max_message_length=5)
        with pytest.raises(ValueError):
            await sink.send("conv", "too long")
