"""
Tests for the WebSocket transport and its JSON frame format.
"""

import asyncio
import json
from typing import Any, List, Optional
from unittest.mock import AsyncMock, patch

import pytest

from chatlink.core.exceptions import TransportError
from chatlink.infrastructure.transport.websocket import (
    WebSocketSession,
    WebSocketTransport,
    decode_frame,
    encode_frame,
)


class FakeConnection:
    """Minimal stand-in for a websockets client connection."""

    def __init__(self) -> None:
        self.sent: List[str] = []
        self.closed = False
        self.send_error: Optional[Exception] = None
        self._queue: "asyncio.Queue[Any]" = asyncio.Queue()

    def push(self, item: Any) -> None:
        self._queue.put_nowait(item)

    def end(self) -> None:
        self._queue.put_nowait(None)

    async def send(self, data: str) -> None:
        if self.send_error is not None:
            raise self.send_error
        self.sent.append(data)

    async def close(self) -> None:
        self.closed = True
        self.end()

    def __aiter__(self) -> "FakeConnection":
        return self

    async def __anext__(self) -> Any:
        item = await self._queue.get()
        if item is None:
            raise StopAsyncIteration
        if isinstance(item, Exception):
            raise item
        return item


async def wait_for_disconnect(session: WebSocketSession) -> List[Any]:
    reasons: List[Any] = []
    done = asyncio.Event()

    def on_disconnect(reason: Any) -> None:
        reasons.append(reason)
        done.set()

    session.on("disconnect", on_disconnect)
    await asyncio.wait_for(done.wait(), timeout=1.0)
    return reasons


class TestFrames:
    """JSON frame encoding."""

    def test_encode(self) -> None:
        assert json.loads(encode_frame("group_message", {"groupId": "g1", "message": "hi"})) == {
            "event": "group_message",
            "args": [{"groupId": "g1", "message": "hi"}],
        }

    def test_decode(self) -> None:
        assert decode_frame('{"event": "pong", "args": ["ok"]}') == {"event": "pong", "args": ["ok"]}

    def test_decode_bytes_and_scalar_args(self) -> None:
        assert decode_frame(b'{"event": "pong", "args": "ok"}') == {"event": "pong", "args": ["ok"]}

    def test_decode_missing_args(self) -> None:
        assert decode_frame('{"event": "ping"}') == {"event": "ping", "args": []}

    @pytest.mark.parametrize("raw", ["not json", "[1, 2]", '{"args": []}', '{"event": 5}'])
    def test_decode_rejects_non_events(self, raw: str) -> None:
        assert decode_frame(raw) is None


class TestWebSocketSession:
    """Frame delivery and emission."""

    @pytest.mark.asyncio
    async def test_frames_reach_handlers(self) -> None:
        connection = FakeConnection()
        session = WebSocketSession(connection, "ws://test/")
        received: List[Any] = []

        async def on_message(payload: Any) -> None:
            received.append(("async", payload))

        session.on("global_message", on_message)
        session.on("pong", lambda payload: received.append(("sync", payload)))
        session.start()

        connection.push(encode_frame("connect", "cid-1"))
        connection.push(encode_frame("global_message", {"content": "hi"}))
        connection.push("garbage")
        connection.push(encode_frame("pong", "ok"))
        connection.push(encode_frame("unhandled_event"))
        connection.end()

        reasons = await wait_for_disconnect(session)

        assert received == [("async", {"content": "hi"}), ("sync", "ok")]
        assert session.session_id == "cid-1"
        assert session.closed is True
        assert reasons == ["io client disconnect"]

    @pytest.mark.asyncio
    async def test_receive_failure_synthesizes_error(self) -> None:
        connection = FakeConnection()
        session = WebSocketSession(connection, "ws://test/")
        errors: List[Any] = []
        session.on("error", errors.append)
        session.start()

        connection.push(OSError("connection reset"))
        reasons = await wait_for_disconnect(session)

        assert errors == ["connection reset"]
        assert reasons == ["transport error"]

    @pytest.mark.asyncio
    async def test_handler_error_does_not_stop_reader(self) -> None:
        connection = FakeConnection()
        session = WebSocketSession(connection, "ws://test/")
        seen: List[Any] = []

        def broken(payload: Any) -> None:
            raise RuntimeError("bad handler")

        session.on("first", broken)
        session.on("second", seen.append)
        session.start()

        connection.push(encode_frame("first", 1))
        connection.push(encode_frame("second", 2))
        connection.end()
        await wait_for_disconnect(session)

        assert seen == [2]

    @pytest.mark.asyncio
    async def test_emit_sends_frame(self) -> None:
        connection = FakeConnection()
        session = WebSocketSession(connection, "ws://test/")

        await session.emit("join_room", "r1")

        assert json.loads(connection.sent[0]) == {"event": "join_room", "args": ["r1"]}

    @pytest.mark.asyncio
    async def test_emit_failure_raises_transport_error(self) -> None:
        connection = FakeConnection()
        connection.send_error = OSError("broken pipe")
        session = WebSocketSession(connection, "ws://test/")

        with pytest.raises(TransportError) as exc_info:
            await session.emit("ping", "x")

        assert exc_info.value.event == "ping"

    @pytest.mark.asyncio
    async def test_emit_after_close_raises(self) -> None:
        connection = FakeConnection()
        session = WebSocketSession(connection, "ws://test/")
        session.start()

        await session.close()

        assert connection.closed is True
        with pytest.raises(TransportError):
            await session.emit("ping")

    @pytest.mark.asyncio
    async def test_close_twice(self) -> None:
        connection = FakeConnection()
        session = WebSocketSession(connection, "ws://test/")

        await session.close()
        await session.close()

        assert session.closed is True


class TestWebSocketTransport:
    """Session creation."""

    def test_build_url(self) -> None:
        assert WebSocketTransport.build_url("ws://h:1/socket.io/", {"username": "a b"}) == \
            "ws://h:1/socket.io/?username=a+b"
        assert WebSocketTransport.build_url("ws://h:1/?EIO=4", {"username": "a"}) == \
            "ws://h:1/?EIO=4&username=a"
        assert WebSocketTransport.build_url("ws://h:1/") == "ws://h:1/"

    @pytest.mark.asyncio
    async def test_connect(self) -> None:
        connection = FakeConnection()
        transport = WebSocketTransport(connect_timeout=4.0)

        with patch('chatlink.infrastructure.transport.websocket.websockets.connect',
                   new=AsyncMock(return_value=connection)) as connect:
            session = await transport.connect("ws://h:1/socket.io/", {"username": "alice"})

        connect.assert_awaited_once()
        assert connect.await_args.args[0] == "ws://h:1/socket.io/?username=alice"
        assert connect.await_args.kwargs['open_timeout'] == 4.0
        assert session.closed is False

        await session.close()

    @pytest.mark.asyncio
    async def test_connect_failure(self) -> None:
        transport = WebSocketTransport()

        with patch('chatlink.infrastructure.transport.websocket.websockets.connect',
                   new=AsyncMock(side_effect=OSError("refused"))):
            with pytest.raises(TransportError, match="refused"):
                await transport.connect("ws://h:1/")
