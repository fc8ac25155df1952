"""
WebSocket transport carrying named events as JSON frames.

Every frame is a JSON object ``{"event": <name>, "args": [...]}`` in both
directions. A reader task per session decodes inbound frames and hands them
to the handler registered for the event name.
"""

import asyncio
import inspect
import json
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import websockets
from loguru import logger
from websockets.exceptions import ConnectionClosed, WebSocketException

from ...core.domain.events import InboundEvents
from ...core.exceptions import TransportError
from ...core.interfaces.transport import EventHandler, ISession, ITransport


def encode_frame(event: str, *args: Any) -> str:
    """Serialize an outbound event."""
    return json.dumps({'event': event, 'args': list(args)})


def decode_frame(raw: Any) -> Optional[Dict[str, Any]]:
    """
    Parse an inbound frame.

    Returns:
        ``{'event': str, 'args': list}`` or None for frames that are not events
    """
    if isinstance(raw, bytes):
        raw = raw.decode('utf-8', errors='replace')
    try:
        data = json.loads(raw)
    except (TypeError, ValueError):
        return None

    if not isinstance(data, dict) or not isinstance(data.get('event'), str):
        return None

    args = data.get('args', [])
    if not isinstance(args, list):
        args = [args]
    return {'event': data['event'], 'args': args}


class WebSocketSession(ISession):
    """One live WebSocket connection plus its reader task."""

    def __init__(self, connection: Any, url: str, close_timeout: float = 5.0) -> None:
        self._connection = connection
        self._url = url
        self._close_timeout = close_timeout
        self._handlers: Dict[str, EventHandler] = {}
        self._session_id: Optional[str] = None
        self._closed = False
        self._reader: Optional[asyncio.Task[None]] = None
        self._frames_received = 0
        self._frames_sent = 0

    @property
    def session_id(self) -> Optional[str]:
        return self._session_id

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def url(self) -> str:
        return self._url

    def start(self) -> None:
        """Start delivering inbound frames."""
        if self._reader is None:
            self._reader = asyncio.create_task(self._read_loop(), name="websocket-reader")

    def on(self, event: str, handler: EventHandler) -> None:
        self._handlers[event] = handler

    async def emit(self, event: str, *args: Any) -> None:
        if self._closed:
            raise TransportError("Session is closed", event=event)

        try:
            frame = encode_frame(event, *args)
        except (TypeError, ValueError) as e:
            raise TransportError(f"Cannot encode arguments: {e}", event=event) from e

        try:
            await self._connection.send(frame)
        except (ConnectionClosed, WebSocketException, OSError) as e:
            raise TransportError(str(e) or type(e).__name__, event=event) from e

        self._frames_sent += 1
        logger.trace(f"WS SEND: {frame[:200]}")

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True

        try:
            await self._connection.close()
        except (WebSocketException, OSError) as e:
            logger.debug(f"Error closing websocket: {e}")

        if self._reader is not None and self._reader is not asyncio.current_task():
            try:
                await asyncio.wait_for(self._reader, timeout=self._close_timeout)
            except asyncio.TimeoutError:
                self._reader.cancel()
            except asyncio.CancelledError:
                pass

    async def _read_loop(self) -> None:
        reason = "io client disconnect"
        try:
            async for raw in self._connection:
                self._frames_received += 1
                await self._handle_frame(raw)
        except ConnectionClosed as e:
            reason = f"transport close: {e}"
        except (WebSocketException, OSError) as e:
            logger.error(f"WS ERROR: Receive failed: {type(e).__name__}: {e}")
            await self._deliver(InboundEvents.ERROR, str(e))
            reason = "transport error"

        self._closed = True
        logger.debug(f"WS: Reader finished ({reason})")
        await self._deliver(InboundEvents.DISCONNECT, reason)

    async def _handle_frame(self, raw: Any) -> None:
        frame = decode_frame(raw)
        if frame is None:
            logger.warning(f"WS: Ignoring malformed frame: {str(raw)[:200]}")
            return

        event, args = frame['event'], frame['args']
        if event == InboundEvents.CONNECT and args and self._session_id is None:
            self._session_id = str(args[0])
        logger.trace(f"WS RECV: {event} {args!r:.200}")
        await self._deliver(event, *args)

    async def _deliver(self, event: str, *args: Any) -> None:
        handler = self._handlers.get(event)
        if handler is None:
            logger.debug(f"WS: No handler for event '{event}'")
            return

        try:
            result = handler(*args)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.error(f"WS ERROR: Handler for '{event}' failed: {type(e).__name__}: {e}")

    def get_metrics(self) -> Dict[str, Any]:
        return {
            'url': self._url,
            'session_id': self._session_id,
            'closed': self._closed,
            'frames_received': self._frames_received,
            'frames_sent': self._frames_sent,
        }


class WebSocketTransport(ITransport):
    """Opens ``WebSocketSession`` instances with ``websockets.connect``."""

    def __init__(self, connect_timeout: float = 10.0, max_message_size: int = 2**20) -> None:
        self._connect_timeout = connect_timeout
        self._max_message_size = max_message_size

    @staticmethod
    def build_url(url: str, query: Optional[Dict[str, str]] = None) -> str:
        if not query:
            return url
        separator = "&" if "?" in url else "?"
        return f"{url}{separator}{urlencode(query)}"

    async def connect(self, url: str, query: Optional[Dict[str, str]] = None) -> ISession:
        full_url = self.build_url(url, query)
        logger.debug(f"WS: Opening {full_url}")

        try:
            connection = await websockets.connect(
                full_url,
                open_timeout=self._connect_timeout,
                max_size=self._max_message_size,
            )
        except (WebSocketException, OSError, asyncio.TimeoutError) as e:
            raise TransportError(f"Cannot connect to {full_url}: {e}") from e

        session = WebSocketSession(connection, full_url)
        session.start()
        return session
