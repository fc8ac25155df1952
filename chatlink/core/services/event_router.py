"""
Inbound event routing.

The router owns the table of inbound event names and their handlers. Handlers
update the shared ``ConnectionState`` and render a line for the user; they
never block. Apart from the handshake sent when the server confirms the
connection, the router never emits anything on its own.
"""

import inspect
from typing import Any, Callable, Dict, List, Optional

import typer
from loguru import logger

from .connection_state import ConnectionState
from ..domain.events import (
    ChatMessage,
    ChatUser,
    InboundEvents,
    OutboundEvents,
    RoomInfo,
    describe_error,
)
from ..exceptions import TransportError
from ..interfaces.transport import ISession

OutputFn = Callable[[str], None]


class EventRouter:
    """
    Binds inbound event names to handlers on a session.

    ``dispatch`` is the single entry point: callbacks registered on a session
    by ``bind`` funnel through it, and tests call it directly.
    """

    def __init__(
        self,
        state: ConnectionState,
        output: Optional[OutputFn] = None,
        greeting: Optional[str] = None
    ) -> None:
        self._state = state
        self._output = output or typer.echo
        self._greeting = greeting
        self._connect_callbacks: List[Callable[[str], None]] = []

        self._handlers: Dict[str, Callable[..., Any]] = {
            InboundEvents.CONNECT: self._on_connect,
            InboundEvents.DISCONNECT: self._on_disconnect,
            InboundEvents.ERROR: self._on_error,
            InboundEvents.CHAT_MESSAGE: self._on_chat_message,
            InboundEvents.GLOBAL_MESSAGE: self._on_global_message,
            InboundEvents.GROUP_MESSAGE: self._on_group_message,
            InboundEvents.GUILD_MESSAGE: self._on_guild_message,
            InboundEvents.PRIVATE_MESSAGE: self._on_private_message,
            InboundEvents.SERVER_HEARTBEAT: self._on_heartbeat_response,
            InboundEvents.PONG: self._on_heartbeat_response,
            InboundEvents.ROOM_JOINED: self._on_room_joined,
            InboundEvents.ROOM_LEFT: self._on_room_left,
            InboundEvents.ROOM_CREATED: self._on_room_created,
            InboundEvents.ROOMS_LIST: self._on_rooms_list,
            InboundEvents.USER_JOINED: self._on_user_joined,
            InboundEvents.USER_LEFT: self._on_user_left,
            InboundEvents.USERNAME_UPDATED: self._on_username_updated,
            InboundEvents.USERNAME_SUGGESTION: self._on_username_suggestion,
            InboundEvents.TEST_EVENT: self._on_test_event,
            InboundEvents.CONNECTION_STATUS: self._on_connection_status,
            InboundEvents.RATE_LIMIT_WARNING: self._on_rate_limit_warning,
            InboundEvents.SERVER_ERROR: self._on_server_error,
            InboundEvents.AUTHENTICATION_REQUIRED: self._on_authentication_required,
            InboundEvents.AUTHENTICATION_SUCCESS: self._on_authentication_success,
            InboundEvents.AUTHENTICATION_FAILED: self._on_authentication_failed,
        }

    def add_connect_callback(self, callback: Callable[[str], None]) -> None:
        """Register a callback invoked with the client id once the server confirms a connection."""
        if callback not in self._connect_callbacks:
            self._connect_callbacks.append(callback)

    def remove_connect_callback(self, callback: Callable[[str], None]) -> None:
        if callback in self._connect_callbacks:
            self._connect_callbacks.remove(callback)

    @property
    def event_names(self) -> List[str]:
        """Names of all bound inbound events."""
        return list(self._handlers)

    def bind(self, session: ISession) -> None:
        """Register a callback for every known event on ``session``."""
        for event in self._handlers:
            session.on(event, self._make_callback(session, event))
        logger.debug(f"Bound {len(self._handlers)} event handlers to session {session.session_id}")

    def _make_callback(self, session: ISession, event: str) -> Callable[..., Any]:
        async def callback(*args: Any) -> None:
            if self._state.session is not session:
                logger.debug(f"Ignoring '{event}' from an inactive session")
                return
            await self.dispatch(event, *args, session=session)
        return callback

    async def dispatch(self, event: str, *args: Any, session: Optional[ISession] = None) -> bool:
        """
        Route one inbound event to its handler.

        Returns:
            True if a handler was found, False for unknown events
        """
        handler = self._handlers.get(event)
        if handler is None:
            logger.debug(f"No handler for event: {event}")
            return False

        try:
            if event == InboundEvents.CONNECT:
                result = handler(*args, session=session)
            else:
                result = handler(*args)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.error(f"Handler error for event {event}: {type(e).__name__}: {e}")
        return True

    # Connection lifecycle

    async def _on_connect(self, client_id: Any = None, *_: Any,
                          session: Optional[ISession] = None) -> None:
        session = session or self._state.session
        identity = str(client_id) if client_id else (session.session_id if session else None) or ""

        logger.info(f"CONNECTION EVENT: Connected successfully to server with client ID: {identity}")
        self._state.set_client_id(identity)
        self._state.set_connected(True)
        self._output(f"✅ Connected to server (client ID: {identity})")

        if session is not None:
            await self._send_handshake(session)

        for callback in list(self._connect_callbacks):
            try:
                callback(identity)
            except Exception as e:
                logger.error(f"Connect callback error: {e}")

    async def _send_handshake(self, session: ISession) -> None:
        username = self._state.username
        logger.info(f"CONNECTION EVENT: Setting username to: {username}")
        try:
            await session.emit(OutboundEvents.SET_USERNAME, username)
            self._state.track_message_sent()

            if self._greeting:
                logger.debug("CONNECTION EVENT: Sending greeting to global chat")
                await session.emit(OutboundEvents.GLOBAL_MESSAGE, self._greeting)
                self._state.track_message_sent()
        except TransportError as e:
            logger.warning(f"Handshake emission failed: {e}")
            self._state.add_connection_error(f"Handshake failed: {e}")

    def _on_disconnect(self, *_: Any) -> None:
        client_id = self._state.client_id
        logger.info(f"DISCONNECTION EVENT: Disconnected from server. Client ID: {client_id}")

        if self._state.is_connected():
            logger.warning("DISCONNECTION CONTEXT: Unexpected disconnection - client was previously connected")
            self._state.add_connection_error(f"Unexpected disconnection from {client_id}")
            self._output("⚠️ Disconnected from server. Use /forcereconnect to reconnect")
        else:
            logger.debug("DISCONNECTION CONTEXT: Expected disconnection - client was already marked as disconnected")

        self._state.set_connected(False)

    def _on_error(self, error: Any = None, *_: Any) -> None:
        description = describe_error(error) or "unknown error"
        logger.error(f"SOCKET ERROR: Client {self._state.client_id} experienced error: {description}")
        self._state.add_connection_error(f"Socket error: {description}")

    # Messages

    def _render_message(self, label: str, message: ChatMessage) -> None:
        self._state.track_message_received()
        self._output(f"{label} {message.sender or 'unknown'}: {message.content}")

    def _on_chat_message(self, payload: Any = None, *_: Any) -> None:
        message = ChatMessage.from_payload(payload)
        logger.debug(f"RECEIVED MESSAGE: [{message.type}] {message.sender}: {message.content} (ID: {message.id})")
        self._render_message(f"📥 [{message.type or 'CHAT'}]", message)

    def _on_global_message(self, payload: Any = None, *_: Any) -> None:
        self._render_message("🌐 [GLOBAL]", ChatMessage.from_payload(payload))

    def _on_group_message(self, payload: Any = None, *_: Any) -> None:
        message = ChatMessage.from_payload(payload)
        self._render_message(f"👥 [GROUP:{message.type}]", message)

    def _on_guild_message(self, payload: Any = None, *_: Any) -> None:
        message = ChatMessage.from_payload(payload)
        self._render_message(f"🏰 [GUILD:{message.type}]", message)

    def _on_private_message(self, payload: Any = None, *_: Any) -> None:
        self._render_message("🔒 [PRIVATE]", ChatMessage.from_payload(payload))

    def _on_test_event(self, payload: Any = None, *_: Any) -> None:
        logger.info(f"TEST EVENT RECEIVED: {payload}")
        self._state.track_message_received()
        self._output(f"🧪 Test event: {payload}")

    # Heartbeats

    def _on_heartbeat_response(self, payload: Any = None, *_: Any) -> None:
        logger.debug(f"RECEIVED HEARTBEAT: {payload}")
        self._state.track_heartbeat_received()

    # Rooms

    def _on_room_joined(self, room: Any = None, *_: Any) -> None:
        info = RoomInfo.from_payload(room)
        if not info.id:
            logger.warning(f"room_joined without a room id: {room}")
            return
        self._state.set_current_room(info.id)
        logger.info(f"ROOM: Joined room {info.id}")
        self._output(f"🚪 Joined room: {info.display_name}")

    def _on_room_left(self, room: Any = None, *_: Any) -> None:
        info = RoomInfo.from_payload(room)
        cleared = self._state.clear_current_room_if(info.id)
        logger.info(f"ROOM: Left room {info.id} (current room cleared: {cleared})")
        self._output(f"🚶 Left room: {info.display_name}")

    def _on_room_created(self, room: Any = None, *_: Any) -> None:
        info = RoomInfo.from_payload(room)
        logger.info(f"ROOM CREATED: {info.name} (ID: {info.id}, Type: {info.type}, Members: {info.members})")
        self._state.track_message_received()
        self._output(f"🚪 Room Created: {info.name} (ID: {info.id}, Type: {info.type})")

    def _on_rooms_list(self, rooms: Any = None, *_: Any) -> None:
        entries = rooms if isinstance(rooms, list) else []
        logger.info(f"ROOMS LIST: Received list of {len(entries)} rooms")
        self._state.track_message_received()

        self._output("📋 Available Rooms:")
        if not entries:
            self._output("  (none)")
        for i, entry in enumerate(entries, start=1):
            info = RoomInfo.from_payload(entry)
            self._output(
                f"  {i}. {info.display_name} (ID: {info.id}, Type: {info.type}, Members: {len(info.members)})")

    def _on_user_joined(self, user: Any = None, *_: Any) -> None:
        info = ChatUser.from_payload(user)
        self._state.track_message_received()
        self._output(f"👤 {info.username} joined the room")

    def _on_user_left(self, user: Any = None, *_: Any) -> None:
        info = ChatUser.from_payload(user)
        self._state.track_message_received()
        self._output(f"🚶 {info.username} left the room")

    # Identity

    def _on_username_updated(self, user: Any = None, *_: Any) -> None:
        info = ChatUser.from_payload(user)
        logger.info(f"USERNAME UPDATED: {self._state.username} -> {info.username} (User ID: {info.id})")
        if info.username:
            self._state.set_username(info.username)
        self._state.track_message_received()
        self._output(f"🏷️ Username is now: {info.username}")

    def _on_username_suggestion(self, suggestion: Any = None, *_: Any) -> None:
        self._output(f"🏷️ Suggested Username: {suggestion}")

    def _on_connection_status(self, status: Any = None, *_: Any) -> None:
        logger.info(f"CONNECTION STATUS: {status}")
        self._output("🔗 Connection Status:")
        if isinstance(status, dict):
            for key, value in status.items():
                self._output(f"  {key}: {value}")
        else:
            self._output(f"  {status}")

    # Server notifications

    def _on_rate_limit_warning(self, warning: Any = None, *_: Any) -> None:
        text = describe_error(warning) or ""
        logger.warning(f"RATE LIMIT WARNING: {text}")
        self._state.add_connection_error(f"Rate limit warning: {text}")
        self._output(f"⚠️ Rate Limit Warning: {text}")

    def _on_server_error(self, error: Any = None, *_: Any) -> None:
        text = describe_error(error) or ""
        logger.error(f"SERVER ERROR: {text}")
        self._state.add_connection_error(f"Server error: {text}")
        self._state.track_message_received()
        self._output(f"❌ Server Error: {text}")

    # Authentication notices

    def _on_authentication_required(self, *_: Any) -> None:
        logger.info("AUTHENTICATION REQUIRED")
        self._output("🔐 Authentication is required to continue")

    def _on_authentication_success(self, *_: Any) -> None:
        logger.info("AUTHENTICATION SUCCESSFUL")
        self._output("🔓 Authentication successful")

    def _on_authentication_failed(self, reason: Any = None, *_: Any) -> None:
        text = describe_error(reason) or ""
        logger.warning(f"AUTHENTICATION FAILED: {text}")
        self._state.add_connection_error(f"Authentication failed: {text}")
        self._output(f"❌ Authentication failed: {text}")
