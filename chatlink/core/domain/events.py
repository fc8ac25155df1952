"""
Event names and payload models exchanged with the chat server.

Inbound payloads arrive as loosely structured JSON values. The ``from_payload``
constructors accept dictionaries with missing keys as well as bare strings so
that a malformed frame degrades to a readable line instead of an exception.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


class InboundEvents:
    """Constants for events delivered by the server."""

    CONNECT = "connect"
    DISCONNECT = "disconnect"
    ERROR = "error"

    CHAT_MESSAGE = "chat_message"
    GLOBAL_MESSAGE = "global_message"
    GROUP_MESSAGE = "group_message"
    GUILD_MESSAGE = "guild_message"
    PRIVATE_MESSAGE = "private_message"

    SERVER_HEARTBEAT = "server_heartbeat"
    PONG = "pong"

    ROOM_JOINED = "room_joined"
    ROOM_LEFT = "room_left"
    ROOM_CREATED = "room_created"
    ROOMS_LIST = "rooms_list"
    USER_JOINED = "user_joined"
    USER_LEFT = "user_left"

    USERNAME_UPDATED = "username_updated"
    USERNAME_SUGGESTION = "username_suggestion"
    TEST_EVENT = "test_event"
    CONNECTION_STATUS = "connection_status"

    RATE_LIMIT_WARNING = "rate_limit_warning"
    SERVER_ERROR = "server_error"

    AUTHENTICATION_REQUIRED = "authentication_required"
    AUTHENTICATION_SUCCESS = "authentication_success"
    AUTHENTICATION_FAILED = "authentication_failed"


class OutboundEvents:
    """Constants for events sent by the client."""

    SET_USERNAME = "set_username"
    GLOBAL_MESSAGE = "global_message"
    GROUP_MESSAGE = "group_message"
    GUILD_MESSAGE = "guild_message"
    PRIVATE_MESSAGE = "private_message"
    CREATE_ROOM = "create_room"
    JOIN_ROOM = "join_room"
    LEAVE_ROOM = "leave_room"
    GET_ROOMS = "get_rooms"
    PING = "ping"
    TEST_EVENT = "test_event"
    CLIENT_HEARTBEAT = "client_heartbeat"


ROOM_TYPES = ("group", "guild")


def _text(value: Any) -> str:
    return "" if value is None else str(value)


@dataclass(frozen=True)
class ChatMessage:
    """A chat message addressed to a room, a user or the global scope."""

    content: str
    sender: str = ""
    type: str = ""
    id: str = ""
    timestamp: str = ""

    @classmethod
    def from_payload(cls, payload: Any) -> 'ChatMessage':
        if isinstance(payload, dict):
            return cls(
                content=_text(payload.get('content', payload.get('message'))),
                sender=_text(payload.get('sender', payload.get('username'))),
                type=_text(payload.get('type')),
                id=_text(payload.get('id')),
                timestamp=_text(payload.get('timestamp')),
            )
        return cls(content=_text(payload))


@dataclass(frozen=True)
class ChatUser:
    """A user as described by the server."""

    username: str
    id: str = ""
    avatar: str = ""

    @classmethod
    def from_payload(cls, payload: Any) -> 'ChatUser':
        if isinstance(payload, dict):
            return cls(
                username=_text(payload.get('username')),
                id=_text(payload.get('id')),
                avatar=_text(payload.get('avatar')),
            )
        return cls(username=_text(payload))


@dataclass(frozen=True)
class RoomInfo:
    """A group or guild room."""

    id: str
    name: str = ""
    type: str = ""
    created_at: str = ""
    members: List[str] = field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: Any) -> 'RoomInfo':
        if isinstance(payload, dict):
            members = payload.get('members') or []
            return cls(
                id=_text(payload.get('id', payload.get('roomId'))),
                name=_text(payload.get('name')),
                type=_text(payload.get('type')),
                created_at=_text(payload.get('created_at')),
                members=[_text(m) for m in members] if isinstance(members, list) else [],
            )
        return cls(id=_text(payload))

    @property
    def display_name(self) -> str:
        return self.name or self.id


def heartbeat_payload(client_id: str, username: str, timestamp: str,
                      manual: bool = False) -> Dict[str, Any]:
    """Build the identity-bearing payload of a ``client_heartbeat`` event."""
    kind = "Manual heartbeat" if manual else "Heartbeat"
    return {
        'client_id': client_id,
        'username': username,
        'timestamp': timestamp,
        'message': f"{kind} from {username or client_id} at {timestamp}",
    }


def describe_error(error: Any) -> Optional[str]:
    """Extract a readable description from an error payload."""
    if error is None:
        return None
    if isinstance(error, dict):
        return _text(error.get('message') or error.get('error') or error)
    return _text(error)
