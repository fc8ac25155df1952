"""
Domain models: event names, payload types and command results.
"""

from .events import (
    InboundEvents,
    OutboundEvents,
    ROOM_TYPES,
    ChatMessage,
    ChatUser,
    RoomInfo,
    heartbeat_payload,
)
from .commands import CommandResult, CommandStatus

__all__ = [
    "InboundEvents",
    "OutboundEvents",
    "ROOM_TYPES",
    "ChatMessage",
    "ChatUser",
    "RoomInfo",
    "heartbeat_payload",
    "CommandResult",
    "CommandStatus",
]
