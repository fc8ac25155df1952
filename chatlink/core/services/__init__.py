"""
Core service implementations.

These services hold the client's connection state and drive it: inbound
event routing, periodic heartbeats, session (re)establishment and console
command dispatch.
"""

from .connection_state import ConnectionState, ConnectionSnapshot
from .event_router import EventRouter
from .heartbeat import HeartbeatSupervisor
from .reconnection import ReconnectionManager
from .command_dispatcher import CommandDispatcher
from .stats_reporter import StatsReporter

__all__ = [
    "ConnectionState",
    "ConnectionSnapshot",
    "EventRouter",
    "HeartbeatSupervisor",
    "ReconnectionManager",
    "CommandDispatcher",
    "StatsReporter",
]
