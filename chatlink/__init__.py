"""
ChatLink - interactive console client for a real-time chat server.

The client keeps a resilient session to the server, routes server events
to the console, and turns typed commands into protocol events.
"""

__version__ = "0.1.0"

from .core.interfaces.lifecycle import IStartable, IStoppable, IHealthCheckable, IComponent
from .core.interfaces.transport import ISession, ITransport
from .core.services.connection_state import ConnectionState
from .core.services.command_dispatcher import CommandDispatcher
from .application.startup import ChatClientApplication

__all__ = [
    "IStartable",
    "IStoppable",
    "IHealthCheckable",
    "IComponent",
    "ISession",
    "ITransport",
    "ConnectionState",
    "CommandDispatcher",
    "ChatClientApplication",
]
