"""
Transport capability consumed by the client core.

The core never speaks the wire protocol itself. It asks an ``ITransport`` for
a session and then talks to that session through ``emit``/``on``/``close``.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional

EventHandler = Callable[..., Any]


class ISession(ABC):
    """An established bidirectional event session."""

    @property
    @abstractmethod
    def session_id(self) -> Optional[str]:
        """Transport level identifier of the session, if known."""
        pass

    @property
    @abstractmethod
    def closed(self) -> bool:
        """Whether the session has been closed."""
        pass

    @abstractmethod
    async def emit(self, event: str, *args: Any) -> None:
        """
        Send a named event with positional arguments.

        Raises:
            TransportError: If the event could not be sent
        """
        pass

    @abstractmethod
    def on(self, event: str, handler: EventHandler) -> None:
        """
        Register the handler for an inbound event name.

        Handlers may be plain callables or coroutine functions and receive the
        event arguments positionally. Registering again replaces the handler.
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close the session. Closing twice is a no-op."""
        pass


class ITransport(ABC):
    """Factory for sessions."""

    @abstractmethod
    async def connect(self, url: str, query: Optional[Dict[str, str]] = None) -> ISession:
        """
        Open a new session.

        Args:
            url: Server endpoint
            query: Query parameters sent with the handshake

        Raises:
            TransportError: If the session could not be opened
        """
        pass
