"""
Shared fixtures: an in-memory transport and a controllable clock.
"""

import asyncio
import inspect
from typing import Any, Dict, List, Optional, Tuple

import pytest

from chatlink.core.exceptions import TransportError
from chatlink.core.interfaces.transport import EventHandler, ISession, ITransport
from chatlink.core.services.connection_state import ConnectionState


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: float = 1_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeSession(ISession):
    """Records emitted events and lets tests fire inbound ones."""

    def __init__(self, session_id: Optional[str] = "sid-1") -> None:
        self._session_id = session_id
        self._closed = False
        self.handlers: Dict[str, EventHandler] = {}
        self.emitted: List[Tuple[str, Tuple[Any, ...]]] = []
        self.fail_all = False
        self.close_calls = 0

    @property
    def session_id(self) -> Optional[str]:
        return self._session_id

    @property
    def closed(self) -> bool:
        return self._closed

    async def emit(self, event: str, *args: Any) -> None:
        if self._closed:
            raise TransportError("Session is closed", event=event)
        if self.fail_all:
            raise TransportError("broken pipe", event=event)
        self.emitted.append((event, args))

    def on(self, event: str, handler: EventHandler) -> None:
        self.handlers[event] = handler

    async def close(self) -> None:
        self.close_calls += 1
        self._closed = True

    async def fire(self, event: str, *args: Any) -> None:
        result = self.handlers[event](*args)
        if inspect.isawaitable(result):
            await result

    def events(self) -> List[str]:
        return [event for event, _ in self.emitted]


class FakeTransport(ITransport):
    """
    Hands out ``FakeSession`` objects.

    ``failures`` connection attempts fail before one succeeds. When
    ``confirm_with`` is set, every new session fires ``connect`` with that id
    right after it is handed out, as a real server would.
    """

    def __init__(self, failures: int = 0, confirm_with: Optional[str] = None) -> None:
        self.failures = failures
        self.confirm_with = confirm_with
        self.calls: List[Tuple[str, Optional[Dict[str, str]]]] = []
        self.sessions: List[FakeSession] = []
        self.errors: List[TransportError] = []

    async def connect(self, url: str, query: Optional[Dict[str, str]] = None) -> ISession:
        self.calls.append((url, query))
        if self.failures > 0:
            self.failures -= 1
            error = TransportError(f"connection refused #{len(self.calls)}")
            self.errors.append(error)
            raise error

        session = FakeSession(session_id=f"sid-{len(self.sessions) + 1}")
        self.sessions.append(session)
        if self.confirm_with is not None:
            asyncio.get_running_loop().create_task(session.fire("connect", self.confirm_with))
        return session


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def state(clock: FakeClock) -> ConnectionState:
    return ConnectionState(username="alice", clock=clock)


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def live_state(state: ConnectionState, session: FakeSession) -> ConnectionState:
    """State holding a connected session with a confirmed client id."""
    state.set_session(session)
    state.set_connected(True)
    state.set_client_id("cid-1")
    return state


@pytest.fixture
def output() -> List[str]:
    return []
