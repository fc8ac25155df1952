"""
Connection state record shared by every part of the client.

The command loop, the heartbeat supervisor and inbound event delivery all
read and write the same ``ConnectionState``. Every accessor takes the
instance lock for the whole read-modify-write, so no caller ever sees a
partially updated record.
"""

import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, List, Optional, Tuple

from loguru import logger

from ..interfaces.transport import ISession
from ...utils.formatting import format_clock, format_duration

DEFAULT_ERROR_HISTORY = 10


@dataclass(frozen=True)
class ConnectionSnapshot:
    """Consistent copy of every field, taken under one lock acquisition."""
    connected: bool
    has_session: bool
    session_id: Optional[str]
    username: str
    client_id: str
    current_room: str
    connection_started_at: Optional[float]
    last_activity_at: Optional[float]
    last_heartbeat_sent_at: Optional[float]
    last_heartbeat_received_at: Optional[float]
    last_received_at: Optional[float]
    last_reconnect_attempt_at: Optional[float]
    messages_sent: int
    messages_received: int
    heartbeats_sent: int
    heartbeats_received: int
    connection_errors: Tuple[str, ...]


class ConnectionState:
    """
    Thread-safe record of connection status, identity, activity timestamps,
    counters and a bounded error history.

    Timestamps are epoch seconds; ``None`` means the event never happened.
    """

    def __init__(
        self,
        username: str,
        error_history_size: int = DEFAULT_ERROR_HISTORY,
        clock: Callable[[], float] = time.time
    ) -> None:
        self._lock = threading.Lock()
        self._clock = clock

        self._connected = False
        self._session: Optional[ISession] = None
        self._username = username
        self._client_id = ""
        self._current_room = ""

        self._connection_started_at: Optional[float] = None
        self._last_activity_at: Optional[float] = clock()
        self._last_heartbeat_sent_at: Optional[float] = None
        self._last_heartbeat_received_at: Optional[float] = None
        self._last_received_at: Optional[float] = None
        self._last_reconnect_attempt_at: Optional[float] = None

        self._messages_sent = 0
        self._messages_received = 0
        self._heartbeats_sent = 0
        self._heartbeats_received = 0

        self._connection_errors: Deque[str] = deque(maxlen=max(1, error_history_size))

    # Connection status

    def is_connected(self) -> bool:
        with self._lock:
            return self._connected

    def is_live(self) -> bool:
        """Connected and holding a session handle."""
        with self._lock:
            return self._connected and self._session is not None

    def set_connected(self, connected: bool) -> None:
        """
        Update the connection flag.

        Only a real transition has side effects: entering the connected state
        stamps ``connection_started_at``, leaving it logs the session length.
        Room membership is left untouched.
        """
        with self._lock:
            was_connected = self._connected
            if connected == was_connected:
                return

            self._connected = connected
            now = self._clock()
            if connected:
                self._connection_started_at = now
                logger.info(f"CONNECTION STATE: Connected at {format_clock(now)}")
            else:
                started = self._connection_started_at if self._connection_started_at is not None else now
                logger.info(f"CONNECTION STATE: Disconnected after {format_duration(now - started)}")

    # Session handle

    @property
    def session(self) -> Optional[ISession]:
        with self._lock:
            return self._session

    def set_session(self, session: Optional[ISession]) -> None:
        """Replace the session handle wholesale."""
        with self._lock:
            self._session = session

    # Identity

    @property
    def username(self) -> str:
        with self._lock:
            return self._username

    def set_username(self, username: str) -> None:
        with self._lock:
            self._username = username

    @property
    def client_id(self) -> str:
        with self._lock:
            return self._client_id

    def set_client_id(self, client_id: str) -> None:
        with self._lock:
            self._client_id = client_id

    @property
    def current_room(self) -> str:
        with self._lock:
            return self._current_room

    def set_current_room(self, room: str) -> None:
        with self._lock:
            self._current_room = room

    def clear_current_room_if(self, room: str) -> bool:
        """Clear the current room only if it is ``room``. Returns whether it was cleared."""
        with self._lock:
            if self._current_room and self._current_room == room:
                self._current_room = ""
                return True
            return False

    # Activity tracking

    @property
    def connection_started_at(self) -> Optional[float]:
        with self._lock:
            return self._connection_started_at

    @property
    def last_activity_at(self) -> Optional[float]:
        with self._lock:
            return self._last_activity_at

    def update_activity(self) -> None:
        with self._lock:
            self._last_activity_at = self._clock()

    def track_message_sent(self) -> None:
        with self._lock:
            self._messages_sent += 1
            self._last_activity_at = self._clock()

    def track_message_received(self) -> None:
        with self._lock:
            now = self._clock()
            self._messages_received += 1
            self._last_activity_at = now
            self._last_received_at = now

    def track_heartbeat_sent(self) -> None:
        with self._lock:
            now = self._clock()
            self._heartbeats_sent += 1
            self._last_heartbeat_sent_at = now
            self._last_activity_at = now

    def track_heartbeat_received(self) -> None:
        with self._lock:
            now = self._clock()
            self._heartbeats_received += 1
            self._last_heartbeat_received_at = now
            self._last_activity_at = now
            self._last_received_at = now

    def seconds_since_server_activity(self) -> float:
        """
        Time since the server was last heard from.

        Falls back to the start of the current connection when nothing has
        been received yet, and to zero when never connected.
        """
        with self._lock:
            now = self._clock()
            reference = self._last_received_at
            if self._connection_started_at is not None:
                if reference is None or self._connection_started_at > reference:
                    reference = self._connection_started_at
            if reference is None:
                return 0.0
            return max(0.0, now - reference)

    def mark_reconnect_attempt(self) -> None:
        with self._lock:
            self._last_reconnect_attempt_at = self._clock()

    # Error history

    def add_connection_error(self, message: str) -> None:
        """Record an error with a wall-clock prefix; the oldest entry is evicted at capacity."""
        with self._lock:
            self._connection_errors.append(f"[{format_clock(self._clock())}] {message}")

    def get_connection_errors(self) -> List[str]:
        with self._lock:
            return list(self._connection_errors)

    # Reporting

    def snapshot(self) -> ConnectionSnapshot:
        with self._lock:
            return ConnectionSnapshot(
                connected=self._connected,
                has_session=self._session is not None,
                session_id=self._session.session_id if self._session is not None else None,
                username=self._username,
                client_id=self._client_id,
                current_room=self._current_room,
                connection_started_at=self._connection_started_at,
                last_activity_at=self._last_activity_at,
                last_heartbeat_sent_at=self._last_heartbeat_sent_at,
                last_heartbeat_received_at=self._last_heartbeat_received_at,
                last_received_at=self._last_received_at,
                last_reconnect_attempt_at=self._last_reconnect_attempt_at,
                messages_sent=self._messages_sent,
                messages_received=self._messages_received,
                heartbeats_sent=self._heartbeats_sent,
                heartbeats_received=self._heartbeats_received,
                connection_errors=tuple(self._connection_errors),
            )

    def get_stats(self) -> str:
        """
        Single-line statistics report.

        The field order is fixed; log collectors parse this line.
        """
        with self._lock:
            now = self._clock()

            if self._connected:
                status = "Connected"
                started = self._connection_started_at if self._connection_started_at is not None else now
                duration = format_duration(now - started)
            else:
                status = "Disconnected"
                duration = "0s"
                if self._connection_started_at is not None and self._last_activity_at is not None:
                    duration = format_duration(self._last_activity_at - self._connection_started_at)

            since_sent = "Never"
            if self._last_heartbeat_sent_at is not None:
                since_sent = format_duration(now - self._last_heartbeat_sent_at)

            since_received = "Never"
            if self._last_heartbeat_received_at is not None:
                since_received = format_duration(now - self._last_heartbeat_received_at)

            reconnect_info = ""
            if self._last_reconnect_attempt_at is not None:
                reconnect_info = (
                    f", Last reconnect attempt: "
                    f"{format_duration(now - self._last_reconnect_attempt_at)} ago"
                )

            return (
                f"Status: {status}, Duration: {duration}, Client ID: {self._client_id}, "
                f"Username: {self._username}, "
                f"Messages Sent: {self._messages_sent}, Messages Received: {self._messages_received}, "
                f"Heartbeats Sent: {self._heartbeats_sent}, Heartbeats Received: {self._heartbeats_received}, "
                f"Time Since Last Heartbeat Sent: {since_sent}, "
                f"Time Since Last Heartbeat Received: {since_received}{reconnect_info}"
            )
