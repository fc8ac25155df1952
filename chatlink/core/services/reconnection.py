"""
Bounded, retried session establishment.

The manager never schedules itself. It runs once at startup and again
whenever the user forces a reconnect.
"""

import asyncio
from typing import Any, Dict, Optional
from urllib.parse import urlencode

from loguru import logger

from .connection_state import ConnectionState
from .event_router import EventRouter
from ..exceptions import ConnectionFailedError
from ..interfaces.transport import ISession, ITransport


class ReconnectionManager:
    """
    Establishes sessions with a fixed retry bound and inter-attempt delay.

    A new session replaces the previous handle in ``ConnectionState``; the
    previous one is closed first so handles never leak.
    """

    def __init__(
        self,
        state: ConnectionState,
        router: EventRouter,
        transport: ITransport,
        host: str = "127.0.0.1",
        port: int = 8000,
        path: str = "/socket.io/",
        scheme: str = "ws",
        max_attempts: int = 3,
        retry_delay: float = 2.0,
        confirm_timeout: float = 3.0
    ) -> None:
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")

        self._state = state
        self._router = router
        self._transport = transport
        self._host = host
        self._port = port
        self._path = path if path.startswith("/") else f"/{path}"
        self._scheme = scheme
        self._max_attempts = max_attempts
        self._retry_delay = retry_delay
        self._confirm_timeout = confirm_timeout
        self._lock = asyncio.Lock()

        self._attempts_total = 0
        self._successes = 0
        self._failures = 0

    @property
    def url(self) -> str:
        return f"{self._scheme}://{self._host}:{self._port}{self._path}"

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    def get_metrics(self) -> Dict[str, Any]:
        return {
            'attempts': self._attempts_total,
            'successes': self._successes,
            'failures': self._failures,
            'url': self.url,
        }

    async def connect(self) -> ISession:
        """
        Open a new session, retrying up to ``max_attempts`` times.

        Returns:
            The new session, already installed in the connection state

        Raises:
            ConnectionFailedError: When every attempt failed
        """
        async with self._lock:
            await self.close_session()

            query = {'username': self._state.username}
            logger.info(f"CONNECTION: Connecting to server at {self.url}?{urlencode(query)}")

            last_error: Optional[Exception] = None
            for attempt in range(1, self._max_attempts + 1):
                self._attempts_total += 1
                try:
                    session = await self._transport.connect(self.url, query)
                except Exception as e:
                    last_error = e
                    logger.warning(
                        f"CONNECTION ERROR: Attempt {attempt}/{self._max_attempts} failed: {e}")
                    if attempt < self._max_attempts:
                        await asyncio.sleep(self._retry_delay)
                    continue

                self._install(session)
                self._successes += 1
                logger.info(f"CONNECTION: Session established on attempt {attempt}")
                return session

            self._failures += 1
            logger.error(
                f"CONNECTION ERROR: Failed to connect after {self._max_attempts} attempts: {last_error}")
            self._state.add_connection_error(f"Reconnection failed: {last_error}")
            raise ConnectionFailedError(
                f"Failed to connect after {self._max_attempts} attempts: {last_error}",
                attempts=self._max_attempts
            ) from last_error

    def _install(self, session: ISession) -> None:
        # Install and bind with no await in between.
        self._state.set_client_id("")
        self._state.set_current_room("")
        self._state.set_session(session)
        self._router.bind(session)
        self._state.set_connected(True)

    async def reconnect(self, timeout: Optional[float] = None) -> bool:
        """
        Force a fresh session and wait for the server to confirm it.

        Returns:
            True if the server's connect event arrived within ``timeout``

        Raises:
            ConnectionFailedError: When no session could be opened
        """
        timeout = self._confirm_timeout if timeout is None else timeout
        confirmed = asyncio.Event()
        self._state.mark_reconnect_attempt()

        def on_confirmed(client_id: str) -> None:
            confirmed.set()

        self._router.add_connect_callback(on_confirmed)
        try:
            await self.connect()
            try:
                await asyncio.wait_for(confirmed.wait(), timeout=timeout)
            except asyncio.TimeoutError:
                logger.warning(f"FORCED RECONNECT: No connect confirmation after {timeout}s")
                self._state.add_connection_error(f"Forced reconnect timeout after {timeout:g}s")
                return False
            logger.info("FORCED RECONNECT: Successfully reconnected")
            return True
        finally:
            self._router.remove_connect_callback(on_confirmed)

    async def close_session(self) -> None:
        """Close the current session, if any, and mark the state disconnected."""
        session = self._state.session
        self._state.set_connected(False)
        if session is None:
            return

        self._state.set_session(None)
        try:
            await session.close()
            logger.info("CONNECTION: Previous session closed")
        except Exception as e:
            logger.warning(f"Error closing previous session: {e}")
