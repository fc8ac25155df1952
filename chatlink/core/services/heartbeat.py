"""
Application-level heartbeat supervisor.

A single repeating task probes the active session every ``interval`` seconds
and flags suspected server silence. Staleness is advisory: it is recorded in
the error history but never tears the session down.
"""

import asyncio
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from loguru import logger

from .connection_state import ConnectionState
from ..domain.events import OutboundEvents, heartbeat_payload
from ..exceptions import TransportError
from ..interfaces.lifecycle import IComponent
from ...utils.formatting import format_duration


class HeartbeatSupervisor(IComponent):
    """
    Periodic liveness probe over the active session.

    ``tick`` performs exactly one probe; the background task simply calls it
    once per period until ``stop`` is awaited.
    """

    def __init__(
        self,
        state: ConnectionState,
        interval: float = 20.0,
        stale_threshold: float = 120.0
    ) -> None:
        if interval <= 0:
            raise ValueError(f"Heartbeat interval must be positive, got {interval}")

        self._state = state
        self._interval = interval
        self._stale_threshold = stale_threshold
        self._task: Optional[asyncio.Task[None]] = None
        self._stop_event = asyncio.Event()
        self._ticks = 0
        self._failures = 0
        self._stale_warnings = 0

    @property
    def name(self) -> str:
        return "HeartbeatSupervisor"

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def interval(self) -> float:
        return self._interval

    async def start(self) -> None:
        """Start the heartbeat loop."""
        if self.is_running:
            return

        logger.info(f"HEARTBEAT: Starting heartbeat supervisor (interval {self._interval}s)")
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._run(), name="heartbeat-supervisor")

    async def stop(self) -> None:
        """Stop the heartbeat loop and wait for it to finish."""
        if self._task is None:
            return

        self._stop_event.set()
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("HEARTBEAT: Heartbeat supervisor stopped")

    async def check_health(self) -> Dict[str, Any]:
        return {
            'healthy': self.is_running,
            'status': 'running' if self.is_running else 'stopped',
            'details': {
                'interval': self._interval,
                'stale_threshold': self._stale_threshold,
                'ticks': self._ticks,
                'failures': self._failures,
                'stale_warnings': self._stale_warnings,
                'seconds_since_server_activity': self._state.seconds_since_server_activity(),
            }
        }

    async def _run(self) -> None:
        while not self._stop_event.is_set():
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self._interval)
                break
            except asyncio.TimeoutError:
                pass

            try:
                await self.tick()
            except Exception as e:
                # A broken tick must never end the loop.
                logger.error(f"HEARTBEAT ERROR: Unexpected failure during tick: {type(e).__name__}: {e}")

    async def tick(self) -> bool:
        """
        Run one heartbeat iteration.

        Returns:
            True if a heartbeat was emitted
        """
        self._ticks += 1
        session = self._state.session

        if not self._state.is_connected() or session is None:
            logger.debug("HEARTBEAT: Skipping heartbeat - not connected")
            return False

        client_id = self._state.client_id
        if not client_id:
            logger.debug("HEARTBEAT: Skipping heartbeat - no client ID set yet")
            return False

        silence = self._state.seconds_since_server_activity()
        logger.debug(
            f"HEARTBEAT: Sending heartbeat... (Time since last server response: {format_duration(silence)})")

        sent = False
        payload = heartbeat_payload(
            client_id=client_id,
            username=self._state.username,
            timestamp=datetime.now(timezone.utc).isoformat(),
        )
        try:
            await session.emit(OutboundEvents.CLIENT_HEARTBEAT, payload)
            self._state.track_heartbeat_sent()
            sent = True
        except TransportError as e:
            self._failures += 1
            logger.warning(f"HEARTBEAT ERROR: Failed to send heartbeat: {e}")
            self._state.add_connection_error(f"Heartbeat send failed: {e}")

        if silence > self._stale_threshold:
            self._stale_warnings += 1
            logger.warning(f"HEARTBEAT WARNING: No server response in {format_duration(silence)}!")
            self._state.add_connection_error(f"No heartbeat response in {format_duration(silence)}")

        return sent
