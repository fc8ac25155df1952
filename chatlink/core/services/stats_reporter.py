"""
Periodic statistics reporting.
"""

import asyncio
from typing import Any, Dict, Optional

from loguru import logger

from .connection_state import ConnectionState
from ..interfaces.lifecycle import IComponent


class StatsReporter(IComponent):
    """Logs a ``get_stats()`` snapshot every ``interval`` seconds. Never mutates state."""

    def __init__(self, state: ConnectionState, interval: float = 60.0) -> None:
        if interval <= 0:
            raise ValueError(f"Stats interval must be positive, got {interval}")

        self._state = state
        self._interval = interval
        self._task: Optional[asyncio.Task[None]] = None
        self._reports = 0

    @property
    def name(self) -> str:
        return "StatsReporter"

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self.is_running:
            return

        logger.info("STATS: Starting periodic stats reporting")
        self._task = asyncio.create_task(self._run(), name="stats-reporter")

    async def stop(self) -> None:
        if self._task is None:
            return

        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("STATS: Stats reporting stopped")

    async def check_health(self) -> Dict[str, Any]:
        return {
            'healthy': self.is_running,
            'status': 'running' if self.is_running else 'stopped',
            'details': {
                'interval': self._interval,
                'reports': self._reports,
            }
        }

    def report(self) -> str:
        """Log one snapshot and return it."""
        stats = self._state.get_stats()
        self._reports += 1
        logger.info(f"CLIENT STATS: {stats}")
        return stats

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            self.report()
