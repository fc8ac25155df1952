"""
Tests for periodic statistics reporting.
"""

import asyncio
from unittest.mock import Mock, patch

import pytest

from chatlink.core.services.connection_state import ConnectionState
from chatlink.core.services.stats_reporter import StatsReporter


class TestStatsReporter:
    """Stats logging task."""

    @patch('chatlink.core.services.stats_reporter.logger')
    def test_report_logs_stats(self, mock_logger: Mock, state: ConnectionState) -> None:
        reporter = StatsReporter(state)

        stats = reporter.report()

        assert stats == state.get_stats()
        mock_logger.info.assert_called_once_with(f"CLIENT STATS: {stats}")

    def test_report_does_not_mutate_state(self, state: ConnectionState) -> None:
        before = state.snapshot()

        StatsReporter(state).report()

        assert state.snapshot() == before

    def test_invalid_interval(self, state: ConnectionState) -> None:
        with pytest.raises(ValueError):
            StatsReporter(state, interval=-1)

    @pytest.mark.asyncio
    async def test_periodic_reporting(self, state: ConnectionState) -> None:
        reporter = StatsReporter(state, interval=0.01)

        await reporter.start()
        await asyncio.sleep(0.1)
        await reporter.stop()

        health = await reporter.check_health()
        assert health['details']['reports'] >= 1
        assert reporter.is_running is False
