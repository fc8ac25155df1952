"""
Tests for the heartbeat supervisor.
"""

import asyncio

import pytest

from chatlink.core.domain.events import OutboundEvents
from chatlink.core.services.connection_state import ConnectionState
from chatlink.core.services.heartbeat import HeartbeatSupervisor

from conftest import FakeClock, FakeSession


class TestHeartbeatTick:
    """Single heartbeat iterations."""

    @pytest.mark.asyncio
    async def test_tick_sends_one_heartbeat(self, live_state: ConnectionState, session: FakeSession) -> None:
        supervisor = HeartbeatSupervisor(live_state)

        sent = await supervisor.tick()

        assert sent is True
        assert live_state.snapshot().heartbeats_sent == 1
        assert live_state.snapshot().messages_sent == 0

        event, args = session.emitted[0]
        assert event == OutboundEvents.CLIENT_HEARTBEAT
        payload = args[0]
        assert payload['client_id'] == "cid-1"
        assert payload['username'] == "alice"
        assert payload['message'].startswith("Heartbeat from alice at ")

    @pytest.mark.asyncio
    async def test_tick_uses_latest_username(self, live_state: ConnectionState, session: FakeSession) -> None:
        supervisor = HeartbeatSupervisor(live_state)
        live_state.set_username("bob")

        await supervisor.tick()

        assert session.emitted[0][1][0]['username'] == "bob"

    @pytest.mark.asyncio
    async def test_tick_skips_when_disconnected(self, state: ConnectionState, session: FakeSession) -> None:
        state.set_session(session)
        supervisor = HeartbeatSupervisor(state)

        assert await supervisor.tick() is False
        assert session.emitted == []
        assert state.snapshot().heartbeats_sent == 0

    @pytest.mark.asyncio
    async def test_tick_skips_without_client_id(self, live_state: ConnectionState, session: FakeSession) -> None:
        live_state.set_client_id("")
        supervisor = HeartbeatSupervisor(live_state)

        assert await supervisor.tick() is False
        assert session.emitted == []

    @pytest.mark.asyncio
    async def test_send_failure_is_recorded(self, live_state: ConnectionState, session: FakeSession) -> None:
        session.fail_all = True
        supervisor = HeartbeatSupervisor(live_state)

        assert await supervisor.tick() is False
        assert live_state.snapshot().heartbeats_sent == 0
        assert live_state.get_connection_errors()[-1].endswith("Heartbeat send failed: broken pipe")

    @pytest.mark.asyncio
    async def test_stale_server_is_flagged(self, live_state: ConnectionState, clock: FakeClock) -> None:
        supervisor = HeartbeatSupervisor(live_state, stale_threshold=120)
        clock.advance(121)

        sent = await supervisor.tick()

        assert sent is True
        assert live_state.is_connected() is True
        assert live_state.get_connection_errors()[-1].endswith("No heartbeat response in 2m1s")

    @pytest.mark.asyncio
    async def test_recent_server_response_is_not_stale(self, live_state: ConnectionState,
                                                       clock: FakeClock) -> None:
        supervisor = HeartbeatSupervisor(live_state, stale_threshold=120)
        clock.advance(200)
        live_state.track_heartbeat_received()
        clock.advance(20)

        await supervisor.tick()

        assert live_state.get_connection_errors() == []


class TestHeartbeatLifecycle:
    """Background task management."""

    def test_invalid_interval(self, state: ConnectionState) -> None:
        with pytest.raises(ValueError):
            HeartbeatSupervisor(state, interval=0)

    @pytest.mark.asyncio
    async def test_start_and_stop(self, live_state: ConnectionState) -> None:
        supervisor = HeartbeatSupervisor(live_state, interval=0.01)

        await supervisor.start()
        assert supervisor.is_running is True
        await asyncio.sleep(0.1)
        await supervisor.stop()

        assert supervisor.is_running is False
        assert live_state.snapshot().heartbeats_sent >= 1

    @pytest.mark.asyncio
    async def test_stop_without_start(self, state: ConnectionState) -> None:
        supervisor = HeartbeatSupervisor(state)

        await supervisor.stop()

        assert supervisor.is_running is False

    @pytest.mark.asyncio
    async def test_check_health(self, live_state: ConnectionState) -> None:
        supervisor = HeartbeatSupervisor(live_state, interval=5)
        await supervisor.tick()

        health = await supervisor.check_health()

        assert health['healthy'] is False
        assert health['status'] == 'stopped'
        assert health['details']['ticks'] == 1
        assert health['details']['interval'] == 5
