"""
Tests for the shared connection state record.
"""

import re
import threading

from chatlink.core.services.connection_state import ConnectionState

from conftest import FakeClock, FakeSession


class TestConnectionStatus:
    """Connection flag transitions."""

    def test_initially_disconnected(self, state: ConnectionState) -> None:
        assert state.is_connected() is False
        assert state.is_live() is False
        assert state.connection_started_at is None

    def test_set_connected_twice_keeps_start_time(self, state: ConnectionState, clock: FakeClock) -> None:
        state.set_connected(True)
        started = state.connection_started_at

        clock.advance(30)
        state.set_connected(True)

        assert state.connection_started_at == started

    def test_reconnect_stamps_new_start_time(self, state: ConnectionState, clock: FakeClock) -> None:
        state.set_connected(True)
        clock.advance(10)
        state.set_connected(False)
        clock.advance(10)
        state.set_connected(True)

        assert state.connection_started_at == clock.now

    def test_is_live_requires_session(self, state: ConnectionState) -> None:
        state.set_connected(True)
        assert state.is_live() is False

        state.set_session(FakeSession())
        assert state.is_live() is True

    def test_disconnect_keeps_current_room(self, state: ConnectionState) -> None:
        state.set_connected(True)
        state.set_current_room("room-1")

        state.set_connected(False)

        assert state.current_room == "room-1"


class TestRoomTracking:
    """Conditional room clearing."""

    def test_clear_matching_room(self, state: ConnectionState) -> None:
        state.set_current_room("room-1")

        assert state.clear_current_room_if("room-1") is True
        assert state.current_room == ""

    def test_other_room_left_keeps_current(self, state: ConnectionState) -> None:
        state.set_current_room("room-1")

        assert state.clear_current_room_if("room-2") is False
        assert state.current_room == "room-1"

    def test_clear_with_no_room(self, state: ConnectionState) -> None:
        assert state.clear_current_room_if("") is False


class TestErrorHistory:
    """Bounded FIFO error history."""

    def test_entries_carry_clock_prefix(self, state: ConnectionState) -> None:
        state.add_connection_error("boom")

        errors = state.get_connection_errors()
        assert len(errors) == 1
        assert re.fullmatch(r"\[\d{2}:\d{2}:\d{2}\] boom", errors[0])

    def test_capacity_evicts_oldest(self, state: ConnectionState) -> None:
        for i in range(15):
            state.add_connection_error(f"error {i}")

        errors = state.get_connection_errors()
        assert len(errors) == 10
        assert [e.split("] ", 1)[1] for e in errors] == [f"error {i}" for i in range(5, 15)]

    def test_custom_capacity(self, clock: FakeClock) -> None:
        state = ConnectionState("alice", error_history_size=3, clock=clock)
        for i in range(5):
            state.add_connection_error(f"error {i}")

        assert len(state.get_connection_errors()) == 3

    def test_returns_copy(self, state: ConnectionState) -> None:
        state.add_connection_error("boom")
        state.get_connection_errors().clear()

        assert len(state.get_connection_errors()) == 1


class TestActivity:
    """Counters and server silence tracking."""

    def test_counters_match_calls(self, state: ConnectionState) -> None:
        for _ in range(4):
            state.track_message_sent()
        for _ in range(2):
            state.track_message_received()
        for _ in range(3):
            state.track_heartbeat_sent()
        state.track_heartbeat_received()

        stats = state.get_stats()
        assert "Messages Sent: 4" in stats
        assert "Messages Received: 2" in stats
        assert "Heartbeats Sent: 3" in stats
        assert "Heartbeats Received: 1" in stats

    def test_silence_is_zero_when_never_connected(self, state: ConnectionState, clock: FakeClock) -> None:
        clock.advance(500)
        assert state.seconds_since_server_activity() == 0.0

    def test_silence_measured_from_connection_start(self, state: ConnectionState, clock: FakeClock) -> None:
        state.set_connected(True)
        clock.advance(42)

        assert state.seconds_since_server_activity() == 42

    def test_own_heartbeats_do_not_reset_silence(self, state: ConnectionState, clock: FakeClock) -> None:
        state.set_connected(True)
        clock.advance(50)
        state.track_heartbeat_sent()
        state.track_message_sent()
        clock.advance(10)

        assert state.seconds_since_server_activity() == 60

    def test_server_traffic_resets_silence(self, state: ConnectionState, clock: FakeClock) -> None:
        state.set_connected(True)
        clock.advance(50)
        state.track_heartbeat_received()
        clock.advance(5)

        assert state.seconds_since_server_activity() == 5

    def test_concurrent_updates_are_not_lost(self, state: ConnectionState) -> None:
        def worker() -> None:
            for _ in range(1000):
                state.track_message_sent()

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert state.snapshot().messages_sent == 4000


class TestStats:
    """Single-line statistics report."""

    def test_never_connected_report(self, state: ConnectionState) -> None:
        assert state.get_stats() == (
            "Status: Disconnected, Duration: 0s, Client ID: , Username: alice, "
            "Messages Sent: 0, Messages Received: 0, Heartbeats Sent: 0, Heartbeats Received: 0, "
            "Time Since Last Heartbeat Sent: Never, Time Since Last Heartbeat Received: Never"
        )

    def test_connected_with_three_sends(self, state: ConnectionState) -> None:
        state.set_connected(True)
        for _ in range(3):
            state.track_message_sent()

        stats = state.get_stats()
        assert stats.startswith("Status: Connected")
        assert "Messages Sent: 3" in stats

    def test_connected_duration(self, state: ConnectionState, clock: FakeClock) -> None:
        state.set_connected(True)
        clock.advance(3723)

        assert "Duration: 1h2m3s" in state.get_stats()

    def test_disconnected_duration_ends_at_last_activity(self, state: ConnectionState, clock: FakeClock) -> None:
        state.set_connected(True)
        clock.advance(90)
        state.track_message_received()
        clock.advance(600)
        state.set_connected(False)

        assert "Duration: 1m30s" in state.get_stats()

    def test_heartbeat_ages(self, state: ConnectionState, clock: FakeClock) -> None:
        state.track_heartbeat_sent()
        clock.advance(7)

        stats = state.get_stats()
        assert "Time Since Last Heartbeat Sent: 7s" in stats
        assert "Time Since Last Heartbeat Received: Never" in stats

    def test_reconnect_attempt_suffix(self, state: ConnectionState, clock: FakeClock) -> None:
        state.mark_reconnect_attempt()
        clock.advance(5)

        assert state.get_stats().endswith(", Last reconnect attempt: 5s ago")

    def test_username_change_is_reported(self, state: ConnectionState) -> None:
        state.set_username("bob")

        assert "Username: bob" in state.get_stats()


class TestSnapshot:
    """Consistent copies of the record."""

    def test_snapshot_fields(self, state: ConnectionState) -> None:
        session = FakeSession(session_id="abc")
        state.set_session(session)
        state.set_connected(True)
        state.set_client_id("cid-9")
        state.add_connection_error("boom")

        snap = state.snapshot()

        assert snap.connected is True
        assert snap.has_session is True
        assert snap.session_id == "abc"
        assert snap.client_id == "cid-9"
        assert snap.username == "alice"
        assert len(snap.connection_errors) == 1
