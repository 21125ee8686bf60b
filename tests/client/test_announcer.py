"""Tests for upload state announcements and the shared agent state."""

from __future__ import annotations

import threading

from thermaluploader.client.announcer import StateAnnouncer
from thermaluploader.client.state import AgentState
from thermaluploader.core.types import UploadState


class TestAgentState:
    def test_starts_finished(self) -> None:
        assert AgentState().current == UploadState.FINISHED_UPLOADING

    def test_transitions_notify(self) -> None:
        seen: list[UploadState] = []
        state = AgentState(on_change=seen.append)

        state.set_uploading()
        state.set_finished()

        assert seen == [UploadState.UPLOADING, UploadState.FINISHED_UPLOADING]
        assert state.current == UploadState.FINISHED_UPLOADING


class TestStateAnnouncer:
    """Tests for the periodic announcement tick."""

    def test_tick_announces_current_state(self, fake_peer, agent_state) -> None:  # type: ignore[no-untyped-def]
        peer = fake_peer(True)
        announcer = StateAnnouncer(peer, agent_state)

        assert announcer.tick() is True
        agent_state.set_uploading()
        assert announcer.tick() is True

        assert peer.announcements == [UploadState.FINISHED_UPLOADING, UploadState.UPLOADING]

    def test_tick_skips_absent_peer(self, fake_peer, agent_state) -> None:  # type: ignore[no-untyped-def]
        peer = fake_peer(False)

        assert StateAnnouncer(peer, agent_state).tick() is False
        assert peer.probes == 1
        assert peer.announcements == []

    def test_tick_probes_every_time(self, fake_peer, agent_state) -> None:  # type: ignore[no-untyped-def]
        """A peer that leaves stops receiving announcements."""
        peer = fake_peer([True, False, True])
        announcer = StateAnnouncer(peer, agent_state)

        assert [announcer.tick() for _ in range(3)] == [True, False, True]
        assert len(peer.announcements) == 2

    def test_background_thread(self, fake_peer, agent_state) -> None:  # type: ignore[no-untyped-def]
        peer = fake_peer(True)
        stop_event = threading.Event()
        announced = threading.Event()
        peer.announce = lambda state: announced.set() or True
        announcer = StateAnnouncer(peer, agent_state, interval=0.01, stop_event=stop_event)

        announcer.start()
        assert announcer.is_running
        assert announced.wait(2.0)
        announcer.stop()

        assert not announcer.is_running
        assert stop_event.is_set()
