"""Tests for trigger aggregation: channel, presence edges and file events."""

from __future__ import annotations

import os
import threading
import time
from pathlib import Path

import pytest
from watchdog.events import (
    FileClosedEvent,
    FileCreatedEvent,
    FileModifiedEvent,
    FileMovedEvent,
)

from thermaluploader.client.sync.presence import PeerPresenceMonitor
from thermaluploader.client.sync.triggers import TriggerAggregator, TriggerChannel
from thermaluploader.client.sync.types import TriggerSource
from thermaluploader.client.sync.watcher import RecordingEventHandler


class TestTriggerChannel:
    """Tests for the single-slot handoff."""

    def test_receive_returns_pending_trigger(self) -> None:
        channel = TriggerChannel()
        assert channel.send(TriggerSource.STARTUP) is True

        assert channel.receive(timeout=0.1) == TriggerSource.STARTUP
        assert channel.pending is None

    def test_receive_times_out(self) -> None:
        assert TriggerChannel().receive(timeout=0.05) is None

    def test_offer_coalesces_when_pending(self) -> None:
        """Bursts collapse into the single pending trigger."""
        channel = TriggerChannel()

        assert channel.offer(TriggerSource.FILESYSTEM) is True
        assert channel.offer(TriggerSource.FILESYSTEM) is False
        assert channel.offer(TriggerSource.FILESYSTEM) is False

        assert channel.receive(timeout=0.1) == TriggerSource.FILESYSTEM
        assert channel.receive(timeout=0.05) is None

    def test_send_blocks_until_received(self) -> None:
        """A producer waits while a trigger is pending."""
        channel = TriggerChannel()
        channel.send(TriggerSource.STARTUP)
        delivered = threading.Event()

        def producer() -> None:
            channel.send(TriggerSource.PEER_ARRIVED)
            delivered.set()

        thread = threading.Thread(target=producer, daemon=True)
        thread.start()
        assert not delivered.wait(0.2)

        assert channel.receive(timeout=0.1) == TriggerSource.STARTUP
        assert delivered.wait(2.0)
        assert channel.receive(timeout=0.1) == TriggerSource.PEER_ARRIVED
        thread.join(timeout=1.0)

    def test_send_abandoned_on_stop(self) -> None:
        channel = TriggerChannel()
        channel.send(TriggerSource.STARTUP)
        stop_event = threading.Event()
        stop_event.set()

        assert channel.send(TriggerSource.PEER_ARRIVED, stop_event) is False
        assert channel.pending == TriggerSource.STARTUP


class TestPeerPresenceMonitor:
    """Tests for peer arrival edge detection."""

    def test_one_trigger_while_peer_stays(self, fake_peer) -> None:  # type: ignore[no-untyped-def]
        """Peer present for 3 consecutive polls yields exactly 1 trigger."""
        channel = TriggerChannel()
        monitor = PeerPresenceMonitor(fake_peer([True, True, True]), channel)

        emitted = [monitor.poll() for _ in range(3)]

        assert emitted == [True, False, False]
        assert channel.receive(timeout=0.05) == TriggerSource.PEER_ARRIVED
        assert channel.receive(timeout=0.05) is None

    def test_new_trigger_after_peer_returns(self, fake_peer) -> None:  # type: ignore[no-untyped-def]
        """Every unavailable to available transition triggers once."""
        channel = TriggerChannel()
        monitor = PeerPresenceMonitor(fake_peer([False, True, True, False, True]), channel)

        emitted = []
        for _ in range(5):
            emitted.append(monitor.poll())
            channel.receive(timeout=0.01)

        assert emitted == [False, True, False, False, True]

    def test_absent_peer_never_triggers(self, fake_peer) -> None:  # type: ignore[no-untyped-def]
        channel = TriggerChannel()
        monitor = PeerPresenceMonitor(fake_peer(False), channel)

        assert not any(monitor.poll() for _ in range(3))
        assert channel.pending is None
        assert monitor.present is False

    def test_background_polling_stops(self, fake_peer) -> None:  # type: ignore[no-untyped-def]
        peer = fake_peer(True)
        channel = TriggerChannel()
        stop_event = threading.Event()
        monitor = PeerPresenceMonitor(peer, channel, interval=0.01, stop_event=stop_event)

        monitor.start()
        assert channel.receive(timeout=2.0) == TriggerSource.PEER_ARRIVED
        monitor.stop()

        assert stop_event.is_set()
        assert peer.probes >= 1


class TestRecordingEventHandler:
    """Tests for filesystem event filtering."""

    @pytest.fixture
    def seen(self) -> list[Path]:
        return []

    @pytest.fixture
    def handler(self, tmp_path: Path, seen: list[Path]) -> RecordingEventHandler:
        return RecordingEventHandler(tmp_path, seen.append)

    def test_close_after_write(self, tmp_path: Path, handler: RecordingEventHandler, seen: list[Path]) -> None:
        handler.dispatch(FileClosedEvent(str(tmp_path / "a.cptv")))
        assert seen == [tmp_path / "a.cptv"]

    def test_moved_into_directory(self, tmp_path: Path, handler: RecordingEventHandler, seen: list[Path]) -> None:
        handler.dispatch(FileMovedEvent("/elsewhere/b.cptv", str(tmp_path / "b.cptv")))
        assert seen == [tmp_path / "b.cptv"]

    def test_move_into_subdirectory_ignored(self, tmp_path: Path, handler: RecordingEventHandler, seen: list[Path]) -> None:
        """Quarantining a file must not trigger another pass."""
        handler.dispatch(
            FileMovedEvent(str(tmp_path / "c.cptv"), str(tmp_path / "failed-uploads" / "c.cptv"))
        )
        assert seen == []

    def test_moved_in_from_unwatched_directory(self, tmp_path: Path, handler: RecordingEventHandler, seen: list[Path]) -> None:
        """A rename from outside the watch has no source path."""
        handler.dispatch(FileMovedEvent("", str(tmp_path / "d.cptv")))
        assert seen == [tmp_path / "d.cptv"]

    def test_moved_out_ignored(self, tmp_path: Path, handler: RecordingEventHandler, seen: list[Path]) -> None:
        handler.dispatch(FileMovedEvent(str(tmp_path / "e.cptv"), ""))
        assert seen == []

    def test_write_in_progress_ignored(self, tmp_path: Path, handler: RecordingEventHandler, seen: list[Path]) -> None:
        """Creation and partial writes come before the file is finished."""
        handler.dispatch(FileCreatedEvent(str(tmp_path / "f.cptv")))
        handler.dispatch(FileModifiedEvent(str(tmp_path / "f.cptv")))
        assert seen == []


class TestTriggerAggregator:
    """Tests for producer wiring."""

    def test_start_emits_startup_trigger(self, tmp_path: Path, fake_peer) -> None:  # type: ignore[no-untyped-def]
        aggregator = TriggerAggregator(tmp_path, fake_peer(False), presence_interval=60.0)

        with aggregator:
            assert aggregator.channel.receive(timeout=1.0) == TriggerSource.STARTUP

    def test_file_written_triggers_pass(self, tmp_path: Path, fake_peer) -> None:  # type: ignore[no-untyped-def]
        """A finished write in the directory produces a filesystem trigger."""
        aggregator = TriggerAggregator(tmp_path, fake_peer(False), presence_interval=60.0)

        with aggregator:
            aggregator.channel.receive(timeout=1.0)
            (tmp_path / "new.cptv").write_bytes(b"data")

            deadline = time.monotonic() + 5.0
            source = None
            while source is None and time.monotonic() < deadline:
                source = aggregator.channel.receive(timeout=0.1)

        assert source == TriggerSource.FILESYSTEM

    def test_file_renamed_in_from_sibling_directory(self, tmp_path: Path, fake_peer) -> None:  # type: ignore[no-untyped-def]
        """A recording moved in from a staging directory triggers a pass."""
        recordings = tmp_path / "recordings"
        staging = tmp_path / "staging"
        recordings.mkdir()
        staging.mkdir()
        (staging / "new.cptv").write_bytes(b"data")
        aggregator = TriggerAggregator(recordings, fake_peer(False), presence_interval=60.0)

        with aggregator:
            aggregator.channel.receive(timeout=1.0)
            os.rename(staging / "new.cptv", recordings / "new.cptv")

            deadline = time.monotonic() + 5.0
            source = None
            while source is None and time.monotonic() < deadline:
                source = aggregator.channel.receive(timeout=0.1)

        assert source == TriggerSource.FILESYSTEM

    def test_missing_directory_is_fatal(self, tmp_path: Path, fake_peer) -> None:  # type: ignore[no-untyped-def]
        aggregator = TriggerAggregator(tmp_path / "missing", fake_peer(False))

        with pytest.raises(ValueError):
            aggregator.start()
        aggregator.stop()
