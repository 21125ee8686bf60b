"""Trigger aggregation for upload passes.

This module provides:
- TriggerChannel: Single-slot handoff between trigger producers and the dispatcher
- TriggerAggregator: Wires the startup, filesystem and peer-arrival producers

At most one trigger is ever pending. The dispatcher re-lists the directory on
every pass, so a burst of events while a pass is running collapses into one
follow-up pass.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import TYPE_CHECKING

from thermaluploader.client.sync.presence import (
    DEFAULT_PRESENCE_INTERVAL,
    PeerPresenceMonitor,
)
from thermaluploader.client.sync.types import TriggerSource
from thermaluploader.client.sync.watcher import DirectoryWatcher

if TYPE_CHECKING:
    from thermaluploader.client.peer import PeerClient

logger = logging.getLogger(__name__)

# Upper bound on a single wait so stop requests are noticed.
STOP_CHECK_INTERVAL = 0.5


class TriggerChannel:
    """Single-slot, blocking handoff of upload triggers."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._changed = threading.Condition(self._lock)
        self._pending: TriggerSource | None = None

    @property
    def pending(self) -> TriggerSource | None:
        """Get the trigger waiting to be received, if any."""
        with self._lock:
            return self._pending

    def send(
        self,
        source: TriggerSource,
        stop_event: threading.Event | None = None,
    ) -> bool:
        """Deliver a trigger, blocking while another one is pending.

        Args:
            source: Producer of the trigger.
            stop_event: Abandon the send when this is set.

        Returns:
            True if the trigger was delivered, False if stopped first.
        """
        with self._changed:
            while self._pending is not None:
                if stop_event is not None and stop_event.is_set():
                    return False
                self._changed.wait(STOP_CHECK_INTERVAL)
            self._pending = source
            self._changed.notify_all()
            return True

    def offer(self, source: TriggerSource) -> bool:
        """Deliver a trigger only if none is pending.

        Returns:
            True if delivered, False if coalesced into the pending trigger.
        """
        with self._changed:
            if self._pending is not None:
                return False
            self._pending = source
            self._changed.notify_all()
            return True

    def receive(self, timeout: float | None = None) -> TriggerSource | None:
        """Take the pending trigger, waiting up to timeout for one.

        Returns:
            The trigger source, or None on timeout.
        """
        with self._changed:
            if self._pending is None:
                self._changed.wait_for(lambda: self._pending is not None, timeout)
            source = self._pending
            self._pending = None
            if source is not None:
                self._changed.notify_all()
            return source


class TriggerAggregator:
    """Merges all trigger producers into one channel.

    Producers:
    1. A one-time trigger at startup so existing files are uploaded.
    2. Filesystem events (write completed, moved in) on the directory.
    3. Peer arrival edges from the presence monitor.
    """

    def __init__(
        self,
        directory: Path,
        peer: PeerClient,
        channel: TriggerChannel | None = None,
        presence_interval: float = DEFAULT_PRESENCE_INTERVAL,
        stop_event: threading.Event | None = None,
    ) -> None:
        """Initialize the aggregator.

        Args:
            directory: Directory to watch for recordings.
            peer: Peer whose arrival triggers a pass.
            channel: Channel to deliver triggers to.
            presence_interval: Seconds between peer presence polls.
            stop_event: Shared stop signal.
        """
        self._stop_event = stop_event or threading.Event()
        self._channel = channel or TriggerChannel()
        self._watcher = DirectoryWatcher(directory, self._on_file_event)
        self._presence = PeerPresenceMonitor(
            peer,
            self._channel,
            interval=presence_interval,
            stop_event=self._stop_event,
        )

    @property
    def channel(self) -> TriggerChannel:
        """Get the channel triggers are delivered to."""
        return self._channel

    def _on_file_event(self, path: Path) -> None:
        if self._channel.offer(TriggerSource.FILESYSTEM):
            logger.debug("Upload pass requested by %s", path.name)
        else:
            logger.debug("Event for %s coalesced into pending pass", path.name)

    def start(self) -> None:
        """Emit the startup trigger and start all producers.

        Raises:
            ValueError: If the directory does not exist.
            OSError: If the directory cannot be watched.
        """
        self._channel.send(TriggerSource.STARTUP, self._stop_event)
        self._watcher.start()
        logger.info("Watching %s", self._watcher.watch_path)
        self._presence.start()

    def stop(self) -> None:
        """Stop all producers."""
        self._stop_event.set()
        self._watcher.stop()
        self._presence.stop()

    def __enter__(self) -> TriggerAggregator:
        """Context manager entry."""
        self.start()
        return self

    def __exit__(self, *args: object) -> None:
        """Context manager exit."""
        self.stop()
