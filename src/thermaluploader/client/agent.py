"""Upload agent: wires discovery, announcements, triggers and the dispatcher.

Background tasks (all stopped through one shared event):
- StateAnnouncer: tells the peer what the agent is doing every 5s
- PeerPresenceMonitor: triggers a pass when the peer appears
- DirectoryWatcher: triggers a pass when a recording is finished
- UploadDispatcher: runs in the caller's thread, one pass per trigger
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import TYPE_CHECKING

from thermaluploader.client.announcer import DEFAULT_ANNOUNCE_INTERVAL, StateAnnouncer
from thermaluploader.client.state import AgentState
from thermaluploader.client.sync import (
    DEFAULT_PRESENCE_INTERVAL,
    DestinationSelector,
    PassResult,
    RetryPolicy,
    TriggerAggregator,
    UploadDispatcher,
)

if TYPE_CHECKING:
    from thermaluploader.client.metadata import MetadataExtractor
    from thermaluploader.client.peer import PeerClient
    from thermaluploader.client.sync.selector import RemoteUploader

logger = logging.getLogger(__name__)

QUARANTINE_MODE = 0o755


class UploaderAgent:
    """Long-running uploader for one recordings directory.

    Usage:
        agent = UploaderAgent(directory, peer, api_client, CPTVExtractor())
        agent.prepare()
        agent.run()  # blocks until agent.stop() is called
    """

    def __init__(
        self,
        directory: Path,
        peer: PeerClient,
        remote: RemoteUploader,
        extractor: MetadataExtractor,
        remote_retry_delay: float = 0.0,
        announce_interval: float = DEFAULT_ANNOUNCE_INTERVAL,
        presence_interval: float = DEFAULT_PRESENCE_INTERVAL,
    ) -> None:
        """Initialize the agent.

        Args:
            directory: Directory the recorder writes finished files to.
            peer: Local network peer.
            remote: Cloud API client.
            extractor: Recording metadata extractor.
            remote_retry_delay: Initial backoff after a failed remote attempt.
            announce_interval: Seconds between state announcements.
            presence_interval: Seconds between peer presence polls.
        """
        self._directory = Path(directory)
        self._stop_event = threading.Event()
        self.state = AgentState()

        self._announcer = StateAnnouncer(
            peer,
            self.state,
            interval=announce_interval,
            stop_event=self._stop_event,
        )
        self._triggers = TriggerAggregator(
            self._directory,
            peer,
            presence_interval=presence_interval,
            stop_event=self._stop_event,
        )
        self.dispatcher = UploadDispatcher(
            self._directory,
            DestinationSelector(peer, remote),
            extractor,
            self.state,
            remote_policy=RetryPolicy(initial_backoff=remote_retry_delay),
            stop_event=self._stop_event,
        )

    @property
    def stopped(self) -> bool:
        """Check if stop() has been called."""
        return self._stop_event.is_set()

    def prepare(self) -> None:
        """Create the quarantine directory.

        Raises:
            OSError: If it cannot be created.
        """
        logger.info("Making failed uploads directory")
        self.dispatcher.quarantine_dir.mkdir(
            mode=QUARANTINE_MODE, parents=True, exist_ok=True
        )

    def run_once(self) -> PassResult:
        """Upload everything currently pending, without watching."""
        return self.dispatcher.run_pass()

    def run(self) -> None:
        """Start the background tasks and dispatch until stopped.

        Raises:
            ValueError: If the directory does not exist.
            OSError: If watching or listing the directory fails.
        """
        self._announcer.start()
        try:
            self._triggers.start()
            self.dispatcher.run(self._triggers.channel)
        finally:
            self.stop()

    def stop(self) -> None:
        """Stop all background tasks."""
        if not self._stop_event.is_set():
            logger.info("Stopping uploader")
        self._stop_event.set()
        self._triggers.stop()
        self._announcer.stop()
