"""Periodic upload state announcements to the local peer.

This module provides:
- StateAnnouncer: Background thread that pushes the agent state to the peer

Announcements are best-effort telemetry. They never affect uploads.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from thermaluploader.client.peer import PeerClient
    from thermaluploader.client.state import AgentState

logger = logging.getLogger(__name__)

DEFAULT_ANNOUNCE_INTERVAL = 5.0


class StateAnnouncer:
    """Tells the peer whether the agent is uploading, every few seconds.

    Usage:
        announcer = StateAnnouncer(peer, agent_state)
        announcer.start()
        ...
        announcer.stop()
    """

    def __init__(
        self,
        peer: PeerClient,
        state: AgentState,
        interval: float = DEFAULT_ANNOUNCE_INTERVAL,
        stop_event: threading.Event | None = None,
    ) -> None:
        """Initialize the announcer.

        Args:
            peer: Peer to probe and announce to.
            state: Agent state to report.
            interval: Seconds between ticks.
            stop_event: Shared stop signal (a private one is created if None).
        """
        self._peer = peer
        self._state = state
        self._interval = interval
        self._stop_event = stop_event or threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def is_running(self) -> bool:
        """Check if the announcer thread is alive."""
        return self._thread is not None and self._thread.is_alive()

    def tick(self) -> bool:
        """Probe the peer and announce the current state if it is there.

        Returns:
            True if an announcement was sent.
        """
        if not self._peer.probe():
            return False
        self._peer.announce(self._state.current)
        return True

    def _run(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.tick()
            except Exception:
                logger.exception("State announcement failed")
            self._stop_event.wait(self._interval)

    def start(self) -> None:
        """Start announcing in a background thread."""
        if self.is_running:
            logger.warning("StateAnnouncer already running")
            return

        self._thread = threading.Thread(
            target=self._run,
            name="StateAnnouncer",
            daemon=True,
        )
        self._thread.start()
        logger.debug("StateAnnouncer started")

    def stop(self, timeout: float = 5.0) -> None:
        """Stop the announcer and wait for its thread."""
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=timeout)
            self._thread = None
