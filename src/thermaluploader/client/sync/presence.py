"""Peer presence edge detection.

Polls the peer and triggers exactly one upload pass each time it appears,
not one per poll while it stays around.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from thermaluploader.client.sync.types import TriggerSource

if TYPE_CHECKING:
    from thermaluploader.client.peer import PeerClient
    from thermaluploader.client.sync.triggers import TriggerChannel

logger = logging.getLogger(__name__)

DEFAULT_PRESENCE_INTERVAL = 10.0


class PeerPresenceMonitor:
    """Emits a PEER_ARRIVED trigger on every unavailable to available edge."""

    def __init__(
        self,
        peer: PeerClient,
        channel: TriggerChannel,
        interval: float = DEFAULT_PRESENCE_INTERVAL,
        stop_event: threading.Event | None = None,
    ) -> None:
        """Initialize the monitor.

        Args:
            peer: Peer to poll.
            channel: Channel to deliver triggers to.
            interval: Seconds between polls.
            stop_event: Shared stop signal.
        """
        self._peer = peer
        self._channel = channel
        self._interval = interval
        self._stop_event = stop_event or threading.Event()
        self._present = False
        self._thread: threading.Thread | None = None

    @property
    def present(self) -> bool:
        """Check if the peer was available at the last poll."""
        return self._present

    def poll(self) -> bool:
        """Probe the peer once and emit a trigger on arrival.

        Returns:
            True if a trigger was emitted.
        """
        available = self._peer.probe()
        if available and not self._present:
            self._present = True
            logger.info("Found peer %s at %s", self._peer.name, self._peer.address)
            return self._channel.send(TriggerSource.PEER_ARRIVED, self._stop_event)
        if not available and self._present:
            self._present = False
            logger.info("Lost peer %s", self._peer.name)
        return False

    def _run(self) -> None:
        while not self._stop_event.wait(self._interval):
            try:
                self.poll()
            except Exception:
                logger.exception("Peer presence poll failed")

    def start(self) -> None:
        """Start polling in a background thread."""
        if self._thread and self._thread.is_alive():
            return
        self._thread = threading.Thread(
            target=self._run,
            name="PeerPresenceMonitor",
            daemon=True,
        )
        self._thread.start()

    def stop(self, timeout: float = 5.0) -> None:
        """Stop polling and wait for the thread."""
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=timeout)
            self._thread = None
