"""HTTP client for a recording peer on the local network.

This module provides:
- PeerClient: Discovers the peer, probes it and talks its plain HTTP protocol
- PeerState: Snapshot of the last discovery result

Peer protocol (plain text, no auth):
    GET  /              liveness probe, any response means available
    GET  /uploading     state announcement
    GET  /finished      state announcement
    POST /upload_cptv   multipart body with a single ``cptv`` file field
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, BinaryIO

import httpx

from thermaluploader.core.types import UploadState

if TYPE_CHECKING:
    from thermaluploader.client.resolver import NameResolver
    from thermaluploader.core.config import PeerConfig

logger = logging.getLogger(__name__)

UPLOAD_PATH = "/upload_cptv"
UPLOAD_FIELD = "cptv"


class PeerUploadError(Exception):
    """Upload to the peer failed."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True)
class PeerState:
    """Result of the most recent discovery probe.

    Attributes:
        resolved_address: Last address the peer name resolved to ("" if never).
        last_known_available: Whether the last probe reached the peer.
    """

    resolved_address: str = ""
    last_known_available: bool = False


class PeerClient:
    """Client for the local recording peer.

    Every call to probe() resolves the peer name and checks it is reachable.
    The resolved address is cached and used by announce() and upload_file()
    until the next successful resolution.

    Usage:
        peer = PeerClient(PeerConfig(name="peer.local", port=8080), AvahiResolver())
        if peer.probe():
            peer.announce(UploadState.UPLOADING)
    """

    def __init__(
        self,
        config: PeerConfig,
        resolver: NameResolver,
        http_client: httpx.Client | None = None,
    ) -> None:
        """Initialize the peer client.

        Args:
            config: Peer name, port and timeouts.
            resolver: Local network name resolver.
            http_client: Optional preconfigured HTTP client.
        """
        self._config = config
        self._resolver = resolver
        self._client = http_client or httpx.Client(timeout=config.timeout)
        self._lock = threading.Lock()
        self._state = PeerState()

    @property
    def name(self) -> str:
        """Get the configured peer name."""
        return self._config.name

    @property
    def state(self) -> PeerState:
        """Get the result of the most recent probe."""
        with self._lock:
            return self._state

    @property
    def address(self) -> str:
        """Get the cached peer address ("" if never resolved)."""
        return self.state.resolved_address

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self) -> PeerClient:
        """Context manager entry."""
        return self

    def __exit__(self, *args: object) -> None:
        """Context manager exit."""
        self.close()

    def _url(self, path: str, address: str | None = None) -> str:
        return f"http://{address or self.address}:{self._config.port}{path}"

    def _set_state(self, address: str | None, available: bool) -> None:
        with self._lock:
            self._state = PeerState(
                resolved_address=address if address else self._state.resolved_address,
                last_known_available=available,
            )

    def probe(self) -> bool:
        """Check if the peer is on the network right now.

        Returns:
            True if the name resolved and the peer answered over HTTP.
        """
        address = self._resolver.resolve(self._config.name)
        if not address:
            self._set_state(None, False)
            return False

        self._set_state(address, self.state.last_known_available)
        try:
            response = self._client.get(self._url("/", address))
            response.close()
        except httpx.HTTPError as e:
            logger.debug("Peer %s at %s not reachable: %s", self.name, address, e)
            self._set_state(address, False)
            return False

        self._set_state(address, True)
        return True

    def announce(self, state: UploadState) -> bool:
        """Tell the peer what the agent is doing.

        Best effort: failures are logged, never raised.

        Returns:
            True if the peer acknowledged the announcement.
        """
        if not self.address:
            return False
        try:
            response = self._client.get(self._url(f"/{state.value}"))
        except httpx.HTTPError as e:
            logger.info("Failed to announce %s to peer: %s", state.value, e)
            return False
        if not response.is_success:
            logger.info(
                "Peer rejected %s announcement: status %d, body: %s",
                state.value,
                response.status_code,
                response.text,
            )
            return False
        return True

    def upload_file(self, stream: BinaryIO, filename: str = "file") -> None:
        """Upload a recording to the peer.

        Args:
            stream: Open binary file to upload.
            filename: Filename sent in the multipart body.

        Raises:
            PeerUploadError: If the request fails or the peer does not answer 200.
        """
        self.announce(UploadState.UPLOADING)
        try:
            response = self._client.post(
                self._url(UPLOAD_PATH),
                files={UPLOAD_FIELD: (filename, stream, "application/octet-stream")},
            )
        except httpx.HTTPError as e:
            raise PeerUploadError(f"Upload to peer failed: {e}") from e

        if response.status_code != 200:
            logger.warning(
                "Peer upload failed: status code: %d, body:\n%s",
                response.status_code,
                response.text,
            )
            raise PeerUploadError(
                "Non 200 status code from local peer", response.status_code
            )
