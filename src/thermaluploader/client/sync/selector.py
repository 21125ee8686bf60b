"""Per-attempt choice between the local peer and the cloud API."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, BinaryIO, Protocol

from thermaluploader.client.sync.types import Destination

if TYPE_CHECKING:
    from thermaluploader.core.types import FileMetadata

logger = logging.getLogger(__name__)


class Peer(Protocol):
    """The parts of PeerClient the selector needs."""

    def probe(self) -> bool: ...

    def upload_file(self, stream: BinaryIO, filename: str = "file") -> None: ...


class RemoteUploader(Protocol):
    """The parts of CacophonyClient the selector needs."""

    def upload_raw(
        self,
        metadata: FileMetadata,
        stream: BinaryIO,
        filename: str = "file",
    ) -> None: ...


class DestinationSelector:
    """Routes each upload attempt to the peer if present, else to the cloud.

    Availability is probed on every call, so a peer that shows up in the
    middle of a retry sequence is used for the next attempt.
    """

    def __init__(self, peer: Peer, remote: RemoteUploader) -> None:
        self._peer = peer
        self._remote = remote

    def choose(self) -> Destination:
        """Probe the peer and pick where the next attempt goes."""
        return Destination.PEER if self._peer.probe() else Destination.REMOTE

    def send(
        self,
        destination: Destination,
        stream: BinaryIO,
        filename: str,
        metadata: FileMetadata,
    ) -> None:
        """Upload a recording to a chosen destination.

        Raises:
            Exception: Whatever the destination raised.
        """
        if destination is Destination.PEER:
            logger.debug("Uploading %s to local peer", filename)
            self._peer.upload_file(stream, filename)
        else:
            logger.debug("Uploading %s to remote API", filename)
            self._remote.upload_raw(metadata, stream, filename)
