"""Shared fixtures: in-memory peer, cloud API and metadata extractor."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import datetime, timezone
from pathlib import Path
from typing import BinaryIO

import pytest

from thermaluploader.client.metadata import MetadataError
from thermaluploader.client.peer import PeerUploadError
from thermaluploader.client.state import AgentState
from thermaluploader.core.types import FileMetadata, UploadState

CAPTURE_TIME = datetime(2024, 3, 1, 4, 30, tzinfo=timezone.utc)


class FakePeer:
    """Peer whose availability follows a script of probe results."""

    def __init__(self, available: bool | Iterable[bool] = False, fail_uploads: bool = False) -> None:
        self._script = None if isinstance(available, bool) else iter(available)
        self.available = available if isinstance(available, bool) else False
        self.fail_uploads = fail_uploads
        self.name = "peer.local"
        self.address = ""
        self.probes = 0
        self.uploads: list[tuple[str, bytes]] = []
        self.announcements: list[UploadState] = []

    def probe(self) -> bool:
        self.probes += 1
        if self._script is not None:
            self.available = next(self._script, self.available)
        if self.available:
            self.address = "10.0.0.7"
        return self.available

    def announce(self, state: UploadState) -> bool:
        self.announcements.append(state)
        return True

    def upload_file(self, stream: BinaryIO, filename: str = "file") -> None:
        data = stream.read()
        if self.fail_uploads:
            raise PeerUploadError("Non 200 status code from local peer", 500)
        self.uploads.append((filename, data))


class FakeRemote:
    """Cloud API that fails the first `failures` uploads."""

    def __init__(self, failures: int = 0) -> None:
        self.failures = failures
        self.calls: list[tuple[FileMetadata, str, bytes]] = []
        self.on_upload: Callable[[], None] | None = None

    @property
    def uploads(self) -> list[tuple[FileMetadata, str, bytes]]:
        return self.calls

    def upload_raw(self, metadata: FileMetadata, stream: BinaryIO, filename: str = "file") -> None:
        self.calls.append((metadata, filename, stream.read()))
        if self.on_upload:
            self.on_upload()
        if len(self.calls) <= self.failures:
            raise ConnectionError("cloud unreachable")


class FakeExtractor:
    """Reads ``frames=<n>`` files, rejects anything else."""

    def extract(self, path: Path) -> FileMetadata:
        try:
            text = path.read_bytes().decode("ascii")
        except (OSError, UnicodeDecodeError) as e:
            raise MetadataError(str(e)) from e
        if not text.startswith("frames="):
            raise MetadataError(f"Cannot parse {path.name}")
        return FileMetadata.from_frames(CAPTURE_TIME, int(text.split("=", 1)[1]))


@pytest.fixture
def watch_dir(tmp_path: Path) -> Path:
    """Recordings directory with its quarantine subdirectory."""
    directory = tmp_path / "recordings"
    (directory / "failed-uploads").mkdir(parents=True)
    return directory


@pytest.fixture
def make_recording(watch_dir: Path) -> Callable[..., Path]:
    """Create a valid (or corrupt) recording in the watched directory."""

    def _make(name: str, frames: int = 90, corrupt: bool = False) -> Path:
        path = watch_dir / name
        path.write_bytes(b"\x00garbage" if corrupt else f"frames={frames}".encode())
        return path

    return _make


@pytest.fixture
def fake_peer() -> Callable[..., FakePeer]:
    return FakePeer


@pytest.fixture
def fake_remote() -> Callable[..., FakeRemote]:
    return FakeRemote


@pytest.fixture
def extractor() -> FakeExtractor:
    return FakeExtractor()


@pytest.fixture
def agent_state() -> AgentState:
    return AgentState()
