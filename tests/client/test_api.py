"""Tests for the cloud API client."""

from __future__ import annotations

import io
import json
from datetime import datetime, timezone

import httpx
import pytest

from thermaluploader.client.api import (
    APIError,
    AuthenticationError,
    CacophonyClient,
    NotAuthenticatedError,
)
from thermaluploader.core.config import ServerConfig
from thermaluploader.core.types import FileMetadata

API_URL = "http://api.test"


def make_config() -> ServerConfig:
    """Create a ServerConfig for testing."""
    return ServerConfig(server_url=f"{API_URL}/", group="trap-group", device_name="trap-01")


class TestConnect:
    """Tests for registration and authentication."""

    def test_register_without_password(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should register with a generated password when none is saved."""
        httpx_mock.add_response(
            method="POST",
            url=f"{API_URL}/api/v1/devices",
            json={"success": True, "token": "JWT abc"},
        )

        with CacophonyClient(make_config()) as client:
            client.connect()

            assert client.just_registered is True
            assert client.is_authenticated is True
            assert client.password

        form = httpx_mock.get_request().read().decode()
        assert "group=trap-group" in form
        assert "devicename=trap-01" in form

    def test_authenticate_with_saved_password(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should authenticate when a password is known."""
        httpx_mock.add_response(
            method="POST",
            url=f"{API_URL}/authenticate_device",
            json={"success": True, "token": "JWT xyz"},
        )

        with CacophonyClient(make_config(), password="secret") as client:
            client.connect()

            assert client.just_registered is False
            assert client.password == "secret"

        form = httpx_mock.get_request().read().decode()
        assert "password=secret" in form
        assert "groupname=trap-group" in form

    def test_authentication_rejected(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        httpx_mock.add_response(
            method="POST",
            url=f"{API_URL}/authenticate_device",
            status_code=401,
            json={"messages": ["Wrong password"]},
        )

        with CacophonyClient(make_config(), password="bad") as client:
            with pytest.raises(AuthenticationError, match="Wrong password"):
                client.connect()

    def test_missing_token(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        httpx_mock.add_response(
            method="POST",
            url=f"{API_URL}/api/v1/devices",
            json={"success": False, "messages": ["device name taken"]},
        )

        with CacophonyClient(make_config()) as client:
            with pytest.raises(AuthenticationError, match="device name taken"):
                client.register()


class TestUploadRaw:
    """Tests for raw recording uploads."""

    METADATA = FileMetadata(datetime(2024, 3, 1, 4, 30, tzinfo=timezone.utc), 10)

    def _connected_client(self, httpx_mock) -> CacophonyClient:  # type: ignore[no-untyped-def]
        httpx_mock.add_response(
            method="POST",
            url=f"{API_URL}/authenticate_device",
            json={"success": True, "token": "JWT tok"},
        )
        client = CacophonyClient(make_config(), password="secret")
        client.connect()
        return client

    def test_upload_raw(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should post metadata and file with the auth token."""
        client = self._connected_client(httpx_mock)
        httpx_mock.add_response(method="POST", url=f"{API_URL}/api/v1/recordings", json={"success": True})

        with client:
            client.upload_raw(self.METADATA, io.BytesIO(b"cptv-data"), "a.cptv")

        request = httpx_mock.get_requests(url=f"{API_URL}/api/v1/recordings")[0]
        body = request.read()
        assert request.headers["Authorization"] == "JWT tok"
        assert b"cptv-data" in body
        assert b'filename="a.cptv"' in body
        data_part = body.split(b'name="data"')[1].split(b"\r\n\r\n", 1)[1].split(b"\r\n--", 1)[0]
        assert json.loads(data_part) == {
            "type": "thermalRaw",
            "duration": 10,
            "recordingDateTime": "2024-03-01T04:30:00+00:00",
        }

    def test_upload_rejected(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        client = self._connected_client(httpx_mock)
        httpx_mock.add_response(
            method="POST", url=f"{API_URL}/api/v1/recordings", status_code=422, json={"message": "bad file"}
        )

        with client, pytest.raises(APIError) as exc_info:
            client.upload_raw(self.METADATA, io.BytesIO(b"x"))
        assert exc_info.value.status_code == 422

    def test_upload_transport_error_propagates(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        client = self._connected_client(httpx_mock)
        httpx_mock.add_exception(httpx.ConnectError("offline"), url=f"{API_URL}/api/v1/recordings")

        with client, pytest.raises(httpx.ConnectError):
            client.upload_raw(self.METADATA, io.BytesIO(b"x"))

    def test_upload_requires_connect(self) -> None:
        with CacophonyClient(make_config()) as client, pytest.raises(NotAuthenticatedError):
            client.upload_raw(self.METADATA, io.BytesIO(b"x"))
