"""HTTP client for the cloud recordings API.

This module provides:
- CacophonyClient: Device registration, authentication and raw uploads
- APIError hierarchy for server responses
"""

from __future__ import annotations

import json
import logging
import secrets
from typing import TYPE_CHECKING, Any, BinaryIO

import httpx

if TYPE_CHECKING:
    from thermaluploader.core.config import ServerConfig
    from thermaluploader.core.types import FileMetadata

logger = logging.getLogger(__name__)

RECORDING_TYPE = "thermalRaw"
PASSWORD_BYTES = 24


class APIError(Exception):
    """Base exception for API errors."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(APIError):
    """Registration or authentication failed."""


class NotAuthenticatedError(APIError):
    """An authenticated call was made before connect()."""


def generate_password() -> str:
    """Generate a random device password."""
    return secrets.token_urlsafe(PASSWORD_BYTES)


class CacophonyClient:
    """HTTP client for the cloud recordings API.

    Usage:
        client = CacophonyClient(server_config, password=stored_password)
        client.connect()
        if client.just_registered:
            write_password(priv_path, client.password)
        client.upload_raw(metadata, stream, "clip.cptv")
    """

    def __init__(
        self,
        config: ServerConfig,
        password: str | None = None,
        http_client: httpx.Client | None = None,
    ) -> None:
        """Initialize the API client.

        Args:
            config: Server URL, group, device name and timeout.
            password: Device password saved by a previous registration.
            http_client: Optional preconfigured HTTP client.
        """
        self._config = config
        self._password = password
        self._token: str | None = None
        self._just_registered = False
        self._client = http_client or httpx.Client(
            base_url=config.server_url,
            timeout=config.timeout,
        )

    @property
    def password(self) -> str | None:
        """Get the device password."""
        return self._password

    @property
    def just_registered(self) -> bool:
        """Check if connect() registered the device for the first time."""
        return self._just_registered

    @property
    def is_authenticated(self) -> bool:
        """Check if an auth token is held."""
        return self._token is not None

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self) -> CacophonyClient:
        """Context manager entry."""
        return self

    def __exit__(self, *args: object) -> None:
        """Context manager exit."""
        self.close()

    def _handle_response(self, response: httpx.Response) -> dict[str, Any]:
        """Check an API response and decode its JSON body."""
        try:
            data = response.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}

        if response.status_code in (401, 403):
            raise AuthenticationError(
                _error_message(data, "Authentication failed"), response.status_code
            )
        if response.status_code >= 400:
            raise APIError(
                _error_message(data, f"HTTP {response.status_code}"),
                response.status_code,
            )
        return data

    def _store_token(self, data: dict[str, Any]) -> None:
        if not data.get("success", True) or not data.get("token"):
            raise AuthenticationError(_error_message(data, "No token in response"))
        self._token = str(data["token"])

    # === Device operations ===

    def register(self) -> str:
        """Register this device with a newly generated password.

        Returns:
            The new password. It must be saved to authenticate later.
        """
        password = generate_password()
        data = self._handle_response(
            self._client.post(
                "/api/v1/devices",
                data={
                    "group": self._config.group,
                    "devicename": self._config.device_name,
                    "password": password,
                },
            )
        )
        self._store_token(data)
        self._password = password
        self._just_registered = True
        logger.info("Registered device %s", self._config.device_name)
        return password

    def authenticate(self) -> None:
        """Authenticate with the saved password."""
        if not self._password:
            raise AuthenticationError("No password to authenticate with")
        data = self._handle_response(
            self._client.post(
                "/authenticate_device",
                data={
                    "devicename": self._config.device_name,
                    "groupname": self._config.group,
                    "password": self._password,
                },
            )
        )
        self._store_token(data)
        logger.info("Authenticated device %s", self._config.device_name)

    def connect(self) -> None:
        """Authenticate if a password is known, register otherwise."""
        if self._password:
            self.authenticate()
        else:
            self.register()

    # === Recording operations ===

    def upload_raw(
        self,
        metadata: FileMetadata,
        stream: BinaryIO,
        filename: str = "file",
    ) -> None:
        """Upload a raw thermal recording.

        Args:
            metadata: Capture timestamp and duration of the recording.
            stream: Open binary file to upload.
            filename: Filename sent in the multipart body.

        Raises:
            NotAuthenticatedError: If connect() has not succeeded yet.
            APIError: If the server rejects the upload.
            httpx.HTTPError: On transport errors.
        """
        if self._token is None:
            raise NotAuthenticatedError("Device is not authenticated")

        props = {
            "type": RECORDING_TYPE,
            "duration": metadata.duration,
            "recordingDateTime": metadata.timestamp.isoformat(),
        }
        self._handle_response(
            self._client.post(
                "/api/v1/recordings",
                headers={"Authorization": self._token},
                data={"data": json.dumps(props)},
                files={"file": (filename, stream, "application/octet-stream")},
            )
        )


def _error_message(data: dict[str, Any], default: str) -> str:
    messages = data.get("messages")
    if isinstance(messages, list) and messages:
        return "; ".join(str(m) for m in messages)
    return str(data.get("message") or default)
