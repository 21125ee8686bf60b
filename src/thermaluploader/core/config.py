"""Configuration classes for thermaluploader.

This module provides:
- ServerConfig: Settings for the cloud API client
- PeerConfig: Settings for the local network peer
- UploaderConfig: Top-level agent configuration loaded from YAML
- Private settings (device password) stored next to the config file
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

DEFAULT_CONFIG_FILE = Path("/etc/thermal-uploader.yaml")
PRIV_SUFFIX = "-priv"


class ConfigError(Exception):
    """Raised when the configuration is missing or invalid."""


@dataclass
class ServerConfig:
    """Configuration for connecting to the cloud API.

    Attributes:
        server_url: Base URL of the API (e.g., "https://api.example.com").
        group: Group the device belongs to.
        device_name: Name the device registers under.
        timeout: Request/connection timeout in seconds.
    """

    server_url: str
    group: str
    device_name: str
    timeout: float = 30.0

    def __post_init__(self) -> None:
        """Normalize server URL."""
        self.server_url = self.server_url.rstrip("/")

    @property
    def is_secure(self) -> bool:
        """Check if using HTTPS."""
        return self.server_url.startswith("https://")


@dataclass
class PeerConfig:
    """Configuration for the local network peer.

    Attributes:
        name: Local network name the peer advertises.
        port: HTTP port the peer listens on.
        timeout: Timeout for every HTTP call to the peer, in seconds.
        resolve_timeout: Timeout for name resolution, in seconds.
        address: Fixed address, skips name resolution when set.
    """

    name: str
    port: int
    timeout: float = 5.0
    resolve_timeout: float = 10.0
    address: str | None = None


@dataclass
class UploaderConfig:
    """Top-level agent configuration."""

    directory: Path
    server: ServerConfig
    peer: PeerConfig
    remote_retry_delay: float = 0.0
    path: Path | None = field(default=None, compare=False)


def _require(raw: dict[str, Any], key: str) -> Any:
    if raw.get(key) in (None, ""):
        raise ConfigError(f"Missing `{key}` in config")
    return raw[key]


def _number(raw: dict[str, Any], key: str, default: float) -> float:
    value = raw.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise ConfigError(f"`{key}` must be a number")
    if value < 0:
        raise ConfigError(f"`{key}` must not be negative")
    return float(value)


def parse_config(raw: dict[str, Any], path: Path | None = None) -> UploaderConfig:
    """Build an UploaderConfig from a parsed YAML mapping.

    Raises:
        ConfigError: If a required key is missing or has the wrong type.
    """
    port = _require(raw, "peer-port")
    if isinstance(port, bool) or not isinstance(port, int) or not 0 < port < 65536:
        raise ConfigError("`peer-port` must be a port number")

    address = raw.get("peer-address")
    return UploaderConfig(
        directory=Path(str(_require(raw, "directory"))).expanduser(),
        server=ServerConfig(
            server_url=str(_require(raw, "server-url")),
            group=str(_require(raw, "group")),
            device_name=str(_require(raw, "device-name")),
            timeout=_number(raw, "request-timeout", 30.0),
        ),
        peer=PeerConfig(
            name=str(_require(raw, "peer-name")),
            port=port,
            timeout=_number(raw, "peer-timeout", 5.0),
            resolve_timeout=_number(raw, "peer-resolve-timeout", 10.0),
            address=str(address) if address else None,
        ),
        remote_retry_delay=_number(raw, "remote-retry-delay", 0.0),
        path=path,
    )


def load_config(path: str | Path = DEFAULT_CONFIG_FILE) -> UploaderConfig:
    """Load the agent configuration from a YAML file.

    Args:
        path: Path to the configuration file.

    Returns:
        Parsed configuration.

    Raises:
        ConfigError: If the file cannot be read or is invalid.
    """
    config_path = Path(path).expanduser()
    try:
        raw = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
    except OSError as e:
        raise ConfigError(f"Cannot read {config_path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e
    if not isinstance(raw, dict):
        raise ConfigError("Config root must be a mapping")
    return parse_config(raw, config_path)


def priv_config_path(config_path: str | Path) -> Path:
    """Get the private settings file that belongs to a config file.

    ``/etc/thermal-uploader.yaml`` maps to ``/etc/thermal-uploader-priv.yaml``.
    """
    config_path = Path(config_path)
    stem = config_path.name.removesuffix(".yaml")
    return config_path.with_name(f"{stem}{PRIV_SUFFIX}.yaml")


def read_password(path: Path) -> str | None:
    """Read the device password from the private settings file.

    Returns:
        The password, or None if the file or key does not exist.
    """
    if not path.exists():
        return None
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    if not isinstance(raw, dict):
        raise ConfigError(f"{path} must contain a mapping")
    password = raw.get("password")
    return str(password) if password else None


def write_password(path: Path, password: str) -> None:
    """Save the device password to the private settings file (mode 0600)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "w", encoding="utf-8") as f:
        yaml.safe_dump({"password": password}, f)
