"""Core module - Shared configuration, logging and types."""

from thermaluploader.core.config import (
    DEFAULT_CONFIG_FILE,
    ConfigError,
    PeerConfig,
    ServerConfig,
    UploaderConfig,
    load_config,
    parse_config,
    priv_config_path,
    read_password,
    write_password,
)
from thermaluploader.core.log import setup_logging
from thermaluploader.core.types import FRAMES_PER_SECOND, FileMetadata, UploadState

__all__ = [
    # Config
    "DEFAULT_CONFIG_FILE",
    "ConfigError",
    "PeerConfig",
    "ServerConfig",
    "UploaderConfig",
    "load_config",
    "parse_config",
    "priv_config_path",
    "read_password",
    "write_password",
    # Logging
    "setup_logging",
    # Types
    "FRAMES_PER_SECOND",
    "FileMetadata",
    "UploadState",
]
