"""Configuration helpers shared by the CLI commands."""

from __future__ import annotations

import sys
from pathlib import Path

import click

from thermaluploader.client.peer import PeerClient
from thermaluploader.client.resolver import AvahiResolver, NameResolver, StaticResolver
from thermaluploader.core.config import ConfigError, UploaderConfig, load_config

CONFIG_OPTION_HELP = "Path to the configuration file."


def load_agent_config(path: Path) -> UploaderConfig:
    """Load the configuration or exit with an error message."""
    try:
        return load_config(path)
    except ConfigError as e:
        click.echo(f"Error: configuration error: {e}", err=True)
        sys.exit(1)


def build_peer(config: UploaderConfig) -> PeerClient:
    """Create the peer client described by the configuration."""
    resolver: NameResolver
    if config.peer.address:
        resolver = StaticResolver(config.peer.address)
    else:
        resolver = AvahiResolver(timeout=config.peer.resolve_timeout)
    return PeerClient(config.peer, resolver)
