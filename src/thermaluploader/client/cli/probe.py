"""Peer probe command for thermal-uploader CLI.

Commands:
- probe: Check whether the local peer can be found
"""

from __future__ import annotations

import sys
from pathlib import Path

import click

from thermaluploader.client.cli.config import (
    CONFIG_OPTION_HELP,
    build_peer,
    load_agent_config,
)
from thermaluploader.core.config import DEFAULT_CONFIG_FILE


@click.command()
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(path_type=Path),
    default=DEFAULT_CONFIG_FILE,
    show_default=True,
    help=CONFIG_OPTION_HELP,
)
def probe(config_path: Path) -> None:
    """Look for the local peer once and report the result."""
    config = load_agent_config(config_path)

    with build_peer(config) as peer:
        available = peer.probe()
        address = peer.address

    if available:
        click.echo(f"Peer {config.peer.name} available at {address}:{config.peer.port}")
        return

    if address:
        click.echo(f"Peer {config.peer.name} resolved to {address} but is not responding")
    else:
        click.echo(f"Peer {config.peer.name} not available")
    sys.exit(1)
