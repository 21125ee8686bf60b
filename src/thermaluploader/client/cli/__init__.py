"""Command-line interface for thermal-uploader.

This module provides the main CLI entry point and assembles all commands.

Commands:
- run: Watch the recordings directory and upload finished recordings
- probe: Check whether the local peer can be found
"""

from __future__ import annotations

import click

from thermaluploader import __version__
from thermaluploader.client.cli.config import build_peer, load_agent_config
from thermaluploader.client.cli.probe import probe
from thermaluploader.client.cli.run import run


@click.group()
@click.version_option(__version__)
def cli() -> None:
    """thermal-uploader - Ship thermal recordings to a local peer or the cloud."""


cli.add_command(run)
cli.add_command(probe)


def main() -> None:
    """Entry point for the CLI."""
    cli()


__all__ = [
    "build_peer",
    "cli",
    "load_agent_config",
    "main",
]
