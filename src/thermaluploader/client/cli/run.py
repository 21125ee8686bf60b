"""Run command for thermal-uploader CLI.

Commands:
- run: Watch the recordings directory and upload finished recordings
"""

from __future__ import annotations

import logging
import signal
import sys
from pathlib import Path

import click
import httpx

from thermaluploader import __version__
from thermaluploader.client.api import APIError, CacophonyClient
from thermaluploader.client.cli.config import (
    CONFIG_OPTION_HELP,
    build_peer,
    load_agent_config,
)
from thermaluploader.client.metadata import CPTVExtractor
from thermaluploader.client.sync import retry_with_backoff
from thermaluploader.core.config import (
    DEFAULT_CONFIG_FILE,
    ConfigError,
    priv_config_path,
    read_password,
    write_password,
)
from thermaluploader.core.log import setup_logging

logger = logging.getLogger("thermaluploader.client.cli")


def _connect(client: CacophonyClient) -> None:
    """Register or authenticate, retrying while the network is down."""
    retry_with_backoff(
        client.connect,
        retryable_exceptions=(httpx.TransportError,),
    )


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
@click.option("--once", is_flag=True, help="Upload pending recordings and exit.")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def run(config_path: Path, once: bool, verbose: bool) -> None:
    """Watch the recordings directory and upload finished recordings.

    Each recording goes to the local peer when it is on the network,
    otherwise to the cloud API.
    """
    from thermaluploader.client.agent import UploaderAgent

    setup_logging(verbose)
    logger.info("Running version: %s", __version__)

    config = load_agent_config(config_path)

    priv_path = priv_config_path(config_path)
    logger.info("Private settings file: %s", priv_path)
    try:
        password = read_password(priv_path)
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    api = CacophonyClient(config.server, password=password)
    try:
        _connect(api)
    except (APIError, httpx.HTTPError) as e:
        click.echo(f"Error: cannot connect to {config.server.server_url}: {e}", err=True)
        sys.exit(1)

    if api.just_registered and api.password:
        logger.info("First time registration - saving password")
        try:
            write_password(priv_path, api.password)
        except OSError as e:
            click.echo(f"Error: cannot save password to {priv_path}: {e}", err=True)
            sys.exit(1)

    peer = build_peer(config)
    agent = UploaderAgent(
        config.directory,
        peer,
        api,
        CPTVExtractor(),
        remote_retry_delay=config.remote_retry_delay,
    )

    def signal_handler(signum: int, frame: object) -> None:
        logger.info("Received signal %d", signum)
        agent.stop()

    signal.signal(signal.SIGTERM, signal_handler)

    try:
        agent.prepare()
        if once:
            result = agent.run_once()
            click.echo(
                f"{result.uploaded} uploaded, {result.discarded} discarded, "
                f"{result.quarantined} quarantined"
            )
        else:
            agent.run()
    except KeyboardInterrupt:
        agent.stop()
    except (OSError, ValueError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    finally:
        peer.close()
        api.close()
