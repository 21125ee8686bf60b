"""Logging setup for the thermaluploader agent."""

from __future__ import annotations

import logging
import sys

LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


def setup_logging(verbose: bool = False) -> None:
    """Configure the thermaluploader logger to write to stdout.

    No timestamps are added, the service manager records them.

    Args:
        verbose: Log DEBUG messages as well.
    """
    root_logger = logging.getLogger("thermaluploader")
    root_logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root_logger.addHandler(stdout_handler)
    root_logger.propagate = False
