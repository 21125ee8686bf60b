"""Retry policy for uploads and retry with backoff for startup calls.

This module provides:
- RetryPolicy: Attempt budget and delays for one file's upload sequence
- retry_with_backoff: Simple exponential backoff retry
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

# Upload attempts per file (1 initial + 2 retries)
DEFAULT_UPLOAD_ATTEMPTS = 3

# Default retry configuration
DEFAULT_MAX_RETRIES = 5
DEFAULT_INITIAL_BACKOFF = 1.0  # seconds
DEFAULT_MAX_BACKOFF = 60.0  # seconds
DEFAULT_BACKOFF_MULTIPLIER = 2.0


@dataclass(frozen=True)
class RetryPolicy:
    """How many times to try an upload and how long to wait in between.

    The default has no delay: the local peer is a low-latency LAN host.

    Attributes:
        attempts: Total attempts, including the first.
        initial_backoff: Delay after the first failed attempt, in seconds.
        max_backoff: Upper bound for any delay.
        backoff_multiplier: Growth factor between consecutive delays.
    """

    attempts: int = DEFAULT_UPLOAD_ATTEMPTS
    initial_backoff: float = 0.0
    max_backoff: float = DEFAULT_MAX_BACKOFF
    backoff_multiplier: float = DEFAULT_BACKOFF_MULTIPLIER

    def __post_init__(self) -> None:
        if self.attempts < 1:
            raise ValueError("attempts must be at least 1")

    def delay_after(self, attempt: int) -> float:
        """Get the delay after a failed attempt.

        Args:
            attempt: Number of the attempt that failed (1-based).

        Returns:
            Seconds to wait before the next attempt (0 after the last one).
        """
        if attempt >= self.attempts or self.initial_backoff <= 0:
            return 0.0
        delay = self.initial_backoff * self.backoff_multiplier ** (attempt - 1)
        return min(delay, self.max_backoff)


def retry_with_backoff(
    func: Callable[[], Any],
    max_retries: int = DEFAULT_MAX_RETRIES,
    initial_backoff: float = DEFAULT_INITIAL_BACKOFF,
    max_backoff: float = DEFAULT_MAX_BACKOFF,
    backoff_multiplier: float = DEFAULT_BACKOFF_MULTIPLIER,
    retryable_exceptions: tuple[type[Exception], ...] = (Exception,),
    sleep: Callable[[float], Any] = time.sleep,
) -> Any:
    """Execute a function with exponential backoff retry.

    Args:
        func: Function to execute.
        max_retries: Maximum number of retry attempts.
        initial_backoff: Initial backoff time in seconds.
        max_backoff: Maximum backoff time in seconds.
        backoff_multiplier: Multiplier for each retry.
        retryable_exceptions: Tuple of exception types to retry on.
        sleep: Function used to wait between attempts.

    Returns:
        Result of the function.

    Raises:
        The last exception if all retries fail.
    """
    backoff = initial_backoff

    for attempt in range(max_retries + 1):
        try:
            return func()
        except retryable_exceptions as e:
            if attempt == max_retries:
                logger.error(f"All {max_retries} retries failed: {e}")
                raise

            logger.warning(
                f"Attempt {attempt + 1}/{max_retries + 1} failed: {e}. "
                f"Retrying in {backoff:.1f}s..."
            )
            sleep(backoff)
            backoff = min(backoff * backoff_multiplier, max_backoff)

    raise RuntimeError("Unexpected retry loop exit")
