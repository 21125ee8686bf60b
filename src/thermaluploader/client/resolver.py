"""Local network name resolution for peer discovery.

This module provides:
- NameResolver: Protocol for resolving a local network name to an address
- AvahiResolver: Resolves mDNS names with the ``avahi-resolve`` command
- StaticResolver: Always returns a fixed address
"""

from __future__ import annotations

import logging
import subprocess
from typing import Protocol

logger = logging.getLogger(__name__)

AVAHI_RESOLVE = "avahi-resolve"
RESOLVE_FAILED_MARKER = "Failed to resolve"


class NameResolver(Protocol):
    """Resolves a local network name to an address."""

    def resolve(self, name: str) -> str | None:
        """Resolve a name.

        Returns:
            The address, or None if the name could not be resolved.
        """
        ...


def parse_avahi_output(output: str) -> str | None:
    """Parse ``avahi-resolve`` output.

    A successful lookup prints ``<hostname>\\t<address>``. Anything else
    (an explicit failure message, a different number of fields) means the
    name did not resolve.

    Args:
        output: Standard output of the command.

    Returns:
        The resolved address, or None.
    """
    if RESOLVE_FAILED_MARKER in output:
        return None
    fields = output.split("\t")
    if len(fields) != 2:
        return None
    address = fields[1].strip()
    return address or None


class AvahiResolver:
    """Resolves names over mDNS using ``avahi-resolve -4 -n``."""

    def __init__(self, timeout: float = 10.0, command: str = AVAHI_RESOLVE) -> None:
        """Initialize the resolver.

        Args:
            timeout: Maximum time to wait for the command, in seconds.
            command: Name or path of the avahi-resolve executable.
        """
        self._timeout = timeout
        self._command = command

    def resolve(self, name: str) -> str | None:
        """Resolve a name to an IPv4 address."""
        try:
            result = subprocess.run(
                [self._command, "-4", "-n", name],
                capture_output=True,
                text=True,
                timeout=self._timeout,
                check=False,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.warning("Name resolution for %s failed: %s", name, e)
            return None

        if result.returncode != 0:
            logger.debug(
                "%s exited with %d: %s",
                self._command,
                result.returncode,
                result.stderr.strip(),
            )
            return None

        return parse_avahi_output(result.stdout)


class StaticResolver:
    """Resolver that always returns the same address."""

    def __init__(self, address: str) -> None:
        self._address = address

    def resolve(self, name: str) -> str | None:
        return self._address
