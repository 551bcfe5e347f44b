"""Utility functions and constants shared across pfsync."""

import shlex
import subprocess
import sys
from typing import Sequence

# =============================================================================
# Constants for rclone invocations
# =============================================================================

# Upper bound on captured stdout/stderr per command (50 MB)
DEFAULT_MAX_BUFFER: int = 50 * 1024 * 1024

# Source names that are never mirrored
RESERVED_SOURCE_NAMES: frozenset[str] = frozenset({"remotes"})

# Literal marker whose presence in a transcript fails the run
ERROR_MARKER: str = "Error:"

# Bucket used when the destination config does not name one
DEFAULT_BUCKET_NAME: str = "asi-essentia-ai-new"


# =============================================================================
# Command line rendering
# =============================================================================


def format_command(args: Sequence[str]) -> str:
    """Render an argument list as a command line for the current platform.

    The result is only used for display; commands are always executed from
    the argument list without a shell.

    Examples:
        >>> format_command(["rclone", "lsd", "my remote:"])  # doctest: +SKIP
        "rclone lsd 'my remote:'"
    """
    if sys.platform == "win32":
        return subprocess.list2cmdline(list(args))
    return shlex.join(args)


# =============================================================================
# Name helpers
# =============================================================================


def strip_trailing_slash(name: str) -> str:
    """Remove a single trailing slash from a folder name."""
    if name.endswith("/"):
        return name[:-1]
    return name


def is_reserved_source(name: str) -> bool:
    """Return True for source names that must not be synced."""
    return name in RESERVED_SOURCE_NAMES
