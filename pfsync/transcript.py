"""Append-only transcript of a sync run."""

import logging
from typing import Optional

from .utils import ERROR_MARKER


class Transcript:
    """Human-readable record of every step and command output of one run.

    Entries are only ever appended. Each entry is also forwarded to an
    injected logger, so callers decide where the run is echoed (console,
    log file, nothing) without patching global logging.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        """Initialize an empty transcript.

        Args:
            logger: Logger receiving a copy of each entry. Defaults to the
                ``pfsync.transcript`` logger.
        """
        self.logger = logger or logging.getLogger(__name__)
        self._entries: list[str] = []

    def append(self, message: str) -> None:
        """Record an informational entry."""
        self._entries.append(message)
        self.logger.info(message)

    def warning(self, message: str) -> None:
        """Record a warning entry."""
        self._entries.append(message)
        self.logger.warning(message)

    def error(self, message: str) -> None:
        """Record an error entry."""
        self._entries.append(message)
        self.logger.error(message)

    @property
    def entries(self) -> list[str]:
        return list(self._entries)

    @property
    def text(self) -> str:
        return "\n".join(self._entries)

    def has_error_marker(self) -> bool:
        """True when any entry contains the literal error marker."""
        return any(ERROR_MARKER in entry for entry in self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __str__(self) -> str:
        return self.text
