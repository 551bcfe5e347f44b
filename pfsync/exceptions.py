"""Exception hierarchy for pfsync."""

from typing import Any, Optional, Sequence


class PfSyncError(Exception):
    """Base exception for pfsync.

    Attributes:
        details: Optional structured information about the failure
    """

    def __init__(self, message: str, *, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ProcessError(PfSyncError):
    """Raised when an external command exits non-zero or cannot be run.

    Carries the captured output so callers can put rclone's own error text
    into the transcript.
    """

    def __init__(
        self,
        message: str,
        *,
        command: Sequence[str] = (),
        returncode: Optional[int] = None,
        stdout: str = "",
        stderr: str = "",
        reason: str = "exit",
    ):
        super().__init__(
            message,
            details={"returncode": returncode, "reason": reason},
        )
        self.command = list(command)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        self.reason = reason


class SetupError(PfSyncError):
    """Raised when a sync run cannot be prepared."""


class ConfigError(PfSyncError):
    """Raised when settings or rclone config files are missing or invalid."""


class RegistryError(PfSyncError):
    """Raised when the remote registry cannot be read or updated."""
