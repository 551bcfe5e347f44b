"""Execution of the external rclone executable."""

import logging
import subprocess
import threading
import time
from dataclasses import dataclass
from typing import IO, Optional, Sequence

from .exceptions import ProcessError
from .utils import DEFAULT_MAX_BUFFER, format_command

logger = logging.getLogger(__name__)

# Bytes read from a pipe per call
_CHUNK_SIZE = 64 * 1024

# Seconds between checks for overflow and timeout while a command runs
_POLL_INTERVAL = 0.05


@dataclass
class ProcessResult:
    """Captured output of a successful command."""

    args: list[str]
    returncode: int
    stdout: str
    stderr: str

    @property
    def command(self) -> str:
        return format_command(self.args)


class _StreamReader(threading.Thread):
    """Drains one pipe into memory, stopping once ``limit`` bytes are exceeded."""

    def __init__(self, stream: IO[bytes], limit: int, overflow: threading.Event):
        super().__init__(daemon=True)
        self.stream = stream
        self.limit = limit
        self.overflow = overflow
        self.chunks: list[bytes] = []
        self.size = 0

    def run(self) -> None:
        try:
            while True:
                chunk = self.stream.read1(_CHUNK_SIZE)
                if not chunk:
                    break
                if self.size + len(chunk) > self.limit:
                    self.chunks.append(chunk[: self.limit - self.size])
                    self.size = self.limit
                    self.overflow.set()
                    break
                self.chunks.append(chunk)
                self.size += len(chunk)
        except (OSError, ValueError) as e:
            logger.debug("Stopped reading process output: %s", e)
        finally:
            self.stream.close()

    @property
    def data(self) -> bytes:
        return b"".join(self.chunks)


class ProcessRunner:
    """Runs one command at a time and classifies its outcome.

    The runner never retries. Every failure (non-zero exit, spawn error,
    output overflow, timeout) is raised as :class:`ProcessError`; the retry
    and continue policy belongs to the caller.
    """

    def __init__(
        self,
        max_buffer: int = DEFAULT_MAX_BUFFER,
        timeout: Optional[float] = None,
    ):
        """Initialize the runner.

        Args:
            max_buffer: Maximum number of bytes captured per stream. A
                command writing more is killed.
            timeout: Seconds before a command is killed (None waits forever)
        """
        self.max_buffer = max_buffer
        self.timeout = timeout

    def run(self, args: Sequence[str]) -> ProcessResult:
        """Run a command to completion.

        Both streams are read while the command runs, so a command is
        stopped as soon as either stream passes ``max_buffer``.

        Args:
            args: Executable followed by its arguments

        Returns:
            ProcessResult with decoded stdout and stderr

        Raises:
            ProcessError: If the command fails in any way
        """
        args = [str(arg) for arg in args]
        command = format_command(args)
        logger.debug("Running: %s", command)

        try:
            process = subprocess.Popen(
                args,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
        except OSError as e:
            raise ProcessError(
                f"Failed to start {args[0]}: {e}",
                command=args,
                stderr=str(e),
                reason="spawn",
            ) from e

        overflow = threading.Event()
        readers = [
            _StreamReader(process.stdout, self.max_buffer, overflow),
            _StreamReader(process.stderr, self.max_buffer, overflow),
        ]
        for reader in readers:
            reader.start()

        timed_out = self._wait(process, overflow)
        if timed_out or overflow.is_set():
            process.kill()
        process.wait()
        for reader in readers:
            reader.join()

        stdout = _decode(readers[0].data)
        stderr = _decode(readers[1].data)

        if timed_out:
            raise ProcessError(
                f"Command timed out after {self.timeout}s: {command}",
                command=args,
                returncode=process.returncode,
                stdout=stdout,
                stderr=stderr,
                reason="timeout",
            )

        if overflow.is_set():
            raise ProcessError(
                f"Output exceeded {self.max_buffer} bytes: {command}",
                command=args,
                returncode=process.returncode,
                stdout=stdout,
                stderr=stderr,
                reason="overflow",
            )

        if process.returncode != 0:
            raise ProcessError(
                f"Command failed with exit code {process.returncode}: {command}",
                command=args,
                returncode=process.returncode,
                stdout=stdout,
                stderr=stderr,
            )

        logger.debug("Command completed: %s", command)
        return ProcessResult(
            args=args,
            returncode=process.returncode,
            stdout=stdout,
            stderr=stderr,
        )

    def _wait(self, process: subprocess.Popen, overflow: threading.Event) -> bool:
        """Wait for exit or overflow. Returns True if the timeout expired first."""
        deadline = None if self.timeout is None else time.monotonic() + self.timeout
        while process.poll() is None:
            if overflow.wait(_POLL_INTERVAL):
                return False
            if deadline is not None and time.monotonic() >= deadline:
                return True
        return False


def _decode(data: Optional[bytes]) -> str:
    if not data:
        return ""
    return data.decode("utf-8", errors="replace")
