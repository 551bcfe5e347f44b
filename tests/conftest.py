"""Shared fixtures for pfsync tests."""

import pytest

from pfsync.exceptions import ProcessError
from pfsync.models import SourceRemote, SyncRunOptions
from pfsync.runner import ProcessResult


def lsd_line(name: str, time: str = "10:11:12") -> str:
    """Format a folder the way ``rclone lsd`` prints it."""
    return f"          -1 2024-03-05 {time}        -1 {name}"


class FakeRclone:
    """Stands in for ProcessRunner and emulates a destination bucket.

    Purges and syncs only change ``folders`` when ``--dry-run`` is absent.
    """

    def __init__(self, folders=None):
        self.folders = list(folders or [])
        self.calls: list[list[str]] = []
        self.fail_list = False
        self.fail_purge: set[str] = set()
        self.fail_sync: set[str] = set()
        self.listing_override = None

    def run(self, args):
        args = [str(arg) for arg in args]
        self.calls.append(args)
        command = args[1]
        dry_run = "--dry-run" in args

        if command == "lsd":
            if self.fail_list:
                raise ProcessError(
                    "Command failed with exit code 3: rclone lsd",
                    command=args,
                    returncode=3,
                    stderr="ERROR : directory not found",
                )
            if self.listing_override is not None:
                stdout = self.listing_override
            else:
                stdout = "".join(lsd_line(name) + "\n" for name in self.folders)
            return ProcessResult(args=args, returncode=0, stdout=stdout, stderr="")

        if command == "purge":
            folder = args[2].rsplit("/", 1)[1]
            if folder in self.fail_purge:
                raise ProcessError(
                    "Command failed with exit code 1: rclone purge",
                    command=args,
                    returncode=1,
                    stderr="ERROR : permission denied",
                )
            if not dry_run:
                self.folders = [f for f in self.folders if f.lower() != folder.lower()]
            return ProcessResult(args=args, returncode=0, stdout="", stderr="")

        if command == "sync":
            name = args[2].split(":", 1)[0]
            if name in self.fail_sync:
                raise ProcessError(
                    "Command failed with exit code 1: rclone sync",
                    command=args,
                    returncode=1,
                    stdout="partial output",
                    stderr="ERROR : token expired",
                )
            if not dry_run and name not in self.folders:
                self.folders.append(name)
            return ProcessResult(
                args=args,
                returncode=0,
                stdout=f"Transferred: 0 B for {name}\n",
                stderr="",
            )

        raise AssertionError(f"unexpected rclone command: {args}")

    def commands(self, name: str) -> list[list[str]]:
        return [call for call in self.calls if call[1] == name]


@pytest.fixture
def fake_rclone():
    return FakeRclone()


@pytest.fixture
def make_options():
    """Factory for SyncRunOptions with test defaults."""

    def factory(sources=("gdrive1",), **kwargs):
        kwargs.setdefault("executable_path", "rclone")
        kwargs.setdefault("config_path", "/tmp/pf/rclone.conf")
        kwargs.setdefault("destination_remote_name", "pfuser")
        kwargs.setdefault("bucket_name", "data")
        return SyncRunOptions(
            sources=[
                s if isinstance(s, SourceRemote) else SourceRemote(name=s)
                for s in sources
            ],
            **kwargs,
        )

    return factory
