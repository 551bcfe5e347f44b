"""Argument builders for the rclone operations pfsync issues."""

from pathlib import Path
from typing import Union

PathLike = Union[str, Path]

DRY_RUN_FLAG = "--dry-run"


def listremotes_args(executable: str, config_path: PathLike) -> list[str]:
    return [executable, "listremotes", "--config", str(config_path)]


def version_args(executable: str) -> list[str]:
    return [executable, "version"]


def lsd_args(executable: str, path: str, config_path: PathLike) -> list[str]:
    """List directories one level below ``path``."""
    return [executable, "lsd", path, "--max-depth", "1", "--config", str(config_path)]


def purge_args(
    executable: str, path: str, config_path: PathLike, dry_run: bool
) -> list[str]:
    """Recursively delete ``path`` and everything below it."""
    args = [executable, "purge", path]
    if dry_run:
        args.append(DRY_RUN_FLAG)
    args.extend(["-v", "--config", str(config_path)])
    return args


def sync_args(
    executable: str,
    source: str,
    destination: str,
    config_path: PathLike,
    dry_run: bool,
) -> list[str]:
    """Make ``destination`` identical to ``source``, deleting extra files."""
    args = [executable, "sync", source, destination]
    if dry_run:
        args.append(DRY_RUN_FLAG)
    args.extend(["--progress", "--config", str(config_path)])
    return args


def ls_args(executable: str, path: str, config_path: PathLike) -> list[str]:
    """List every file below ``path`` with its size."""
    return [executable, "ls", path, "--config", str(config_path)]


def size_args(executable: str, path: str, config_path: PathLike) -> list[str]:
    """Count the objects below ``path`` and their total size."""
    return [executable, "size", path, "--config", str(config_path)]
