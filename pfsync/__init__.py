"""pfsync - Mirror cloud storage remotes into a PageFinder bucket with rclone."""

from .exceptions import (
    ConfigError,
    PfSyncError,
    ProcessError,
    RegistryError,
    SetupError,
)
from .models import RemoteMetadata, SourceRemote, SyncRunOptions, SyncRunReport
from .runner import ProcessResult, ProcessRunner
from .sync import SyncOrchestrator, execute_sync, test_sync
from .transcript import Transcript

__all__ = [
    "SyncOrchestrator",
    "test_sync",
    "execute_sync",
    "SyncRunOptions",
    "SyncRunReport",
    "SourceRemote",
    "RemoteMetadata",
    "ProcessRunner",
    "ProcessResult",
    "Transcript",
    "PfSyncError",
    "ProcessError",
    "SetupError",
    "ConfigError",
    "RegistryError",
]
