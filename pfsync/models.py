"""Data models for sync runs."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Union

from .utils import DEFAULT_MAX_BUFFER

SUBFOLDER_TYPE = "subfolder"
FULL_TYPE = "full"


@dataclass
class RemoteMetadata:
    """Per-remote metadata kept alongside the rclone credentials."""

    type: str = FULL_TYPE
    """Restriction kind: "subfolder" restricts syncing to ``subfolder``"""

    subfolder: str = ""
    """Relative path inside the remote (may be empty)"""

    @property
    def has_subfolder(self) -> bool:
        """True when this metadata restricts the remote to a subfolder."""
        return self.type == SUBFOLDER_TYPE and bool(self.subfolder)

    def to_dict(self) -> dict:
        return {"type": self.type, "subfolder": self.subfolder}

    @classmethod
    def from_dict(cls, data: dict) -> "RemoteMetadata":
        return cls(
            type=data.get("type") or FULL_TYPE,
            subfolder=data.get("subfolder") or "",
        )


@dataclass
class SourceRemote:
    """A configured source remote that is mirrored into the destination."""

    name: str
    """Remote name, matching a section of the merged rclone config"""

    provider: str = "unknown"
    """Provider kind (drive, onedrive, box, dropbox, local, ...)"""

    subfolder: str = ""
    """Optional subfolder restriction"""

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "provider": self.provider,
            "subfolder": self.subfolder,
        }


@dataclass
class SyncRunOptions:
    """Fully resolved input for one orchestration run.

    A source that carries its own ``subfolder`` and has no entry in
    ``metadata_by_source`` gets a subfolder metadata entry on construction,
    so the engine only ever consults ``metadata_by_source``.
    """

    executable_path: str
    config_path: Union[str, Path]
    sources: list[SourceRemote]
    destination_remote_name: str
    bucket_name: str
    execute: bool = False
    metadata_by_source: dict[str, RemoteMetadata] = field(default_factory=dict)
    timeout: Optional[float] = None
    max_buffer: int = DEFAULT_MAX_BUFFER

    def __post_init__(self) -> None:
        self.config_path = str(self.config_path)
        self.metadata_by_source = dict(self.metadata_by_source)
        for source in self.sources:
            if source.subfolder and source.name not in self.metadata_by_source:
                self.metadata_by_source[source.name] = RemoteMetadata(
                    type=SUBFOLDER_TYPE, subfolder=source.subfolder
                )

    @property
    def source_names(self) -> list[str]:
        return [source.name for source in self.sources]

    def to_dict(self) -> dict[str, Any]:
        """Convert options to a JSON-serialisable dictionary."""
        return {
            "executable_path": self.executable_path,
            "config_path": self.config_path,
            "sources": [source.to_dict() for source in self.sources],
            "destination_remote_name": self.destination_remote_name,
            "bucket_name": self.bucket_name,
            "execute": self.execute,
            "metadata_by_source": {
                name: metadata.to_dict()
                for name, metadata in self.metadata_by_source.items()
            },
            "timeout": self.timeout,
            "max_buffer": self.max_buffer,
        }


@dataclass
class SyncRunReport:
    """Outcome of one orchestration run."""

    success: bool
    message: str
    transcript: str = ""
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "success": self.success,
            "message": self.message,
            "transcript": self.transcript,
        }
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass
class RemoteCheck:
    """Size summary and top-level listing of one source remote."""

    name: str
    provider: str = "unknown"
    path: str = ""
    """rclone path that was inspected, including any subfolder"""

    summary: str = ""
    """Output of ``rclone size``"""

    listing: str = ""
    """Formatted directory (or file) listing"""

    success: bool = True
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "name": self.name,
            "provider": self.provider,
            "path": self.path,
            "summary": self.summary,
            "listing": self.listing,
            "success": self.success,
        }
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass
class DestinationCheck:
    """Outcome of listing the user folder of the destination remote."""

    success: bool
    message: str
    remote_name: str = ""
    path: str = ""
    output: str = ""
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "success": self.success,
            "message": self.message,
            "remote_name": self.remote_name,
            "path": self.path,
            "output": self.output,
        }
        if self.error is not None:
            data["error"] = self.error
        return data
