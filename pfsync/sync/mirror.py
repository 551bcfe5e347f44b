"""One-way mirroring of each source into its destination folder."""

import logging
from dataclasses import dataclass
from typing import Optional

from .. import rclone
from ..exceptions import ProcessError
from ..models import SourceRemote, SyncRunOptions
from ..runner import ProcessRunner
from ..transcript import Transcript
from ..utils import format_command, is_reserved_source
from .paths import destination_folder, source_path

logger = logging.getLogger(__name__)


@dataclass
class MirrorOutcome:
    """Result of mirroring one source."""

    name: str
    source_path: str
    dest_path: str
    success: bool
    error: Optional[str] = None


def resolve_subfolder(name: str, options: SyncRunOptions) -> str:
    """Subfolder restriction recorded for ``name``, or an empty string."""
    metadata = options.metadata_by_source.get(name)
    if metadata is not None and metadata.has_subfolder:
        return metadata.subfolder
    return ""


class MirrorExecutor:
    """Runs ``rclone sync`` for every configured source, one at a time.

    A failing source never stops the sources after it.
    """

    def __init__(self, runner: ProcessRunner, transcript: Transcript):
        self.runner = runner
        self.transcript = transcript

    def mirror_all(self, options: SyncRunOptions) -> list[MirrorOutcome]:
        """Mirror all sources in the order given.

        Args:
            options: Run options; ``execute`` False adds ``--dry-run``

        Returns:
            One outcome per mirrored source (reserved names are skipped)
        """
        outcomes = []
        for source in options.sources:
            if is_reserved_source(source.name):
                logger.debug("Skipping reserved source name %r", source.name)
                continue
            outcomes.append(self.mirror(source, options))
        return outcomes

    def mirror(self, source: SourceRemote, options: SyncRunOptions) -> MirrorOutcome:
        out = self.transcript
        name = source.name
        dry_run = not options.execute
        label = "Sync test" if dry_run else "Sync"

        subfolder = resolve_subfolder(name, options)
        if subfolder:
            logger.info("Using subfolder restriction for %s: %s", name, subfolder)

        src = source_path(name, subfolder)
        dest = destination_folder(
            options.destination_remote_name, options.bucket_name, name
        )
        args = rclone.sync_args(
            options.executable_path, src, dest, options.config_path, dry_run
        )
        out.append(f"Executing {label.lower()} command: {format_command(args)}")

        try:
            result = self.runner.run(args)
        except ProcessError as e:
            out.error(
                f"--- {label} for {name} ---\n"
                f"Error: {e}\n\nOutput:\n{e.stdout}\n\nErrors:\n{e.stderr}"
            )
            return MirrorOutcome(
                name=name, source_path=src, dest_path=dest, success=False, error=str(e)
            )

        block = f"--- {label} for {name} ---\n{result.stdout}"
        if result.stderr.strip():
            block += f"\n{result.stderr}"
        out.append(block.rstrip())
        return MirrorOutcome(name=name, source_path=src, dest_path=dest, success=True)
