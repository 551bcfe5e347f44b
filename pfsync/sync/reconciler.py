"""Removal of destination folders that no longer match a configured source."""

import logging
from dataclasses import dataclass, field
from typing import Optional

from .. import rclone
from ..exceptions import ProcessError
from ..models import SyncRunOptions
from ..runner import ProcessRunner
from ..transcript import Transcript
from ..utils import format_command, is_reserved_source, strip_trailing_slash
from .listing import ListingWarning, parse_lsd_output
from .paths import destination_base

logger = logging.getLogger(__name__)


@dataclass
class ReconcileResult:
    """What the reconciler found and did in one run."""

    listed: list[str] = field(default_factory=list)
    """Normalized folder names found in the destination"""

    orphans: list[str] = field(default_factory=list)
    """Folders without a matching source"""

    purged: list[str] = field(default_factory=list)
    """Orphans whose purge command succeeded (or would, in a dry run)"""

    failed: list[str] = field(default_factory=list)
    """Orphans whose purge command failed"""

    warnings: list[ListingWarning] = field(default_factory=list)

    skipped: bool = False
    """True when the destination could not be listed"""

    error: Optional[str] = None


def find_orphans(folders: list[str], source_names: list[str]) -> list[str]:
    """Return the folders that match no source name.

    Folder names lose one trailing slash and are compared case-insensitively.
    Reserved source names never protect a folder.

    Examples:
        >>> find_orphans(["Drive1/", "old"], ["drive1"])
        ['old']
    """
    known = {name.lower() for name in source_names if not is_reserved_source(name)}
    orphans = []
    for folder in folders:
        normalized = strip_trailing_slash(folder)
        if normalized.lower() not in known:
            orphans.append(normalized)
    return orphans


class OrphanReconciler:
    """Purges destination folders left behind by removed sources."""

    def __init__(self, runner: ProcessRunner, transcript: Transcript):
        self.runner = runner
        self.transcript = transcript

    def reconcile(self, options: SyncRunOptions) -> ReconcileResult:
        """List the destination and purge every orphan folder.

        A listing failure skips reconciliation. A purge failure is recorded
        and the remaining orphans are still processed. Nothing is raised for
        either.
        """
        out = self.transcript
        result = ReconcileResult()
        dry_run = not options.execute

        if dry_run:
            out.append("=== CHECKING FOR ORPHAN FOLDERS (DRY RUN MODE) ===")
            out.append("Checking for orphan folders in destination (dry run)...")
        else:
            out.append("=== CHECKING FOR ORPHAN FOLDERS (EXECUTION MODE) ===")
            out.append("Checking for orphan folders in destination...")

        dest_path = destination_base(
            options.destination_remote_name, options.bucket_name
        )
        args = rclone.lsd_args(options.executable_path, dest_path, options.config_path)
        out.append(f"Executing command: {format_command(args)}")

        try:
            listing_output = self.runner.run(args).stdout
        except ProcessError as e:
            result.skipped = True
            result.error = str(e)
            out.error(f"Error checking for orphan folders: {e}")
            if e.stderr.strip():
                out.append(e.stderr.rstrip())
            out.append("Skipping orphan folder check.")
            return result

        out.append(f"Raw output from rclone lsd command:\n{listing_output}")
        listing = parse_lsd_output(listing_output)
        result.warnings = listing.warnings
        for warning in listing.warnings:
            out.warning(
                f"Warning: Could not parse folder name from line: {warning.line}"
            )

        result.listed = [strip_trailing_slash(folder) for folder in listing.folders]
        sources = [
            name for name in options.source_names if not is_reserved_source(name)
        ]
        out.append(
            f"Found {len(result.listed)} folders in destination: "
            f"{', '.join(result.listed)}"
        )
        out.append(f"Cloud remotes for comparison: {', '.join(sources)}")

        if not result.listed:
            out.warning("Warning: No folders found in destination. Nothing to purge.")
            return result

        result.orphans = find_orphans(listing.folders, sources)
        if not result.orphans:
            out.append("No orphan folders found.")

        for folder in result.orphans:
            if self._purge(folder, dest_path, options):
                result.purged.append(folder)
            else:
                result.failed.append(folder)

        logger.debug(
            "Reconciled %s: %d orphan(s), %d failed",
            dest_path,
            len(result.orphans),
            len(result.failed),
        )
        return result

    def _purge(self, folder: str, dest_path: str, options: SyncRunOptions) -> bool:
        out = self.transcript
        dry_run = not options.execute
        delete_path = f"{dest_path}/{folder}"

        out.append(f'Folder "{folder}" does not exist in remotes list, deleting...')
        if dry_run:
            out.append(f"=== WOULD PURGE ORPHAN FOLDER: {folder} (DRY RUN) ===")
        else:
            out.append(f"=== PURGING ORPHAN FOLDER: {folder} ===")

        args = rclone.purge_args(
            options.executable_path, delete_path, options.config_path, dry_run
        )
        out.append(f"Executing purge command: {format_command(args)}")

        try:
            result = self.runner.run(args)
        except ProcessError as e:
            out.error(f"Failed to delete folder {folder}: {e}")
            if e.stderr.strip():
                out.append(e.stderr.rstrip())
            return False

        for stream in (result.stdout, result.stderr):
            if stream.strip():
                out.append(stream.rstrip())
        if dry_run:
            out.append(
                f"=== PURGE SIMULATION SUCCESSFUL: Folder {folder} "
                "would be deleted (dry run) ==="
            )
        else:
            out.append(f"=== PURGE SUCCESSFUL: Folder {folder} deleted ===")
        return True
