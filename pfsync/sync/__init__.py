"""Sync engine for pfsync - orphan reconciliation and source mirroring."""

from .engine import SyncOrchestrator, execute_sync, test_sync
from .listing import (
    ListingWarning,
    ParsedListing,
    parse_folder_line,
    parse_lsd_output,
    summarize_listing,
)
from .mirror import MirrorExecutor, MirrorOutcome, resolve_subfolder
from .paths import destination_base, destination_folder, source_path
from .reconciler import OrphanReconciler, ReconcileResult, find_orphans

__all__ = [
    "SyncOrchestrator",
    "test_sync",
    "execute_sync",
    "OrphanReconciler",
    "ReconcileResult",
    "find_orphans",
    "MirrorExecutor",
    "MirrorOutcome",
    "resolve_subfolder",
    "ListingWarning",
    "ParsedListing",
    "parse_folder_line",
    "parse_lsd_output",
    "summarize_listing",
    "destination_base",
    "destination_folder",
    "source_path",
]