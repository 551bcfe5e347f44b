"""Sync orchestration: orphan reconciliation followed by mirroring."""

import json
import logging
import os
import tempfile
from dataclasses import replace
from pathlib import Path
from typing import Optional, Union

from ..exceptions import SetupError
from ..models import SyncRunOptions, SyncRunReport
from ..runner import ProcessRunner
from ..transcript import Transcript
from .mirror import MirrorExecutor, MirrorOutcome
from .reconciler import OrphanReconciler, ReconcileResult

logger = logging.getLogger(__name__)


class SyncOrchestrator:
    """Runs a complete sync: reconcile the destination, then mirror sources.

    Every command runs to completion before the next one starts, so all
    purges finish before the first mirror and the transcript order is
    deterministic.
    """

    def __init__(
        self,
        runner: Optional[ProcessRunner] = None,
        transcript_logger: Optional[logging.Logger] = None,
        state_dir: Optional[Union[str, Path]] = None,
    ):
        """Initialize the orchestrator.

        Args:
            runner: Process runner to use. When omitted a ProcessRunner is
                built per run from the options' timeout and buffer limit.
            transcript_logger: Logger receiving a copy of each transcript entry
            state_dir: Directory for the per-run options snapshot (defaults to
                the system temp directory)
        """
        self.runner = runner
        self.transcript_logger = transcript_logger
        self.state_dir = Path(state_dir) if state_dir is not None else None

        self.last_reconcile: Optional[ReconcileResult] = None
        self.last_outcomes: list[MirrorOutcome] = []

    def test_sync(self, options: SyncRunOptions) -> SyncRunReport:
        """Run a sync, as a dry run unless ``options.execute`` is True.

        Never raises: every failure ends up in the returned report.
        """
        execute = options.execute
        if execute:
            logger.info("Running sync with execution flag...")
        else:
            logger.info("Running sync test with verbose flag...")

        self.last_reconcile = None
        self.last_outcomes = []
        transcript = Transcript(self.transcript_logger)
        snapshot: Optional[Path] = None
        try:
            snapshot = self._write_snapshot(options)
            runner = self.runner or ProcessRunner(
                max_buffer=options.max_buffer, timeout=options.timeout
            )

            reconciler = OrphanReconciler(runner, transcript)
            self.last_reconcile = reconciler.reconcile(options)

            executor = MirrorExecutor(runner, transcript)
            self.last_outcomes = executor.mirror_all(options)

            mirrors_ok = all(outcome.success for outcome in self.last_outcomes)
            success = mirrors_ok and not transcript.has_error_marker()
            return SyncRunReport(
                success=success,
                message=_summary_message(execute, mirrors_ok),
                transcript=transcript.text,
            )
        except Exception as e:
            logger.exception("Sync run failed")
            if execute:
                message = f"Sync operation failed: {e}"
            else:
                message = f"Failed to test connection: {e}"
            return SyncRunReport(
                success=False,
                message=message,
                transcript=transcript.text,
                error=str(e),
            )
        finally:
            if snapshot is not None:
                _remove_snapshot(snapshot)

    def execute_sync(self, options: SyncRunOptions) -> SyncRunReport:
        """Run a real (non dry-run) sync."""
        return self.test_sync(replace(options, execute=True))

    def _write_snapshot(self, options: SyncRunOptions) -> Path:
        """Write the run options to a uniquely named JSON file."""
        try:
            if self.state_dir is not None:
                self.state_dir.mkdir(parents=True, exist_ok=True)
            fd, name = tempfile.mkstemp(
                prefix="pfsync-run-",
                suffix=".json",
                dir=str(self.state_dir) if self.state_dir is not None else None,
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(options.to_dict(), f, indent=2)
        except (OSError, TypeError, ValueError) as e:
            raise SetupError(f"Cannot write run snapshot: {e}") from e
        logger.debug("Wrote run snapshot to %s", name)
        return Path(name)


def _summary_message(execute: bool, success: bool) -> str:
    if execute:
        if success:
            return "Sync operation completed successfully"
        return "Sync operation encountered issues"
    if success:
        return "Connection test completed successfully"
    return "Sync test encountered issues"


def _remove_snapshot(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.error("Error cleaning up temp file %s: %s", path, e)


def test_sync(
    options: SyncRunOptions,
    runner: Optional[ProcessRunner] = None,
    transcript_logger: Optional[logging.Logger] = None,
) -> SyncRunReport:
    """Dry-run (or, with ``options.execute``, real) sync with a default orchestrator."""
    return SyncOrchestrator(runner, transcript_logger).test_sync(options)


test_sync.__test__ = False  # type: ignore[attr-defined]


def execute_sync(
    options: SyncRunOptions,
    runner: Optional[ProcessRunner] = None,
    transcript_logger: Optional[logging.Logger] = None,
) -> SyncRunReport:
    """Real sync with a default orchestrator."""
    return SyncOrchestrator(runner, transcript_logger).execute_sync(options)

