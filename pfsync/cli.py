"""CLI interface for pfsync."""

import logging
from pathlib import Path
from typing import Any, Optional

import click

from .config import Config, config
from .exceptions import ConfigError, RegistryError
from .models import SUBFOLDER_TYPE, RemoteMetadata
from .output import OutputFormatter
from .registry import RemoteRegistry
from .runner import ProcessRunner
from .sync import SyncOrchestrator

logger = logging.getLogger(__name__)


def _get_config(ctx: Any) -> Config:
    return ctx.obj["config"]


def _get_registry(cfg: Config) -> RemoteRegistry:
    return RemoteRegistry(
        config_path=cfg.cloud_config_path,
        metadata_path=cfg.metadata_path,
        runner=ProcessRunner(),
        rclone_path=cfg.rclone_path,
    )


@click.group()
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json", is_flag=True, help="Output in JSON format")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.option(
    "--config-dir",
    type=click.Path(file_okay=False, path_type=Path),
    envvar="PFSYNC_CONFIG_DIR",
    help="Directory holding settings and rclone config files",
)
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Also write the run log to this file",
)
@click.version_option(package_name="pfsync")
@click.pass_context
def main(
    ctx: Any,
    quiet: bool,
    json: bool,
    verbose: bool,
    config_dir: Optional[Path],
    log_file: Optional[Path],
) -> None:
    """pfsync - Mirror cloud storage remotes into PageFinder with rclone."""
    ctx.ensure_object(dict)
    ctx.obj["out"] = OutputFormatter(json_output=json, quiet=quiet)
    ctx.obj["config"] = Config(config_dir) if config_dir else config
    ctx.obj["verbose"] = verbose

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        logging.getLogger("pfsync").setLevel(logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING)

    if log_file:
        _attach_log_file(ctx, log_file, verbose)


def _attach_log_file(ctx: Any, log_file: Path, verbose: bool) -> None:
    """Copy pfsync logging to ``log_file`` until the command finishes."""
    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_file, mode="w", encoding="utf-8")
    handler.setFormatter(
        logging.Formatter("[%(asctime)s] [%(levelname)s] %(message)s")
    )
    pfsync_logger = logging.getLogger("pfsync")
    previous_level = pfsync_logger.level
    pfsync_logger.addHandler(handler)

    quieted: list[logging.Handler] = []
    if not verbose:
        # INFO (the run transcript) goes to the file, the console stays at WARNING
        pfsync_logger.setLevel(logging.INFO)
        quieted = [
            root_handler
            for root_handler in logging.getLogger().handlers
            if root_handler.level == logging.NOTSET
        ]
        for root_handler in quieted:
            root_handler.setLevel(logging.WARNING)

    def close_log_file() -> None:
        pfsync_logger.removeHandler(handler)
        handler.close()
        pfsync_logger.setLevel(previous_level)
        for root_handler in quieted:
            root_handler.setLevel(logging.NOTSET)

    ctx.call_on_close(close_log_file)


def _run_sync(ctx: Any, execute: bool, timeout: Optional[float]) -> None:
    out: OutputFormatter = ctx.obj["out"]
    cfg = _get_config(ctx)

    try:
        options = cfg.build_sync_options(
            _get_registry(cfg), execute=execute, timeout=timeout
        )
    except (ConfigError, RegistryError) as e:
        out.error(str(e))
        ctx.exit(1)

    if execute:
        out.info("Running sync...")
    else:
        out.info("Running sync test (dry run)...")
    out.info(
        f"Destination: {options.destination_remote_name}:{options.bucket_name}"
    )
    out.info(f"Sources: {', '.join(options.source_names) or '(none)'}")

    orchestrator = SyncOrchestrator(state_dir=cfg.state_dir)
    if execute:
        report = orchestrator.execute_sync(options)
    else:
        report = orchestrator.test_sync(options)

    if out.json_output:
        out.output_json(report.to_dict())
    else:
        # With --verbose the transcript has already been logged line by line
        if report.transcript and not out.quiet and not ctx.obj["verbose"]:
            out.print(report.transcript)
            out.print("")
        if report.success:
            out.success(f"✓ {report.message}")
        else:
            out.error(f"✗ {report.message}")

    if not report.success:
        ctx.exit(1)


@main.command("test")
@click.option(
    "--timeout",
    type=float,
    default=None,
    help="Kill any rclone command running longer than this many seconds",
)
@click.pass_context
def test_command(ctx: Any, timeout: Optional[float]) -> None:
    """Dry-run sync: show what would be purged and mirrored.

    No data in the destination is changed.
    """
    _run_sync(ctx, execute=False, timeout=timeout)


@main.command()
@click.option(
    "--timeout",
    type=float,
    default=None,
    help="Kill any rclone command running longer than this many seconds",
)
@click.pass_context
def execute(ctx: Any, timeout: Optional[float]) -> None:
    """Purge orphan folders and mirror every source into the destination.

    Intended to be run from cron or Task Scheduler.
    """
    _run_sync(ctx, execute=True, timeout=timeout)


@main.command()
@click.pass_context
def remotes(ctx: Any) -> None:
    """List configured source remotes."""
    out: OutputFormatter = ctx.obj["out"]

    try:
        sources = _get_registry(_get_config(ctx)).sources()
    except (ConfigError, RegistryError) as e:
        out.error(str(e))
        ctx.exit(1)

    if not sources:
        if out.json_output:
            out.output_json([])
        else:
            out.warning("No remotes configured.")
        return

    out.print_table(
        ["Name", "Provider", "Subfolder"],
        [[s.name, s.provider, s.subfolder or "-"] for s in sources],
        title="Configured remotes",
    )


@main.command()
@click.argument("name")
@click.option("--ls", "use_ls", is_flag=True, help="List files instead of folders")
@click.pass_context
def check(ctx: Any, name: str, use_ls: bool) -> None:
    """Show the size and top-level contents of a remote."""
    out: OutputFormatter = ctx.obj["out"]

    try:
        result = _get_registry(_get_config(ctx)).check_remote(name, use_ls=use_ls)
    except (ConfigError, RegistryError) as e:
        out.error(str(e))
        ctx.exit(1)

    if out.json_output:
        out.output_json(result.to_dict())
    else:
        out.print_summary(
            f"Remote {result.name}",
            [("Provider", result.provider), ("Path", result.path)],
        )
        out.print(result.summary)
        out.print("")
        out.print(result.listing)

    if not result.success:
        ctx.exit(1)


@main.command()
@click.argument("name")
@click.argument("path", required=False)
@click.option("--clear", is_flag=True, help="Remove the subfolder restriction")
@click.pass_context
def subfolder(ctx: Any, name: str, path: Optional[str], clear: bool) -> None:
    """Show, set or clear the subfolder restriction of a remote."""
    out: OutputFormatter = ctx.obj["out"]

    try:
        registry = _get_registry(_get_config(ctx))
        if name not in registry.list_remotes():
            out.error(f"Remote not found: {name}")
            ctx.exit(1)

        if clear:
            registry.save_metadata(name, RemoteMetadata())
            out.success(f"✓ Cleared subfolder restriction for {name}")
            return

        if path is None:
            metadata = registry.get_metadata(name)
            if metadata and metadata.has_subfolder:
                out.print(f"{name}: {metadata.subfolder}")
            else:
                out.print(f"{name}: (entire remote)")
            return

        registry.save_metadata(
            name, RemoteMetadata(type=SUBFOLDER_TYPE, subfolder=path)
        )
        out.success(f"✓ {name} restricted to subfolder {path}")
    except (ConfigError, RegistryError) as e:
        out.error(str(e))
        ctx.exit(1)


@main.command("delete-remote")
@click.argument("name")
@click.confirmation_option(prompt="Delete this remote and its metadata?")
@click.pass_context
def delete_remote(ctx: Any, name: str) -> None:
    """Remove a remote from the cloud config and drop its metadata."""
    out: OutputFormatter = ctx.obj["out"]

    try:
        _get_registry(_get_config(ctx)).delete_remote(name)
    except (ConfigError, RegistryError) as e:
        out.error(str(e))
        ctx.exit(1)

    out.success(f"✓ Deleted remote {name}")


@main.command("check-destination")
@click.option("--ls", "use_ls", is_flag=True, help="List files instead of folders")
@click.pass_context
def check_destination(ctx: Any, use_ls: bool) -> None:
    """List your folder in PageFinder to verify the connection."""
    out: OutputFormatter = ctx.obj["out"]

    try:
        result = _get_config(ctx).check_destination(ProcessRunner(), use_ls=use_ls)
    except ConfigError as e:
        out.error(str(e))
        ctx.exit(1)

    if out.json_output:
        out.output_json(result.to_dict())
    elif result.success:
        out.success(f"✓ {result.message}")
        out.print(f"Path: {result.path}")
        out.print(result.output)
    else:
        out.error(f"✗ {result.message}")

    if not result.success:
        ctx.exit(1)


@main.command("import-pf-config")
@click.argument("path", type=click.Path(dir_okay=False, path_type=Path))
@click.pass_context
def import_pf_config(ctx: Any, path: Path) -> None:
    """Validate an rclone config file and install it as the PageFinder config."""
    out: OutputFormatter = ctx.obj["out"]

    try:
        installed = _get_config(ctx).import_destination_config(path)
    except ConfigError as e:
        out.error(str(e))
        ctx.exit(1)

    out.success(f"✓ Config file validated and saved: {installed}")


@main.command()
@click.option("--rclone-path", help="Path of the rclone executable to use")
@click.pass_context
def settings(ctx: Any, rclone_path: Optional[str]) -> None:
    """Show settings, or update the rclone executable path."""
    out: OutputFormatter = ctx.obj["out"]
    cfg = _get_config(ctx)

    try:
        if rclone_path:
            if not cfg.validate_rclone_path(rclone_path, ProcessRunner()):
                out.error(f"Not a working rclone executable: {rclone_path}")
                ctx.exit(1)
            cfg.save_rclone_path(rclone_path)
            out.success(f"✓ rclone path saved: {rclone_path}")

        out.print_summary(
            "pfsync settings",
            [
                ("Config directory", str(cfg.config_dir)),
                ("rclone", cfg.rclone_path or "(not found)"),
                ("Cloud config", str(cfg.cloud_config_path)),
                ("PageFinder config", str(cfg.destination_config_path)),
                ("Merged config", str(cfg.merged_config_path)),
            ],
        )
    except ConfigError as e:
        out.error(str(e))
        ctx.exit(1)


if __name__ == "__main__":
    main()
