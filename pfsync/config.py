"""Settings and rclone config file management for pfsync."""

import configparser
import json
import logging
import os
import shutil
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from . import rclone
from .exceptions import ConfigError, ProcessError
from .models import DestinationCheck, SyncRunOptions
from .sync.paths import destination_base
from .utils import DEFAULT_BUCKET_NAME

if TYPE_CHECKING:
    from .registry import RemoteRegistry
    from .runner import ProcessRunner

logger = logging.getLogger(__name__)

SETTINGS_FILE = "settings.json"
CLOUD_CONFIG_FILE = "cloud.conf"
DESTINATION_CONFIG_FILE = "pf.conf"
MERGED_CONFIG_FILE = "rclone.conf"
METADATA_FILE = "remotes-metadata.json"


def default_config_dir() -> Path:
    """Platform default directory for pfsync settings and rclone configs."""
    env_dir = os.environ.get("PFSYNC_CONFIG_DIR")
    if env_dir:
        return Path(env_dir).expanduser()
    if sys.platform == "win32":
        appdata = os.environ.get("APPDATA")
        if appdata:
            return Path(appdata) / "pf-config"
        return Path.home() / "AppData" / "Roaming" / "pf-config"
    return Path.home() / ".config" / "pf-config"


def common_rclone_paths() -> list[Path]:
    """Locations where rclone is usually installed on this platform."""
    if sys.platform == "win32":
        paths = [Path("C:/Program Files/rclone/rclone.exe")]
        for var, parts in (
            ("USERPROFILE", ("AppData", "Local", "rclone", "rclone.exe")),
            ("ProgramFiles", ("rclone", "rclone.exe")),
            ("ProgramFiles(x86)", ("rclone", "rclone.exe")),
        ):
            base = os.environ.get(var)
            if base:
                paths.append(Path(base).joinpath(*parts))
        return paths
    if sys.platform == "darwin":
        return [Path("/usr/local/bin/rclone"), Path("/opt/homebrew/bin/rclone")]
    return [Path("/usr/bin/rclone"), Path("/usr/local/bin/rclone")]


def rclone_config_parser() -> configparser.ConfigParser:
    """Parser for rclone config files.

    Only ``=`` separates keys from values (token JSON holds colons) and key
    case is kept as rclone writes it.
    """
    parser = configparser.ConfigParser(
        interpolation=None, strict=False, delimiters=("=",)
    )
    parser.optionxform = str  # type: ignore[assignment,method-assign]
    return parser


def _read_ini(path: Path) -> configparser.ConfigParser:
    parser = rclone_config_parser()
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"Cannot read rclone config {path}: {e}") from e
    try:
        parser.read_string(content, source=str(path))
    except configparser.Error as e:
        raise ConfigError(f"Invalid rclone config {path}: {e}") from e
    return parser


class Config:
    """Manages pfsync settings and the rclone config files it depends on.

    All files live in one directory (see :func:`default_config_dir`):

    - ``settings.json``: application settings (``rclone_path``)
    - ``cloud.conf``: credentials of the source remotes
    - ``pf.conf``: credentials of the destination remote
    - ``rclone.conf``: merged credentials passed to every sync command
    - ``remotes-metadata.json``: per-remote subfolder restrictions
    """

    def __init__(self, config_dir: Optional[Path] = None):
        self._config_dir = Path(config_dir) if config_dir is not None else None

    @property
    def config_dir(self) -> Path:
        if self._config_dir is not None:
            return self._config_dir
        return default_config_dir()

    @property
    def settings_path(self) -> Path:
        return self.config_dir / SETTINGS_FILE

    @property
    def cloud_config_path(self) -> Path:
        return self.config_dir / CLOUD_CONFIG_FILE

    @property
    def destination_config_path(self) -> Path:
        return self.config_dir / DESTINATION_CONFIG_FILE

    @property
    def merged_config_path(self) -> Path:
        return self.config_dir / MERGED_CONFIG_FILE

    @property
    def metadata_path(self) -> Path:
        return self.config_dir / METADATA_FILE

    @property
    def state_dir(self) -> Path:
        """Directory for per-run diagnostic snapshots."""
        return self.config_dir / "state"

    def ensure_dirs(self) -> None:
        self.config_dir.mkdir(parents=True, exist_ok=True)

    # =========================================================================
    # Settings
    # =========================================================================

    def load_settings(self) -> dict:
        """Load settings.json, returning an empty dict when it is absent."""
        if not self.settings_path.exists():
            return {}
        try:
            with open(self.settings_path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"Cannot read settings {self.settings_path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"Settings file {self.settings_path} is not an object")
        return data

    def save_settings(self, settings: dict) -> None:
        self.ensure_dirs()
        with open(self.settings_path, "w", encoding="utf-8") as f:
            json.dump(settings, f, indent=2)

    @property
    def rclone_path(self) -> str:
        """Path of the rclone executable.

        Resolution order: ``PFSYNC_RCLONE_PATH``, settings.json, the first
        existing common install location, ``rclone`` on PATH. Returns an empty
        string when none is found.
        """
        env_path = os.environ.get("PFSYNC_RCLONE_PATH")
        if env_path:
            return env_path

        configured = self.load_settings().get("rclone_path")
        if configured:
            return str(configured)

        for candidate in common_rclone_paths():
            if candidate.exists():
                logger.debug("Found rclone at %s", candidate)
                return str(candidate)

        return shutil.which("rclone") or ""

    def require_rclone_path(self) -> str:
        """Like :attr:`rclone_path` but raises ConfigError when none is found."""
        rclone_path = self.rclone_path
        if not rclone_path:
            raise ConfigError(
                "Rclone path not configured. Set PFSYNC_RCLONE_PATH or run "
                "'pfsync settings --rclone-path PATH'."
            )
        return rclone_path

    def save_rclone_path(self, rclone_path: str) -> None:
        settings = self.load_settings()
        settings["rclone_path"] = rclone_path
        self.save_settings(settings)

    def validate_rclone_path(
        self, rclone_path: str, runner: "ProcessRunner"
    ) -> bool:
        """Return True if ``rclone_path`` runs and reports an rclone version."""
        try:
            result = runner.run(rclone.version_args(rclone_path))
        except ProcessError as e:
            logger.debug("rclone validation failed: %s", e)
            return False
        return "rclone" in result.stdout

    # =========================================================================
    # rclone config files
    # =========================================================================

    def destination(self) -> tuple[str, str]:
        """Destination remote name and bucket from pf.conf.

        The remote is the first section of the file. The bucket comes from
        its ``bucket`` key and falls back to the default bucket.

        Raises:
            ConfigError: If pf.conf is missing or has no remote section
        """
        path = self.destination_config_path
        if not path.exists():
            raise ConfigError(
                f"PageFinder config file not found at {path}. "
                "Please set up PageFinder first."
            )
        parser = _read_ini(path)
        sections = parser.sections()
        if not sections:
            raise ConfigError("No remote found in the PageFinder config file.")

        remote_name = sections[0]
        bucket = parser.get(remote_name, "bucket", fallback="").strip()
        return remote_name, bucket or DEFAULT_BUCKET_NAME

    def import_destination_config(self, source: Path) -> Path:
        """Validate an rclone config file and install it as pf.conf.

        Raises:
            ConfigError: If the file is missing, unreadable or has no remote
        """
        source = Path(source)
        if not source.is_file():
            raise ConfigError(f"File does not exist: {source}")
        if not _read_ini(source).sections():
            raise ConfigError(f"Not a valid rclone config file: {source}")

        self.ensure_dirs()
        try:
            shutil.copyfile(source, self.destination_config_path)
        except OSError as e:
            raise ConfigError(f"Cannot copy {source}: {e}") from e
        logger.info("Installed PageFinder config from %s", source)
        return self.destination_config_path

    def check_destination(
        self, runner: "ProcessRunner", use_ls: bool = False
    ) -> DestinationCheck:
        """List the user folder of the destination remote with pf.conf.

        Runs ``rclone lsd --max-depth 1`` (``rclone ls`` with ``use_ls``)
        on the destination base path. A failing command, or one whose stderr
        mentions an error, gives an unsuccessful result.

        Raises:
            ConfigError: If pf.conf or rclone is missing
        """
        remote_name, bucket = self.destination()
        rclone_path = self.require_rclone_path()
        path = destination_base(remote_name, bucket)
        config_path = self.destination_config_path
        if use_ls:
            args = rclone.ls_args(rclone_path, path, config_path)
        else:
            args = rclone.lsd_args(rclone_path, path, config_path)

        try:
            result = runner.run(args)
        except ProcessError as e:
            return DestinationCheck(
                success=False,
                message=f"Connection failed: {e}",
                remote_name=remote_name,
                path=path,
                output=e.stderr,
                error=str(e),
            )

        if "error" in result.stderr.lower():
            return DestinationCheck(
                success=False,
                message=f"Connection failed: {result.stderr.strip()}",
                remote_name=remote_name,
                path=path,
                output=result.stdout,
                error=result.stderr.strip(),
            )

        return DestinationCheck(
            success=True,
            message="Connection successful",
            remote_name=remote_name,
            path=path,
            output=result.stdout or "No content found in user directory.",
        )

    def build_merged_config(self) -> Path:
        """Write cloud.conf and pf.conf together into rclone.conf.

        Raises:
            ConfigError: If either input file is missing
        """
        cloud = self.cloud_config_path
        destination = self.destination_config_path
        if not cloud.exists():
            raise ConfigError(
                f"Cloud configuration file not found at {cloud}. "
                "Please set up cloud storage first."
            )
        if not destination.exists():
            raise ConfigError(
                f"PageFinder configuration file not found at {destination}. "
                "Please set up PageFinder first."
            )

        merged = (
            cloud.read_text(encoding="utf-8")
            + "\n"
            + destination.read_text(encoding="utf-8")
        )
        self.merged_config_path.write_text(merged, encoding="utf-8")
        logger.debug("Combined config file created at %s", self.merged_config_path)
        return self.merged_config_path

    def build_sync_options(
        self,
        registry: "RemoteRegistry",
        execute: bool = False,
        timeout: Optional[float] = None,
    ) -> SyncRunOptions:
        """Assemble the options of one sync run from the files on disk.

        Raises:
            ConfigError: If rclone or any config file is missing
        """
        rclone_path = self.require_rclone_path()
        remote_name, bucket = self.destination()
        merged = self.build_merged_config()
        sources = registry.sources()
        # The destination section lives in pf.conf and is never a source
        sources = [source for source in sources if source.name != remote_name]

        return SyncRunOptions(
            executable_path=rclone_path,
            config_path=merged,
            sources=sources,
            destination_remote_name=remote_name,
            bucket_name=bucket,
            execute=execute,
            metadata_by_source=registry.all_metadata(),
            timeout=timeout,
        )


# Global config instance
config = Config()
