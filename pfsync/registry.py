"""Registry of configured source remotes and their metadata.

Remote credentials live in the rclone config file (``cloud.conf``); the
optional subfolder restriction of each remote lives in a separate JSON
metadata file so it can be updated without touching credentials.
"""

import configparser
import json
import logging
from pathlib import Path
from typing import Optional, Union

from . import rclone
from .config import rclone_config_parser
from .exceptions import ProcessError, RegistryError
from .models import RemoteCheck, RemoteMetadata, SourceRemote
from .runner import ProcessRunner
from .sync.listing import summarize_listing
from .sync.paths import source_path

logger = logging.getLogger(__name__)


def parse_config_sections(content: str) -> dict[str, dict[str, str]]:
    """Parse rclone config text into ``{section: {key: value}}``.

    Raises:
        RegistryError: If the text is not a valid rclone config
    """
    parser = rclone_config_parser()
    try:
        parser.read_string(content)
    except configparser.Error as e:
        raise RegistryError(f"Invalid rclone config: {e}") from e
    return {section: dict(parser[section]) for section in parser.sections()}


class RemoteRegistry:
    """Reads and updates the configured source remotes."""

    def __init__(
        self,
        config_path: Union[str, Path],
        metadata_path: Union[str, Path],
        runner: Optional[ProcessRunner] = None,
        rclone_path: str = "",
    ):
        """Initialize the registry.

        Args:
            config_path: rclone config file holding the source credentials
            metadata_path: JSON file holding per-remote metadata
            runner: Process runner used for rclone commands
            rclone_path: rclone executable (listing falls back to parsing
                the config file when empty)
        """
        self.config_path = Path(config_path)
        self.metadata_path = Path(metadata_path)
        self.runner = runner or ProcessRunner()
        self.rclone_path = rclone_path

    # =========================================================================
    # Remotes
    # =========================================================================

    def _read_config(self) -> str:
        if not self.config_path.exists():
            return ""
        return self.config_path.read_text(encoding="utf-8")

    def list_remotes(self) -> list[str]:
        """Names of the configured remotes.

        Asks rclone first and falls back to reading section names from the
        config file when rclone is unavailable, fails, or reports nothing.
        """
        if self.rclone_path and self.config_path.exists():
            try:
                result = self.runner.run(
                    rclone.listremotes_args(self.rclone_path, self.config_path)
                )
                remotes = [
                    line.strip().rstrip(":")
                    for line in result.stdout.splitlines()
                    if line.strip()
                ]
                if remotes:
                    return remotes
                logger.debug("rclone listremotes returned nothing, parsing config")
            except ProcessError as e:
                logger.warning("rclone listremotes failed, parsing config: %s", e)

        return list(parse_config_sections(self._read_config()))

    def get_remote_config(self, name: str) -> Optional[dict[str, str]]:
        """Key/value settings of one remote with its token masked."""
        section = parse_config_sections(self._read_config()).get(name)
        if section is None:
            return None
        return {
            key: "[TOKEN HIDDEN]" if key == "token" else value
            for key, value in section.items()
        }

    def provider_kind(self, name: str) -> str:
        section = self.get_remote_config(name)
        if not section:
            return "unknown"
        return section.get("type", "unknown")

    def delete_remote(self, name: str) -> None:
        """Remove a remote from the config file along with its metadata.

        Raises:
            RegistryError: If the config file or the remote does not exist
        """
        if not self.config_path.exists():
            raise RegistryError("Config file not found")

        parser = rclone_config_parser()
        try:
            parser.read_string(self._read_config(), source=str(self.config_path))
        except configparser.Error as e:
            raise RegistryError(f"Invalid rclone config: {e}") from e
        if not parser.remove_section(name):
            raise RegistryError(f"Remote not found: {name}")

        with open(self.config_path, "w", encoding="utf-8") as f:
            parser.write(f)
        self.delete_metadata(name)
        logger.info("Deleted remote %s", name)

    def check_remote(self, name: str, use_ls: bool = False) -> RemoteCheck:
        """Report the size and top-level contents of a remote.

        Runs ``rclone size`` and then ``rclone lsd`` (``rclone ls`` with
        ``use_ls``) on the remote, restricted to its subfolder when one is
        set. A failing command is reported in the result, not raised.

        Raises:
            RegistryError: If the remote does not exist or rclone is not set
        """
        if name not in self.list_remotes():
            raise RegistryError(f"Remote not found: {name}")
        if not self.rclone_path:
            raise RegistryError("Rclone path not configured.")

        metadata = self.get_metadata(name)
        subfolder = metadata.subfolder if metadata and metadata.has_subfolder else ""
        path = source_path(name, subfolder)
        check = RemoteCheck(name=name, provider=self.provider_kind(name), path=path)

        if use_ls:
            list_args = rclone.ls_args(self.rclone_path, path, self.config_path)
        else:
            list_args = rclone.lsd_args(self.rclone_path, path, self.config_path)
        try:
            size = self.runner.run(
                rclone.size_args(self.rclone_path, path, self.config_path)
            )
            listing = self.runner.run(list_args)
        except ProcessError as e:
            logger.warning("Checking remote %s failed: %s", name, e)
            check.success = False
            check.error = str(e)
            check.summary = "Error retrieving information"
            check.listing = f"Could not list directories: {e}"
            return check

        check.summary = size.stdout.strip() or "Could not retrieve size information"
        check.listing = summarize_listing(listing.stdout, files=use_ls)
        return check

    # =========================================================================
    # Metadata
    # =========================================================================

    def _load_metadata_file(self) -> dict:
        if not self.metadata_path.exists():
            return {"remotes": {}}
        try:
            with open(self.metadata_path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise RegistryError(
                f"Cannot read remote metadata {self.metadata_path}: {e}"
            ) from e
        if not isinstance(data, dict) or not isinstance(data.get("remotes"), dict):
            return {"remotes": {}}
        return data

    def _save_metadata_file(self, data: dict) -> None:
        self.metadata_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.metadata_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)

    def initialize_metadata(self) -> None:
        """Create an empty metadata file if none exists."""
        if not self.metadata_path.exists():
            self._save_metadata_file({"remotes": {}})

    def get_metadata(self, name: str) -> Optional[RemoteMetadata]:
        entry = self._load_metadata_file()["remotes"].get(name)
        if not isinstance(entry, dict):
            return None
        return RemoteMetadata.from_dict(entry)

    def all_metadata(self) -> dict[str, RemoteMetadata]:
        return {
            name: RemoteMetadata.from_dict(entry)
            for name, entry in self._load_metadata_file()["remotes"].items()
            if isinstance(entry, dict)
        }

    def save_metadata(self, name: str, metadata: RemoteMetadata) -> None:
        data = self._load_metadata_file()
        data["remotes"][name] = metadata.to_dict()
        self._save_metadata_file(data)

    def delete_metadata(self, name: str) -> bool:
        """Drop the metadata of a remote. Returns False if there was none."""
        data = self._load_metadata_file()
        if name not in data["remotes"]:
            logger.debug("No metadata found for %s", name)
            return False
        del data["remotes"][name]
        self._save_metadata_file(data)
        return True

    # =========================================================================
    # Snapshot
    # =========================================================================

    def sources(self) -> list[SourceRemote]:
        """Current configured remotes as sync sources."""
        metadata = self.all_metadata()
        sections = parse_config_sections(self._read_config())
        sources = []
        for name in self.list_remotes():
            entry = metadata.get(name)
            sources.append(
                SourceRemote(
                    name=name,
                    provider=sections.get(name, {}).get("type", "unknown"),
                    subfolder=entry.subfolder if entry and entry.has_subfolder else "",
                )
            )
        return sources
