"""Tests for settings and rclone config file handling."""

import json
from unittest.mock import Mock

import pytest

from pfsync.config import Config
from pfsync.exceptions import ConfigError, ProcessError
from pfsync.models import RemoteMetadata, SourceRemote
from pfsync.runner import ProcessResult
from pfsync.utils import DEFAULT_BUCKET_NAME

CLOUD_CONF = """[gdrive1]
type = drive
token = {"access_token":"abc"}
"""

PF_CONF = """[pfuser]
type = s3
provider = GCS
bucket = data
"""


@pytest.fixture
def cfg(tmp_path, monkeypatch):
    """Config rooted in a temporary directory with rclone on a fixed path."""
    monkeypatch.delenv("PFSYNC_RCLONE_PATH", raising=False)
    return Config(tmp_path)


def write_configs(cfg, cloud=CLOUD_CONF, pf=PF_CONF):
    cfg.ensure_dirs()
    if cloud is not None:
        cfg.cloud_config_path.write_text(cloud)
    if pf is not None:
        cfg.destination_config_path.write_text(pf)


class TestPaths:
    """Tests for config file locations."""

    def test_files_in_config_dir(self, cfg, tmp_path):
        assert cfg.config_dir == tmp_path
        assert cfg.settings_path == tmp_path / "settings.json"
        assert cfg.cloud_config_path == tmp_path / "cloud.conf"
        assert cfg.destination_config_path == tmp_path / "pf.conf"
        assert cfg.merged_config_path == tmp_path / "rclone.conf"
        assert cfg.metadata_path == tmp_path / "remotes-metadata.json"
        assert cfg.state_dir == tmp_path / "state"

    def test_env_config_dir(self, tmp_path, monkeypatch):
        monkeypatch.setenv("PFSYNC_CONFIG_DIR", str(tmp_path / "custom"))
        assert Config().config_dir == tmp_path / "custom"


class TestSettings:
    """Tests for settings.json handling."""

    def test_missing_settings(self, cfg):
        assert cfg.load_settings() == {}

    def test_save_rclone_path(self, cfg):
        cfg.save_rclone_path("/opt/rclone")
        assert json.loads(cfg.settings_path.read_text()) == {
            "rclone_path": "/opt/rclone"
        }
        assert cfg.rclone_path == "/opt/rclone"

    def test_invalid_json(self, cfg):
        cfg.ensure_dirs()
        cfg.settings_path.write_text("{not json")
        with pytest.raises(ConfigError):
            cfg.load_settings()

    def test_non_object_settings(self, cfg):
        cfg.ensure_dirs()
        cfg.settings_path.write_text("[]")
        with pytest.raises(ConfigError):
            cfg.load_settings()

    def test_env_rclone_path_wins(self, cfg, monkeypatch):
        cfg.save_rclone_path("/opt/rclone")
        monkeypatch.setenv("PFSYNC_RCLONE_PATH", "/env/rclone")
        assert cfg.rclone_path == "/env/rclone"

    def test_rclone_path_not_found(self, cfg, monkeypatch):
        monkeypatch.setattr("pfsync.config.common_rclone_paths", lambda: [])
        monkeypatch.setattr("pfsync.config.shutil.which", lambda name: None)
        assert cfg.rclone_path == ""

    def test_validate_rclone_path(self, cfg):
        runner = Mock()
        runner.run.return_value = ProcessResult(
            args=["rclone", "version"],
            returncode=0,
            stdout="rclone v1.66.0\n- os/version: debian",
            stderr="",
        )
        assert cfg.validate_rclone_path("/usr/bin/rclone", runner) is True
        runner.run.assert_called_once_with(["/usr/bin/rclone", "version"])

    def test_validate_rclone_path_failure(self, cfg):
        runner = Mock()
        runner.run.side_effect = ProcessError("Failed to start /bad: not found")
        assert cfg.validate_rclone_path("/bad", runner) is False


class TestDestination:
    """Tests for reading the destination remote."""

    def test_destination(self, cfg):
        write_configs(cfg)
        assert cfg.destination() == ("pfuser", "data")

    def test_default_bucket(self, cfg):
        write_configs(cfg, pf="[pfuser]\ntype = s3\n")
        assert cfg.destination() == ("pfuser", DEFAULT_BUCKET_NAME)

    def test_missing_file(self, cfg):
        with pytest.raises(ConfigError, match="Please set up PageFinder first"):
            cfg.destination()

    def test_no_section(self, cfg):
        write_configs(cfg, pf="# empty\n")
        with pytest.raises(ConfigError, match="No remote found"):
            cfg.destination()


class TestMergedConfig:
    """Tests for building the merged rclone config."""

    def test_build_merged_config(self, cfg):
        write_configs(cfg)
        path = cfg.build_merged_config()

        assert path == cfg.merged_config_path
        assert path.read_text() == CLOUD_CONF + "\n" + PF_CONF

    def test_missing_cloud_config(self, cfg):
        write_configs(cfg, cloud=None)
        with pytest.raises(ConfigError, match="set up cloud storage first"):
            cfg.build_merged_config()

    def test_missing_destination_config(self, cfg):
        write_configs(cfg, pf=None)
        with pytest.raises(ConfigError, match="set up PageFinder first"):
            cfg.build_merged_config()


class TestBuildSyncOptions:
    """Tests for assembling run options from disk."""

    def test_build_sync_options(self, cfg, monkeypatch):
        monkeypatch.setenv("PFSYNC_RCLONE_PATH", "/usr/bin/rclone")
        write_configs(cfg)
        registry = Mock()
        registry.sources.return_value = [
            SourceRemote("gdrive1", provider="drive"),
            SourceRemote("pfuser", provider="s3"),
        ]
        registry.all_metadata.return_value = {
            "gdrive1": RemoteMetadata("subfolder", "notes")
        }

        options = cfg.build_sync_options(registry, execute=True, timeout=30)

        assert options.executable_path == "/usr/bin/rclone"
        assert options.config_path == str(cfg.merged_config_path)
        assert options.source_names == ["gdrive1"]
        assert options.destination_remote_name == "pfuser"
        assert options.bucket_name == "data"
        assert options.execute is True
        assert options.timeout == 30
        assert options.metadata_by_source["gdrive1"].subfolder == "notes"
        assert cfg.merged_config_path.exists()

    def test_no_rclone(self, cfg, monkeypatch):
        monkeypatch.setattr("pfsync.config.common_rclone_paths", lambda: [])
        monkeypatch.setattr("pfsync.config.shutil.which", lambda name: None)
        write_configs(cfg)

        with pytest.raises(ConfigError, match="Rclone path not configured"):
            cfg.build_sync_options(Mock())


class TestImportDestinationConfig:
    """Tests for installing pf.conf from a user-supplied file."""

    def test_import(self, cfg, tmp_path):
        source = tmp_path / "download" / "pageFinder.conf"
        source.parent.mkdir()
        source.write_text(PF_CONF)

        installed = cfg.import_destination_config(source)

        assert installed == cfg.destination_config_path
        assert installed.read_text() == PF_CONF
        assert cfg.destination() == ("pfuser", "data")

    def test_missing_file(self, cfg, tmp_path):
        with pytest.raises(ConfigError, match="File does not exist"):
            cfg.import_destination_config(tmp_path / "missing.conf")
        assert not cfg.destination_config_path.exists()

    def test_not_an_rclone_config(self, cfg, tmp_path):
        source = tmp_path / "notes.txt"
        source.write_text("just some text\n")

        with pytest.raises(ConfigError):
            cfg.import_destination_config(source)
        assert not cfg.destination_config_path.exists()

    def test_config_without_remote(self, cfg, tmp_path):
        source = tmp_path / "empty.conf"
        source.write_text("# nothing here\n")

        with pytest.raises(ConfigError, match="Not a valid rclone config file"):
            cfg.import_destination_config(source)


class TestCheckDestination:
    """Tests for Config.check_destination."""

    @pytest.fixture
    def runner(self, cfg, monkeypatch):
        monkeypatch.setenv("PFSYNC_RCLONE_PATH", "/usr/bin/rclone")
        write_configs(cfg)
        runner = Mock()
        runner.run.return_value = ProcessResult(
            args=[],
            returncode=0,
            stdout="          -1 2024-03-05 10:11:12        -1 gdrive1\n",
            stderr="",
        )
        return runner

    def test_lsd(self, cfg, runner):
        check = cfg.check_destination(runner)

        assert check.success is True
        assert check.message == "Connection successful"
        assert check.remote_name == "pfuser"
        assert check.path == "pfuser:data/user/pfuser"
        assert "gdrive1" in check.output
        runner.run.assert_called_once_with(
            [
                "/usr/bin/rclone",
                "lsd",
                "pfuser:data/user/pfuser",
                "--max-depth",
                "1",
                "--config",
                str(cfg.destination_config_path),
            ]
        )

    def test_ls(self, cfg, runner):
        cfg.check_destination(runner, use_ls=True)
        args = runner.run.call_args[0][0]
        assert args[1:3] == ["ls", "pfuser:data/user/pfuser"]
        assert "--max-depth" not in args

    def test_empty_folder(self, cfg, runner):
        runner.run.return_value = ProcessResult(
            args=[], returncode=0, stdout="", stderr=""
        )
        check = cfg.check_destination(runner)
        assert check.output == "No content found in user directory."

    def test_command_failure(self, cfg, runner):
        runner.run.side_effect = ProcessError(
            "Command failed with exit code 3: rclone lsd", stderr="directory not found"
        )

        check = cfg.check_destination(runner)

        assert check.success is False
        assert check.message.startswith("Connection failed: Command failed")
        assert check.error is not None

    def test_error_on_stderr(self, cfg, runner):
        runner.run.return_value = ProcessResult(
            args=[], returncode=0, stdout="", stderr="ERROR : bucket: access denied"
        )

        check = cfg.check_destination(runner)

        assert check.success is False
        assert "access denied" in check.message

    def test_missing_destination_config(self, cfg, monkeypatch):
        monkeypatch.setenv("PFSYNC_RCLONE_PATH", "/usr/bin/rclone")
        with pytest.raises(ConfigError, match="Please set up PageFinder first"):
            cfg.check_destination(Mock())
