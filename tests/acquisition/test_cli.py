"""Typer CLI: option plumbing and exit status propagation."""

from __future__ import annotations

from typing import Any, List, Tuple

import pytest
from typer.testing import CliRunner

from BuildpackKit.Acquisition import __version__, cli
from BuildpackKit.Acquisition.errors import FetchError
from BuildpackKit.Acquisition.options import ExtractionParams, resolve_params

runner = CliRunner()


class RecordingAcquirer:
    """Stand-in for ``ArtifactAcquirer`` capturing calls made by the CLI."""

    instances: List["RecordingAcquirer"] = []
    error: Any = None

    def __init__(self, settings) -> None:
        self.settings = settings
        self.calls: List[Tuple[str, tuple]] = []
        RecordingAcquirer.instances.append(self)

    def download(self, *args):
        self.calls.append(("download", args))
        if self.error is not None:
            raise self.error

    def download_and_extract(self, *args):
        self.calls.append(("download_and_extract", args))
        if self.error is not None:
            raise self.error


@pytest.fixture
def recording(monkeypatch):
    RecordingAcquirer.instances = []
    RecordingAcquirer.error = None
    monkeypatch.setattr(cli, "ArtifactAcquirer", RecordingAcquirer)
    return RecordingAcquirer


class TestGlobalOptions:
    def test_help_without_command(self):
        result = runner.invoke(cli.app, [])
        assert "download" in result.output
        assert "extract" in result.output

    def test_version(self):
        result = runner.invoke(cli.app, ["--version"])
        assert result.exit_code == 0
        assert f"buildpack-acquire {__version__}" in result.stdout

    def test_cache_dir_and_owner_reach_settings(self, recording, tmp_path):
        result = runner.invoke(
            cli.app,
            [
                "--cache-dir",
                str(tmp_path),
                "--owner",
                "google.java.runtime",
                "download",
                "JDK",
                "https://host/jdk.tar.gz",
                str(tmp_path / "jdk.tgz"),
            ],
        )
        assert result.exit_code == 0, result.output
        (acquirer,) = recording.instances
        assert acquirer.settings.cache_dir == tmp_path
        assert acquirer.settings.owner_id == "google.java.runtime"

    def test_empty_cache_dir_disables_caching(self, recording, monkeypatch, tmp_path):
        monkeypatch.setenv("BUILDPACK_CACHE_DIR", str(tmp_path / "env-cache"))
        result = runner.invoke(
            cli.app,
            ["--cache-dir", "", "download", "JDK", "https://host/jdk.tar.gz", str(tmp_path / "jdk")],
        )
        assert result.exit_code == 0, result.output
        (acquirer,) = recording.instances
        assert acquirer.settings.cache_dir is None
        assert not acquirer.settings.caching_enabled

    def test_invalid_backend_exits_one(self, recording, tmp_path):
        result = runner.invoke(
            cli.app, ["--backend", "wget", "download", "x", "https://h/x", str(tmp_path / "x")]
        )
        assert result.exit_code == 1
        assert recording.instances == []


class TestDownload:
    def test_directory_destination_exits_one(self, tmp_path):
        result = runner.invoke(cli.app, ["download", "JDK", "https://host/jdk.tar.gz", str(tmp_path)])
        assert result.exit_code == 1

    def test_tool_exit_status_is_propagated(self, recording, tmp_path):
        recording.error = FetchError("fetching JDK: exit status 22", exit_code=22, stderr="404")
        result = runner.invoke(
            cli.app, ["download", "JDK", "https://host/jdk.tar.gz", str(tmp_path / "jdk")]
        )
        assert result.exit_code == 22


class TestExtract:
    def test_options_are_translated(self, recording, tmp_path):
        result = runner.invoke(
            cli.app,
            [
                "extract",
                "Gradle",
                "https://host/gradle.zip",
                str(tmp_path),
                "--strip-components",
                "1",
                "--keep-directory-symlink",
                "--wildcards",
                "*/bin/*",
            ],
        )
        assert result.exit_code == 0, result.output
        ((name, args),) = recording.instances[0].calls
        assert name == "download_and_extract"
        description, url, destination, *options = args
        assert (description, url, destination) == ("Gradle", "https://host/gradle.zip", tmp_path)
        assert resolve_params(options) == ExtractionParams(1, True, "*/bin/*")

    def test_negative_strip_is_a_usage_error(self, recording, tmp_path):
        result = runner.invoke(
            cli.app,
            ["extract", "x", "https://host/x.tar", str(tmp_path), "--strip-components", "-1"],
        )
        assert result.exit_code == 2

    def test_unrecognized_archive_exits_one(self, tmp_path):
        result = runner.invoke(cli.app, ["extract", "x", "https://host/x.rar", str(tmp_path)])
        assert result.exit_code == 1

    def test_missing_destination_exits_one(self, tmp_path):
        result = runner.invoke(
            cli.app, ["extract", "x", "https://host/x.tar.gz", str(tmp_path / "missing")]
        )
        assert result.exit_code == 1
