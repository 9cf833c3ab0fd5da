# === NAVMAP v1 ===
# {
#   "module": "BuildpackKit.Acquisition.cli",
#   "purpose": "Typer CLI exposing download and download-and-extract with process exit codes",
#   "sections": [
#     {"id": "clicontext", "name": "CliContext", "anchor": "class-clicontext", "kind": "class"},
#     {"id": "main", "name": "main", "anchor": "function-main", "kind": "function"},
#     {"id": "download-cmd", "name": "download_cmd", "anchor": "function-download-cmd", "kind": "function"},
#     {"id": "extract-cmd", "name": "extract_cmd", "anchor": "function-extract-cmd", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""Command-line front end for buildpack artifact acquisition.

Usage::

    buildpack-acquire --cache-dir /cache download "JDK" https://host/jdk.tar.gz /layers/jdk.tgz
    buildpack-acquire extract "Gradle" https://host/gradle.zip /layers/gradle --strip-components 1

Unrecoverable errors are printed to stderr and terminate the process with the
error's exit status: 1 for internally detected problems, or the exit code of
the tool (``curl``, ``tar``, ``unzip``) that failed.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console

from . import __version__
from .engine import ArtifactAcquirer
from .errors import AcquisitionError
from .logging_utils import setup_logging
from .options import DxOption, keep_directory_symlink, strip_components, wildcards
from .settings import AcquisitionSettings, load_settings

_err_console = Console(stderr=True)

app = typer.Typer(
    name="buildpack-acquire",
    help="Download and extract build-time dependencies for buildpacks",
    no_args_is_help=True,
)


class CliContext:
    """Settings and acquirer shared by the subcommands of one invocation."""

    def __init__(self, settings: AcquisitionSettings) -> None:
        self.settings = settings
        self._acquirer: Optional[ArtifactAcquirer] = None

    @property
    def acquirer(self) -> ArtifactAcquirer:
        if self._acquirer is None:
            self._acquirer = ArtifactAcquirer(self.settings)
        return self._acquirer


def _fail(exc: AcquisitionError) -> typer.Exit:
    _err_console.print(f"[red]error:[/red] {exc}", markup=True, highlight=False, soft_wrap=True)
    return typer.Exit(exc.exit_code or 1)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"buildpack-acquire {__version__}")
        raise typer.Exit(0)


@app.callback()
def main(
    ctx: typer.Context,
    cache_dir: Optional[str] = typer.Option(
        None,
        "--cache-dir",
        help="Download cache root (overrides BUILDPACK_CACHE_DIR; empty disables caching)",
    ),
    owner: Optional[str] = typer.Option(
        None, "--owner", help="Owner identity namespacing cache entries"
    ),
    backend: Optional[str] = typer.Option(None, "--backend", help="Fetch backend: curl or httpx"),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Logging level"),
    log_format: Optional[str] = typer.Option(None, "--log-format", help="Log format: text or json"),
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """Acquire build-time dependencies, optionally through a download cache."""

    try:
        settings = load_settings(
            cache_dir=cache_dir,
            owner_id=owner,
            fetch_backend=backend,
            log_level=log_level,
            log_format=log_format,
        )
    except AcquisitionError as exc:
        raise _fail(exc)
    setup_logging(level=settings.log_level, json_output=settings.log_format == "json")
    ctx.obj = CliContext(settings)


@app.command("download")
def download_cmd(
    ctx: typer.Context,
    description: str = typer.Argument(..., help="Human readable name used in diagnostics"),
    url: str = typer.Argument(..., help="Source URL"),
    destination: Path = typer.Argument(..., help="Destination file (parent must exist)"),
) -> None:
    """Download URL to DESTINATION."""

    context: CliContext = ctx.obj
    try:
        context.acquirer.download(description, url, destination)
    except AcquisitionError as exc:
        raise _fail(exc)


@app.command("extract")
def extract_cmd(
    ctx: typer.Context,
    description: str = typer.Argument(..., help="Human readable name used in diagnostics"),
    url: str = typer.Argument(..., help="Archive URL (.tar, .tar.gz, .tar.bz2, .tar.xz, .tar.Z, .zip)"),
    destination: Path = typer.Argument(..., help="Existing destination directory"),
    strip: int = typer.Option(0, "--strip-components", min=0, help="Leading path components to drop"),
    keep_symlinks: bool = typer.Option(
        False, "--keep-directory-symlink", help="Preserve existing symlinks to directories"
    ),
    pattern: Optional[str] = typer.Option(
        None, "--wildcards", help="Only extract members matching this pattern"
    ),
) -> None:
    """Download the archive at URL and extract it into DESTINATION."""

    context: CliContext = ctx.obj
    options: List[DxOption] = []
    try:
        if strip:
            options.append(strip_components(strip))
        if keep_symlinks:
            options.append(keep_directory_symlink())
        if pattern:
            options.append(wildcards(pattern))
        context.acquirer.download_and_extract(description, url, destination, *options)
    except AcquisitionError as exc:
        raise _fail(exc)


def run() -> None:
    """Console-script entry point."""

    app()
