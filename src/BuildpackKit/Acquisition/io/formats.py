# === NAVMAP v1 ===
# {
#   "module": "BuildpackKit.Acquisition.io.formats",
#   "purpose": "Map download URLs to archive families and build their extraction commands",
#   "sections": [
#     {"id": "table", "name": "Archive Family Table", "anchor": "TAB", "kind": "api"},
#     {"id": "classify", "name": "URL Classification", "anchor": "CLS", "kind": "api"},
#     {"id": "tar", "name": "Tar Command Builder", "anchor": "TAR", "kind": "helpers"},
#     {"id": "zip", "name": "Zip Extraction Routine", "anchor": "ZIP", "kind": "helpers"}
#   ]
# }
# === /NAVMAP ===

"""Archive format dispatch.

Every supported archive family is declared once in :data:`ARCHIVE_TYPES`.
Tar families are extracted by a single ``tar`` invocation that may read the
archive from standard input; zip archives go through :func:`extract_zip`,
which needs the archive on disk because ``unzip`` neither reads stdin nor
supports stripping leading path components.
"""

from __future__ import annotations

import logging
import os
import posixpath
import re
import shutil
import tempfile
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Union
from urllib.parse import urlsplit

from ..errors import CommandError, ExtractionError, UnrecognizedFormatError
from ..options import ExtractionParams
from .runner import CommandRunner

__all__ = [
    "ArchiveFamily",
    "ArchiveType",
    "ARCHIVE_TYPES",
    "classify",
    "tar_command",
    "extract_zip",
    "walk_to_depth",
]

PathLike = Union[str, Path]
CommandLineBuilder = Callable[..., List[str]]
DirectRunner = Callable[..., None]

_LOGGER = logging.getLogger("BuildpackKit.Acquisition")
_SCHEME_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*$")


class ArchiveFamily(str, Enum):
    TAR = "tar"
    TAR_GZ = "tar+gzip"
    TAR_BZ2 = "tar+bzip2"
    TAR_XZ = "tar+xz"
    TAR_Z = "tar+compress"
    ZIP = "zip"


@dataclass(frozen=True)
class ArchiveType:
    """One entry of the extractor table.

    Exactly one of ``command_line`` (builds an argv for a single extraction
    command) and ``runner`` (performs the extraction itself) is set.
    """

    family: ArchiveFamily
    extension: str
    tool: str
    supports_stdin: bool = False
    command_line: Optional[CommandLineBuilder] = None
    runner: Optional[DirectRunner] = None

    def __post_init__(self) -> None:
        if (self.command_line is None) == (self.runner is None):
            raise ValueError(
                f"archive type {self.extension!r} needs exactly one of command_line or runner"
            )
        if self.supports_stdin and self.command_line is None:
            raise ValueError(f"archive type {self.extension!r} cannot stream without a command line")

    @property
    def is_command_line(self) -> bool:
        return self.command_line is not None


def _tar_generator(mode_flag: str) -> CommandLineBuilder:
    def _build(
        source: Optional[PathLike],
        destination: PathLike,
        params: ExtractionParams,
        *,
        tool: str = "tar",
    ) -> List[str]:
        return tar_command(mode_flag, source, destination, params, tool=tool)

    return _build


def tar_command(
    mode_flag: str,
    source: Optional[PathLike],
    destination: PathLike,
    params: ExtractionParams,
    *,
    tool: str = "tar",
) -> List[str]:
    """Return the ``tar`` argv extracting ``source`` (or stdin) into ``destination``.

    Flag order is fixed: mode, optional source, directory, strip-components,
    keep-directory-symlink, wildcards.
    """

    command = [tool]
    if source is None or str(source) == "":
        command.append("x" + mode_flag)
    else:
        command.extend(["x" + mode_flag + "f", str(source)])
    command.extend(["--directory", str(destination)])
    if params.strip_components > 0:
        command.append(f"--strip-components={params.strip_components}")
    if params.keep_directory_symlink:
        command.append("--keep-directory-symlink")
    if params.wildcards:
        command.extend(["--wildcards", params.wildcards])
    return command


def walk_to_depth(
    directory: Path,
    depth: int,
    visitor: Callable[[Path, str], None],
    *,
    logger: Optional[logging.Logger] = None,
) -> List[Path]:
    """Call ``visitor(parent, name)`` for every entry exactly ``depth`` levels below ``directory``.

    Non-directories met before reaching ``depth`` are logged and skipped; their
    paths are returned.  Symlinks are never traversed.
    """

    log = logger or _LOGGER
    skipped: List[Path] = []
    with os.scandir(directory) as iterator:
        entries = sorted(iterator, key=lambda entry: entry.name)
    for entry in entries:
        if depth == 0:
            visitor(directory, entry.name)
        elif entry.is_dir(follow_symlinks=False):
            skipped.extend(walk_to_depth(Path(entry.path), depth - 1, visitor, logger=log))
        else:
            path = Path(entry.path)
            log.warning(
                "unexpected file %s with remaining depth %d",
                path,
                depth - 1,
                extra={"stage": "extract", "path": str(path), "remaining_depth": depth - 1},
            )
            skipped.append(path)
    return skipped


def _unzip(
    runner: CommandRunner,
    source: PathLike,
    destination: PathLike,
    params: ExtractionParams,
    tool: str,
) -> None:
    command = [tool, "-q", "-d", str(destination), str(source)]
    if params.wildcards:
        command.append(params.wildcards)
    try:
        runner.run(command)
    except CommandError as exc:
        raise ExtractionError(
            f"extracting {source}: {exc}", exit_code=exc.exit_code, stderr=exc.stderr
        ) from exc


def extract_zip(
    runner: CommandRunner,
    source: PathLike,
    destination: PathLike,
    params: ExtractionParams,
    *,
    logger: Optional[logging.Logger] = None,
    tool: str = "unzip",
) -> List[Path]:
    """Extract zip ``source`` into ``destination`` honouring ``strip_components``.

    Returns the members skipped because they sat shallower than the strip
    depth.  ``keep_directory_symlink`` has no zip equivalent and is ignored.
    """

    log = logger or _LOGGER
    destination = Path(destination)
    if params.keep_directory_symlink:
        log.debug(
            "keep_directory_symlink ignored for zip archives",
            extra={"stage": "extract", "archive": str(source)},
        )
    if params.strip_components == 0:
        _unzip(runner, source, destination, params, tool)
        return []

    try:
        staging = Path(tempfile.mkdtemp(prefix="zip", dir=destination))
    except OSError as exc:
        raise ExtractionError(f"unable to create archive extraction directory: {exc}") from exc

    def _relocate(parent: Path, name: str) -> None:
        try:
            os.rename(parent / name, destination / name)
        except OSError as exc:
            raise ExtractionError(f"moving {parent / name} into {destination}: {exc}") from exc

    try:
        _unzip(runner, source, staging, params, tool)
        return walk_to_depth(staging, params.strip_components, _relocate, logger=log)
    finally:
        shutil.rmtree(staging, ignore_errors=True)


ARCHIVE_TYPES: Sequence[ArchiveType] = (
    ArchiveType(ArchiveFamily.TAR, ".tar", "tar", True, command_line=_tar_generator("")),
    ArchiveType(ArchiveFamily.TAR_GZ, ".tar.gz", "tar", True, command_line=_tar_generator("z")),
    ArchiveType(ArchiveFamily.TAR_BZ2, ".tar.bz2", "tar", True, command_line=_tar_generator("j")),
    ArchiveType(ArchiveFamily.TAR_XZ, ".tar.xz", "tar", True, command_line=_tar_generator("J")),
    ArchiveType(ArchiveFamily.TAR_Z, ".tar.Z", "tar", True, command_line=_tar_generator("Z")),
    ArchiveType(ArchiveFamily.ZIP, ".zip", "unzip", False, runner=extract_zip),
)


def classify(url: str) -> ArchiveType:
    """Return the archive type for ``url`` based on its filename suffix.

    Raises:
        UnrecognizedFormatError: When ``url`` cannot be parsed, names no file,
            or ends in an unsupported suffix.
    """

    try:
        parts = urlsplit(url)
    except ValueError as exc:
        raise UnrecognizedFormatError(f"invalid download URL {url!r}: {exc}") from exc

    if not parts.scheme:
        first_segment = parts.path.split("/", 1)[0]
        if ":" in first_segment:
            raise UnrecognizedFormatError(
                f"invalid download URL {url!r}: first path segment cannot contain a colon"
            )
    elif not _SCHEME_PATTERN.match(parts.scheme):
        raise UnrecognizedFormatError(f"invalid download URL {url!r}: bad scheme")

    filename = posixpath.basename(parts.path)
    if not filename:
        raise UnrecognizedFormatError(f"unable to determine local file name from {url!r}")

    for archive_type in ARCHIVE_TYPES:
        if filename.endswith(archive_type.extension):
            return archive_type
    raise UnrecognizedFormatError(f"unable to determine file archive type from {filename!r}")
