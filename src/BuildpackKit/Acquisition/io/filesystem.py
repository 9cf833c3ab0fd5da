# === NAVMAP v1 ===
# {
#   "module": "BuildpackKit.Acquisition.io.filesystem",
#   "purpose": "Filesystem helpers for sanitisation, hashing, masking, copying and scoped temporaries",
#   "sections": [
#     {"id": "segments", "name": "Owner Segments", "anchor": "SEG", "kind": "helpers"},
#     {"id": "masking", "name": "URL Masking", "anchor": "MSK", "kind": "helpers"},
#     {"id": "hashing", "name": "Hashing Utilities", "anchor": "HAS", "kind": "helpers"},
#     {"id": "files", "name": "Copies & Temporary Files", "anchor": "FIL", "kind": "helpers"}
#   ]
# }
# === /NAVMAP ===

"""Filesystem helpers for artifact acquisition.

Responsibilities include sanitising owner identities into cache path
segments, hashing download URLs into cache keys, masking credentials before
URLs reach the logs, validating destinations, copying cached bytes out, and
scoping temporary files so they disappear on every exit path.
"""

from __future__ import annotations

import contextlib
import hashlib
import logging
import os
import re
import shutil
import stat
import tempfile
import uuid
from pathlib import Path
from typing import Iterator, Union
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from ..errors import AcquisitionError, ValidationError

__all__ = [
    "owner_segment",
    "mask_url",
    "url_digest",
    "ensure_file_destination",
    "ensure_directory_destination",
    "copy_file",
    "remove_quietly",
    "scoped_temporary_file",
    "staging_path",
]

PathLike = Union[str, Path]

_SENSITIVE_QUERY_KEYS = {
    "access_token",
    "api_key",
    "apikey",
    "key",
    "password",
    "sig",
    "signature",
    "token",
    "x-amz-signature",
    "x-goog-signature",
}
_MASK = "***masked***"
_UNSAFE_SEGMENT_CHARS = re.compile(r"[^A-Za-z0-9._-]+")
_MAX_SEGMENT_LENGTH = 255


def owner_segment(owner: str) -> str:
    """Map an owner identity onto a single cache directory name.

    ``paketo-buildpacks/node`` becomes ``paketo-buildpacks_node``.  Blank
    identities and the special names ``.`` and ``..`` become ``unknown``.
    """

    segment = _UNSAFE_SEGMENT_CHARS.sub("_", owner.strip())[:_MAX_SEGMENT_LENGTH]
    if segment in {"", ".", ".."}:
        return "unknown"
    return segment


def mask_url(url: str) -> str:
    """Return ``url`` with userinfo and secret-looking query values masked."""

    try:
        parts = urlsplit(url)
    except ValueError:
        return url
    netloc = parts.netloc
    if "@" in netloc:
        netloc = f"{_MASK}@{netloc.rsplit('@', 1)[1]}"
    query = parts.query
    if query:
        pairs = parse_qsl(query, keep_blank_values=True)
        query = urlencode(
            [(key, _MASK if key.lower() in _SENSITIVE_QUERY_KEYS else value) for key, value in pairs],
            safe="*",
        )
    return urlunsplit((parts.scheme, netloc, parts.path, query, parts.fragment))


def url_digest(url: str) -> str:
    """Hex SHA-256 of the raw, unnormalised URL string."""

    return hashlib.sha256(url.encode("utf-8")).hexdigest()


def ensure_file_destination(destination: PathLike) -> Path:
    """Return ``destination`` as a path that is absent or a regular file."""

    path = Path(destination)
    try:
        mode = path.stat().st_mode
    except FileNotFoundError:
        return path
    except OSError as exc:
        raise ValidationError(f"could not access {str(path)!r}: {exc}") from exc
    if not stat.S_ISREG(mode):
        raise ValidationError(f"{str(path)!r} is not a file (mode {oct(mode)})")
    return path


def ensure_directory_destination(destination: PathLike) -> Path:
    """Return ``destination`` as a path to an existing directory."""

    path = Path(destination)
    try:
        path.stat()
    except OSError as exc:
        raise ValidationError(f"cannot access {str(path)!r}: {exc}") from exc
    if not path.is_dir():
        raise ValidationError(f"location {str(path)!r} not a directory")
    return path


def copy_file(source: PathLike, destination: PathLike) -> Path:
    """Copy the bytes of ``source`` to ``destination`` (a file path, not a directory).

    The copy is independent of the source: no links are created.
    """

    source, destination = Path(source), Path(destination)
    if not source.is_file():
        raise AcquisitionError(f"could not copy {str(source)!r}: is not a file")
    if destination.is_dir():
        raise AcquisitionError(f"could not copy to {str(destination)!r}: is a directory")
    try:
        shutil.copyfile(source, destination)
    except OSError as exc:
        raise AcquisitionError(f"could not copy into {str(destination)!r}: {exc}") from exc
    return destination


def remove_quietly(path: PathLike) -> None:
    """Remove ``path`` if present, ignoring a file that is already gone."""

    try:
        Path(path).unlink()
    except FileNotFoundError:
        pass
    except OSError as exc:
        logging.getLogger("BuildpackKit.Acquisition").warning(
            "could not remove temporary file",
            extra={"stage": "cleanup", "path": str(path), "error": str(exc)},
        )


def staging_path(final_path: Path) -> Path:
    """Return a unique hidden sibling of ``final_path`` used before an atomic rename."""

    return final_path.with_name(f".{final_path.name}.{uuid.uuid4().hex[:12]}.part")


@contextlib.contextmanager
def scoped_temporary_file(directory: PathLike, *, suffix: str = "") -> Iterator[Path]:
    """Yield a uniquely named empty file in ``directory`` and remove it on exit."""

    try:
        handle, name = tempfile.mkstemp(prefix=".download-", suffix=suffix, dir=directory)
    except OSError as exc:
        raise AcquisitionError(f"unable to create temporary file in {str(directory)!r}: {exc}") from exc
    os.close(handle)
    path = Path(name)
    try:
        yield path
    finally:
        remove_quietly(path)
