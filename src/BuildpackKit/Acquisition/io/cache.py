# === NAVMAP v1 ===
# {
#   "module": "BuildpackKit.Acquisition.io.cache",
#   "purpose": "Content-addressed download cache with atomic entry commits",
#   "sections": [
#     {"id": "cache", "name": "ContentCache", "anchor": "CAC", "kind": "api"}
#   ]
# }
# === /NAVMAP ===

"""Download cache keyed by owner identity and the SHA-256 of the source URL.

Layout::

    <root>/downloads/<owner>/<sha256(url)>

Entries are written to a hidden staging file in the same directory and
renamed into place once complete, so a reader never observes a truncated
entry.  Concurrent writers for the same key may both fetch; the last rename
wins and both files are complete.  Entries are never deleted here.
"""

from __future__ import annotations

import contextlib
import logging
import os
import shutil
from pathlib import Path
from typing import Iterator, Optional, Union

from ..errors import AcquisitionError
from .filesystem import copy_file, owner_segment, remove_quietly, staging_path, url_digest

__all__ = ["ContentCache"]

_LOGGER = logging.getLogger("BuildpackKit.Acquisition")


class ContentCache:
    """Persistent cache of downloaded artifacts; disabled when ``root`` is ``None``."""

    def __init__(
        self,
        root: Optional[Union[str, Path]],
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.root = Path(root) if root else None
        self.logger = logger or _LOGGER

    @property
    def enabled(self) -> bool:
        return self.root is not None

    def _require_root(self) -> Path:
        if self.root is None:
            raise AcquisitionError("download cache is not configured")
        return self.root

    def owner_directory(self, owner: str) -> Path:
        return self._require_root() / "downloads" / owner_segment(owner)

    def entry_path(self, owner: str, url: str) -> Path:
        """Return the final path of the entry for ``(owner, url)``."""

        return self.owner_directory(owner) / url_digest(url)

    def lookup(self, owner: str, url: str) -> Optional[Path]:
        """Return the entry path on a hit, ``None`` on a miss or when disabled."""

        if not self.enabled:
            return None
        path = self.entry_path(owner, url)
        return path if path.is_file() else None

    @contextlib.contextmanager
    def stage(self, owner: str, url: str) -> Iterator[Path]:
        """Yield a staging path for ``(owner, url)`` and commit it on success.

        The staging file is removed if the block raises; the entry then does
        not exist.
        """

        final = self.entry_path(owner, url)
        try:
            final.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise AcquisitionError(f"creating cache directory {str(final.parent)!r}: {exc}") from exc
        staged = staging_path(final)
        try:
            yield staged
            if not staged.is_file():
                raise AcquisitionError(f"cache staging file {str(staged)!r} was not written")
        except BaseException:
            remove_quietly(staged)
            raise
        try:
            os.replace(staged, final)
        except OSError as exc:
            remove_quietly(staged)
            raise AcquisitionError(f"committing cache entry {str(final)!r}: {exc}") from exc
        self.logger.debug(
            "committed cache entry",
            extra={"stage": "cache", "entry": str(final)},
        )

    def put(self, owner: str, url: str, source: Union[str, Path]) -> Path:
        """Copy the file at ``source`` into the cache under ``(owner, url)``."""

        with self.stage(owner, url) as staged:
            try:
                shutil.copyfile(source, staged)
            except OSError as exc:
                raise AcquisitionError(f"caching {str(source)!r}: {exc}") from exc
        return self.entry_path(owner, url)

    def copy_out(self, entry: Path, destination: Union[str, Path]) -> Path:
        """Copy ``entry`` to ``destination``; the two stay independently mutable."""

        return copy_file(entry, destination)
