# === NAVMAP v1 ===
# {
#   "module": "BuildpackKit.Acquisition.engine",
#   "purpose": "Download build-time dependencies and extract archives through cache, stream, or temporary-file strategies",
#   "sections": [
#     {"id": "strategy", "name": "Strategy Selection", "anchor": "STR", "kind": "api"},
#     {"id": "stats", "name": "Cache Observations", "anchor": "OBS", "kind": "helpers"},
#     {"id": "acquirer", "name": "ArtifactAcquirer", "anchor": "ACQ", "kind": "api"},
#     {"id": "module-api", "name": "Module-level Operations", "anchor": "API", "kind": "api"}
#   ]
# }
# === /NAVMAP ===

"""Artifact acquisition engine.

:class:`ArtifactAcquirer` implements the two operations buildpacks call:

``download``
    Place the bytes behind a URL at a file path, going through the download
    cache when one is configured.

``download_and_extract``
    Unpack an archive into an existing directory.  :func:`select_strategy`
    picks how the archive reaches the extraction tool:

    * ``CACHED`` - the archive is resolved through the cache and extracted
      from the cached file;
    * ``STREAMED`` - the fetch output is piped straight into ``tar``, so the
      archive never touches the disk;
    * ``TEMPORARY_FILE`` - the archive is fetched into a hidden file inside
      the destination, extracted, and removed whatever happens.

Every failure raises an :class:`~BuildpackKit.Acquisition.errors.AcquisitionError`;
partially downloaded bytes are discarded before the exception propagates.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, Union

from .errors import Attribution, CommandError, ExtractionError
from .io.cache import ContentCache
from .io.filesystem import (
    ensure_directory_destination,
    ensure_file_destination,
    mask_url,
    scoped_temporary_file,
)
from .io.formats import ArchiveFamily, ArchiveType, classify
from .io.network import Fetcher, build_fetcher
from .io.runner import CommandRunner
from .options import DxOption, ExtractionParams, resolve_params
from .settings import AcquisitionSettings, load_settings

__all__ = [
    "Strategy",
    "select_strategy",
    "AcquisitionStats",
    "ArtifactAcquirer",
    "download",
    "download_and_extract",
]

PathLike = Union[str, Path]

_LOGGER = logging.getLogger("BuildpackKit.Acquisition")


class Strategy(str, Enum):
    CACHED = "cached"
    STREAMED = "streamed"
    TEMPORARY_FILE = "temporary-file"


def select_strategy(archive_type: ArchiveType, caching_enabled: bool) -> Strategy:
    """Return how an archive of ``archive_type`` should reach its extractor."""

    if caching_enabled:
        return Strategy.CACHED
    if archive_type.supports_stdin and archive_type.is_command_line:
        return Strategy.STREAMED
    return Strategy.TEMPORARY_FILE


@dataclass
class AcquisitionStats:
    """Cache hit/miss observations and network fetch count for one acquirer."""

    hits: List[str] = field(default_factory=list)
    misses: List[str] = field(default_factory=list)
    fetches: int = 0


class ArtifactAcquirer:
    """Download and extract build-time dependencies for one owner identity."""

    def __init__(
        self,
        settings: Optional[AcquisitionSettings] = None,
        *,
        runner: Optional[CommandRunner] = None,
        fetcher: Optional[Fetcher] = None,
        cache: Optional[ContentCache] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.settings = settings or load_settings()
        self.logger = logger or _LOGGER
        self.runner = runner or CommandRunner(logger=self.logger)
        self.fetcher = fetcher or build_fetcher(
            self.settings.fetch_backend,
            self.runner,
            retries=self.settings.fetch_retries,
            timeout=self.settings.fetch_timeout_sec,
            curl_binary=self.settings.curl_binary,
            logger=self.logger,
        )
        self.cache = cache if cache is not None else ContentCache(
            self.settings.cache_dir, logger=self.logger
        )
        self.stats = AcquisitionStats()

    @property
    def owner_id(self) -> str:
        return self.settings.owner_id

    # -- cache -------------------------------------------------------------

    def _record(self, hit: bool, url: str) -> None:
        if hit:
            self.stats.hits.append(url)
        else:
            self.stats.misses.append(url)
        self.logger.info(
            "cache %s",
            "hit" if hit else "miss",
            extra={"stage": "cache", "url": mask_url(url), "owner": self.owner_id},
        )

    def _fetch(self, description: str, url: str, destination: Path) -> None:
        self.stats.fetches += 1
        self.fetcher.fetch(description, url, destination)

    def _resolve_cached(self, description: str, url: str) -> Path:
        """Return the cache entry for ``url``, fetching it on a miss."""

        entry = self.cache.lookup(self.owner_id, url)
        if entry is not None:
            self._record(True, url)
            return entry
        self._record(False, url)
        with self.cache.stage(self.owner_id, url) as staged:
            self._fetch(description, url, staged)
        return self.cache.entry_path(self.owner_id, url)

    # -- operations --------------------------------------------------------

    def download(
        self,
        description: str,
        url: str,
        destination: PathLike,
        *options: DxOption,
    ) -> Path:
        """Download ``url`` to the file ``destination``.

        ``destination`` must be absent or a regular file; its parent must exist.
        Options are accepted for symmetry with :meth:`download_and_extract`
        and have no effect on plain downloads.
        """

        target = ensure_file_destination(destination)
        if self.cache.enabled:
            entry = self._resolve_cached(description, url)
            self.cache.copy_out(entry, target)
        else:
            self._fetch(description, url, target)
        return target

    def download_and_extract(
        self,
        description: str,
        url: str,
        destination_dir: PathLike,
        *options: DxOption,
    ) -> Path:
        """Download the archive at ``url`` and extract it into ``destination_dir``."""

        target = ensure_directory_destination(destination_dir)
        archive_type = classify(url)
        params = resolve_params(options)
        strategy = select_strategy(archive_type, self.cache.enabled)
        self.logger.debug(
            "selected extraction strategy",
            extra={
                "stage": "extract",
                "url": mask_url(url),
                "strategy": strategy.value,
                "family": archive_type.family.value,
            },
        )

        if strategy is Strategy.CACHED:
            entry = self._resolve_cached(description, url)
            self.extract(archive_type, entry, target, params)
        elif strategy is Strategy.STREAMED:
            command = self._command_line(archive_type, None, target, params)
            self.stats.fetches += 1
            self.fetcher.fetch_into(description, url, command, attribution=Attribution.USER)
        else:
            with scoped_temporary_file(target, suffix=archive_type.extension) as archive:
                self._fetch(description, url, archive)
                self.extract(archive_type, archive, target, params)
        return target

    # -- extraction --------------------------------------------------------

    def _tool_for(self, archive_type: ArchiveType) -> str:
        if archive_type.family is ArchiveFamily.ZIP:
            return self.settings.unzip_binary
        return self.settings.tar_binary

    def _command_line(
        self,
        archive_type: ArchiveType,
        source: Optional[Path],
        destination: Path,
        params: ExtractionParams,
    ) -> List[str]:
        assert archive_type.command_line is not None
        return archive_type.command_line(
            source, destination, params, tool=self._tool_for(archive_type)
        )

    def extract(
        self,
        archive_type: ArchiveType,
        source: Path,
        destination: Path,
        params: ExtractionParams,
    ) -> None:
        """Extract the on-disk archive ``source`` into ``destination``."""

        if archive_type.command_line is not None:
            command = self._command_line(archive_type, source, destination, params)
            try:
                self.runner.run(command, attribution=Attribution.USER)
            except CommandError as exc:
                raise ExtractionError(
                    f"extracting {source}: {exc}\n{exc.stderr}".rstrip(),
                    exit_code=exc.exit_code,
                    stderr=exc.stderr,
                ) from exc
            return
        assert archive_type.runner is not None
        archive_type.runner(
            self.runner,
            source,
            destination,
            params,
            logger=self.logger,
            tool=self._tool_for(archive_type),
        )


def download(description: str, url: str, destination: PathLike, *options: DxOption) -> Path:
    """Download ``url`` to ``destination`` using settings from the environment."""

    return ArtifactAcquirer().download(description, url, destination, *options)


def download_and_extract(
    description: str, url: str, destination_dir: PathLike, *options: DxOption
) -> Path:
    """Download and extract ``url`` into ``destination_dir`` using settings from the environment."""

    return ArtifactAcquirer().download_and_extract(description, url, destination_dir, *options)
