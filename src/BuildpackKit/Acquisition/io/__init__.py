"""Aggregated IO helpers for buildpack artifact acquisition.

This subpackage bundles the process runner used to invoke ``curl``, ``tar``
and ``unzip``, the archive format table, the content-addressed download
cache, the curl/httpx fetchers, and the filesystem helpers they share.
Re-exporting the most common symbols keeps importing ergonomics simple for the
rest of the package.
"""

from .cache import ContentCache
from .filesystem import (
    copy_file,
    ensure_directory_destination,
    ensure_file_destination,
    mask_url,
    owner_segment,
    scoped_temporary_file,
    url_digest,
)
from .formats import (
    ARCHIVE_TYPES,
    ArchiveFamily,
    ArchiveType,
    classify,
    extract_zip,
    tar_command,
    walk_to_depth,
)
from .network import CurlFetcher, Fetcher, HttpxFetcher, build_fetcher, is_retryable_error
from .runner import CommandResult, CommandRunner

__all__ = [
    "ARCHIVE_TYPES",
    "ArchiveFamily",
    "ArchiveType",
    "CommandResult",
    "CommandRunner",
    "ContentCache",
    "CurlFetcher",
    "Fetcher",
    "HttpxFetcher",
    "build_fetcher",
    "classify",
    "copy_file",
    "ensure_directory_destination",
    "ensure_file_destination",
    "extract_zip",
    "is_retryable_error",
    "mask_url",
    "owner_segment",
    "scoped_temporary_file",
    "tar_command",
    "url_digest",
    "walk_to_depth",
]
