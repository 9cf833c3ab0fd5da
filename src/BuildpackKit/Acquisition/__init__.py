"""Public API for buildpack artifact acquisition.

Buildpacks call :func:`download` to place a build-time dependency at a file
path and :func:`download_and_extract` to unpack an archive into a layer
directory.  Both honour the optional content-addressed download cache and
raise :class:`AcquisitionError` subclasses carrying the exit status the
calling process should terminate with.
"""

from __future__ import annotations

from .engine import (
    AcquisitionStats,
    ArtifactAcquirer,
    Strategy,
    download,
    download_and_extract,
    select_strategy,
)
from .errors import (
    AcquisitionError,
    Attribution,
    CommandError,
    ConfigurationError,
    ExtractionError,
    FetchError,
    UnrecognizedFormatError,
    ValidationError,
)
from .options import (
    DxOption,
    ExtractionParams,
    keep_directory_symlink,
    resolve_params,
    strip_components,
    wildcards,
)
from .settings import AcquisitionSettings, load_settings

__version__ = "0.1.0"

__all__ = [
    "AcquisitionError",
    "AcquisitionSettings",
    "AcquisitionStats",
    "ArtifactAcquirer",
    "Attribution",
    "CommandError",
    "ConfigurationError",
    "DxOption",
    "ExtractionError",
    "ExtractionParams",
    "FetchError",
    "Strategy",
    "UnrecognizedFormatError",
    "ValidationError",
    "__version__",
    "download",
    "download_and_extract",
    "keep_directory_symlink",
    "load_settings",
    "resolve_params",
    "select_strategy",
    "strip_components",
    "wildcards",
]
