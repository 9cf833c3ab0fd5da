"""Download and extraction options.

Options are small callables applied in order to an :class:`ExtractionParams`
value; a later option for the same field overrides an earlier one::

    params = resolve_params([strip_components(1), wildcards("*/bin/*")])
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Callable, Iterable, Optional

from .errors import ValidationError

__all__ = [
    "ExtractionParams",
    "DxOption",
    "strip_components",
    "keep_directory_symlink",
    "wildcards",
    "resolve_params",
]


@dataclass(frozen=True)
class ExtractionParams:
    """Parameters controlling how a downloaded archive is written to disk."""

    strip_components: int = 0
    keep_directory_symlink: bool = False
    wildcards: Optional[str] = None


DxOption = Callable[[ExtractionParams], ExtractionParams]


def strip_components(count: int) -> DxOption:
    """Drop the first ``count`` path components of every archive member.

    Extracting ``gradle-5.2.3/bin/gradle`` with ``strip_components(1)`` yields
    ``bin/gradle``.
    """

    if isinstance(count, bool) or not isinstance(count, int) or count < 0:
        raise ValidationError(f"strip_components must be a non-negative integer, got {count!r}")

    def _apply(params: ExtractionParams) -> ExtractionParams:
        return replace(params, strip_components=count)

    return _apply


def keep_directory_symlink() -> DxOption:
    """Preserve existing symlinks to directories during extraction."""

    def _apply(params: ExtractionParams) -> ExtractionParams:
        return replace(params, keep_directory_symlink=True)

    return _apply


def wildcards(pattern: str) -> DxOption:
    """Only extract members matching ``pattern`` (matched before stripping)."""

    def _apply(params: ExtractionParams) -> ExtractionParams:
        return replace(params, wildcards=pattern or None)

    return _apply


def resolve_params(options: Iterable[DxOption]) -> ExtractionParams:
    params = ExtractionParams()
    for option in options:
        params = option(params)
    return params
