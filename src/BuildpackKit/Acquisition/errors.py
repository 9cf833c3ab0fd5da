"""Exception hierarchy shared across artifact download, caching, and extraction.

Acquisition spans destination validation, URL classification, network
retrieval through an external tool, and archive extraction.  Each stage maps
to one exception family so callers (and the CLI) can react to the category
while still reading the exit code and captured stderr of the tool that failed.
Every error is terminal for the current operation; none is retried here.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional, Sequence

__all__ = [
    "Attribution",
    "AcquisitionError",
    "ConfigurationError",
    "ValidationError",
    "UnrecognizedFormatError",
    "FetchError",
    "ExtractionError",
    "CommandError",
]


class Attribution(str, Enum):
    """Who is responsible for a failed command."""

    USER = "user"
    PLATFORM = "platform"


class AcquisitionError(RuntimeError):
    """Base exception for artifact acquisition failures.

    ``exit_code`` is the status the calling process should terminate with.
    """

    def __init__(self, message: str, *, exit_code: int = 1) -> None:
        super().__init__(message)
        self.exit_code = exit_code


class ConfigurationError(AcquisitionError):
    """Raised when environment or CLI configuration is invalid."""


class ValidationError(AcquisitionError):
    """Raised when a destination or option value has the wrong shape."""


class UnrecognizedFormatError(AcquisitionError):
    """Raised when a URL cannot be mapped to a supported archive family."""


class _ToolFailure(AcquisitionError):
    def __init__(self, message: str, *, exit_code: int = 1, stderr: str = "") -> None:
        super().__init__(message, exit_code=exit_code)
        self.stderr = stderr


class FetchError(_ToolFailure):
    """Raised when retrieving an artifact fails."""


class ExtractionError(_ToolFailure):
    """Raised when an archive cannot be extracted."""


class CommandError(AcquisitionError):
    """Raised when an external command exits non-zero or cannot be launched."""

    def __init__(
        self,
        command: Sequence[str],
        *,
        exit_code: int,
        stdout: str = "",
        stderr: str = "",
        attribution: Attribution = Attribution.USER,
        reason: Optional[str] = None,
    ) -> None:
        self.command = tuple(command)
        self.stdout = stdout
        self.stderr = stderr
        self.attribution = attribution
        detail = reason or f"exit status {exit_code}"
        name = self.command[0] if self.command else "<empty>"
        super().__init__(f"running {name!r}: {detail}", exit_code=exit_code)
