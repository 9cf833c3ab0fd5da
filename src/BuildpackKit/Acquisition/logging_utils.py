# === NAVMAP v1 ===
# {
#   "module": "BuildpackKit.Acquisition.logging_utils",
#   "purpose": "Structured logging helpers shared across acquisition components",
#   "sections": [
#     {"id": "formatter", "name": "JSONFormatter", "anchor": "FMT", "kind": "api"},
#     {"id": "setup", "name": "setup_logging", "anchor": "SET", "kind": "api"}
#   ]
# }
# === /NAVMAP ===
"""Structured logging helpers shared across acquisition components."""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional, TextIO

from .io.filesystem import mask_url

__all__ = ["LOGGER_NAME", "JSONFormatter", "setup_logging"]

LOGGER_NAME = "BuildpackKit.Acquisition"

_RESERVED = set(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


def _extra_fields(record: logging.LogRecord) -> Dict[str, Any]:
    fields: Dict[str, Any] = {}
    for key, value in vars(record).items():
        if key in _RESERVED or key.startswith("_"):
            continue
        if key == "url" and isinstance(value, str):
            value = mask_url(value)
        fields[key] = value
    return fields


class JSONFormatter(logging.Formatter):
    """Formatter emitting one JSON object per record with its ``extra`` fields."""

    def format(self, record: logging.LogRecord) -> str:
        """Render ``record`` as a JSON string."""

        now = datetime.now(timezone.utc)
        payload: Dict[str, Any] = {
            "timestamp": now.isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(_extra_fields(record))
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def setup_logging(
    *,
    level: str = "INFO",
    json_output: bool = False,
    stream: Optional[TextIO] = None,
    propagate: bool = False,
) -> logging.Logger:
    """Configure the acquisition logger with a single managed stream handler.

    Repeated calls replace the previously installed handler.  Diagnostics go to
    stderr by default so buildpack stdout stays clean.
    """

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    for handler in list(logger.handlers):
        if getattr(handler, "_acquisition_managed", False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    if json_output:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    handler._acquisition_managed = True  # type: ignore[attr-defined]
    logger.addHandler(handler)

    logger.propagate = propagate
    return logger
