# === NAVMAP v1 ===
# {
#   "module": "BuildpackKit.Acquisition.settings",
#   "purpose": "Environment-backed configuration for artifact acquisition",
#   "sections": [
#     {"id": "acquisitionsettings", "name": "AcquisitionSettings", "anchor": "class-acquisitionsettings", "kind": "class"},
#     {"id": "load-settings", "name": "load_settings", "anchor": "function-load-settings", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""Configuration for the acquisition engine.

Values come from the environment the lifecycle hands to each buildpack.  The
download cache is optional: an unset or blank ``BUILDPACK_CACHE_DIR`` means
caching is disabled, which is a valid state rather than an error.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError

__all__ = ["AcquisitionSettings", "load_settings"]

# Aliased fields are passed by alias so that init values outrank the environment.
_INIT_ALIASES = {"cache_dir": "BUILDPACK_CACHE_DIR", "owner_id": "CNB_BUILDPACK_ID"}


class AcquisitionSettings(BaseSettings):
    """Settings resolved from ``BUILDPACK_*`` environment variables."""

    cache_dir: Optional[Path] = Field(
        default=None,
        validation_alias=AliasChoices("BUILDPACK_CACHE_DIR"),
        description="Root of the download cache; unset disables caching",
    )
    owner_id: str = Field(
        default="unknown",
        validation_alias=AliasChoices("CNB_BUILDPACK_ID", "BUILDPACK_ID"),
        description="Identity namespacing cache entries (usually the buildpack id)",
    )
    fetch_backend: Literal["curl", "httpx"] = Field(default="curl")
    fetch_retries: int = Field(default=3, ge=0, le=10)
    fetch_timeout_sec: float = Field(default=300.0, gt=0.0, le=3600.0)
    curl_binary: str = Field(default="curl", min_length=1)
    tar_binary: str = Field(default="tar", min_length=1)
    unzip_binary: str = Field(default="unzip", min_length=1)
    log_level: str = Field(default="INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR)")
    log_format: Literal["text", "json"] = Field(default="text")

    model_config = SettingsConfigDict(
        env_prefix="BUILDPACK_",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("cache_dir", mode="before")
    @classmethod
    def _blank_cache_dir_disables(cls, value: Any) -> Any:
        if value is None:
            return None
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("owner_id", mode="before")
    @classmethod
    def _blank_owner_is_unknown(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return "unknown"
        return value

    @field_validator("log_level")
    @classmethod
    def _normalise_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level {value!r}")
        return level

    @property
    def caching_enabled(self) -> bool:
        return self.cache_dir is not None


def load_settings(**overrides: Any) -> AcquisitionSettings:
    """Build settings from the environment, applying non-``None`` ``overrides``.

    Raises:
        ConfigurationError: When a value fails validation.
    """

    values = {
        _INIT_ALIASES.get(key, key): value for key, value in overrides.items() if value is not None
    }
    try:
        return AcquisitionSettings(**values)
    except PydanticValidationError as exc:
        raise ConfigurationError(f"invalid acquisition settings: {exc}") from exc
