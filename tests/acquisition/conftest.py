"""Shared fixtures for the acquisition test suite."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator

import pytest

from BuildpackKit.Acquisition.logging_utils import LOGGER_NAME
from BuildpackKit.Acquisition.settings import AcquisitionSettings, load_settings
from tests.acquisition.fakes import ScriptedRunner

_ENV_VARS = (
    "BUILDPACK_CACHE_DIR",
    "CNB_BUILDPACK_ID",
    "BUILDPACK_ID",
    "BUILDPACK_FETCH_BACKEND",
    "BUILDPACK_FETCH_RETRIES",
    "BUILDPACK_FETCH_TIMEOUT_SEC",
    "BUILDPACK_LOG_LEVEL",
    "BUILDPACK_LOG_FORMAT",
    "BUILDPACK_CURL_BINARY",
    "BUILDPACK_TAR_BINARY",
    "BUILDPACK_UNZIP_BINARY",
)


@pytest.fixture(autouse=True)
def _clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the host's buildpack environment out of every test."""

    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def runner() -> ScriptedRunner:
    return ScriptedRunner()


@pytest.fixture
def cached_settings(tmp_path: Path) -> AcquisitionSettings:
    return load_settings(cache_dir=tmp_path / "cache", owner_id="google.java.runtime")


@pytest.fixture
def uncached_settings() -> AcquisitionSettings:
    return load_settings(owner_id="google.java.runtime")


@pytest.fixture(autouse=True)
def _restore_logger() -> Iterator[None]:
    """Undo ``setup_logging`` so ``caplog`` keeps seeing acquisition records."""

    logger = logging.getLogger(LOGGER_NAME)
    handlers, level, propagate = list(logger.handlers), logger.level, logger.propagate
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate
