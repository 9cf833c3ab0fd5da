"""Content cache layout, staging, and commit behaviour."""

from __future__ import annotations

import hashlib

import pytest

from BuildpackKit.Acquisition.errors import AcquisitionError
from BuildpackKit.Acquisition.io.cache import ContentCache
from BuildpackKit.Acquisition.io.filesystem import owner_segment

URL = "https://dl.example.com/jdk-17.tar.gz"


def _digest(url: str) -> str:
    return hashlib.sha256(url.encode("utf-8")).hexdigest()


def test_entry_path_layout(tmp_path) -> None:
    cache = ContentCache(tmp_path)
    assert cache.entry_path("google.java.runtime", URL) == (
        tmp_path / "downloads" / "google.java.runtime" / _digest(URL)
    )


def test_keys_are_raw_url_strings(tmp_path) -> None:
    cache = ContentCache(tmp_path)
    assert cache.entry_path("owner", URL) != cache.entry_path("owner", URL + "#")
    assert cache.entry_path("owner", URL) != cache.entry_path("other", URL)


def test_lookup_misses_until_committed(tmp_path) -> None:
    cache = ContentCache(tmp_path)
    assert cache.lookup("owner", URL) is None

    with cache.stage("owner", URL) as staged:
        staged.write_bytes(b"payload")
        assert cache.lookup("owner", URL) is None

    entry = cache.lookup("owner", URL)
    assert entry is not None
    assert entry.read_bytes() == b"payload"
    assert [path.name for path in entry.parent.iterdir()] == [entry.name]


def test_stage_discards_staging_file_on_error(tmp_path) -> None:
    cache = ContentCache(tmp_path)

    with pytest.raises(RuntimeError):
        with cache.stage("owner", URL) as staged:
            staged.write_bytes(b"half")
            raise RuntimeError("network dropped")

    assert cache.lookup("owner", URL) is None
    assert list(cache.owner_directory("owner").iterdir()) == []


def test_stage_requires_written_file(tmp_path) -> None:
    cache = ContentCache(tmp_path)
    with pytest.raises(AcquisitionError):
        with cache.stage("owner", URL):
            pass
    assert cache.lookup("owner", URL) is None


def test_stage_replaces_existing_entry(tmp_path) -> None:
    cache = ContentCache(tmp_path)
    for payload in (b"first", b"second"):
        with cache.stage("owner", URL) as staged:
            staged.write_bytes(payload)
    assert cache.entry_path("owner", URL).read_bytes() == b"second"


def test_put_and_copy_out_are_independent(tmp_path) -> None:
    source = tmp_path / "artifact.bin"
    source.write_bytes(b"bytes")
    cache = ContentCache(tmp_path / "cache")

    entry = cache.put("owner", URL, source)
    copy = cache.copy_out(entry, tmp_path / "copy.bin")
    copy.write_bytes(b"changed")

    assert entry.read_bytes() == b"bytes"
    assert source.read_bytes() == b"bytes"


def test_owner_identity_is_sanitized(tmp_path) -> None:
    cache = ContentCache(tmp_path)
    assert cache.owner_directory("../escape").parent == tmp_path / "downloads"


@pytest.mark.parametrize(
    "owner, segment",
    [
        ("google.java.runtime", "google.java.runtime"),
        ("paketo-buildpacks/node", "paketo-buildpacks_node"),
        ("a b//c", "a_b_c"),
        ("..", "unknown"),
        (".", "unknown"),
        ("   ", "unknown"),
        ("x" * 300, "x" * 255),
    ],
)
def test_owner_segment(owner: str, segment: str) -> None:
    assert owner_segment(owner) == segment


def test_disabled_cache(tmp_path) -> None:
    cache = ContentCache(None)
    assert not cache.enabled
    assert cache.lookup("owner", URL) is None
    with pytest.raises(AcquisitionError):
        cache.entry_path("owner", URL)


def test_blank_root_disables_cache() -> None:
    assert not ContentCache("").enabled
