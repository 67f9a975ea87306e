"""Unit tests for artifact resolution order and cache handling."""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path

import pytest

from dmg2linux.errors import InputValidationError, ResolutionExhausted
from dmg2linux.resolver import ArtifactResolver, FallbackSource
from dmg2linux.types import Provenance

URL = "https://downloads.example/ChatGPT_Atlas.dmg"


class _Downloader:
    def __init__(self, content: bytes | None) -> None:
        self.content = content
        self.calls: list[tuple[str, Path, float | None]] = []

    def fetch(self, url: str, dest: Path, *, total_timeout: float | None = None) -> Path:
        self.calls.append((url, dest, total_timeout))
        if self.content is None:
            raise ResolutionExhausted("connection refused")
        dest.write_bytes(self.content)
        return dest


VALID = b"\x00" * 64 + b"koly" + b"\x00" * 508


def test_explicit_override_wins_over_local_candidates(
    tmp_path: Path, dmg_writer: Callable[..., Path]
) -> None:
    """Use the explicit path even when a local candidate is valid."""
    explicit = dmg_writer(tmp_path / "override" / "mine.dmg")
    local = dmg_writer(tmp_path / "ChatGPT_Atlas.dmg")
    downloader = _Downloader(VALID)

    artifact = ArtifactResolver(downloader=downloader).resolve(
        explicit, candidates=[local], fallback=FallbackSource(URL, tmp_path / "cache.dmg")
    )

    assert artifact.path == explicit.resolve()
    assert artifact.provenance is Provenance.OVERRIDE
    assert downloader.calls == []


def test_invalid_explicit_override_is_fatal(
    tmp_path: Path, dmg_writer: Callable[..., Path]
) -> None:
    """Never fall back when an explicit override is missing or invalid."""
    resolver = ArtifactResolver(downloader=_Downloader(VALID))
    local = dmg_writer(tmp_path / "ChatGPT_Atlas.dmg")

    with pytest.raises(InputValidationError, match="missing file"):
        resolver.resolve(tmp_path / "nope.dmg", candidates=[local])

    bad = dmg_writer(tmp_path / "bad.dmg", valid=False)
    with pytest.raises(InputValidationError, match="not a valid DMG"):
        resolver.resolve(bad, candidates=[local])


def test_invalid_local_candidate_is_skipped_and_recorded(
    tmp_path: Path, dmg_writer: Callable[..., Path], caplog: pytest.LogCaptureFixture
) -> None:
    """Skip an invalid candidate with a warning and use the next valid one."""
    bad = dmg_writer(tmp_path / "a" / "ChatGPT_Atlas.dmg", valid=False)
    good = dmg_writer(tmp_path / "b" / "ChatGPT_Atlas.dmg")

    with caplog.at_level(logging.WARNING, logger="dmg2linux"):
        artifact = ArtifactResolver().resolve(None, candidates=[bad, tmp_path / "missing.dmg", good])

    assert artifact.path == good.resolve()
    assert artifact.provenance is Provenance.LOCAL
    assert [item.path for item in artifact.skipped] == [bad.resolve()]
    assert "Ignoring invalid local DMG" in caplog.text


def test_duplicate_candidates_are_probed_once(
    tmp_path: Path, dmg_writer: Callable[..., Path]
) -> None:
    """Deduplicate candidates by canonical path."""
    bad = dmg_writer(tmp_path / "ChatGPT_Atlas.dmg", valid=False)
    seen: list[Path] = []

    def validator(path: Path) -> bool:
        seen.append(path)
        return False

    resolver = ArtifactResolver(validator=validator)
    with pytest.raises(ResolutionExhausted, match="no download source"):
        resolver.resolve(None, candidates=[bad, tmp_path / "." / "ChatGPT_Atlas.dmg"])
    assert seen == [bad.resolve()]


def test_valid_cache_is_reused_without_download(
    tmp_path: Path, dmg_writer: Callable[..., Path]
) -> None:
    """Reuse a valid cached file."""
    cache = dmg_writer(tmp_path / "cache" / "ChatGPT_Atlas.dmg")
    downloader = _Downloader(VALID)

    artifact = ArtifactResolver(downloader=downloader).resolve(
        None, fallback=FallbackSource(URL, cache)
    )

    assert artifact.provenance is Provenance.CACHED
    assert artifact.source_url == URL
    assert downloader.calls == []


def test_invalid_cache_is_discarded_and_refetched(
    tmp_path: Path, dmg_writer: Callable[..., Path]
) -> None:
    """Delete an invalid cached file and download a fresh copy."""
    cache = dmg_writer(tmp_path / "cache" / "ChatGPT_Atlas.dmg", valid=False)
    downloader = _Downloader(VALID)

    artifact = ArtifactResolver(downloader=downloader).resolve(
        None, fallback=FallbackSource(URL, cache, total_timeout=900)
    )

    assert artifact.provenance is Provenance.DOWNLOADED
    assert downloader.calls == [(URL, cache, 900)]
    assert cache.read_bytes() == VALID


@pytest.mark.parametrize(
    ("content", "message"),
    [(b"", "empty file"), (b"<html/>", "not a valid DMG"), (None, "Failed to download")],
)
def test_bad_download_is_fatal(tmp_path: Path, content: bytes | None, message: str) -> None:
    """Fail on empty, invalid or failed downloads and leave no cache behind."""
    cache = tmp_path / "cache" / "ChatGPT_Atlas.dmg"
    resolver = ArtifactResolver(downloader=_Downloader(content), label="payload DMG")

    with pytest.raises(ResolutionExhausted, match=message):
        resolver.resolve(None, fallback=FallbackSource(URL, cache))
    assert not cache.exists()


def test_fallback_without_downloader_is_exhausted(tmp_path: Path) -> None:
    """Report exhaustion when nothing can fetch the fallback."""
    with pytest.raises(ResolutionExhausted, match="No downloader"):
        ArtifactResolver().resolve(None, fallback=FallbackSource(URL, tmp_path / "x.dmg"))
