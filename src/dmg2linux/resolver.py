"""Artifact resolution across override, local and network sources."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from dmg2linux.archive import is_valid_dmg
from dmg2linux.errors import Dmg2LinuxError, InputValidationError, ResolutionExhausted
from dmg2linux.types import Provenance

if TYPE_CHECKING:
    from dmg2linux.application.ports import Downloader

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SkippedCandidate:
    """Local candidate that existed but failed validation."""

    path: Path
    reason: str


@dataclass(frozen=True)
class Artifact:
    """Validated disk image chosen for a run."""

    path: Path
    provenance: Provenance
    skipped: tuple[SkippedCandidate, ...] = ()
    source_url: str | None = None


@dataclass(frozen=True)
class FallbackSource:
    """Network location fetched into a fixed cache path."""

    url: str
    cache_path: Path
    total_timeout: float | None = None


@dataclass
class ArtifactResolver:
    """Pick a disk image: explicit override, local candidates, then network.

    Parameters
    ----------
    downloader : Downloader | None
        Fetcher used for the network fallback.
    validator : Callable[[Path], bool]
        Trailer validator, :func:`dmg2linux.archive.is_valid_dmg` by default.
    label : str
        Human label used in messages ("installer DMG", "payload DMG").
    """

    downloader: Downloader | None = None
    validator: Callable[[Path], bool] = is_valid_dmg
    label: str = "DMG"
    _skipped: list[SkippedCandidate] = field(default_factory=list, init=False, repr=False)

    def resolve(
        self,
        explicit: Path | None,
        candidates: Sequence[Path] = (),
        fallback: FallbackSource | None = None,
    ) -> Artifact:
        """Resolve one artifact.

        An explicit path must exist and validate or resolution fails outright.
        Local candidates are probed in order, skipping duplicates and invalid
        files. The fallback is fetched last.

        Raises
        ------
        InputValidationError
            If the explicit override is missing or invalid.
        ResolutionExhausted
            If no source produced a valid disk image.
        """
        self._skipped = []
        if explicit is not None:
            return self._resolve_explicit(explicit)

        local = self._probe_local(candidates)
        if local is not None:
            return local

        if fallback is None:
            raise ResolutionExhausted(
                f"No valid local {self.label} found and no download source is configured."
            )
        return self._fetch_cached(fallback)

    def _resolve_explicit(self, explicit: Path) -> Artifact:
        if not explicit.is_file():
            raise InputValidationError(f"{self.label} override points to a missing file: {explicit}")
        canonical = explicit.resolve()
        if not self.validator(canonical):
            raise InputValidationError(f"{self.label} override is not a valid DMG: {canonical}")
        logger.info("Using provided %s: %s", self.label, canonical)
        return Artifact(path=canonical, provenance=Provenance.OVERRIDE)

    def _probe_local(self, candidates: Sequence[Path]) -> Artifact | None:
        seen: set[Path] = set()
        for candidate in candidates:
            if not candidate.is_file():
                continue
            canonical = candidate.resolve()
            if canonical in seen:
                continue
            seen.add(canonical)
            if self.validator(canonical):
                logger.info("Using local %s: %s", self.label, canonical)
                return Artifact(
                    path=canonical,
                    provenance=Provenance.LOCAL,
                    skipped=tuple(self._skipped),
                )
            self._skip(canonical, "failed DMG trailer validation")
        return None

    def _skip(self, path: Path, reason: str) -> None:
        logger.warning("Ignoring invalid local %s: %s (%s)", self.label, path, reason)
        self._skipped.append(SkippedCandidate(path=path, reason=reason))

    def _fetch_cached(self, fallback: FallbackSource) -> Artifact:
        cache_path = fallback.cache_path
        if cache_path.is_file() and cache_path.stat().st_size > 0:
            if self.validator(cache_path):
                logger.info("Using cached %s: %s", self.label, cache_path)
                return Artifact(
                    path=cache_path,
                    provenance=Provenance.CACHED,
                    skipped=tuple(self._skipped),
                    source_url=fallback.url,
                )
            logger.warning("Cached %s is not a valid DMG; re-downloading: %s", self.label, cache_path)
        cache_path.unlink(missing_ok=True)

        if self.downloader is None:
            raise ResolutionExhausted(f"No downloader configured to fetch {self.label} from {fallback.url}")

        logger.info("No local %s found; downloading %s", self.label, fallback.url)
        cache_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            self.downloader.fetch(fallback.url, cache_path, total_timeout=fallback.total_timeout)
        except Dmg2LinuxError as exc:
            cache_path.unlink(missing_ok=True)
            raise ResolutionExhausted(f"Failed to download {self.label} from {fallback.url}: {exc}") from exc

        if not cache_path.is_file() or cache_path.stat().st_size == 0:
            cache_path.unlink(missing_ok=True)
            raise ResolutionExhausted(f"{self.label} download produced an empty file: {cache_path}")
        if not self.validator(cache_path):
            cache_path.unlink(missing_ok=True)
            raise ResolutionExhausted(f"Downloaded {self.label} is not a valid DMG: {cache_path}")

        logger.info("Saved %s: %s", self.label, cache_path)
        return Artifact(
            path=cache_path,
            provenance=Provenance.DOWNLOADED,
            skipped=tuple(self._skipped),
            source_url=fallback.url,
        )
