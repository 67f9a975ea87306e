"""Runtime entry metadata discovered from extracted bundles."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

from dmg2linux.bundles.classifier import main_binary_path
from dmg2linux.bundles.strings import StringsScanner
from dmg2linux.schemas import ProductProfile

# Hint source standing for the bundle's own main executable.
MAIN_BINARY_SOURCE = "@main"


def _hint_files(bundle_root: Path, sources: Iterable[str]) -> Iterable[Path]:
    for source in sources:
        if source == MAIN_BINARY_SOURCE:
            yield main_binary_path(bundle_root)
            continue
        candidate = bundle_root / source
        if candidate.is_dir():
            yield from sorted(p for p in candidate.rglob("*") if p.is_file())
        else:
            yield candidate


def find_start_url_hint(
    bundle_root: Path,
    profile: ProductProfile,
    scanner: StringsScanner,
) -> str | None:
    """Return the first start URL embedded in the profile's hint sources."""
    for path in _hint_files(bundle_root, profile.start_url_sources):
        url = scanner.find_url(path, profile.start_url_pattern)
        if url:
            return url
    return None


def resolve_start_url(
    payload_root: Path,
    profile: ProductProfile,
    scanner: StringsScanner,
    *,
    explicit: str | None = None,
    installer_root: Path | None = None,
) -> str:
    """Resolve the start URL: override, payload hint, installer hint, fallback."""
    if explicit:
        return explicit
    url = find_start_url_hint(payload_root, profile, scanner)
    if url is None and installer_root is not None:
        url = find_start_url_hint(installer_root, profile, scanner)
    return url or profile.start_url_fallback


def find_icon(bundle_root: Path, profile: ProductProfile) -> Path | None:
    """Return the first existing icon candidate of the bundle."""
    for candidate in profile.icon_candidates:
        path = bundle_root / candidate
        if path.is_file():
            return path
    return None
