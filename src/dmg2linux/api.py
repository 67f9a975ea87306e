"""Public file-based conversion API (delegates to application use-cases)."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable
from typing import Optional

from dmg2linux.application.results import ConversionResult
from dmg2linux.application.use_cases import build_conversion_options
from dmg2linux.application.use_cases import classify_dmg
from dmg2linux.application.use_cases import convert_dmg
from dmg2linux.application.use_cases import patch_app_tree
from dmg2linux.bundles.classifier import BundleClassification
from dmg2linux.patching.engine import AppliedPatch
from dmg2linux.profiles import load_profile
from dmg2linux.types import PathLike


def convert_dmg_to_linux(
    dmg_path: Optional[Path] = None,
    *,
    payload_dmg: Optional[Path] = None,
    install_dir: Optional[Path] = None,
    start_url: Optional[str] = None,
    search_dirs: Optional[Iterable[Path]] = None,
    cache_dir: Optional[Path] = None,
    profile: Optional[PathLike] = None,
    repack: bool = True,
) -> ConversionResult:
    """Convert a macOS DMG into a Linux application tree."""
    options = build_conversion_options(
        dmg_path=dmg_path,
        payload_dmg=payload_dmg,
        install_dir=install_dir,
        start_url=start_url,
        search_dirs=search_dirs,
        cache_dir=cache_dir,
        repack=repack,
        profile=load_profile(profile),
    )
    return convert_dmg(options=options)


def classify_dmg_file(
    dmg_path: Path,
    *,
    profile: Optional[PathLike] = None,
) -> BundleClassification:
    """Classify the application bundle inside a DMG."""
    return classify_dmg(dmg_path=dmg_path, profile=load_profile(profile))


def patch_app_dir(
    app_dir: Path,
    *,
    profile: Optional[PathLike] = None,
) -> list[AppliedPatch]:
    """Apply a profile's patch table to an unpacked application directory."""
    return patch_app_tree(app_dir=app_dir, profile=load_profile(profile))
