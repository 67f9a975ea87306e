"""Application-layer use-cases and option objects."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from pathlib import Path

from dmg2linux.application.options import ConversionOptions, TimeoutOptions
from dmg2linux.application.results import ConversionResult
from dmg2linux.schemas import ProductProfile


def build_conversion_options(
    *,
    dmg_path: Path | None = None,
    payload_dmg: Path | None = None,
    install_dir: Path | None = None,
    start_url: str | None = None,
    search_dirs: Iterable[Path] | None = None,
    cache_dir: Path | None = None,
    scratch_parent: Path | None = None,
    repack: bool = True,
    profile: ProductProfile | None = None,
    environ: Mapping[str, str] | None = None,
) -> ConversionOptions:
    """Build typed conversion options via lazy use-case import."""
    from dmg2linux.application.use_cases import build_conversion_options as _impl

    return _impl(
        dmg_path=dmg_path,
        payload_dmg=payload_dmg,
        install_dir=install_dir,
        start_url=start_url,
        search_dirs=search_dirs,
        cache_dir=cache_dir,
        scratch_parent=scratch_parent,
        repack=repack,
        profile=profile,
        environ=environ,
    )


def convert_dmg(*, options: ConversionOptions) -> ConversionResult:
    """Convert a DMG via lazy use-case import."""
    from dmg2linux.application.use_cases import convert_dmg as _impl

    return _impl(options=options)


__all__ = [
    "ConversionOptions",
    "TimeoutOptions",
    "ConversionResult",
    "build_conversion_options",
    "convert_dmg",
]
