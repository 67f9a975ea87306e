"""Top-level API for macOS DMG to Linux application conversion."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

from dmg2linux.application.results import ConversionResult

__version__ = "0.1.0"


def convert_dmg_to_linux(
    dmg_path: Path | None = None,
    *,
    payload_dmg: Path | None = None,
    install_dir: Path | None = None,
    start_url: str | None = None,
    search_dirs: Iterable[Path] | None = None,
    cache_dir: Path | None = None,
    profile: str | Path | None = None,
    repack: bool = True,
) -> ConversionResult:
    """Convert a macOS disk image into a Linux-runnable application tree.

    Parameters
    ----------
    dmg_path : Path | None, default=None
        Installer or payload DMG. When omitted, a local payload DMG in
        ``search_dirs`` is used, else the installer is downloaded.
    payload_dmg : Path | None, default=None
        Explicit payload DMG used when the input turns out to be an installer.
    install_dir : Path | None, default=None
        Output directory; defaults to ``$ATLAS_INSTALL_DIR`` or ``./atlas-app``.
    start_url : str | None, default=None
        Start URL override; otherwise discovered from the bundle.
    search_dirs : Iterable[Path] | None, default=None
        Directories probed for a local payload DMG, in order.
    cache_dir : Path | None, default=None
        Download cache directory.
    profile : str | Path | None, default=None
        Built-in profile name or profile file.
    repack : bool, default=True
        Repack the patched application into a single archive.

    Returns
    -------
    ConversionResult
        Installed application path and runtime entry metadata.
    """
    from .api import convert_dmg_to_linux as _impl

    return _impl(
        dmg_path,
        payload_dmg=payload_dmg,
        install_dir=install_dir,
        start_url=start_url,
        search_dirs=search_dirs,
        cache_dir=cache_dir,
        profile=profile,
        repack=repack,
    )


__all__ = ["convert_dmg_to_linux", "ConversionResult"]
