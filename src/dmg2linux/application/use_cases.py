"""Application use-cases orchestrating conversion workflows."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable, Mapping
from pathlib import Path
from tempfile import TemporaryDirectory

from pydantic import ValidationError

from dmg2linux.adapters.extractor import SevenZipExtractor
from dmg2linux.application.options import ConversionOptions, TimeoutOptions
from dmg2linux.application.pipeline import ConversionPipeline
from dmg2linux.application.ports import (
    ArchivePacker,
    Downloader,
    Extractor,
    NativeCompiler,
    PackageFetcher,
)
from dmg2linux.application.results import ConversionResult
from dmg2linux.archive import require_valid_dmg
from dmg2linux.bundles.classifier import BundleClassification, BundleClassifier
from dmg2linux.bundles.strings import StringsScanner
from dmg2linux.errors import InputValidationError
from dmg2linux.patching.engine import AppliedPatch, PatchEngine
from dmg2linux.profiles import ATLAS_PROFILE
from dmg2linux.schemas import ConversionConfig, ProductProfile

logger = logging.getLogger(__name__)

INSTALL_DIR_ENV = "ATLAS_INSTALL_DIR"
DEPRECATED_INSTALL_DIR_ENV = "CODEX_INSTALL_DIR"
CACHE_DIR_ENV = "DMG2LINUX_CACHE_DIR"
DEFAULT_INSTALL_DIRNAME = "atlas-app"


def default_cache_dir(environ: Mapping[str, str] | None = None) -> Path:
    """Return the download cache directory (``~/.cache/dmg2linux``)."""
    env = os.environ if environ is None else environ
    if env.get(CACHE_DIR_ENV):
        return Path(env[CACHE_DIR_ENV]).expanduser()
    base = env.get("XDG_CACHE_HOME") or str(Path.home() / ".cache")
    return Path(base).expanduser() / "dmg2linux"


def resolve_install_dir(
    install_dir: Path | None,
    environ: Mapping[str, str] | None = None,
    base_dir: Path | None = None,
) -> Path:
    """Pick the install directory: explicit, env, deprecated env, default."""
    if install_dir is not None:
        return install_dir
    env = os.environ if environ is None else environ
    if env.get(INSTALL_DIR_ENV):
        return Path(env[INSTALL_DIR_ENV])
    if env.get(DEPRECATED_INSTALL_DIR_ENV):
        logger.warning(
            "%s is deprecated. Use %s instead.", DEPRECATED_INSTALL_DIR_ENV, INSTALL_DIR_ENV
        )
        return Path(env[DEPRECATED_INSTALL_DIR_ENV])
    return (base_dir or Path.cwd()) / DEFAULT_INSTALL_DIRNAME


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
    """Build typed option object from command/API params."""
    try:
        config = ConversionConfig(
            dmg_path=dmg_path,
            payload_dmg=payload_dmg,
            install_dir=resolve_install_dir(install_dir, environ),
            start_url=start_url,
            search_dirs=tuple(search_dirs) if search_dirs is not None else (Path.cwd(),),
            cache_dir=cache_dir or default_cache_dir(environ),
            scratch_parent=scratch_parent,
            repack=repack,
        )
    except ValidationError as exc:
        raise InputValidationError(f"Invalid conversion parameters: {exc}") from exc

    return ConversionOptions(
        install_dir=config.install_dir.expanduser().absolute(),
        cache_dir=config.cache_dir,
        dmg_path=config.dmg_path,
        payload_dmg=config.payload_dmg,
        start_url=config.start_url,
        search_dirs=config.search_dirs,
        scratch_parent=config.scratch_parent,
        repack=config.repack,
        profile=profile or ATLAS_PROFILE,
        timeouts=TimeoutOptions(
            connect=config.connect_timeout,
            installer_download=config.installer_download_timeout,
            payload_download=config.payload_download_timeout,
            extract=config.extract_timeout,
            build=config.build_timeout,
        ),
    )


def convert_dmg(
    *,
    options: ConversionOptions,
    extractor: Extractor | None = None,
    downloader: Downloader | None = None,
    packer: ArchivePacker | None = None,
    fetcher: PackageFetcher | None = None,
    compiler: NativeCompiler | None = None,
    scanner: StringsScanner | None = None,
) -> ConversionResult:
    """Use-case: convert a DMG into a Linux application tree."""
    pipeline = ConversionPipeline(
        options,
        extractor=extractor,
        downloader=downloader,
        packer=packer,
        fetcher=fetcher,
        compiler=compiler,
        scanner=scanner,
    )
    result = pipeline.run()
    logger.info("Conversion complete: %s", result.install_dir)
    return result


def classify_dmg(
    *,
    dmg_path: Path,
    profile: ProductProfile | None = None,
    extractor: Extractor | None = None,
    scanner: StringsScanner | None = None,
    scratch_parent: Path | None = None,
) -> BundleClassification:
    """Use-case: validate and extract a DMG, then classify its bundle.

    The returned ``bundle_root`` points into scratch space removed on return.
    """
    require_valid_dmg(dmg_path)
    classifier = BundleClassifier(profile or ATLAS_PROFILE, scanner)
    with TemporaryDirectory(prefix="dmg2linux-", dir=scratch_parent) as tmp:
        scratch = Path(tmp)
        active = extractor or SevenZipExtractor(tools_dir=scratch / "tools")
        bundle = active.extract(dmg_path.resolve(), scratch / "dmg-extract")
        return classifier.classify(bundle)


def patch_app_tree(
    *,
    app_dir: Path,
    profile: ProductProfile | None = None,
    engine: PatchEngine | None = None,
) -> list[AppliedPatch]:
    """Use-case: apply the profile's patch table to an unpacked app tree."""
    if not app_dir.is_dir():
        raise InputValidationError(f"Application directory not found: {app_dir}")
    active = profile or ATLAS_PROFILE
    return (engine or PatchEngine()).apply_all(app_dir, active.patches)
