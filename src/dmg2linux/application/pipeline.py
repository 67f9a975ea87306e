"""End-to-end conversion pipeline.

A run walks a fixed sequence of states::

    INIT -> RESOLVED_ARTIFACT -> EXTRACTED_BUNDLE -> CLASSIFIED
         -> [PAYLOAD_RESOLVED] -> PATCHED -> NATIVE_MODULES_REBUILT -> COMPLETE

Any exception moves the run to the absorbing ``FAILED`` state. The scratch
workspace is a temporary directory owned by the run and removed on every
exit path.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from tempfile import TemporaryDirectory

from dmg2linux.adapters.downloader import HttpDownloader
from dmg2linux.adapters.extractor import SevenZipExtractor
from dmg2linux.adapters.packer import AsarPacker
from dmg2linux.adapters.toolchain import NpmToolchain
from dmg2linux.application.options import ConversionOptions
from dmg2linux.application.ports import (
    ArchivePacker,
    Downloader,
    Extractor,
    NativeCompiler,
    PackageFetcher,
)
from dmg2linux.application.results import ConversionResult
from dmg2linux.bundles.classifier import (
    BundleClassification,
    BundleClassifier,
    main_binary_path,
)
from dmg2linux.bundles.metadata import find_icon, resolve_start_url
from dmg2linux.bundles.strings import StringsScanner
from dmg2linux.errors import ClassificationAmbiguous, InputValidationError
from dmg2linux.native.rebuilder import NativeModuleRebuilder
from dmg2linux.patching.engine import AppliedPatch, PatchEngine
from dmg2linux.resolver import Artifact, ArtifactResolver, FallbackSource
from dmg2linux.schemas import NativeModuleSpec
from dmg2linux.types import BundleKind, PipelineState

logger = logging.getLogger(__name__)

UNPACK_GLOB = "*.node"


def publish_resources(staged: Path, resources: Path) -> None:
    """Move every staged entry into ``resources``, replacing older copies."""
    resources.mkdir(parents=True, exist_ok=True)
    for item in sorted(staged.iterdir()):
        target = resources / item.name
        if target.is_dir() and not target.is_symlink():
            shutil.rmtree(target)
        elif target.exists() or target.is_symlink():
            target.unlink()
        shutil.move(str(item), str(target))


class ConversionPipeline:
    """Sequence resolution, extraction, classification, patching and rebuild.

    External tools are injected through the application ports; omitted ones
    fall back to the default 7-Zip, HTTP, asar and npm adapters.
    """

    def __init__(
        self,
        options: ConversionOptions,
        *,
        extractor: Extractor | None = None,
        downloader: Downloader | None = None,
        packer: ArchivePacker | None = None,
        fetcher: PackageFetcher | None = None,
        compiler: NativeCompiler | None = None,
        scanner: StringsScanner | None = None,
        patch_engine: PatchEngine | None = None,
    ) -> None:
        self.options = options
        self.profile = options.profile
        timeouts = options.timeouts
        self.downloader = downloader or HttpDownloader(
            connect_timeout=timeouts.connect,
            total_timeout=timeouts.installer_download,
        )
        self.packer = packer or AsarPacker(timeout=timeouts.extract)
        toolchain = NpmToolchain(timeout=timeouts.build)
        self.fetcher = fetcher or toolchain
        self.compiler = compiler or toolchain
        self.scanner = scanner or StringsScanner()
        self.patch_engine = patch_engine or PatchEngine()
        self.classifier = BundleClassifier(self.profile, self.scanner)
        self._extractor = extractor

        self.state = PipelineState.INIT
        self.history: list[PipelineState] = [PipelineState.INIT]
        self.scratch_dir: Path | None = None

    def _advance(self, state: PipelineState) -> None:
        logger.debug("pipeline: %s -> %s", self.state.value, state.value)
        self.state = state
        self.history.append(state)

    def run(self) -> ConversionResult:
        """Run the conversion once.

        Raises
        ------
        Dmg2LinuxError
            Any fatal condition; the run ends in ``FAILED``.
        """
        if self.state is not PipelineState.INIT:
            raise RuntimeError(f"Pipeline already ran (state: {self.state.value}).")
        try:
            with TemporaryDirectory(prefix="dmg2linux-", dir=self.options.scratch_parent) as tmp:
                self.scratch_dir = Path(tmp)
                return self._run(self.scratch_dir)
        except BaseException:
            self._advance(PipelineState.FAILED)
            raise

    def _run(self, scratch: Path) -> ConversionResult:
        options = self.options
        extractor = self._extractor or SevenZipExtractor(
            tools_dir=scratch / "tools", timeout=options.timeouts.extract
        )

        artifact = self._resolve_top_level()
        self._advance(PipelineState.RESOLVED_ARTIFACT)

        bundle = extractor.extract(artifact.path, scratch / "dmg-extract")
        self._advance(PipelineState.EXTRACTED_BUNDLE)

        classification = self.classifier.classify(bundle)
        self._require_identified(classification, "DMG")
        self._advance(PipelineState.CLASSIFIED)

        payload_bundle = bundle
        installer_bundle: Path | None = None
        payload_artifact: Artifact | None = None
        if classification.kind is BundleKind.INSTALLER:
            logger.info("Installer detected (%s); resolving payload", classification.signature)
            installer_bundle = bundle
            payload_artifact, payload_bundle = self._resolve_payload(
                extractor, installer_bundle, scratch
            )
            self._advance(PipelineState.PAYLOAD_RESOLVED)
        else:
            logger.info("Using payload app bundle from extracted DMG: %s", bundle.name)

        app_tree = self._stage(payload_bundle, scratch)

        patches: list[AppliedPatch] = []
        if app_tree is not None:
            patches = self.patch_engine.apply_all(app_tree, self.profile.patches)
        self._advance(PipelineState.PATCHED)

        modules: list[NativeModuleSpec] = []
        if app_tree is not None:
            rebuilder = NativeModuleRebuilder(
                fetcher=self.fetcher,
                compiler=self.compiler,
                runtime_version=self.profile.runtime_version,
                workspace=scratch / "native-rebuild",
            )
            modules = rebuilder.rebuild(app_tree, self.profile.native_modules)
        self._advance(PipelineState.NATIVE_MODULES_REBUILT)

        staged = scratch / "resources"
        staged.mkdir()
        staged_app = self._install_app(app_tree, staged) if app_tree is not None else None
        staged_icon = self._install_icon(payload_bundle, staged)
        start_url = resolve_start_url(
            payload_bundle,
            self.profile,
            self.scanner,
            explicit=options.start_url,
            installer_root=installer_bundle,
        )
        logger.info("Start URL: %s", start_url)
        resources = options.install_dir / "resources"
        publish_resources(staged, resources)
        app_path = resources / staged_app.name if staged_app is not None else None
        icon_path = resources / staged_icon.name if staged_icon is not None else None
        self._advance(PipelineState.COMPLETE)

        return ConversionResult(
            install_dir=options.install_dir,
            app_path=app_path,
            payload_bundle=payload_bundle,
            start_url=start_url,
            icon_path=icon_path,
            artifact=artifact,
            classification=classification,
            payload_artifact=payload_artifact,
            patches=tuple(patches),
            native_modules=tuple(modules),
            states=tuple(self.history),
        )

    def _resolve_top_level(self) -> Artifact:
        options = self.options
        fallback = None
        if self.profile.installer_url:
            fallback = FallbackSource(
                url=self.profile.installer_url,
                cache_path=options.installer_cache_path,
                total_timeout=options.timeouts.installer_download,
            )
        resolver = ArtifactResolver(downloader=self.downloader, label="DMG")
        return resolver.resolve(
            explicit=options.dmg_path or options.payload_dmg,
            candidates=options.payload_candidates(),
            fallback=fallback,
        )

    def _resolve_payload(
        self,
        extractor: Extractor,
        installer_bundle: Path,
        scratch: Path,
    ) -> tuple[Artifact, Path]:
        url = None
        if self.profile.payload_url_pattern:
            url = self.scanner.find_url(
                main_binary_path(installer_bundle), self.profile.payload_url_pattern
            )
        url = url or self.profile.payload_fallback_url
        fallback = None
        if url:
            fallback = FallbackSource(
                url=url,
                cache_path=self.options.payload_cache_path,
                total_timeout=self.options.timeouts.payload_download,
            )

        resolver = ArtifactResolver(downloader=self.downloader, label="payload DMG")
        artifact = resolver.resolve(
            explicit=self.options.payload_dmg,
            candidates=self.options.payload_candidates(),
            fallback=fallback,
        )
        bundle = extractor.extract(artifact.path, scratch / "payload-extract")
        classification = self.classifier.classify(bundle)
        self._require_identified(classification, "payload")
        if classification.kind is not BundleKind.PAYLOAD:
            raise InputValidationError(
                f"Payload DMG does not contain a compatible app bundle "
                f"(classified as {classification.kind.value}): {artifact.path}"
            )
        return artifact, bundle

    def _require_identified(self, classification: BundleClassification, label: str) -> None:
        if classification.kind is BundleKind.UNSUPPORTED:
            raise InputValidationError(
                f"Unsupported {label}: {self.profile.reject_reason}. "
                f"This converter only handles the '{self.profile.name}' product."
            )
        if classification.kind is BundleKind.UNKNOWN:
            raise ClassificationAmbiguous(
                f"Unsupported {label}: no '{self.profile.name}' app signatures found "
                f"in {classification.bundle_root.name}."
            )

    def _stage(self, payload_bundle: Path, scratch: Path) -> Path | None:
        archive = None
        if self.profile.packed_archive:
            candidate = payload_bundle / self.profile.packed_archive
            if candidate.is_file():
                archive = candidate
        if archive is None:
            if self.profile.patches or self.profile.native_modules:
                raise InputValidationError(
                    f"Payload has no packed archive at '{self.profile.packed_archive}'; "
                    "cannot apply patches or rebuild native modules."
                )
            return None
        return self.packer.extract(archive, scratch / "app")

    def _install_app(self, app_tree: Path, resources: Path) -> Path:
        if self.options.repack:
            return self.packer.pack(app_tree, resources / "app.asar", unpack=UNPACK_GLOB)
        target = resources / "app"
        shutil.rmtree(target, ignore_errors=True)
        shutil.copytree(app_tree, target, symlinks=True)
        return target

    def _install_icon(self, payload_bundle: Path, resources: Path) -> Path | None:
        icon = find_icon(payload_bundle, self.profile)
        if icon is None:
            return None
        target = resources / icon.name
        shutil.copy2(icon, target)
        return target
