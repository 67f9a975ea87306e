"""Application-layer result objects."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from dmg2linux.bundles.classifier import BundleClassification
from dmg2linux.patching.engine import AppliedPatch
from dmg2linux.resolver import Artifact
from dmg2linux.schemas import NativeModuleSpec
from dmg2linux.types import PipelineState


@dataclass(frozen=True)
class ConversionResult:
    """Structured conversion outcome.

    ``payload_bundle`` is the extracted bundle the payload was taken from; it
    lives in the run's scratch space and is gone once the run returns.
    ``app_path`` is the installed (packed or unpacked) application, or
    ``None`` when the payload ships no packed archive.
    """

    install_dir: Path
    app_path: Path | None
    payload_bundle: Path
    start_url: str
    icon_path: Path | None
    artifact: Artifact
    classification: BundleClassification
    payload_artifact: Artifact | None = None
    patches: tuple[AppliedPatch, ...] = ()
    native_modules: tuple[NativeModuleSpec, ...] = ()
    states: tuple[PipelineState, ...] = ()
