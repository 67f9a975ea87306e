"""Rebuild bundled native add-ons against the target runtime ABI."""

from __future__ import annotations

import json
import logging
import shutil
from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import ValidationError

from dmg2linux.errors import BuildFailure, InputValidationError
from dmg2linux.schemas import NativeModuleSpec

if TYPE_CHECKING:
    from dmg2linux.application.ports import NativeCompiler, PackageFetcher

logger = logging.getLogger(__name__)

WORKSPACE_MANIFEST = {
    "name": "dmg2linux-native-rebuild",
    "version": "0.0.0",
    "private": True,
}
STAGING_DIRNAME = ".dmg2linux-native-staging"


def read_module_version(app_root: Path, name: str) -> str:
    """Return the version declared in ``node_modules/<name>/package.json``.

    Raises
    ------
    InputValidationError
        If the manifest is missing, unreadable or has no version.
    """
    manifest = app_root / "node_modules" / name / "package.json"
    try:
        data = json.loads(manifest.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise InputValidationError(
            f"Native module '{name}' not found in payload: {manifest}"
        ) from exc
    except (OSError, json.JSONDecodeError) as exc:
        raise InputValidationError(f"Unreadable manifest for '{name}': {manifest}: {exc}") from exc
    version = data.get("version") if isinstance(data, dict) else None
    if not isinstance(version, str) or not version.strip():
        raise InputValidationError(f"Native module '{name}' declares no version in {manifest}")
    return version.strip()


def workspace_manifest(specs: Sequence[NativeModuleSpec]) -> dict[str, object]:
    """Return the workspace ``package.json`` pinning every module exactly."""
    return {
        **WORKSPACE_MANIFEST,
        "dependencies": {spec.name: spec.version for spec in specs},
    }


class NativeModuleRebuilder:
    """Rebuild native modules in an isolated workspace and swap them in."""

    def __init__(
        self,
        fetcher: PackageFetcher,
        compiler: NativeCompiler,
        runtime_version: str,
        workspace: Path,
    ) -> None:
        self.fetcher = fetcher
        self.compiler = compiler
        self.runtime_version = runtime_version
        self.workspace = workspace

    def detect(self, app_root: Path, names: Sequence[str]) -> list[NativeModuleSpec]:
        """Read live versions for ``names`` from the payload."""
        specs: list[NativeModuleSpec] = []
        for name in names:
            try:
                specs.append(
                    NativeModuleSpec(
                        name=name,
                        version=read_module_version(app_root, name),
                        target_runtime_version=self.runtime_version,
                    )
                )
            except ValidationError as exc:
                raise InputValidationError(f"Invalid native module '{name}': {exc}") from exc
        return specs

    def rebuild(self, app_root: Path, names: Sequence[str]) -> list[NativeModuleSpec]:
        """Rebuild ``names`` and replace them under ``app_root/node_modules``.

        Nothing in ``app_root`` changes unless every module was fetched,
        compiled to a ``.node`` binary and staged next to the payload.
        """
        if not names:
            return []
        specs = self.detect(app_root, names)
        for spec in specs:
            logger.info("Detected %s %s", spec.name, spec.version)

        self._prepare_workspace(specs)
        self.fetcher.fetch_headers(self.workspace, self.runtime_version)
        self.fetcher.fetch_packages(self.workspace, specs)

        logger.info(
            "Rebuilding %s for runtime %s",
            ", ".join(spec.name for spec in specs),
            self.runtime_version,
        )
        self.compiler.compile(self.workspace, specs)

        built = {spec.name: self.workspace / "node_modules" / spec.name for spec in specs}
        missing = [name for name, path in built.items() if not path.is_dir()]
        if missing:
            raise BuildFailure(f"Rebuild produced no output for: {', '.join(missing)}")
        unbuilt = [name for name, path in built.items() if next(path.rglob("*.node"), None) is None]
        if unbuilt:
            raise BuildFailure(f"Rebuild produced no .node binary for: {', '.join(unbuilt)}")

        self._swap_in(app_root, built)
        return specs

    def _prepare_workspace(self, specs: Sequence[NativeModuleSpec]) -> None:
        if self.workspace.exists():
            shutil.rmtree(self.workspace)
        self.workspace.mkdir(parents=True)
        (self.workspace / "package.json").write_text(
            json.dumps(workspace_manifest(specs), indent=2) + "\n", encoding="utf-8"
        )

    def _swap_in(self, app_root: Path, built: dict[str, Path]) -> None:
        modules_dir = app_root / "node_modules"
        staging = app_root / STAGING_DIRNAME
        shutil.rmtree(staging, ignore_errors=True)
        try:
            for name, source in built.items():
                shutil.copytree(source, staging / "new" / name, symlinks=True)
        except OSError as exc:
            shutil.rmtree(staging, ignore_errors=True)
            raise BuildFailure(f"Could not stage rebuilt modules: {exc}") from exc

        # Same filesystem, so each step below is a rename.
        for name in built:
            target = modules_dir / name
            retired = staging / "old" / name
            retired.parent.mkdir(parents=True, exist_ok=True)
            target.rename(retired)
            (staging / "new" / name).rename(target)
            logger.info("Installed rebuilt %s", name)
        shutil.rmtree(staging)
