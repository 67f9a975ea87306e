"""npm / node-gyp / electron-rebuild toolchain for native modules."""

from __future__ import annotations

import os
from collections.abc import Sequence
from pathlib import Path

from dmg2linux.adapters.process import run_tool
from dmg2linux.errors import BuildFailure
from dmg2linux.schemas import NativeModuleSpec

ELECTRON_HEADERS_URL = "https://electronjs.org/headers"
REBUILD_PACKAGE = "@electron/rebuild"
HEADERS_DIRNAME = ".electron-gyp"


class NpmToolchain:
    """Fetch sources with npm and rebuild them with ``@electron/rebuild``.

    Headers land in ``<workspace>/.electron-gyp`` and every npm call points
    node-gyp there, so no state outside the workspace is reused.
    """

    def __init__(self, timeout: float = 1800.0) -> None:
        self.timeout = timeout

    def _env(self, workspace: Path) -> dict[str, str]:
        return {
            **os.environ,
            "npm_config_devdir": str(workspace / HEADERS_DIRNAME),
            "npm_config_disturl": ELECTRON_HEADERS_URL,
            "npm_config_runtime": "electron",
        }

    def fetch_headers(self, workspace: Path, runtime_version: str) -> None:
        run_tool(
            [
                "npx",
                "--yes",
                "node-gyp",
                "install",
                f"--target={runtime_version}",
                f"--dist-url={ELECTRON_HEADERS_URL}",
                f"--devdir={workspace / HEADERS_DIRNAME}",
            ],
            error=BuildFailure,
            message=f"Failed to fetch runtime headers for {runtime_version}",
            timeout=self.timeout,
            cwd=workspace,
            env=self._env(workspace),
        )

    def fetch_packages(self, workspace: Path, modules: Sequence[NativeModuleSpec]) -> None:
        # One install from the manifest; npm>=7 prunes anything it does not declare.
        run_tool(
            ["npm", "install", "--ignore-scripts", "--no-audit", "--no-fund"],
            error=BuildFailure,
            message=f"Failed to fetch {', '.join(spec.requirement for spec in modules)}",
            timeout=self.timeout,
            cwd=workspace,
            env=self._env(workspace),
        )

    def compile(self, workspace: Path, modules: Sequence[NativeModuleSpec]) -> None:
        if not modules:
            return
        versions = {spec.target_runtime_version for spec in modules}
        if len(versions) != 1:
            raise BuildFailure(f"Modules target mixed runtime versions: {sorted(versions)}")
        run_tool(
            [
                "npx",
                "--yes",
                REBUILD_PACKAGE,
                "--version",
                versions.pop(),
                "--force",
                "--only",
                ",".join(spec.name for spec in modules),
                "--module-dir",
                workspace,
            ],
            error=BuildFailure,
            message="Native module rebuild failed",
            timeout=self.timeout,
            cwd=workspace,
            env=self._env(workspace),
        )
