"""7-Zip based disk image extraction."""

from __future__ import annotations

import logging
import os
import re
import shutil
import subprocess
from pathlib import Path

from dmg2linux.adapters.process import run_tool
from dmg2linux.errors import ExtractionError, InputValidationError

logger = logging.getLogger(__name__)

MIN_7Z_MAJOR = 22
BUNDLE_SEARCH_DEPTH = 5
BUNDLED_7Z_PACKAGE = "7zip-bin-full"
_VERSION = re.compile(r"\d{2,}\.\d+")


def parse_7z_major_version(banner: str) -> int:
    """Return the major version from ``7z i`` output, ``0`` if absent."""
    for line in banner.splitlines():
        if re.search(r"\d+\.\d+", line):
            match = _VERSION.search(line)
            return int(match.group().split(".", 1)[0]) if match else 0
    return 0


def find_bundle(root: Path, max_depth: int = BUNDLE_SEARCH_DEPTH) -> Path | None:
    """Return the shallowest ``*.app`` directory under ``root``.

    Directories are searched breadth-first in sorted order, at most
    ``max_depth`` levels below ``root``; bundles are not descended into.
    """
    level = [root]
    for _ in range(max_depth):
        next_level: list[Path] = []
        for directory in level:
            try:
                children = sorted(p for p in directory.iterdir() if p.is_dir() and not p.is_symlink())
            except OSError:
                continue
            for child in children:
                if child.name.endswith(".app"):
                    return child
                next_level.append(child)
        level = next_level
    return None


class SevenZipExtractor:
    """Extract disk images with a modern 7-Zip.

    Prefers ``7zz``, accepts ``7z`` when it is at least version 22, and
    otherwise installs the ``7zip-bin-full`` npm package into ``tools_dir``.
    """

    def __init__(self, tools_dir: Path, timeout: float = 900.0) -> None:
        self.tools_dir = tools_dir
        self.timeout = timeout
        self._binary: str | None = None

    def resolve_binary(self) -> str:
        if self._binary is not None:
            return self._binary

        modern = shutil.which("7zz")
        if modern:
            self._binary = modern
            return modern

        legacy = shutil.which("7z")
        if legacy:
            major = self._legacy_major(legacy)
            if major >= MIN_7Z_MAJOR:
                self._binary = legacy
                return legacy
            logger.warning(
                "Detected legacy 7z (major version: %s). Modern DMGs need 7-Zip %s+.",
                major,
                MIN_7Z_MAJOR,
            )

        self._binary = self._install_bundled()
        return self._binary

    def _legacy_major(self, binary: str) -> int:
        try:
            proc = subprocess.run(
                [binary, "i"], capture_output=True, text=True, check=False, timeout=30
            )
        except (OSError, subprocess.TimeoutExpired):
            return 0
        return parse_7z_major_version(proc.stdout)

    def _install_bundled(self) -> str:
        target = self.tools_dir / "7zip-bin"
        target.mkdir(parents=True, exist_ok=True)
        logger.info("Installing modern 7-Zip via npm package %s", BUNDLED_7Z_PACKAGE)
        run_tool(
            ["npm", "--prefix", target, "install", "--no-save", "--silent", BUNDLED_7Z_PACKAGE],
            error=ExtractionError,
            message=f"Could not install {BUNDLED_7Z_PACKAGE}; install 7-Zip 22+ (7zz) and retry",
            timeout=self.timeout,
        )
        env = {**os.environ, "NODE_PATH": str(target / "node_modules")}
        proc = run_tool(
            ["node", "-e", f"process.stdout.write(require('{BUNDLED_7Z_PACKAGE}').path7z)"],
            error=ExtractionError,
            message="Could not locate bundled 7-Zip binary",
            timeout=60,
            env=env,
        )
        binary = proc.stdout.strip()
        if not binary or not os.access(binary, os.X_OK):
            raise ExtractionError("Bundled 7-Zip binary not found. Install 7-Zip 22+ and retry.")
        return binary

    def extract(self, archive: Path, dest: Path) -> Path:
        """Extract ``archive`` into a fresh ``dest`` and return its bundle."""
        binary = self.resolve_binary()
        logger.info("Extracting %s with %s", archive.name, Path(binary).name)
        shutil.rmtree(dest, ignore_errors=True)
        dest.parent.mkdir(parents=True, exist_ok=True)
        run_tool(
            [binary, "x", "-y", archive, f"-o{dest}"],
            error=ExtractionError,
            message=f"Failed to extract {archive}; install modern 7-Zip (7zz, version 22+)",
            timeout=self.timeout,
        )
        bundle = find_bundle(dest)
        if bundle is None:
            raise InputValidationError(f"Could not find .app bundle in {archive}")
        logger.info("Found: %s", bundle.name)
        return bundle
