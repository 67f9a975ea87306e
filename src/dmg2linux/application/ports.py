"""Application ports wrapping external tools."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import Protocol

from dmg2linux.schemas import NativeModuleSpec


class Extractor(Protocol):
    """Unpack a disk image and locate its application bundle."""

    def extract(self, archive: Path, dest: Path) -> Path:
        """Extract ``archive`` into ``dest`` and return the bundle root."""


class Downloader(Protocol):
    """Fetch a URL into a local file."""

    def fetch(self, url: str, dest: Path, *, total_timeout: float | None = None) -> Path:
        """Download ``url`` to ``dest`` and return ``dest``."""


class ArchivePacker(Protocol):
    """Unpack and repack the packed application archive."""

    def extract(self, archive: Path, dest: Path) -> Path:
        """Unpack ``archive`` (and its ``.unpacked`` sibling) into ``dest``."""

    def pack(self, source: Path, archive: Path, unpack: str | None = None) -> Path:
        """Pack ``source`` into ``archive``; ``unpack`` globs stay loose."""


class PackageFetcher(Protocol):
    """Fetch runtime headers and exact module sources into a workspace."""

    def fetch_headers(self, workspace: Path, runtime_version: str) -> None:
        """Download development headers for the target runtime."""

    def fetch_packages(self, workspace: Path, modules: Sequence[NativeModuleSpec]) -> None:
        """Install the modules pinned in the workspace manifest, skipping install scripts."""


class NativeCompiler(Protocol):
    """Recompile native modules against a runtime ABI."""

    def compile(self, workspace: Path, modules: Sequence[NativeModuleSpec]) -> None:
        """Rebuild every module in ``workspace`` in a single step."""
