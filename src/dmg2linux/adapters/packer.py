"""Packed application archive (asar) adapter."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from dmg2linux.adapters.process import run_tool
from dmg2linux.errors import BuildFailure, ExtractionError

logger = logging.getLogger(__name__)

ASAR_PACKAGE = "@electron/asar"


def unpacked_sibling(archive: Path) -> Path:
    """Return the ``<archive>.unpacked`` directory paired with ``archive``."""
    return archive.with_name(archive.name + ".unpacked")


class AsarPacker:
    """Run ``@electron/asar`` through ``npx``."""

    def __init__(self, timeout: float = 300.0) -> None:
        self.timeout = timeout

    def extract(self, archive: Path, dest: Path) -> Path:
        """Unpack ``archive`` into ``dest``.

        The asar tool reads loose files from the ``.unpacked`` sibling next to
        the archive, so both are expected side by side.
        """
        shutil.rmtree(dest, ignore_errors=True)
        dest.parent.mkdir(parents=True, exist_ok=True)
        logger.info("Unpacking %s", archive.name)
        run_tool(
            ["npx", "--yes", ASAR_PACKAGE, "extract", archive, dest],
            error=ExtractionError,
            message=f"Failed to unpack {archive}",
            timeout=self.timeout,
        )
        return dest

    def pack(self, source: Path, archive: Path, unpack: str | None = None) -> Path:
        """Pack ``source`` into ``archive``; files matching ``unpack`` stay loose."""
        archive.parent.mkdir(parents=True, exist_ok=True)
        archive.unlink(missing_ok=True)
        shutil.rmtree(unpacked_sibling(archive), ignore_errors=True)
        cmd: list[str | Path] = ["npx", "--yes", ASAR_PACKAGE, "pack", source, archive]
        if unpack:
            cmd += ["--unpack", unpack]
        logger.info("Packing %s", archive.name)
        run_tool(
            cmd,
            error=BuildFailure,
            message=f"Failed to pack {archive}",
            timeout=self.timeout,
        )
        return archive
