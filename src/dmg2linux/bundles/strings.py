"""Printable-string extraction from binaries."""

from __future__ import annotations

import logging
import re
import shutil
import subprocess
from pathlib import Path

logger = logging.getLogger(__name__)

MIN_STRING_LENGTH = 4
_PRINTABLE_RUN = re.compile(rb"[\x20-\x7e\t]{%d,}" % MIN_STRING_LENGTH)
_URL = re.compile(r"https?://[^\"'\s]+")


def _strings_tool() -> str | None:
    return shutil.which("strings")


def _scan_printable(data: bytes) -> list[str]:
    return [match.group().decode("ascii") for match in _PRINTABLE_RUN.finditer(data)]


class StringsScanner:
    """Extract and cache printable strings per file.

    Uses the ``strings`` utility when it is on ``PATH`` and falls back to a
    raw scan of printable byte runs otherwise.
    """

    def __init__(self, use_tool: bool | None = None, timeout: float = 120.0) -> None:
        self._tool = _strings_tool() if use_tool in (None, True) else None
        self._timeout = timeout
        self._cache: dict[Path, list[str]] = {}

    def strings(self, path: Path) -> list[str]:
        """Return printable strings found in ``path`` (empty if missing)."""
        if not path.is_file():
            return []
        key = path.resolve()
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        found: list[str] | None = None
        if self._tool is not None:
            found = self._run_tool(path)
        if found is None:
            found = _scan_printable(path.read_bytes())
        self._cache[key] = found
        return found

    def _run_tool(self, path: Path) -> list[str] | None:
        try:
            proc = subprocess.run(
                [self._tool, "-a", "-n", str(MIN_STRING_LENGTH), str(path)],
                capture_output=True,
                check=False,
                timeout=self._timeout,
            )
        except (OSError, subprocess.TimeoutExpired) as exc:
            logger.debug("strings utility failed on %s: %s; scanning raw bytes", path, exc)
            return None
        if proc.returncode != 0:
            logger.debug("strings utility exited %s on %s; scanning raw bytes", proc.returncode, path)
            return None
        return proc.stdout.decode("utf-8", errors="replace").splitlines()

    def contains(self, path: Path, needle: str) -> bool:
        """Check whether any printable string in ``path`` contains ``needle``."""
        return any(needle in line for line in self.strings(path))

    def find_url(self, path: Path, pattern: str) -> str | None:
        """Return the first embedded http(s) URL matching ``pattern``."""
        compiled = re.compile(pattern)
        for line in self.strings(path):
            for url in _URL.findall(line):
                if compiled.search(url):
                    return url
        return None
