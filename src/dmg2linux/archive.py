"""Disk image trailer validation."""

from __future__ import annotations

import os
from pathlib import Path

from dmg2linux.errors import InputValidationError

DMG_TRAILER_MAGIC = b"koly"
DMG_TRAILER_WINDOW = 2048


def is_valid_dmg(path: Path) -> bool:
    """Check whether ``path`` is a disk image by its trailer signature.

    The file must be non-empty and carry the ``koly`` magic within its final
    2048 bytes. The file extension is not consulted.
    """
    try:
        if not path.is_file():
            return False
        size = path.stat().st_size
        if size < 1:
            return False
        with path.open("rb") as handle:
            handle.seek(max(0, size - DMG_TRAILER_WINDOW), os.SEEK_SET)
            trailer = handle.read(DMG_TRAILER_WINDOW)
    except OSError:
        return False
    return DMG_TRAILER_MAGIC in trailer


def require_valid_dmg(path: Path, label: str = "DMG") -> Path:
    """Return ``path`` if it is a valid disk image, else raise."""
    if not path.is_file():
        raise InputValidationError(f"{label} not found: {path}")
    if not is_valid_dmg(path):
        raise InputValidationError(f"{label} is not a valid DMG: {path}")
    return path
