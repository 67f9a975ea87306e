"""Shared enums and type aliases for conversion modules."""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Literal, TypeAlias


class BundleKind(str, Enum):
    """Closed set of bundle classifications."""

    PAYLOAD = "payload"
    INSTALLER = "installer"
    UNSUPPORTED = "unsupported"
    UNKNOWN = "unknown"


class Provenance(str, Enum):
    """Where a resolved artifact came from."""

    OVERRIDE = "override"
    LOCAL = "local"
    CACHED = "cached"
    DOWNLOADED = "downloaded"


class PipelineState(str, Enum):
    """States visited by a conversion run."""

    INIT = "init"
    RESOLVED_ARTIFACT = "resolved_artifact"
    EXTRACTED_BUNDLE = "extracted_bundle"
    CLASSIFIED = "classified"
    PAYLOAD_RESOLVED = "payload_resolved"
    PATCHED = "patched"
    NATIVE_MODULES_REBUILT = "native_modules_rebuilt"
    COMPLETE = "complete"
    FAILED = "failed"


PatchOutcome: TypeAlias = Literal["applied", "already_applied"]
PathLike: TypeAlias = str | Path
