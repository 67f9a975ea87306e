"""Idempotent literal patching guarded by exact match counts."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from dmg2linux.errors import InputValidationError, PatchInvariantViolation
from dmg2linux.schemas import PatchSpec
from dmg2linux.types import PatchOutcome

logger = logging.getLogger(__name__)

# Minified bundles may carry stray non-UTF-8 bytes; round-trip them untouched.
_ENCODING = "utf-8"
_ERRORS = "surrogateescape"


@dataclass(frozen=True)
class AppliedPatch:
    """Result of applying one patch to one file."""

    spec: PatchSpec
    path: Path
    outcome: PatchOutcome


def apply_text(text: str, spec: PatchSpec, *, source: str = "<text>") -> tuple[str, PatchOutcome]:
    """Apply ``spec`` to ``text`` and return the new text and outcome.

    Parameters
    ----------
    text : str
        Content to patch.
    spec : PatchSpec
        Literal substitution with expected counts.
    source : str
        Name used in error messages.

    Returns
    -------
    tuple[str, PatchOutcome]
        Patched text and ``"applied"``, or the unchanged text and
        ``"already_applied"``.

    Raises
    ------
    PatchInvariantViolation
        If either literal's count falls outside the expected set.
    """
    after_count = text.count(spec.after)
    if after_count == spec.expected_after_count:
        return text, "already_applied"
    if after_count != 0:
        raise PatchInvariantViolation(
            f"Patch '{spec.label}' on {source}: patched form found {after_count} times "
            f"(expected 0 or {spec.expected_after_count}); file is in an inconsistent state."
        )

    before_count = text.count(spec.before)
    if before_count != spec.expected_before_count:
        raise PatchInvariantViolation(
            f"Patch '{spec.label}' on {source}: unpatched form found {before_count} times "
            f"(expected {spec.expected_before_count}); upstream build has drifted."
        )

    patched = text.replace(spec.before, spec.after)
    after_count = patched.count(spec.after)
    before_count = patched.count(spec.before)
    if after_count != spec.expected_after_count or before_count != 0:
        raise PatchInvariantViolation(
            f"Patch '{spec.label}' on {source}: after substitution found {after_count} patched "
            f"and {before_count} unpatched occurrences "
            f"(expected {spec.expected_after_count} and 0)."
        )
    return patched, "applied"


class PatchEngine:
    """Apply patch specs to files under an application tree."""

    def apply(self, path: Path, spec: PatchSpec) -> AppliedPatch:
        """Apply ``spec`` to ``path`` in place.

        The file is written only when the substitution succeeded; on any
        invariant violation its content is left unchanged.
        """
        if not path.is_file():
            raise InputValidationError(f"Patch '{spec.label}' target not found: {path}")
        text = path.read_bytes().decode(_ENCODING, _ERRORS)
        patched, outcome = apply_text(text, spec, source=str(path))
        if outcome == "applied":
            path.write_bytes(patched.encode(_ENCODING, _ERRORS))
            logger.info("Applied patch %s", spec.label)
        else:
            logger.info("Patch %s already applied", spec.label)
        return AppliedPatch(spec=spec, path=path, outcome=outcome)

    def apply_all(self, root: Path, specs: Iterable[PatchSpec]) -> list[AppliedPatch]:
        """Apply ``specs`` in order to files relative to ``root``."""
        return [self.apply(root / spec.target, spec) for spec in specs]
