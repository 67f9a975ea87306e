"""Error taxonomy for DMG conversion.

Every fatal condition raised by the pipeline derives from
:class:`Dmg2LinuxError`. Each subclass carries the process exit code the CLI
returns when it terminates a run.
"""

from __future__ import annotations


class Dmg2LinuxError(Exception):
    """Base error for all conversion failures."""

    exit_code: int = 1


class InputValidationError(Dmg2LinuxError):
    """Artifact, payload layout or configuration violates an expectation."""

    exit_code = 2


class ResolutionExhausted(Dmg2LinuxError):
    """No configured artifact source produced a valid disk image."""

    exit_code = 3


class ClassificationAmbiguous(Dmg2LinuxError):
    """No product signature matched the extracted bundle."""

    exit_code = 4


class PatchInvariantViolation(Dmg2LinuxError):
    """Literal match counts do not fit the patch's expected counts."""

    exit_code = 5


class ToolError(Dmg2LinuxError):
    """External tool failed; the tool's own diagnostic is appended."""

    def __init__(self, message: str, diagnostic: str | None = None) -> None:
        self.diagnostic = (diagnostic or "").strip()
        full = message
        if self.diagnostic:
            full = f"{message}\n{self.diagnostic}"
        super().__init__(full)


class BuildFailure(ToolError):
    """Package fetch or native compilation failed or timed out."""

    exit_code = 6


class ExtractionError(ToolError):
    """Disk image or packed archive could not be unpacked."""

    exit_code = 7
