"""Subprocess helper shared by tool adapters."""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Mapping, Sequence
from pathlib import Path

from dmg2linux.errors import ToolError

logger = logging.getLogger(__name__)

DIAGNOSTIC_TAIL_LINES = 40


def _tail(text: str | None, lines: int = DIAGNOSTIC_TAIL_LINES) -> str:
    if not text:
        return ""
    return "\n".join(text.strip().splitlines()[-lines:])


def run_tool(
    cmd: Sequence[str],
    *,
    error: type[ToolError],
    message: str,
    timeout: float | None = None,
    cwd: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> subprocess.CompletedProcess[str]:
    """Run ``cmd`` and raise ``error`` on failure, timeout or missing binary.

    Output is captured; the tail of stderr (or stdout) becomes the error's
    diagnostic.
    """
    logger.debug("running: %s", " ".join(str(part) for part in cmd))
    try:
        proc = subprocess.run(
            [str(part) for part in cmd],
            cwd=cwd,
            env=dict(env) if env is not None else None,
            capture_output=True,
            text=True,
            check=False,
            timeout=timeout,
        )
    except FileNotFoundError as exc:
        raise error(f"{message}: executable not found", str(exc)) from exc
    except subprocess.TimeoutExpired as exc:
        raise error(f"{message}: timed out after {timeout:.0f}s") from exc

    if proc.returncode != 0:
        diagnostic = _tail(proc.stderr) or _tail(proc.stdout)
        raise error(f"{message} (exit code {proc.returncode})", diagnostic)
    return proc
