#!/usr/bin/env python3
"""Regenerate or verify requirements.txt from pyproject.toml.

Usage:
    python scripts/sync_requirements.py          # rewrite requirements.txt
    python scripts/sync_requirements.py --check  # fail if out of sync
"""

from __future__ import annotations

import argparse
import tomllib
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
REQUIREMENTS = ROOT / "requirements.txt"
SYNC_EXTRAS = ("test",)
HEADER = [
    f"# Generated from pyproject.toml (base + extras: {','.join(SYNC_EXTRAS)})",
    "# Do not edit manually; run: uv run python scripts/sync_requirements.py",
    "",
]


def _declared() -> set[str]:
    project = tomllib.loads((ROOT / "pyproject.toml").read_text(encoding="utf-8"))["project"]
    deps = set(project.get("dependencies", []))
    optional = project.get("optional-dependencies", {})
    for extra in SYNC_EXTRAS:
        deps.update(optional.get(extra, []))
    return {dep.strip() for dep in deps if dep.strip()}


def _pinned() -> set[str]:
    reqs: set[str] = set()
    for line in REQUIREMENTS.read_text(encoding="utf-8").splitlines():
        entry = line.split("#", 1)[0].strip()
        if entry:
            reqs.add(entry)
    return reqs


def check() -> None:
    expected = _declared()
    actual = _pinned()
    missing = sorted(expected - actual)
    unknown = sorted(actual - expected)
    if missing or unknown:
        parts = ["requirements.txt is out of sync with pyproject.toml."]
        parts += [f"- missing: {entry}" for entry in missing]
        parts += [f"- unexpected: {entry}" for entry in unknown]
        raise SystemExit("\n".join(parts))
    print("Dependency sync check passed.")


def write() -> None:
    reqs = sorted(_declared())
    REQUIREMENTS.write_text("\n".join(HEADER + reqs) + "\n", encoding="utf-8")
    print(f"Wrote {len(reqs)} requirements to {REQUIREMENTS.name}")


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--check", action="store_true", help="Verify instead of rewriting.")
    args = parser.parse_args()
    if args.check:
        check()
    else:
        write()


if __name__ == "__main__":
    main()
