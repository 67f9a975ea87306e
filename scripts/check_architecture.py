#!/usr/bin/env python3
"""Architecture boundary checks."""

from __future__ import annotations

from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
PACKAGE = ROOT / "src/dmg2linux"


def _read(path: Path) -> str:
    return path.read_text(encoding="utf-8")


def _assert_no_imports(path: Path, banned: list[str]) -> None:
    text = _read(path)
    for token in banned:
        if token in text:
            raise SystemExit(f"Architecture violation in {path}: found '{token}'")


def main() -> None:
    """Run repository architecture boundary checks."""
    # Core decision logic stays free of process, network and CLI concerns.
    core = [
        PACKAGE / "archive.py",
        PACKAGE / "resolver.py",
        PACKAGE / "bundles/classifier.py",
        PACKAGE / "patching/engine.py",
        PACKAGE / "native/rebuilder.py",
    ]
    for path in core:
        _assert_no_imports(
            path,
            [
                "import subprocess",
                "import requests",
                "import typer",
                "from dmg2linux.adapters",
            ],
        )

    app_dir = PACKAGE / "application"
    for path in app_dir.glob("*.py"):
        _assert_no_imports(path, ["import typer", "from typer", "import requests"])

    print("Architecture checks passed.")


if __name__ == "__main__":
    main()
