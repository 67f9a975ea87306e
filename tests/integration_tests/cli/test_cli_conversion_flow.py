"""Integration tests driving real use-cases through the CLI."""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path

import pytest
from typer.testing import CliRunner

from dmg2linux.application import pipeline as pipeline_module
from dmg2linux.application import use_cases
from dmg2linux.bundles import strings as strings_module
from dmg2linux.cli import cli as cli_module

runner = CliRunner()


@pytest.fixture(autouse=True)
def _offline_tools(monkeypatch: pytest.MonkeyPatch, layout_extractor) -> None:
    """Swap 7-Zip for the layout extractor and disable the strings utility."""
    monkeypatch.setattr(use_cases, "SevenZipExtractor", lambda **kwargs: layout_extractor)
    monkeypatch.setattr(pipeline_module, "SevenZipExtractor", lambda **kwargs: layout_extractor)
    monkeypatch.setattr(strings_module, "_strings_tool", lambda: None)


def test_convert_payload_dmg_end_to_end(
    tmp_path: Path, dmg_writer: Callable[..., Path]
) -> None:
    """Convert a payload DMG and honor the start URL and install dir."""
    dmg = dmg_writer(
        tmp_path / "ChatGPT_Atlas.dmg",
        app_name="ChatGPT.app",
        files={"Contents/Resources/AppIcon.icns": b"icon"},
        dirs=["Contents/Support/ChatGPT Atlas.app"],
    )
    install_dir = tmp_path / "out"

    result = runner.invoke(
        cli_module.app,
        ["convert", str(dmg), "--cache-dir", str(tmp_path / "cache"), "--search-dir", str(tmp_path)],
        env={"ATLAS_INSTALL_DIR": str(install_dir)},
    )

    assert result.exit_code == 0, result.output
    assert str(install_dir) in result.stdout
    assert (install_dir / "resources" / "AppIcon.icns").read_bytes() == b"icon"


def test_convert_rejects_packed_archive_bundle(
    tmp_path: Path, dmg_writer: Callable[..., Path]
) -> None:
    """Exit with the input-validation code for a rejected package shape."""
    dmg = dmg_writer(
        tmp_path / "Codex.dmg",
        app_name="Codex.app",
        files={"Contents/Resources/app.asar": b"asar"},
    )
    result = runner.invoke(
        cli_module.app,
        ["convert", str(dmg), "--install-dir", str(tmp_path / "out")],
    )
    assert result.exit_code == 2
    assert "InputValidationError: Unsupported DMG" in result.output
    assert not (tmp_path / "out").exists()


def test_convert_with_invalid_local_payload_reports_skip(
    tmp_path: Path, dmg_writer: Callable[..., Path]
) -> None:
    """Warn about invalid local candidates before falling back."""
    dmg_writer(tmp_path / "ChatGPT_Atlas.dmg", valid=False)
    valid = dmg_writer(
        tmp_path / "downloads" / "ChatGPT_Atlas.dmg",
        app_name="ChatGPT Atlas.app",
    )
    result = runner.invoke(
        cli_module.app,
        [
            "convert",
            "--install-dir",
            str(tmp_path / "out"),
            "--search-dir",
            str(tmp_path),
            "--search-dir",
            str(valid.parent),
        ],
    )
    assert result.exit_code == 0, result.output
    assert "Ignoring invalid local DMG" in result.output


def test_classify_command_reports_installer(
    tmp_path: Path, dmg_writer: Callable[..., Path]
) -> None:
    """Classify an installer DMG from the command line."""
    dmg = dmg_writer(
        tmp_path / "Install_ChatGPT_Atlas.dmg",
        app_name="Install ChatGPT Atlas.app",
        files={"Contents/MacOS/Install ChatGPT Atlas": b"\x00Install_ChatGPT_Atlas.dmg\x00"},
    )
    result = runner.invoke(cli_module.app, ["classify", str(dmg)])

    assert result.exit_code == 0, result.output
    line = next(line for line in result.stdout.splitlines() if line.startswith("{"))
    payload = json.loads(line)
    assert payload["kind"] == "installer"
    assert payload["display_name"] == "Install ChatGPT Atlas"


def test_patch_command_with_profile_file(tmp_path: Path) -> None:
    """Apply a user profile's patch table twice without changing the result."""
    app_dir = tmp_path / "app"
    (app_dir / "dist").mkdir(parents=True)
    (app_dir / "dist" / "main.js").write_text('a=process.platform==="darwin"')
    profile = tmp_path / "profile.json"
    profile.write_text(
        json.dumps(
            {
                "name": "desk",
                "brand_token": "Desk",
                "nested_bundle": "Contents/Support/Desk.app",
                "reject_marker": "Contents/Resources/legacy.marker",
                "installer_filename": "Install_Desk.dmg",
                "payload_filename": "Desk.dmg",
                "start_url_pattern": "desk",
                "start_url_fallback": "https://desk.example/",
                "runtime_version": "38.2.0",
                "patches": [
                    {
                        "target": "dist/main.js",
                        "before": 'process.platform==="darwin"',
                        "after": 'process.platform!=="win32"',
                    }
                ],
            }
        )
    )

    first = runner.invoke(cli_module.app, ["patch", str(app_dir), "--profile", str(profile)])
    second = runner.invoke(cli_module.app, ["patch", str(app_dir), "--profile", str(profile)])

    assert first.exit_code == 0, first.output
    assert "applied\tdist/main.js" in first.stdout
    assert "already_applied\tdist/main.js" in second.stdout
    assert (app_dir / "dist" / "main.js").read_text() == 'a=process.platform!=="win32"'
