#!/usr/bin/env python3
"""
dmg2linux.cli.cli

Typer-based CLI converting macOS DMG distributions into Linux application
trees.

Status and warnings are logged to stderr; stdout carries only the command's
result so it can be consumed by scripts.

Examples
--------
Convert a downloaded installer:

    dmg2linux convert ./Install_ChatGPT_Atlas.dmg --install-dir ~/atlas-app

Inspect what a DMG contains:

    dmg2linux classify ./ChatGPT_Atlas.dmg
"""

from __future__ import annotations

import json
import logging
import sys
import traceback
from pathlib import Path

import typer

from dmg2linux.errors import Dmg2LinuxError

app = typer.Typer(
    name="dmg2linux",
    help="Convert macOS DMG application distributions into Linux application trees.",
    no_args_is_help=True,
)

PROFILE_HELP = "Built-in profile name or path to a .toml/.json profile."
LOG_FORMAT = "[%(levelname)s] %(message)s"


def _configure_logging(debug: bool) -> None:
    """Send log records to stderr at INFO, or DEBUG with ``--debug``."""
    root = logging.getLogger("dmg2linux")
    root.handlers.clear()
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if debug else logging.INFO)


def _print_conversion_error(exc: Exception, debug: bool) -> int:
    """Print one error line on stderr and return the process exit code.

    Parameters
    ----------
    exc : Exception
        Exception raised during conversion.
    debug : bool
        Whether to include traceback details.

    Returns
    -------
    int
        Process exit code.
    """
    typer.echo(f"{type(exc).__name__}: {exc}", err=True)
    if debug:
        typer.echo("".join(traceback.format_exception(type(exc), exc, exc.__traceback__)), err=True)
    code = getattr(exc, "exit_code", None)
    if isinstance(code, int) and code > 0:
        return code
    return 1


def _load_profile(profile: str | None):
    from dmg2linux.profiles import load_profile

    return load_profile(profile)


@app.callback()
def _main(
    ctx: typer.Context,
    debug: bool = typer.Option(False, "--debug", help="Verbose logging and full tracebacks on error."),
) -> None:
    """Initialize shared CLI state.

    Parameters
    ----------
    ctx : typer.Context
        Typer context object used to store shared state.
    debug : bool, default=False
        Whether to enable debug logging and error output.
    """
    _configure_logging(debug)
    ctx.obj = {"debug": debug}


@app.command("convert")
def convert_cmd(
    ctx: typer.Context,
    dmg_path: Path | None = typer.Argument(
        None,
        help="Installer or payload DMG. Omit to use a local payload DMG or download the installer.",
    ),
    payload_dmg: Path | None = typer.Option(
        None,
        "--payload-dmg",
        envvar="ATLAS_PAYLOAD_DMG",
        help="Explicit payload DMG used when the input is an installer.",
    ),
    install_dir: Path | None = typer.Option(
        None,
        "--install-dir",
        envvar="ATLAS_INSTALL_DIR",
        help="Output directory (default: ./atlas-app).",
    ),
    start_url: str | None = typer.Option(
        None,
        "--start-url",
        envvar="ATLAS_START_URL",
        help="Start URL override.",
    ),
    search_dir: list[Path] | None = typer.Option(
        None,
        "--search-dir",
        help="Directory probed for a local payload DMG (repeatable; default: cwd).",
    ),
    cache_dir: Path | None = typer.Option(
        None,
        "--cache-dir",
        envvar="DMG2LINUX_CACHE_DIR",
        help="Download cache directory.",
    ),
    profile: str | None = typer.Option(
        None, "--profile", envvar="DMG2LINUX_PROFILE", help=PROFILE_HELP
    ),
    repack: bool = typer.Option(
        True,
        "--repack/--no-repack",
        help="Repack the patched app into app.asar or leave it as a directory.",
    ),
) -> None:
    """Convert a DMG into a Linux application tree.

    Parameters
    ----------
    ctx : typer.Context
        Typer context containing global options.
    dmg_path : Path | None
        Input DMG, resolved from local candidates or the network if omitted.
    install_dir : Path | None
        Destination directory for the converted application.

    Notes
    -----
    - Prints the install directory on stdout on success.
    - Requires 7-Zip 22+ (or npm to fetch one); patching and native rebuilds
      require node and npm.
    """
    debug: bool = bool(ctx.obj.get("debug", False))

    try:
        from dmg2linux.application.use_cases import build_conversion_options, convert_dmg

        if dmg_path is not None and not dmg_path.is_file():
            raise typer.BadParameter(f"DMG not found: {dmg_path}", param_hint="DMG_PATH")

        options = build_conversion_options(
            dmg_path=dmg_path,
            payload_dmg=payload_dmg,
            install_dir=install_dir,
            start_url=start_url,
            search_dirs=search_dir or None,
            cache_dir=cache_dir,
            repack=repack,
            profile=_load_profile(profile),
        )
        result = convert_dmg(options=options)
        typer.echo(str(result.install_dir))
    except typer.BadParameter:
        raise
    except Dmg2LinuxError as exc:
        raise typer.Exit(code=_print_conversion_error(exc, debug))
    except Exception as exc:
        # Unexpected crash: still show a clean message; debug prints traceback.
        raise typer.Exit(code=_print_conversion_error(exc, debug))


@app.command("classify")
def classify_cmd(
    ctx: typer.Context,
    dmg_path: Path = typer.Argument(..., exists=True, readable=True, help="DMG to inspect."),
    profile: str | None = typer.Option(
        None, "--profile", envvar="DMG2LINUX_PROFILE", help=PROFILE_HELP
    ),
) -> None:
    """Extract a DMG and print its bundle classification as JSON."""
    debug: bool = bool(ctx.obj.get("debug", False))

    try:
        from dmg2linux.application.use_cases import classify_dmg

        classification = classify_dmg(dmg_path=dmg_path, profile=_load_profile(profile))
        payload = classification.as_dict()
        payload.pop("bundle_root")
        typer.echo(json.dumps(payload, sort_keys=True))
    except Dmg2LinuxError as exc:
        raise typer.Exit(code=_print_conversion_error(exc, debug))
    except Exception as exc:
        raise typer.Exit(code=_print_conversion_error(exc, debug))


@app.command("patch")
def patch_cmd(
    ctx: typer.Context,
    app_dir: Path = typer.Argument(
        ..., exists=True, file_okay=False, help="Unpacked application directory."
    ),
    profile: str | None = typer.Option(
        None, "--profile", envvar="DMG2LINUX_PROFILE", help=PROFILE_HELP
    ),
) -> None:
    """Apply the profile's patch table to an unpacked application directory."""
    debug: bool = bool(ctx.obj.get("debug", False))

    try:
        from dmg2linux.application.use_cases import patch_app_tree

        applied = patch_app_tree(app_dir=app_dir, profile=_load_profile(profile))
        for item in applied:
            typer.echo(f"{item.outcome}\t{item.spec.label}")
    except Dmg2LinuxError as exc:
        raise typer.Exit(code=_print_conversion_error(exc, debug))
    except Exception as exc:
        raise typer.Exit(code=_print_conversion_error(exc, debug))


@app.command("profile")
def profile_cmd(
    ctx: typer.Context,
    profile: str | None = typer.Option(
        None, "--profile", envvar="DMG2LINUX_PROFILE", help=PROFILE_HELP
    ),
) -> None:
    """Print the active product profile as JSON."""
    debug: bool = bool(ctx.obj.get("debug", False))

    try:
        typer.echo(_load_profile(profile).model_dump_json(indent=2))
    except Dmg2LinuxError as exc:
        raise typer.Exit(code=_print_conversion_error(exc, debug))


if __name__ == "__main__":
    app()
