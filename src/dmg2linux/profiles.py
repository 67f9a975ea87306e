"""Built-in product profile and loader for user-supplied profiles."""

from __future__ import annotations

import json
import tomllib
from pathlib import Path

from pydantic import ValidationError

from dmg2linux.errors import InputValidationError
from dmg2linux.schemas import ProductProfile
from dmg2linux.types import PathLike

ATLAS_NESTED_BUNDLE = "Contents/Support/ChatGPT Atlas.app"

ATLAS_PROFILE = ProductProfile(
    name="atlas",
    brand_token="Atlas",
    nested_bundle=ATLAS_NESTED_BUNDLE,
    payload_signatures=(
        "chatgpt.com/atlas",
        "com.openai.atlas",
        "/atlas/public/ChatGPT_Atlas.dmg",
        "Install_ChatGPT_Atlas.dmg",
        "ChatGPT_Atlas.dmg",
    ),
    installer_signatures=(
        "Install_ChatGPT_Atlas.dmg",
        "/atlas/public/ChatGPT_Atlas.dmg",
        "InstallerAppIcon.icns",
    ),
    reject_marker="Contents/Resources/app.asar",
    reject_reason="detected app.asar (Codex-style package)",
    installer_filename="Install_ChatGPT_Atlas.dmg",
    payload_filename="ChatGPT_Atlas.dmg",
    installer_url="https://persistent.oaistatic.com/atlas/public/Install_ChatGPT_Atlas.dmg",
    payload_fallback_url="https://persistent.oaistatic.com/atlas/public/ChatGPT_Atlas.dmg",
    payload_url_pattern=r"atlas/public/ChatGPT_Atlas\.dmg",
    start_url_pattern=r"chatgpt\.com/atlas",
    start_url_fallback="https://chatgpt.com/atlas?get-started",
    start_url_sources=(
        f"{ATLAS_NESTED_BUNDLE}/Contents/MacOS/ChatGPT Atlas",
        "@main",
        f"{ATLAS_NESTED_BUNDLE}/Contents/Resources/com.openai.atlas.web.manifest",
    ),
    icon_candidates=(
        f"{ATLAS_NESTED_BUNDLE}/Contents/Resources/app.icns",
        "Contents/Resources/AppIcon.icns",
        "Contents/Resources/InstallerAppIcon.icns",
    ),
    runtime_version="40.0.0",
)

BUILTIN_PROFILES: dict[str, ProductProfile] = {ATLAS_PROFILE.name: ATLAS_PROFILE}


def load_profile(source: PathLike | None) -> ProductProfile:
    """Return a built-in profile by name or load one from a TOML/JSON file.

    Parameters
    ----------
    source : PathLike | None
        Built-in profile name, path to a ``.toml``/``.json`` profile, or
        ``None`` for the default profile.

    Raises
    ------
    InputValidationError
        If the profile cannot be found, parsed or validated.
    """
    if source is None:
        return ATLAS_PROFILE
    if isinstance(source, str) and source in BUILTIN_PROFILES:
        return BUILTIN_PROFILES[source]

    path = Path(source)
    if not path.is_file():
        raise InputValidationError(
            f"Unknown profile '{source}'. Built-in profiles: "
            f"{', '.join(sorted(BUILTIN_PROFILES))}; otherwise pass a .toml/.json file."
        )
    try:
        if path.suffix.lower() == ".json":
            raw = json.loads(path.read_text(encoding="utf-8"))
        else:
            raw = tomllib.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, tomllib.TOMLDecodeError, UnicodeDecodeError) as exc:
        raise InputValidationError(f"Could not parse profile {path}: {exc}") from exc

    try:
        return ProductProfile.model_validate(raw)
    except ValidationError as exc:
        raise InputValidationError(f"Invalid profile {path}: {exc}") from exc
