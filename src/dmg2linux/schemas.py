"""Pydantic schemas for runtime validation of conversion inputs."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class PatchSpec(BaseModel):
    """Declarative literal substitution with expected match counts."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    target: str
    before: str
    after: str
    expected_before_count: int = Field(default=1, ge=1)
    expected_after_count: int = Field(default=1, ge=1)
    name: str | None = None

    @field_validator("target")
    @classmethod
    def _validate_target(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("target must not be empty.")
        if Path(value).is_absolute() or ".." in Path(value).parts:
            raise ValueError("target must be a relative path inside the app tree.")
        return value

    @model_validator(mode="after")
    def _validate_literals(self) -> PatchSpec:
        if not self.before or not self.after:
            raise ValueError("before and after literals must be non-empty.")
        if self.before in self.after or self.after in self.before:
            raise ValueError(
                "before and after literals must not contain one another; "
                "patched and unpatched states would be indistinguishable."
            )
        if self.expected_before_count != self.expected_after_count:
            raise ValueError(
                "expected_before_count and expected_after_count must be equal."
            )
        return self

    @property
    def label(self) -> str:
        return self.name or self.target


class NativeModuleSpec(BaseModel):
    """Native add-on pinned to the version shipped in the payload."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str = Field(min_length=1)
    version: str = Field(min_length=1)
    target_runtime_version: str = Field(min_length=1)

    @property
    def requirement(self) -> str:
        return f"{self.name}@{self.version}"


class ProductProfile(BaseModel):
    """Signature table, source URLs and patch table for one product."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str = Field(min_length=1)
    brand_token: str = Field(min_length=1)
    nested_bundle: str
    payload_signatures: tuple[str, ...] = ()
    installer_signatures: tuple[str, ...] = ()
    reject_marker: str
    reject_reason: str = "incompatible package shape"

    installer_filename: str
    payload_filename: str
    installer_url: str | None = None
    payload_fallback_url: str | None = None
    payload_url_pattern: str | None = None

    start_url_pattern: str
    start_url_fallback: str
    start_url_sources: tuple[str, ...] = ()
    icon_candidates: tuple[str, ...] = ()

    packed_archive: str | None = None
    patches: tuple[PatchSpec, ...] = ()
    native_modules: tuple[str, ...] = ()
    runtime_version: str = Field(min_length=1)

    @field_validator("payload_signatures", "installer_signatures", "native_modules")
    @classmethod
    def _validate_entries(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        if any(not item.strip() for item in value):
            raise ValueError("entries cannot be empty strings.")
        return value


class ConversionConfig(BaseModel):
    """Validated input for one end-to-end conversion run."""

    model_config = ConfigDict(extra="forbid")

    dmg_path: Path | None = None
    payload_dmg: Path | None = None
    install_dir: Path
    start_url: str | None = None
    search_dirs: tuple[Path, ...] = ()
    cache_dir: Path
    scratch_parent: Path | None = None
    repack: bool = True
    connect_timeout: float = Field(default=30.0, gt=0)
    installer_download_timeout: float = Field(default=600.0, gt=0)
    payload_download_timeout: float = Field(default=900.0, gt=0)
    extract_timeout: float = Field(default=900.0, gt=0)
    build_timeout: float = Field(default=1800.0, gt=0)

    @field_validator("start_url")
    @classmethod
    def _validate_start_url(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip()
        if not value:
            return None
        if not value.startswith(("http://", "https://")):
            raise ValueError("start_url must be an http(s) URL.")
        return value
