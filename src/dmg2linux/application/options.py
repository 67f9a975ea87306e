"""Typed option objects shared across conversion use-cases."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from dmg2linux.profiles import ATLAS_PROFILE
from dmg2linux.schemas import ProductProfile


@dataclass(frozen=True)
class TimeoutOptions:
    """Time budgets for blocking external steps, in seconds."""

    connect: float = 30.0
    installer_download: float = 600.0
    payload_download: float = 900.0
    extract: float = 900.0
    build: float = 1800.0


@dataclass(frozen=True)
class ConversionOptions:
    """Inputs for one conversion run."""

    install_dir: Path
    cache_dir: Path
    dmg_path: Path | None = None
    payload_dmg: Path | None = None
    start_url: str | None = None
    search_dirs: tuple[Path, ...] = ()
    scratch_parent: Path | None = None
    repack: bool = True
    profile: ProductProfile = ATLAS_PROFILE
    timeouts: TimeoutOptions = field(default_factory=TimeoutOptions)

    def payload_candidates(self) -> list[Path]:
        """Well-known local payload paths, in probe order."""
        return [directory / self.profile.payload_filename for directory in self.search_dirs]

    @property
    def installer_cache_path(self) -> Path:
        return self.cache_dir / self.profile.installer_filename

    @property
    def payload_cache_path(self) -> Path:
        return self.cache_dir / self.profile.payload_filename
