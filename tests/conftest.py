"""Shared pytest configuration, marker assignment and port fakes."""

from __future__ import annotations

import json
import logging
import shutil
from collections.abc import Callable, Mapping, Sequence
from pathlib import Path

import pytest

from dmg2linux.errors import BuildFailure, ResolutionExhausted
from dmg2linux.schemas import NativeModuleSpec

DMG_TRAILER = b"\x00" * 512 + b"koly" + b"\x00" * 508


def pytest_collection_modifyitems(
    config: pytest.Config, items: list[pytest.Item]
) -> None:
    """Attach suite markers based on test file path."""
    del config
    for item in items:
        path = Path(str(item.fspath))
        parts = set(path.parts)
        if "e2e_tests" in parts:
            item.add_marker(pytest.mark.e2e)
        elif "integration_tests" in parts:
            item.add_marker(pytest.mark.integration)
        elif "unit_tests" in parts:
            item.add_marker(pytest.mark.unit)


# -----------------------------
# Synthetic artifacts
# -----------------------------
def write_dmg(
    path: Path,
    *,
    app_name: str = "ChatGPT Atlas.app",
    files: Mapping[str, str | bytes] | None = None,
    dirs: Sequence[str] = (),
    valid: bool = True,
) -> Path:
    """Write a fake DMG whose first line describes the bundle it contains.

    ``LayoutExtractor`` materializes the described bundle; the trailer makes
    the file pass (or fail) DMG validation.
    """
    layout = {
        "app": app_name,
        "files": {
            rel: (content.decode("latin-1") if isinstance(content, bytes) else content)
            for rel, content in (files or {}).items()
        },
        "dirs": list(dirs),
    }
    path.parent.mkdir(parents=True, exist_ok=True)
    body = json.dumps(layout).encode("utf-8") + b"\n"
    path.write_bytes(body + (DMG_TRAILER if valid else b"\x00" * 1024))
    return path


def write_bundle(
    root: Path,
    app_name: str,
    files: Mapping[str, str | bytes] | None = None,
    dirs: Sequence[str] = (),
) -> Path:
    """Create ``root/<app_name>`` with the given files and directories."""
    bundle = root / app_name
    bundle.mkdir(parents=True, exist_ok=True)
    for rel in dirs:
        (bundle / rel).mkdir(parents=True, exist_ok=True)
    for rel, content in (files or {}).items():
        target = bundle / rel
        target.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            target.write_bytes(content)
        else:
            target.write_text(content, encoding="utf-8")
    return bundle


class LayoutExtractor:
    """Extractor fake that builds the bundle described in a fake DMG."""

    def __init__(self) -> None:
        self.calls: list[tuple[Path, Path]] = []

    def extract(self, archive: Path, dest: Path) -> Path:
        self.calls.append((archive, dest))
        header = archive.read_bytes().split(b"\n", 1)[0]
        layout = json.loads(header.decode("utf-8"))
        shutil.rmtree(dest, ignore_errors=True)
        files = {
            rel: content.encode("latin-1") for rel, content in layout["files"].items()
        }
        return write_bundle(dest / "volume", layout["app"], files, layout["dirs"])


class FakeDownloader:
    """Downloader fake serving local files for URLs."""

    def __init__(self, sources: Mapping[str, Path] | None = None) -> None:
        self.sources = dict(sources or {})
        self.calls: list[tuple[str, Path]] = []

    def fetch(self, url: str, dest: Path, *, total_timeout: float | None = None) -> Path:
        del total_timeout
        self.calls.append((url, dest))
        source = self.sources.get(url)
        if source is None:
            raise ResolutionExhausted(f"404 for {url}")
        dest.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(source, dest)
        return dest


class FakePacker:
    """Archive fake: archives are JSON maps of relative path to text."""

    def __init__(self) -> None:
        self.packed: list[tuple[Path, Path, str | None]] = []

    @staticmethod
    def write_archive(archive: Path, files: Mapping[str, str]) -> Path:
        archive.parent.mkdir(parents=True, exist_ok=True)
        archive.write_text(json.dumps(dict(files), sort_keys=True), encoding="utf-8")
        return archive

    @staticmethod
    def read_archive(archive: Path) -> dict[str, str]:
        return json.loads(archive.read_text(encoding="utf-8"))

    def extract(self, archive: Path, dest: Path) -> Path:
        shutil.rmtree(dest, ignore_errors=True)
        for rel, content in self.read_archive(archive).items():
            target = dest / rel
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")
        return dest

    def pack(self, source: Path, archive: Path, unpack: str | None = None) -> Path:
        self.packed.append((source, archive, unpack))
        files = {
            path.relative_to(source).as_posix(): path.read_text(encoding="utf-8")
            for path in sorted(source.rglob("*"))
            if path.is_file()
        }
        return self.write_archive(archive, files)


class FakeToolchain:
    """Package fetcher and compiler fake behaving like npm and electron-rebuild.

    ``fetch_packages`` installs exactly what the workspace manifest declares
    and prunes everything else, as npm>=7 does; sources carry no binary.
    ``compile`` writes a Linux ``.node`` binary for each module it is given.
    """

    def __init__(
        self,
        fail_compile: bool = False,
        skip_outputs: Sequence[str] = (),
        skip_binaries: Sequence[str] = (),
    ) -> None:
        self.fail_compile = fail_compile
        self.skip_outputs = set(skip_outputs)
        self.skip_binaries = set(skip_binaries)
        self.headers: list[tuple[Path, str]] = []
        self.packages: list[tuple[str, str]] = []
        self.compiled: list[list[NativeModuleSpec]] = []
        self.workspace_snapshots: list[list[str]] = []

    def fetch_headers(self, workspace: Path, runtime_version: str) -> None:
        self.workspace_snapshots.append(sorted(p.name for p in workspace.iterdir()))
        self.headers.append((workspace, runtime_version))

    def fetch_packages(self, workspace: Path, modules: Sequence[NativeModuleSpec]) -> None:
        del modules
        manifest = json.loads((workspace / "package.json").read_text(encoding="utf-8"))
        declared = manifest.get("dependencies", {})
        node_modules = workspace / "node_modules"
        if node_modules.is_dir():
            for installed in node_modules.iterdir():
                if installed.name not in declared:
                    shutil.rmtree(installed)
        for name, version in declared.items():
            self.packages.append((name, version))
            if name in self.skip_outputs:
                continue
            module = node_modules / name
            (module / "src").mkdir(parents=True, exist_ok=True)
            (module / "package.json").write_text(
                json.dumps({"name": name, "version": version}), encoding="utf-8"
            )
            (module / "src" / "binding.cc").write_text("// source", encoding="utf-8")

    def compile(self, workspace: Path, modules: Sequence[NativeModuleSpec]) -> None:
        self.compiled.append(list(modules))
        if self.fail_compile:
            raise BuildFailure("Native module rebuild failed (exit code 1)", "gyp ERR! build error")
        for spec in modules:
            module = workspace / "node_modules" / spec.name
            if not module.is_dir() or spec.name in self.skip_binaries:
                continue
            binary = module / "build" / "Release" / f"{spec.name}.node"
            binary.parent.mkdir(parents=True, exist_ok=True)
            binary.write_text(f"linux-{spec.target_runtime_version}", encoding="utf-8")


@pytest.fixture
def dmg_writer() -> Callable[..., Path]:
    """Return the fake DMG writer."""
    return write_dmg


@pytest.fixture
def bundle_writer() -> Callable[..., Path]:
    """Return the bundle directory writer."""
    return write_bundle


@pytest.fixture
def layout_extractor() -> LayoutExtractor:
    return LayoutExtractor()


@pytest.fixture
def fake_packer() -> FakePacker:
    return FakePacker()


@pytest.fixture
def fake_toolchain() -> FakeToolchain:
    return FakeToolchain()


@pytest.fixture
def downloader_factory() -> Callable[..., FakeDownloader]:
    return FakeDownloader


@pytest.fixture
def toolchain_factory() -> Callable[..., FakeToolchain]:
    return FakeToolchain


@pytest.fixture(autouse=True)
def _reset_package_logger():
    """Drop handlers the CLI attaches so they never outlive a test's streams."""
    yield
    package_logger = logging.getLogger("dmg2linux")
    package_logger.handlers.clear()
    package_logger.setLevel(logging.NOTSET)
