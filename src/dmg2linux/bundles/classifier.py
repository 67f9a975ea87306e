"""Heuristic bundle classification.

No structured, version-stable metadata identifies the product across
releases, so identity is decided by an ordered chain of structural and binary
signature checks driven by the profile's signature table.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from dmg2linux.bundles.strings import StringsScanner
from dmg2linux.schemas import ProductProfile
from dmg2linux.types import BundleKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BundleClassification:
    """Classification outcome for one extracted bundle."""

    kind: BundleKind
    bundle_root: Path
    display_name: str
    signature: str | None = None

    def as_dict(self) -> dict[str, str | None]:
        return {
            "kind": self.kind.value,
            "display_name": self.display_name,
            "signature": self.signature,
            "bundle_root": str(self.bundle_root),
        }


def bundle_display_name(bundle_root: Path) -> str:
    """Return the bundle name without its ``.app`` suffix."""
    name = bundle_root.name
    return name[: -len(".app")] if name.endswith(".app") else name


def main_binary_path(bundle_root: Path) -> Path:
    """Return ``Contents/MacOS/<name>`` for a bundle."""
    return bundle_root / "Contents" / "MacOS" / bundle_display_name(bundle_root)


class BundleClassifier:
    """Classify extracted bundles against a product profile."""

    def __init__(
        self,
        profile: ProductProfile,
        scanner: StringsScanner | None = None,
    ) -> None:
        self.profile = profile
        self.scanner = scanner or StringsScanner()

    def classify(self, bundle_root: Path) -> BundleClassification:
        """Classify ``bundle_root``; first matching check wins.

        Parameters
        ----------
        bundle_root : Path
            Extracted ``*.app`` directory.

        Returns
        -------
        BundleClassification
            ``UNSUPPORTED`` if the reject marker exists, ``PAYLOAD`` for a
            nested payload bundle, ``INSTALLER``/``PAYLOAD`` once brand or
            binary signatures establish identity, else ``UNKNOWN``.
        """
        display_name = bundle_display_name(bundle_root)

        def result(kind: BundleKind, signature: str | None) -> BundleClassification:
            logger.debug("classified %s as %s (signature=%r)", bundle_root, kind.value, signature)
            return BundleClassification(
                kind=kind,
                bundle_root=bundle_root,
                display_name=display_name,
                signature=signature,
            )

        if (bundle_root / self.profile.reject_marker).is_file():
            return result(BundleKind.UNSUPPORTED, self.profile.reject_marker)

        if (bundle_root / self.profile.nested_bundle).is_dir():
            return result(BundleKind.PAYLOAD, self.profile.nested_bundle)

        identity = self._identity_signature(bundle_root)
        if identity is None:
            return result(BundleKind.UNKNOWN, None)

        installer = self._installer_signature(bundle_root)
        if installer is not None:
            return result(BundleKind.INSTALLER, installer)
        return result(BundleKind.PAYLOAD, identity)

    def _identity_signature(self, bundle_root: Path) -> str | None:
        if self.profile.brand_token in bundle_root.name:
            return self.profile.brand_token
        return self._first_binary_match(bundle_root, self.profile.payload_signatures)

    def _installer_signature(self, bundle_root: Path) -> str | None:
        return self._first_binary_match(bundle_root, self.profile.installer_signatures)

    def _first_binary_match(
        self, bundle_root: Path, signatures: tuple[str, ...]
    ) -> str | None:
        binary = main_binary_path(bundle_root)
        if not binary.is_file():
            return None
        for signature in signatures:
            if self.scanner.contains(binary, signature):
                return signature
        return None
