"""Bundle inspection: classification, strings and entry metadata."""

from dmg2linux.bundles.classifier import BundleClassification, BundleClassifier
from dmg2linux.bundles.strings import StringsScanner

__all__ = ["BundleClassification", "BundleClassifier", "StringsScanner"]
