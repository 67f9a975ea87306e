"""Literal patch engine for pre-built script output."""

from .engine import AppliedPatch, PatchEngine, apply_text

__all__ = ["AppliedPatch", "PatchEngine", "apply_text"]
