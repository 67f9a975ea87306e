"""Native add-on rebuild orchestration."""

from .rebuilder import NativeModuleRebuilder, read_module_version

__all__ = ["NativeModuleRebuilder", "read_module_version"]
