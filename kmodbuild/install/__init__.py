"""Module installation and verification.

This module handles:
- Loaded-module and interface snapshots
- Unloading a stale copy and loading the new module
- Kernel log, interface diff and driver-binding diagnostics
"""

from kmodbuild.install.kmod import KernelPaths, is_already_loaded_error
from kmodbuild.install.verify import install_and_verify

__all__ = ["KernelPaths", "install_and_verify", "is_already_loaded_error"]
