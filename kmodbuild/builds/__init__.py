"""Build orchestration module.

This module handles:
- Running the out-of-tree module build inside the toolchain image
- Capturing build output to a log file
"""

from kmodbuild.builds.compile import compile_module

__all__ = ["compile_module"]
