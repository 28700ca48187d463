"""kmodbuild - Containerized out-of-tree kernel driver builder.

This package builds an out-of-tree network driver against the running
host's kernel headers inside a cached Docker toolchain image, then loads
the module and verifies that it claimed a network interface.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
