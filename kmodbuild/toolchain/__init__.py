"""Toolchain image management.

This module handles:
- Generating the build-sandbox Dockerfile
- Building and caching the named toolchain image
- Removing the image on request
"""

from kmodbuild.toolchain.dockerfile import render_dockerfile, write_dockerfile
from kmodbuild.toolchain.image import (
    build_image,
    ensure_image,
    image_exists,
    remove_image,
)

__all__ = [
    "build_image",
    "ensure_image",
    "image_exists",
    "remove_image",
    "render_dockerfile",
    "write_dockerfile",
]
