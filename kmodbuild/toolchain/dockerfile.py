"""Toolchain image definition.

The Dockerfile is generated by the pipeline on every run rather than
shipped alongside it, so a build directory is self-contained.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_BASE_IMAGE = "debian:bookworm"

# Minimal package set for building out-of-tree modules
BUILD_PACKAGES = (
    "build-essential",
    "bc",
    "kmod",
    "libelf-dev",
    "flex",
    "bison",
)

# Working directory inside the image; checkouts are mounted below it
WORKDIR = "/build"


def render_dockerfile(
    base_image: str = DEFAULT_BASE_IMAGE,
    packages: Sequence[str] = BUILD_PACKAGES,
) -> str:
    """Render the toolchain Dockerfile.

    Args:
        base_image: Image to build from.
        packages: Debian packages to install.

    Returns:
        Dockerfile contents.
    """
    install = " ".join(packages)
    return (
        f"FROM {base_image}\n"
        f"RUN apt-get update && apt-get install -y {install} "
        "&& rm -rf /var/lib/apt/lists/*\n"
        f"WORKDIR {WORKDIR}\n"
    )


def write_dockerfile(
    context_dir: Path,
    base_image: str = DEFAULT_BASE_IMAGE,
    packages: Sequence[str] = BUILD_PACKAGES,
) -> Path:
    """Write the Dockerfile into a build context directory.

    Returns:
        Path to the written Dockerfile.
    """
    context_dir.mkdir(parents=True, exist_ok=True)
    dockerfile = context_dir / "Dockerfile"
    logger.info("Creating build environment Dockerfile...")
    dockerfile.write_text(render_dockerfile(base_image, packages))
    return dockerfile


__all__ = [
    "BUILD_PACKAGES",
    "DEFAULT_BASE_IMAGE",
    "WORKDIR",
    "render_dockerfile",
    "write_dockerfile",
]
