"""Toolchain image cache.

This module handles:
- Probing the Docker image store for the named toolchain image
- Building the image from the generated Dockerfile when absent or when a
  rebuild is requested
- Best-effort image removal for teardown

Image existence is probed on every call and never cached across runs.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime, timezone
from pathlib import Path

from kmodbuild.errors import BuildError, ConfigError
from kmodbuild.runner import CommandRunner, write_step_log
from kmodbuild.toolchain.dockerfile import (
    BUILD_PACKAGES,
    DEFAULT_BASE_IMAGE,
    write_dockerfile,
)
from kmodbuild.types import ToolchainImage

logger = logging.getLogger(__name__)

IMAGE_BUILD_LOG = "image-build.log"


def image_exists(runner: CommandRunner, image_name: str) -> bool:
    """Check whether an image is present in the local image store."""
    return runner.run("docker", ["image", "inspect", image_name]).ok


def build_image(
    runner: CommandRunner,
    image_name: str,
    context_dir: Path,
) -> None:
    """Build the toolchain image from ``context_dir``.

    Raises:
        BuildError: If ``docker build`` exits non-zero.
    """
    logger.info("Building Docker build image (%s)...", image_name)
    started_at = datetime.now(timezone.utc)
    result = runner.run("docker", ["build", "-t", image_name, str(context_dir)])
    log_path = write_step_log(context_dir / IMAGE_BUILD_LOG, result, started_at)

    if not result.ok:
        message = f"Docker image build failed with exit code {result.exit_code}"
        logger.error("%s. See log: %s", message, log_path)
        raise BuildError(
            message,
            exit_code=result.exit_code,
            output=result.output,
            log_path=log_path,
        )


def ensure_image(
    runner: CommandRunner,
    image_name: str,
    context_dir: Path,
    *,
    rebuild: bool = False,
    base_image: str = DEFAULT_BASE_IMAGE,
    packages: Sequence[str] = BUILD_PACKAGES,
) -> ToolchainImage:
    """Ensure the toolchain image exists.

    The Dockerfile is always regenerated; the image is only built if it
    is missing or ``rebuild`` is set.

    Args:
        runner: Command runner.
        image_name: Image tag.
        context_dir: Build context (the build directory).
        rebuild: Force a rebuild of an existing image.
        base_image: Base image for the Dockerfile.
        packages: Packages installed into the image.

    Returns:
        ToolchainImage describing the now-present image.

    Raises:
        BuildError: If the image build fails.
    """
    write_dockerfile(context_dir, base_image, packages)

    if image_exists(runner, image_name) and not rebuild:
        logger.info(
            "Docker image '%s' already exists (set REBUILD_IMAGE=1 to rebuild).",
            image_name,
        )
        return ToolchainImage(name=image_name, exists=True, rebuild_requested=False)

    build_image(runner, image_name, context_dir)
    return ToolchainImage(name=image_name, exists=True, rebuild_requested=rebuild)


def remove_image(runner: CommandRunner, image_name: str) -> bool:
    """Remove an image if present.

    Failures (image busy, daemon gone) are logged, never raised.

    Returns:
        True if the image was removed, False otherwise.
    """
    try:
        if not image_exists(runner, image_name):
            return False
        logger.info("Cleaning up Docker image: %s", image_name)
        result = runner.run("docker", ["rmi", image_name])
    except (ConfigError, OSError) as e:
        logger.warning("Could not remove Docker image %s: %s", image_name, e)
        return False

    if not result.ok:
        logger.warning(
            "Could not remove Docker image %s: %s", image_name, result.output.strip()
        )
        return False
    return True


__all__ = [
    "IMAGE_BUILD_LOG",
    "build_image",
    "ensure_image",
    "image_exists",
    "remove_image",
]
