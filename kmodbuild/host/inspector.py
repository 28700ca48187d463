"""Kernel header discovery.

Locates the header tree matching the running kernel. The version-specific
``linux-headers-<release>`` directory is preferred; when it is missing a
single well-known fallback tree is used instead. The result is resolved
to an absolute, symlink-free path because the tree is bind-mounted into
the build container, where host-relative symlinks would dangle.
"""

from __future__ import annotations

import logging
import platform
from pathlib import Path

from kmodbuild.errors import ConfigError
from kmodbuild.types import HostEnvironment

logger = logging.getLogger(__name__)

DEFAULT_HEADERS_ROOT = Path("/usr/src")
DEFAULT_FALLBACK_HEADERS = "linux-headers-truenas-production-amd64"

# Presence of this file marks a usable header tree
BUILD_ENTRY_POINT = "Makefile"


def get_kernel_release() -> str:
    """Return the running kernel release (``uname -r``)."""
    return platform.release()


def headers_path_for(release: str, headers_root: Path = DEFAULT_HEADERS_ROOT) -> Path:
    """Return the version-specific header path for a kernel release."""
    return headers_root / f"linux-headers-{release}"


def validate_headers_dir(headers_dir: Path) -> bool:
    """Check that a directory looks like a kernel header tree."""
    return headers_dir.is_dir() and (headers_dir / BUILD_ENTRY_POINT).is_file()


def resolve_host(
    *,
    kernel_release: str | None = None,
    headers_root: Path = DEFAULT_HEADERS_ROOT,
    fallback_headers: str = DEFAULT_FALLBACK_HEADERS,
) -> HostEnvironment:
    """Resolve the host kernel and its header tree.

    Args:
        kernel_release: Release override (defaults to the running kernel).
        headers_root: Directory holding ``linux-headers-*`` trees.
        fallback_headers: Name of the tree used when no version-specific
            tree exists.

    Returns:
        HostEnvironment with a validated, symlink-resolved header path.

    Raises:
        ConfigError: If no header tree is found or it lacks a Makefile.
    """
    if kernel_release is None:
        kernel_release = get_kernel_release()

    headers_path = headers_path_for(kernel_release, headers_root)
    if not headers_path.is_dir():
        logger.debug("No headers at %s, trying fallback", headers_path)
        headers_path = headers_root / fallback_headers

    if not headers_path.is_dir():
        logger.error("Kernel headers not found at %s", headers_path)
        raise ConfigError(
            f"Kernel headers not found at {headers_path}.",
            hint=f"Please ensure '{fallback_headers}' is installed.",
        )

    headers_dir = headers_path.resolve(strict=True)
    if not validate_headers_dir(headers_dir):
        raise ConfigError(
            "Kernel headers directory does not look valid "
            f"(missing {BUILD_ENTRY_POINT}): {headers_dir}"
        )

    logger.info("Found kernel headers at: %s", headers_dir)
    return HostEnvironment(
        kernel_release=kernel_release,
        headers_dir=headers_dir,
        is_valid=True,
    )


__all__ = [
    "BUILD_ENTRY_POINT",
    "DEFAULT_FALLBACK_HEADERS",
    "DEFAULT_HEADERS_ROOT",
    "get_kernel_release",
    "headers_path_for",
    "resolve_host",
    "validate_headers_dir",
]
