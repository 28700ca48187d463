"""Containerized module compilation.

This module handles:
- Composing the in-container build script (modules_prepare when the
  header tree lacks generated config, then the out-of-tree build)
- Composing the ``docker run --rm`` invocation with the source checkout
  mounted read-write and the header tree mounted read-only
- Capturing build output to a log file

The container is removed after the single build command (``--rm``),
whether it succeeds or fails.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path

from kmodbuild.errors import BuildError
from kmodbuild.runner import CommandRunner, write_step_log
from kmodbuild.toolchain.dockerfile import WORKDIR
from kmodbuild.types import (
    CompiledModule,
    HostEnvironment,
    Mount,
    SourceCheckout,
    ToolchainImage,
)

logger = logging.getLogger(__name__)

# Mount point of the host header tree inside the sandbox
HEADERS_MOUNT = "/kernel-headers"

# Present once `make modules_prepare` has run against a header tree
AUTOCONF_HEADER = "include/generated/autoconf.h"

BUILD_LOG = "build.log"


def compose_build_script(source_mount: str, headers_mount: str = HEADERS_MOUNT) -> str:
    """Compose the shell script run inside the sandbox.

    Args:
        source_mount: Container path of the driver source.
        headers_mount: Container path of the kernel header tree.

    Returns:
        Script text for ``bash -lc``.
    """
    return (
        "set -euo pipefail\n"
        "\n"
        f"if [ ! -f {headers_mount}/{AUTOCONF_HEADER} ]; then\n"
        f"    make -C {headers_mount} modules_prepare\n"
        "fi\n"
        "\n"
        f"make -C {headers_mount} \\\n"
        f"    M={source_mount} \\\n"
        f"    KERNELDIR={headers_mount} \\\n"
        "    modules\n"
    )


def compose_mounts(host: HostEnvironment, checkout: SourceCheckout) -> list[Mount]:
    """Return the sandbox bind mounts for a build."""
    return [
        Mount(
            source=checkout.path.resolve(),
            target=f"{WORKDIR}/{checkout.path.name}",
            read_only=False,
        ),
        Mount(source=host.headers_dir, target=HEADERS_MOUNT, read_only=True),
    ]


def compose_run_args(image: ToolchainImage, source_mount: str) -> list[str]:
    """Compose ``docker`` arguments (mounts excluded) for a build."""
    return [
        "run",
        "--rm",
        image.name,
        "bash",
        "-lc",
        compose_build_script(source_mount),
    ]


def compile_module(
    runner: CommandRunner,
    host: HostEnvironment,
    checkout: SourceCheckout,
    image: ToolchainImage,
    *,
    module_name: str,
    log_path: Path | None = None,
) -> CompiledModule:
    """Compile the driver inside an ephemeral toolchain container.

    Args:
        runner: Command runner.
        host: Resolved host environment.
        checkout: Driver source checkout.
        image: Toolchain image to run.
        module_name: Expected module name (``<name>.ko``).
        log_path: Build log path (defaults to build.log beside the checkout).

    Returns:
        CompiledModule at the expected output path. Whether the file
        exists is left to the installer to decide.

    Raises:
        BuildError: If the build exits non-zero.
    """
    if log_path is None:
        log_path = checkout.path.parent / BUILD_LOG

    mounts = compose_mounts(host, checkout)
    args = compose_run_args(image, source_mount=mounts[0].target)

    logger.info("Compiling driver using headers from: %s", host.headers_dir)
    started_at = datetime.now(timezone.utc)
    result = runner.run("docker", args, mounts)
    write_step_log(log_path, result, started_at)

    if not result.ok:
        message = f"Driver compilation failed with exit code {result.exit_code}"
        logger.error("%s. See log: %s", message, log_path)
        raise BuildError(
            message,
            exit_code=result.exit_code,
            output=result.output,
            log_path=log_path,
        )

    return CompiledModule(path=checkout.path / f"{module_name}.ko")


__all__ = [
    "AUTOCONF_HEADER",
    "BUILD_LOG",
    "HEADERS_MOUNT",
    "compile_module",
    "compose_build_script",
    "compose_mounts",
    "compose_run_args",
]
