"""Host requirement checks.

Verifies, before any work is done, that the pipeline runs with root
privileges, that the required tools are on PATH and that the Docker
daemon answers. Every failure is a ConfigError with a remediation hint.
"""

from __future__ import annotations

import logging
import os
import shutil
from collections.abc import Sequence

from kmodbuild.errors import ConfigError
from kmodbuild.runner import CommandRunner

logger = logging.getLogger(__name__)

REQUIRED_TOOLS = ("docker", "git")


def check_privileges(euid: int | None = None) -> None:
    """Require an effective UID of 0.

    Raises:
        ConfigError: If not running as root.
    """
    if euid is None:
        euid = os.geteuid()
    if euid != 0:
        raise ConfigError(
            "This tool must be run with sudo or as root.",
            hint="Loading kernel modules and reading kernel headers require root.",
        )


def find_missing_tools(tools: Sequence[str] = REQUIRED_TOOLS) -> list[str]:
    """Return the tools from ``tools`` that are not found on PATH."""
    return [tool for tool in tools if shutil.which(tool) is None]


def check_docker_daemon(runner: CommandRunner) -> None:
    """Require a reachable Docker daemon.

    Raises:
        ConfigError: If ``docker info`` fails.
    """
    result = runner.run("docker", ["info"])
    if not result.ok:
        logger.debug("docker info output: %s", result.output)
        raise ConfigError(
            "Docker daemon is not reachable.",
            hint=(
                "On TrueNAS SCALE, configure Apps in the UI "
                "(choose an Apps pool) so Docker starts."
            ),
        )


def check_requirements(
    runner: CommandRunner,
    *,
    euid: int | None = None,
    tools: Sequence[str] = REQUIRED_TOOLS,
) -> None:
    """Validate privileges, tools and the container runtime.

    Args:
        runner: Command runner used to probe the Docker daemon.
        euid: Effective UID override (defaults to the process EUID).
        tools: Executables that must be found on PATH.

    Raises:
        ConfigError: On the first unmet requirement.
    """
    logger.info("Checking requirements...")

    check_privileges(euid)

    missing = find_missing_tools(tools)
    if missing:
        raise ConfigError(
            f"'{missing[0]}' is not installed or not in PATH.",
            hint="Is this a TrueNAS SCALE host?",
        )

    if "docker" in tools:
        check_docker_daemon(runner)


__all__ = [
    "REQUIRED_TOOLS",
    "check_docker_daemon",
    "check_privileges",
    "check_requirements",
    "find_missing_tools",
]
