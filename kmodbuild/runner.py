"""Command runner for external tools.

Every external program the pipeline touches (docker, git, insmod,
rmmod, modinfo, dmesg, ip) is invoked through the narrow
``CommandRunner`` protocol. The real implementation shells out with
subprocess; tests substitute a scripted runner.

This module also writes per-step build logs in a fixed header/footer
layout so failed steps can be inspected after the run.
"""

from __future__ import annotations

import logging
import shlex
import subprocess
from collections.abc import Sequence
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol

from kmodbuild.errors import ConfigError
from kmodbuild.types import CommandResult, Mount

logger = logging.getLogger(__name__)


class CommandRunner(Protocol):
    """Capability to run an external command to completion."""

    def run(
        self,
        command: str,
        args: Sequence[str] = (),
        mounts: Sequence[Mount] = (),
    ) -> CommandResult: ...


def compose_argv(
    command: str,
    args: Sequence[str] = (),
    mounts: Sequence[Mount] = (),
) -> list[str]:
    """Compose a full argument vector.

    Mounts are rendered as ``--volume`` options directly after the first
    argument (the container runtime subcommand, e.g. ``run``).

    Args:
        command: Program name.
        args: Program arguments.
        mounts: Bind mounts for container runtime commands.

    Returns:
        Argument vector suitable for subprocess.
    """
    argv = [command]
    if not mounts:
        argv.extend(args)
        return argv

    if not args:
        raise ValueError("mounts require a subcommand argument")

    argv.append(args[0])
    for mount in mounts:
        argv.extend(["--volume", mount.to_volume_arg()])
    argv.extend(args[1:])
    return argv


class SubprocessRunner:
    """Runs commands on the host, capturing text output.

    No timeout is applied; a hanging tool hangs the pipeline until the
    operator interrupts it.
    """

    def run(
        self,
        command: str,
        args: Sequence[str] = (),
        mounts: Sequence[Mount] = (),
    ) -> CommandResult:
        argv = compose_argv(command, args, mounts)
        cmd_str = shlex.join(argv)
        logger.debug("Executing: %s", cmd_str)

        try:
            result = subprocess.run(
                argv,
                capture_output=True,
                text=True,
                errors="replace",
                check=False,
            )
        except OSError as e:
            logger.error("Failed to execute %s: %s", command, e)
            raise ConfigError(
                f"Failed to execute '{command}': {e}",
                hint=f"Ensure '{command}' is installed and in PATH.",
            ) from e

        logger.debug("%s exited with %d", command, result.returncode)
        return CommandResult(
            command=cmd_str,
            exit_code=result.returncode,
            stdout=result.stdout or "",
            stderr=result.stderr or "",
        )


def write_step_log(
    log_path: Path,
    result: CommandResult,
    started_at: datetime,
    finished_at: datetime | None = None,
) -> Path:
    """Write a command's captured output to a log file.

    Args:
        log_path: Destination file (parent directories are created).
        result: Completed command result.
        started_at: When the command was started.
        finished_at: When it finished (defaults to now).

    Returns:
        The log path.
    """
    if finished_at is None:
        finished_at = datetime.now(timezone.utc)

    log_path.parent.mkdir(parents=True, exist_ok=True)
    duration = (finished_at - started_at).total_seconds()
    with log_path.open("w") as log_file:
        log_file.write(f"# Command: {result.command}\n")
        log_file.write(f"# Started: {started_at.isoformat()}\n")
        log_file.write("# " + "=" * 70 + "\n\n")
        if result.output:
            log_file.write(result.output + "\n")
        log_file.write(f"\n# Finished: {finished_at.isoformat()}\n")
        log_file.write(f"# Exit code: {result.exit_code}\n")
        log_file.write(f"# Duration: {duration:.1f}s\n")
    return log_path


__all__ = [
    "CommandRunner",
    "SubprocessRunner",
    "compose_argv",
    "write_step_log",
]
