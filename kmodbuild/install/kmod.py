"""Kernel module state and control.

This module handles:
- Snapshotting the loaded-module table (/proc/modules)
- Presence checks via sysfs (/sys/module/<name>)
- Loading (insmod) and unloading (rmmod) a module
- Classifying load errors
- Reading ``modinfo`` fields and module mentions in the kernel log

sysfs and procfs locations come from ``KernelPaths`` so tests can point
them at a fake tree.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from kmodbuild.errors import ConfigError
from kmodbuild.runner import CommandRunner
from kmodbuild.types import CommandResult, ModuleInfo

logger = logging.getLogger(__name__)

# Number of trailing kernel log lines searched for module mentions
KERNEL_LOG_TAIL = 200

MODINFO_FIELDS = ("filename", "description", "version", "vermagic")


@dataclass(frozen=True)
class KernelPaths:
    """Locations of the kernel's pseudo filesystems."""

    sys_root: Path = Path("/sys")
    proc_root: Path = Path("/proc")

    @property
    def module_dir(self) -> Path:
        return self.sys_root / "module"

    @property
    def class_net(self) -> Path:
        return self.sys_root / "class" / "net"

    @property
    def proc_modules(self) -> Path:
        return self.proc_root / "modules"


def list_loaded_modules(paths: KernelPaths | None = None) -> frozenset[str]:
    """Snapshot the names in the loaded-module table.

    Returns:
        Names of loaded modules (empty if the table cannot be read).
    """
    paths = paths or KernelPaths()
    try:
        text = paths.proc_modules.read_text()
    except OSError:
        logger.warning("Could not read %s", paths.proc_modules)
        return frozenset()
    return frozenset(line.split()[0] for line in text.splitlines() if line.strip())


def kernel_module_name(module_name: str) -> str:
    """Return the name the kernel lists a module under.

    The kernel reports module names with dashes turned into underscores,
    so foo-bar.ko appears as foo_bar in sysfs and /proc/modules.
    """
    return module_name.replace("-", "_")


def module_in_sysfs(module_name: str, paths: KernelPaths | None = None) -> bool:
    """Check for ``/sys/module/<name>``."""
    paths = paths or KernelPaths()
    return (paths.module_dir / kernel_module_name(module_name)).is_dir()


def is_module_loaded(module_name: str, paths: KernelPaths | None = None) -> bool:
    """Check whether a module is loaded, via sysfs or the module table."""
    paths = paths or KernelPaths()
    return module_in_sysfs(module_name, paths) or kernel_module_name(
        module_name
    ) in list_loaded_modules(paths)


def is_already_loaded_error(error_text: str) -> bool:
    """Check whether insmod error text reports an already-present module.

    insmod reports EEXIST as "File exists"; the match is on free text and
    may need revisiting if kmod changes its messages.
    """
    return "file exists" in error_text.lower()


def load_module(runner: CommandRunner, module_path: Path) -> CommandResult:
    """Load a kernel object with insmod."""
    return runner.run("insmod", [str(module_path)])


def unload_module(runner: CommandRunner, module_name: str) -> CommandResult:
    """Unload a module with rmmod."""
    return runner.run("rmmod", [kernel_module_name(module_name)])


def parse_modinfo(output: str) -> ModuleInfo:
    """Extract the fields of interest from ``modinfo`` output."""
    values: dict[str, str] = {}
    for line in output.splitlines():
        key, sep, value = line.partition(":")
        key = key.strip()
        if sep and key in MODINFO_FIELDS and key not in values:
            values[key] = value.strip()
    return ModuleInfo(**values)


def get_module_info(runner: CommandRunner, module_path: Path) -> ModuleInfo | None:
    """Read ``modinfo`` for a kernel object; None if unavailable."""
    try:
        result = runner.run("modinfo", [str(module_path)])
    except ConfigError as e:
        logger.debug("modinfo unavailable: %s", e)
        return None
    if not result.ok:
        return None
    return parse_modinfo(result.stdout)


def filter_log_mentions(
    log_text: str,
    module_name: str,
    tail: int = KERNEL_LOG_TAIL,
) -> list[str]:
    """Return lines among the last ``tail`` that mention the module."""
    needle = module_name.lower()
    lines = log_text.splitlines()[-tail:]
    return [line for line in lines if needle in line.lower()]


def read_kernel_log_mentions(
    runner: CommandRunner,
    module_name: str,
    tail: int = KERNEL_LOG_TAIL,
) -> list[str]:
    """Return recent kernel log lines mentioning the module.

    Failures to read the log yield an empty list.
    """
    try:
        result = runner.run("dmesg")
    except ConfigError as e:
        logger.warning("Could not read kernel log: %s", e)
        return []
    if not result.ok:
        logger.warning("Could not read kernel log (exit code %d)", result.exit_code)
        return []
    return filter_log_mentions(result.stdout, module_name, tail)


__all__ = [
    "KERNEL_LOG_TAIL",
    "KernelPaths",
    "filter_log_mentions",
    "get_module_info",
    "is_already_loaded_error",
    "is_module_loaded",
    "kernel_module_name",
    "list_loaded_modules",
    "load_module",
    "module_in_sysfs",
    "parse_modinfo",
    "read_kernel_log_mentions",
    "unload_module",
]
