"""Network interface snapshots and driver bindings."""

from __future__ import annotations

import logging

from kmodbuild.errors import ConfigError
from kmodbuild.install.kmod import KernelPaths, kernel_module_name
from kmodbuild.runner import CommandRunner
from kmodbuild.types import DriverBinding, InterfaceSnapshot

logger = logging.getLogger(__name__)


def parse_ip_link_names(output: str) -> list[str]:
    """Extract interface names from ``ip -o link show`` output.

    Each line reads ``<index>: <name>: <flags> ...``; the name is the
    second ``": "``-separated field.
    """
    names: list[str] = []
    for line in output.splitlines():
        parts = line.split(": ")
        if len(parts) >= 2 and parts[1]:
            # veth0@if5 names the peer; sysfs lists plain veth0
            names.append(parts[1].split("@", 1)[0].strip())
    return names


def parse_up_interfaces(output: str) -> list[str]:
    """Extract interfaces in state UP from ``ip -br link show`` output."""
    up: list[str] = []
    for line in output.splitlines():
        fields = line.split()
        if len(fields) >= 2 and fields[1] == "UP":
            up.append(fields[0])
    return up


def list_interfaces(
    runner: CommandRunner,
    paths: KernelPaths | None = None,
) -> InterfaceSnapshot:
    """Snapshot the current interface names.

    Uses ``ip -o link show`` and falls back to listing /sys/class/net.
    """
    paths = paths or KernelPaths()
    try:
        result = runner.run("ip", ["-o", "link", "show"])
        if result.ok:
            return InterfaceSnapshot.of(parse_ip_link_names(result.stdout))
        logger.debug("ip link show failed (exit code %d)", result.exit_code)
    except ConfigError as e:
        logger.debug("ip unavailable: %s", e)

    try:
        return InterfaceSnapshot.of(p.name for p in paths.class_net.iterdir())
    except OSError:
        logger.warning("Could not enumerate network interfaces")
        return InterfaceSnapshot()


def list_up_interfaces(runner: CommandRunner) -> list[str]:
    """Return interfaces currently in state UP (empty on failure)."""
    try:
        result = runner.run("ip", ["-br", "link", "show"])
    except ConfigError as e:
        logger.debug("ip unavailable: %s", e)
        return []
    if not result.ok:
        return []
    return parse_up_interfaces(result.stdout)


def find_driver_bindings(paths: KernelPaths | None = None) -> list[DriverBinding]:
    """Resolve the driver module of every interface that exposes one.

    An interface qualifies when ``/sys/class/net/<if>/device/driver/module``
    exists; the module name is the basename of its resolved target.
    """
    paths = paths or KernelPaths()
    bindings: list[DriverBinding] = []
    if not paths.class_net.is_dir():
        return bindings

    for iface in sorted(paths.class_net.iterdir()):
        link = iface / "device" / "driver" / "module"
        if not link.exists():
            continue
        try:
            module = link.resolve(strict=True).name
        except OSError:
            continue
        bindings.append(DriverBinding(interface=iface.name, module=module))
    return bindings


def interfaces_bound_to(bindings: list[DriverBinding], module_name: str) -> list[str]:
    """Return the interfaces whose driver module is ``module_name``."""
    wanted = kernel_module_name(module_name)
    return [b.interface for b in bindings if kernel_module_name(b.module) == wanted]


__all__ = [
    "find_driver_bindings",
    "interfaces_bound_to",
    "list_interfaces",
    "list_up_interfaces",
    "parse_ip_link_names",
    "parse_up_interfaces",
]
