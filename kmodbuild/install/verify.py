"""Module installation and verification.

Installation walks the module through a small state machine:

    absent          -> InstallError, nothing is loaded
    already_loaded  -> rmmod first; failure is an InstallError
    load_attempted  -> insmod; an "already exists" error is accepted only
                       when sysfs confirms the module is present
    loaded          -> run diagnostics

Diagnostics (kernel log scan, interface diff, driver bindings, UP
interfaces) are best-effort: they report what they find and never fail
the pipeline.
"""

from __future__ import annotations

import logging

from kmodbuild.errors import InstallError
from kmodbuild.install.kmod import (
    KernelPaths,
    get_module_info,
    is_already_loaded_error,
    is_module_loaded,
    load_module,
    module_in_sysfs,
    read_kernel_log_mentions,
    unload_module,
)
from kmodbuild.install.netif import (
    find_driver_bindings,
    interfaces_bound_to,
    list_interfaces,
    list_up_interfaces,
)
from kmodbuild.runner import CommandRunner
from kmodbuild.types import (
    CompiledModule,
    InterfaceSnapshot,
    ModuleInfo,
    ModuleState,
    VerificationReport,
)

logger = logging.getLogger(__name__)

SEPARATOR = "-" * 50


def _log_module_info(info: ModuleInfo | None) -> None:
    if info is None:
        return
    logger.info("Module info (vermagic etc.):")
    for key in ("filename", "description", "version", "vermagic"):
        value = getattr(info, key)
        if value:
            logger.info("%s: %s", key, value)


def install_module(
    runner: CommandRunner,
    module: CompiledModule,
    report: VerificationReport,
    paths: KernelPaths | None = None,
) -> VerificationReport:
    """Load a compiled module, replacing any loaded copy.

    Args:
        runner: Command runner.
        module: The compiled kernel object (must exist).
        report: Report whose ``state`` is advanced in place.
        paths: sysfs/procfs locations.

    Returns:
        The report, in state LOADED.

    Raises:
        InstallError: If unloading the old copy or loading fails.
    """
    paths = paths or KernelPaths()
    name = module.name

    if is_module_loaded(name, paths):
        report.state = ModuleState.ALREADY_LOADED
        logger.info("Module %s is already loaded. Attempting to unload...", name)
        result = unload_module(runner, name)
        if not result.ok:
            logger.error("rmmod %s failed: %s", name, result.output.strip())
            raise InstallError(
                f"Could not unload {name}. Is the interface in use?",
                hint="Try bringing the interface down before running this tool.",
            )
    else:
        report.state = ModuleState.NOT_LOADED

    logger.info("Loading new module...")
    report.state = ModuleState.LOAD_ATTEMPTED
    result = load_module(runner, module.path)
    if not result.ok:
        error_text = result.output.strip()
        if is_already_loaded_error(error_text) and module_in_sysfs(name, paths):
            logger.info(
                "insmod reported 'File exists' (module already loaded). Continuing."
            )
            report.recovered_from_race = True
        else:
            raise InstallError(f"insmod failed: {error_text}")

    report.state = ModuleState.LOADED
    return report


def run_diagnostics(
    runner: CommandRunner,
    report: VerificationReport,
    before: InterfaceSnapshot,
    paths: KernelPaths | None = None,
) -> VerificationReport:
    """Collect post-load diagnostics into ``report``.

    Nothing here raises; missing results are logged as information.
    """
    paths = paths or KernelPaths()
    name = report.module_name

    logger.info("Verifying module + interface binding...")

    report.kernel_log_lines = read_kernel_log_mentions(runner, name)
    if report.kernel_log_lines:
        logger.info("Recent kernel messages containing '%s':", name)
        for line in report.kernel_log_lines:
            logger.info("%s", line)
    else:
        logger.info("No recent kernel messages mention '%s'.", name)

    after = list_interfaces(runner, paths)
    report.new_interfaces = after.new_since(before)
    if report.new_interfaces:
        logger.info("New interfaces detected after loading module:")
        for iface in report.new_interfaces:
            logger.info("%s", iface)

    report.bound_interfaces = interfaces_bound_to(find_driver_bindings(paths), name)
    if report.bound_interfaces:
        logger.info("Interfaces using %s: %s", name, " ".join(report.bound_interfaces))
    else:
        logger.info("No interfaces currently report driver module %s via sysfs.", name)

    report.up_interfaces = list_up_interfaces(runner)
    logger.info("Active interfaces:")
    if report.up_interfaces:
        for iface in report.up_interfaces:
            logger.info("%s", iface)
    else:
        logger.info("(None UP)")

    return report


def install_and_verify(
    runner: CommandRunner,
    module: CompiledModule,
    paths: KernelPaths | None = None,
) -> VerificationReport:
    """Install a compiled module and verify it bound to an interface.

    Args:
        runner: Command runner.
        module: The compiled kernel object.
        paths: sysfs/procfs locations.

    Returns:
        VerificationReport in state LOADED.

    Raises:
        InstallError: If the module file is missing or cannot be loaded.
    """
    paths = paths or KernelPaths()
    report = VerificationReport(module_name=module.name, module_path=module.path)

    if not module.exists:
        report.state = ModuleState.ABSENT
        logger.error("Module not found at %s", module.path)
        raise InstallError(
            f"Compilation failed. {module.path.name} was not generated.",
            hint=f"Inspect the build log next to {module.path.parent}.",
        )

    logger.info(SEPARATOR)
    logger.info("SUCCESS: Driver compiled at %s", module.path)
    logger.info(SEPARATOR)

    report.module_info = get_module_info(runner, module.path)
    _log_module_info(report.module_info)

    before = list_interfaces(runner, paths)
    install_module(runner, module, report, paths)
    run_diagnostics(runner, report, before, paths)
    return report


__all__ = ["install_and_verify", "install_module", "run_diagnostics"]
