"""Shared fixtures for kmodbuild tests.

External commands are served by ScriptedRunner, and sysfs/procfs are
faked under tmp_path, so the whole pipeline runs without root, Docker
or a real kernel.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

import pytest

from kmodbuild.install.kmod import KernelPaths
from kmodbuild.types import CommandResult, Mount


class ScriptedRunner:
    """CommandRunner returning scripted results keyed by argv prefix.

    ``script`` maps a tuple prefix such as ``("docker", "image", "inspect")``
    to a CommandResult, or to a list of results consumed in order (the
    last one repeats). The longest matching prefix wins. Unscripted
    commands succeed with empty output. Every call is recorded.
    """

    def __init__(self, script: dict | None = None) -> None:
        self.script: dict[tuple[str, ...], object] = dict(script or {})
        self.calls: list[tuple[str, tuple[str, ...], tuple[Mount, ...]]] = []
        self.hooks: dict[tuple[str, ...], object] = {}

    def set(self, prefix: tuple[str, ...], *results: CommandResult) -> None:
        self.script[prefix] = list(results) if len(results) > 1 else results[0]

    def on(self, prefix: tuple[str, ...], hook) -> None:
        """Run ``hook(argv)`` when a matching command is executed."""
        self.hooks[prefix] = hook

    def run(
        self,
        command: str,
        args: Sequence[str] = (),
        mounts: Sequence[Mount] = (),
    ) -> CommandResult:
        argv = (command, *args)
        self.calls.append((command, tuple(args), tuple(mounts)))

        for prefix, hook in self.hooks.items():
            if argv[: len(prefix)] == prefix:
                hook(argv)

        best: tuple[str, ...] | None = None
        for prefix in self.script:
            if argv[: len(prefix)] == prefix and (best is None or len(prefix) > len(best)):
                best = prefix
        if best is None:
            return CommandResult(command=" ".join(argv), exit_code=0)

        entry = self.script[best]
        if isinstance(entry, list):
            result = entry.pop(0) if len(entry) > 1 else entry[0]
        else:
            result = entry
        return CommandResult(
            command=" ".join(argv),
            exit_code=result.exit_code,
            stdout=result.stdout,
            stderr=result.stderr,
        )

    def called(self, *prefix: str) -> list[tuple[str, ...]]:
        """Return argv tuples of recorded calls matching ``prefix``."""
        matches = []
        for command, args, _mounts in self.calls:
            argv = (command, *args)
            if argv[: len(prefix)] == prefix:
                matches.append(argv)
        return matches


def ok(stdout: str = "", stderr: str = "") -> CommandResult:
    return CommandResult(command="", exit_code=0, stdout=stdout, stderr=stderr)


def fail(exit_code: int = 1, stderr: str = "", stdout: str = "") -> CommandResult:
    return CommandResult(command="", exit_code=exit_code, stdout=stdout, stderr=stderr)


@pytest.fixture
def runner() -> ScriptedRunner:
    return ScriptedRunner()


@pytest.fixture
def kernel_paths(tmp_path: Path) -> KernelPaths:
    """An empty fake sysfs/procfs tree."""
    sys_root = tmp_path / "sys"
    proc_root = tmp_path / "proc"
    (sys_root / "module").mkdir(parents=True)
    (sys_root / "class" / "net").mkdir(parents=True)
    proc_root.mkdir()
    (proc_root / "modules").write_text("")
    return KernelPaths(sys_root=sys_root, proc_root=proc_root)


def add_interface(
    paths: KernelPaths, name: str, module: str | None = None
) -> Path:
    """Create a fake /sys/class/net/<name>, optionally bound to ``module``."""
    iface = paths.class_net / name
    iface.mkdir(parents=True, exist_ok=True)
    if module is not None:
        module_dir = paths.module_dir / module
        module_dir.mkdir(parents=True, exist_ok=True)
        driver_dir = iface / "device" / "driver"
        driver_dir.mkdir(parents=True, exist_ok=True)
        (driver_dir / "module").symlink_to(module_dir)
    return iface


def ip_link_output(*names: str) -> str:
    """Render ``ip -o link show`` lines for interface names."""
    return "\n".join(
        f"{i}: {name}: <BROADCAST,MULTICAST,UP,LOWER_UP> mtu 1500 qdisc mq state UP"
        for i, name in enumerate(names, start=1)
    )
