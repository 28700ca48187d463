"""Shared type definitions for kmodbuild.

This module contains the dataclasses and enums passed between pipeline
stages, kept here to avoid circular imports between subpackages.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class ModuleState(str, Enum):
    """Presence state of the target module during installation."""

    ABSENT = "absent"
    NOT_LOADED = "not_loaded"
    ALREADY_LOADED = "already_loaded"
    LOAD_ATTEMPTED = "load_attempted"
    LOADED = "loaded"


@dataclass(frozen=True)
class Mount:
    """A bind mount from the host into a container."""

    source: Path
    target: str
    read_only: bool = False

    def to_volume_arg(self) -> str:
        """Render as a ``--volume`` value (``src:dst:ro|rw``)."""
        mode = "ro" if self.read_only else "rw"
        return f"{self.source}:{self.target}:{mode}"


@dataclass(frozen=True)
class CommandResult:
    """Outcome of an external command."""

    command: str
    exit_code: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    @property
    def output(self) -> str:
        """Combined stdout and stderr, in that order."""
        parts = [p for p in (self.stdout, self.stderr) if p]
        return "\n".join(p.rstrip("\n") for p in parts)


@dataclass(frozen=True)
class HostEnvironment:
    """The running kernel and its matching header tree.

    Attributes:
        kernel_release: Output of ``uname -r``.
        headers_dir: Symlink-resolved absolute path to the header tree.
        is_valid: Whether the tree contains a top-level Makefile.
    """

    kernel_release: str
    headers_dir: Path
    is_valid: bool


@dataclass(frozen=True)
class ToolchainImage:
    """A named build-sandbox image in the container image store."""

    name: str
    exists: bool
    rebuild_requested: bool = False


@dataclass(frozen=True)
class SourceCheckout:
    """A driver source working copy."""

    path: Path
    present: bool
    is_valid: bool


@dataclass(frozen=True)
class CompiledModule:
    """A loadable kernel object produced by the build."""

    path: Path

    @property
    def name(self) -> str:
        return self.path.stem

    @property
    def exists(self) -> bool:
        return self.path.is_file()


@dataclass(frozen=True)
class InterfaceSnapshot:
    """Network interface names captured at one point in time.

    Names are de-duplicated and kept sorted so snapshots compare and
    diff independently of enumeration order.
    """

    names: tuple[str, ...] = ()

    @classmethod
    def of(cls, names: Iterable[str]) -> InterfaceSnapshot:
        return cls(tuple(sorted({n for n in names if n})))

    def new_since(self, before: InterfaceSnapshot) -> list[str]:
        """Return interfaces present now but not in ``before``."""
        return sorted(set(self.names) - set(before.names))

    def __contains__(self, name: object) -> bool:
        return name in self.names

    def __len__(self) -> int:
        return len(self.names)


@dataclass(frozen=True)
class DriverBinding:
    """An interface and the kernel module its device driver belongs to."""

    interface: str
    module: str


@dataclass
class ModuleInfo:
    """Selected ``modinfo`` fields of a kernel object."""

    filename: str | None = None
    description: str | None = None
    version: str | None = None
    vermagic: str | None = None


@dataclass
class VerificationReport:
    """Result of installing and verifying a module.

    Only ``state`` reflects a hard outcome; every other field is
    best-effort diagnostics and may be empty.
    """

    module_name: str
    module_path: Path
    state: ModuleState = ModuleState.NOT_LOADED
    recovered_from_race: bool = False
    module_info: ModuleInfo | None = None
    kernel_log_lines: list[str] = field(default_factory=list)
    new_interfaces: list[str] = field(default_factory=list)
    bound_interfaces: list[str] = field(default_factory=list)
    up_interfaces: list[str] = field(default_factory=list)


__all__ = [
    "CommandResult",
    "CompiledModule",
    "DriverBinding",
    "HostEnvironment",
    "InterfaceSnapshot",
    "ModuleInfo",
    "ModuleState",
    "Mount",
    "SourceCheckout",
    "ToolchainImage",
    "VerificationReport",
]
