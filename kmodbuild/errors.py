"""Error taxonomy for the build pipeline.

Every terminal failure is one of three kinds, each carrying a stable
``code`` for programmatic handling:

- ConfigError: the host or configuration cannot support a build
  (privileges, tools, daemon, kernel headers, invalid checkout).
- BuildError: an external build step exited non-zero (image build,
  clone, containerized compilation). Full tool output is attached.
- InstallError: the compiled module could not be installed.

Verification diagnostics never raise.
"""

from __future__ import annotations

from pathlib import Path

CONFIG_ERROR = "config_error"
BUILD_ERROR = "build_error"
INSTALL_ERROR = "install_error"


class PipelineError(Exception):
    """Base error for all terminal pipeline failures."""

    def __init__(
        self,
        message: str,
        code: str = "pipeline_error",
        hint: str | None = None,
    ) -> None:
        """Initialize PipelineError.

        Args:
            message: Error description.
            code: Error code for structured error handling.
            hint: Optional remediation hint shown to the operator.
        """
        super().__init__(message)
        self.message = message
        self.code = code
        self.hint = hint


class ConfigError(PipelineError):
    """Raised when host requirements or configuration are not met."""

    def __init__(self, message: str, hint: str | None = None) -> None:
        super().__init__(message, code=CONFIG_ERROR, hint=hint)


class BuildError(PipelineError):
    """Raised when an external build step fails."""

    def __init__(
        self,
        message: str,
        exit_code: int | None = None,
        output: str = "",
        log_path: Path | None = None,
    ) -> None:
        super().__init__(message, code=BUILD_ERROR)
        self.exit_code = exit_code
        self.output = output
        self.log_path = log_path


class InstallError(PipelineError):
    """Raised when the compiled module cannot be installed."""

    def __init__(self, message: str, hint: str | None = None) -> None:
        super().__init__(message, code=INSTALL_ERROR, hint=hint)


__all__ = [
    "BUILD_ERROR",
    "BuildError",
    "CONFIG_ERROR",
    "ConfigError",
    "INSTALL_ERROR",
    "InstallError",
    "PipelineError",
]
