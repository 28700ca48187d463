"""Build-and-verify pipeline.

Runs the stages in order, failing fast on the first terminal error:

    check_requirements -> resolve_host -> ensure_source -> ensure_image
        -> compile_module -> install_and_verify

The whole sequence is wrapped in a LifecycleGuard, whose finalizer runs
exactly once on every exit path, including operator interrupts.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from types import TracebackType

from kmodbuild.builds.compile import compile_module
from kmodbuild.config import Settings
from kmodbuild.host.inspector import resolve_host
from kmodbuild.host.requirements import check_requirements
from kmodbuild.install.kmod import KernelPaths
from kmodbuild.install.verify import SEPARATOR, install_and_verify
from kmodbuild.runner import CommandRunner
from kmodbuild.source.checkout import ensure_source
from kmodbuild.toolchain.image import ensure_image, remove_image
from kmodbuild.types import VerificationReport

logger = logging.getLogger(__name__)


class LifecycleGuard:
    """Scoped owner of the build directory and toolchain image.

    On exit the guard optionally deletes the build directory and the
    image (per ``cleanup`` / ``cleanup_image``), and on success without
    cleanup reports where the compiled module was left. It tolerates
    partial setup: a missing directory or image is skipped silently.
    Exceptions are never suppressed.
    """

    def __init__(self, settings: Settings, runner: CommandRunner) -> None:
        self.settings = settings
        self.runner = runner
        self.module_path: Path | None = None
        self.finalized = False

    def __enter__(self) -> LifecycleGuard:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> bool:
        self.finalize(succeeded=exc_type is None)
        return False

    def finalize(self, succeeded: bool) -> None:
        """Reclaim resources and report the artifact location, once."""
        if self.finalized:
            return
        self.finalized = True

        build_dir = self.settings.build_dir
        if self.settings.cleanup and build_dir.is_dir():
            logger.info(SEPARATOR)
            logger.info("Cleaning up build directory: %s", build_dir)
            shutil.rmtree(build_dir, ignore_errors=True)

        if self.settings.cleanup_image:
            logger.info(SEPARATOR)
            remove_image(self.runner, self.settings.image_name)

        if succeeded and not self.settings.cleanup:
            logger.info(SEPARATOR)
            logger.info("Build artifacts kept at: %s", build_dir)
            logger.info("(Set CLEANUP=1 to delete build artifacts automatically.)")
            if self.module_path is not None:
                logger.info(
                    "NOTE: Don't forget to copy %s to your persistent storage, "
                    "and to automate loading e.g. with a Post Init script in "
                    "TrueNAS UI.",
                    self.module_path,
                )


def run_pipeline(
    settings: Settings,
    runner: CommandRunner,
    *,
    paths: KernelPaths | None = None,
    euid: int | None = None,
    kernel_release: str | None = None,
) -> VerificationReport:
    """Build, install and verify the driver.

    The guard covers every step after the settings were loaded.

    Args:
        settings: Resolved build configuration.
        runner: Command runner for all external tools.
        paths: sysfs/procfs locations.
        euid: Effective UID override for the privilege check.
        kernel_release: Kernel release override.

    Returns:
        VerificationReport of the loaded module.

    Raises:
        ConfigError: Host or configuration problem.
        BuildError: Image build, clone or compilation failure.
        InstallError: Missing artifact or load failure.
    """
    with LifecycleGuard(settings, runner) as guard:
        check_requirements(runner, euid=euid)
        host = resolve_host(
            kernel_release=kernel_release,
            headers_root=settings.headers_root,
            fallback_headers=settings.fallback_headers,
        )

        logger.info("Setting up build directory at %s...", settings.build_dir)
        settings.build_dir.mkdir(parents=True, exist_ok=True)
        checkout = ensure_source(
            runner, settings.source_dir, settings.repo_url, settings.driver_ref
        )
        image = ensure_image(
            runner,
            settings.image_name,
            settings.build_dir,
            rebuild=settings.rebuild_image,
            base_image=settings.base_image,
        )

        module = compile_module(
            runner, host, checkout, image, module_name=settings.module_name
        )
        guard.module_path = module.path
        return install_and_verify(runner, module, paths)


__all__ = ["LifecycleGuard", "run_pipeline"]
