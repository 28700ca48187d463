"""Driver source checkout.

A missing checkout is created with a shallow ``git clone``; an existing
one is validated and reused as-is. Existing checkouts are never updated,
so reruns build the same source until the directory is removed.
"""

from __future__ import annotations

import logging
from pathlib import Path

from kmodbuild.errors import BuildError, ConfigError
from kmodbuild.runner import CommandRunner
from kmodbuild.types import SourceCheckout

logger = logging.getLogger(__name__)


def is_git_checkout(path: Path) -> bool:
    """Check whether ``path`` is a git working copy."""
    return (path / ".git").is_dir()


def compose_clone_args(
    repo_url: str,
    target_dir: Path,
    ref: str | None = None,
) -> list[str]:
    """Compose ``git clone`` arguments for a depth-1 checkout.

    Args:
        repo_url: Repository to clone.
        target_dir: Destination directory.
        ref: Optional branch or tag; the repository default when None.

    Returns:
        Arguments following the ``git`` executable.
    """
    args = ["clone", "--depth", "1"]
    if ref:
        args.extend(["--branch", ref])
    args.extend([repo_url, str(target_dir)])
    return args


def ensure_source(
    runner: CommandRunner,
    target_dir: Path,
    repo_url: str,
    ref: str | None = None,
) -> SourceCheckout:
    """Ensure driver source is present at ``target_dir``.

    Args:
        runner: Command runner.
        target_dir: Checkout directory.
        repo_url: Repository to clone when the directory is absent.
        ref: Optional branch or tag to clone.

    Returns:
        SourceCheckout for the (new or reused) working copy.

    Raises:
        ConfigError: If ``target_dir`` exists but is not a git checkout.
        BuildError: If the clone fails.
    """
    if target_dir.exists():
        if not is_git_checkout(target_dir):
            raise ConfigError(
                f"Existing '{target_dir}' is not a git repo.",
                hint="Remove it or pick a different BUILD_DIR.",
            )
        logger.info(
            "Driver source already exists at %s (skipping clone).", target_dir
        )
        return SourceCheckout(path=target_dir, present=True, is_valid=True)

    logger.info("Cloning driver source from %s...", repo_url)
    target_dir.parent.mkdir(parents=True, exist_ok=True)
    result = runner.run("git", compose_clone_args(repo_url, target_dir, ref))
    if not result.ok:
        logger.error("git clone failed with exit code %d", result.exit_code)
        raise BuildError(
            f"Failed to clone {repo_url}"
            + (f" at '{ref}'" if ref else "")
            + f" (exit code {result.exit_code})",
            exit_code=result.exit_code,
            output=result.output,
        )

    return SourceCheckout(path=target_dir, present=True, is_valid=True)


__all__ = ["compose_clone_args", "ensure_source", "is_git_checkout"]
