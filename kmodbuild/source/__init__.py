"""Driver source provisioning."""

from kmodbuild.source.checkout import ensure_source, is_git_checkout

__all__ = ["ensure_source", "is_git_checkout"]
