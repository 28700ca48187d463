"""Host inspection module.

This module handles:
- Privilege, tool and container runtime checks
- Locating the kernel header tree for the running kernel
"""

from kmodbuild.host.inspector import resolve_host, validate_headers_dir
from kmodbuild.host.requirements import check_requirements

__all__ = ["check_requirements", "resolve_host", "validate_headers_dir"]
