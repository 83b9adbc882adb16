"""
Permission and capability checks.

The framework never enforces these; the CLI uses them to warn before a
module runs with less access than it asked for.
"""

import os
from pathlib import Path
from typing import Iterable, List

from whydiag.core.base import Permission


def is_root() -> bool:
    """Effective UID is 0."""
    return os.geteuid() == 0


def can_read_proc() -> bool:
    try:
        Path("/proc/self/status").read_text()
        return True
    except OSError:
        return False


def can_read_sys() -> bool:
    try:
        next(Path("/sys/class").iterdir(), None)
        return True
    except OSError:
        return False


def has_permission(permission: Permission) -> bool:
    """Check whether a permission is satisfied in this process."""
    if permission == Permission.READ_PROC:
        return can_read_proc()
    if permission == Permission.READ_SYS:
        return can_read_sys()
    # ROOT, NET_ADMIN and PERF_EVENT are approximated by root
    return is_root()


def missing_permissions(permissions: Iterable[Permission]) -> List[Permission]:
    return [p for p in sorted(permissions, key=lambda p: p.value) if not has_permission(p)]


def has_all_permissions(permissions: Iterable[Permission]) -> bool:
    return not missing_permissions(permissions)
