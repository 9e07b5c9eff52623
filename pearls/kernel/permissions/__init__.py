"""
Permissions - thread-scoped RBAC.
"""

from pearls.kernel.permissions.permission_service import (
    PERMISSION_HIERARCHY,
    PermissionService,
    satisfying_permissions,
)

__all__ = [
    "PERMISSION_HIERARCHY",
    "PermissionService",
    "satisfying_permissions",
]
