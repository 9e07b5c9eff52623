"""
Kernel Layer

The authorization and data core every transport goes through:
- Identity Core (credential -> identity, user id -> roles)
- Permission Core (thread-scoped grants, read <= write <= admin)
- Store (typed data access, no authorization of its own)
- OAuth issuer (authorization code and token flow)

Invariants:
- Access decisions are made only by PermissionService, never cached
- Store methods take already-authorized thread id sets
"""

from pearls.kernel.models import (
    ApiKey,
    AuthorshipType,
    Pearl,
    PearlStatus,
    PearlType,
    Permission,
    RefreshToken,
    Thread,
    ThreadAccess,
)

__all__ = [
    # Threads & grants
    "Thread",
    "ThreadAccess",
    "Permission",
    # Pearls
    "Pearl",
    "PearlType",
    "AuthorshipType",
    "PearlStatus",
    # Credentials
    "ApiKey",
    "RefreshToken",
]
