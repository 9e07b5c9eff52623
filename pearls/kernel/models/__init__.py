"""
Kernel Data Models

SQLAlchemy models for threads, their access grants, pearls, and the
credential records the identity layer consults.
"""

from pearls.kernel.models.base import Base, TimestampMixin, generate_uuid, utcnow
from pearls.kernel.models.thread import Thread, ThreadAccess, Permission
from pearls.kernel.models.pearl import Pearl, PearlType, AuthorshipType, PearlStatus
from pearls.kernel.models.credentials import ApiKey, RefreshToken

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    "generate_uuid",
    "utcnow",
    # Threads
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
