"""
Thread access control - the single authority for allow/deny decisions.
"""

import uuid
from typing import List, Set

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from pearls.kernel.identity.identity import Identity
from pearls.kernel.models.thread import Permission, Thread, ThreadAccess


# Permission hierarchy - higher levels include all lower levels
PERMISSION_HIERARCHY = {
    Permission.READ: 1,
    Permission.WRITE: 2,
    Permission.ADMIN: 3,
}


def satisfying_permissions(required: Permission) -> List[str]:
    """Grant levels that satisfy `required` (itself and everything above it)."""
    required_rank = PERMISSION_HIERARCHY[required]
    return [
        level.value
        for level, rank in PERMISSION_HIERARCHY.items()
        if rank >= required_rank
    ]


class PermissionService:
    """
    Decides whether an identity may act on a thread.

    Permission sources (in order):
    1. admin role - full access to every thread
    2. public flag - read access for everyone, anonymous included
    3. role grants - a grant on the thread for any held role whose level is
       at or above the required level

    Nothing is cached: roles and grants can change between calls.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def can_access(
        self,
        thread_id: uuid.UUID,
        identity: Identity,
        required: Permission,
    ) -> bool:
        """
        Check if identity has `required` permission on a thread.

        Args:
            thread_id: The thread ID
            identity: The resolved caller
            required: Minimum required permission level

        Returns:
            True if the identity has sufficient permission
        """
        if identity.is_admin:
            return True

        if required == Permission.READ:
            query = select(Thread.is_public).where(Thread.id == thread_id)
            result = await self.session.execute(query)
            if result.scalar_one_or_none():
                return True

        if not identity.roles:
            return False

        query = (
            select(ThreadAccess.id)
            .where(
                ThreadAccess.thread_id == thread_id,
                ThreadAccess.role.in_(sorted(identity.roles)),
                ThreadAccess.permission.in_(satisfying_permissions(required)),
            )
            .limit(1)
        )
        result = await self.session.execute(query)
        return result.first() is not None

    async def accessible_thread_ids(self, identity: Identity) -> Set[uuid.UUID]:
        """
        All thread ids the identity can read.

        Admin gets every thread; anyone else gets public threads plus threads
        granting any of their roles.
        """
        if identity.is_admin:
            result = await self.session.execute(select(Thread.id))
            return set(result.scalars().all())

        thread_ids: Set[uuid.UUID] = set()

        result = await self.session.execute(
            select(Thread.id).where(Thread.is_public.is_(True))
        )
        thread_ids.update(result.scalars().all())

        if identity.roles:
            result = await self.session.execute(
                select(ThreadAccess.thread_id).where(
                    ThreadAccess.role.in_(sorted(identity.roles))
                )
            )
            thread_ids.update(result.scalars().all())

        return thread_ids
