"""
Thread data access. Performs no authorization; callers pass the thread ids
they have already been allowed to see.
"""

import uuid
from typing import Collection, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from pearls.kernel.errors import ConflictError
from pearls.kernel.models.pearl import Pearl
from pearls.kernel.models.thread import Permission, Thread, ThreadAccess


class ThreadStore:
    """Typed operations over `threads` and `thread_access`."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def find_by_slug(self, slug: str) -> Optional[Thread]:
        result = await self.session.execute(select(Thread).where(Thread.slug == slug))
        return result.scalar_one_or_none()

    async def get(self, thread_id: uuid.UUID) -> Optional[Thread]:
        return await self.session.get(Thread, thread_id)

    async def list_threads(
        self,
        thread_ids: Optional[Collection[uuid.UUID]] = None,
        include_public: bool = True,
    ) -> List[Thread]:
        """
        Threads ordered by name.

        Args:
            thread_ids: Restrict to these ids; None means every thread
            include_public: When False, public threads are left out
        """
        query = select(Thread).order_by(Thread.name)
        if thread_ids is not None:
            if not thread_ids:
                return []
            query = query.where(Thread.id.in_(list(thread_ids)))
        if not include_public:
            query = query.where(Thread.is_public.is_(False))
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def insert_thread(
        self,
        slug: str,
        name: str,
        description: Optional[str] = None,
        is_public: bool = False,
        created_by: Optional[str] = None,
    ) -> Thread:
        """Create a thread; raises ConflictError if the slug is taken."""
        if await self.find_by_slug(slug) is not None:
            raise ConflictError(f'Thread "{slug}" already exists')

        thread = Thread(
            slug=slug,
            name=name,
            description=description,
            is_public=is_public,
            created_by=created_by,
        )
        self.session.add(thread)
        try:
            await self.session.flush()
        except IntegrityError as exc:
            # Lost a race with a concurrent insert of the same slug
            raise ConflictError(f'Thread "{slug}" already exists') from exc
        return thread

    async def insert_grant(
        self,
        thread_id: uuid.UUID,
        role: str,
        permission: Permission,
    ) -> bool:
        """Add a grant; an identical existing grant is left alone. Returns True if inserted."""
        level = Permission(permission).value
        existing = await self.session.execute(
            select(ThreadAccess.id).where(
                ThreadAccess.thread_id == thread_id,
                ThreadAccess.role == role,
                ThreadAccess.permission == level,
            )
        )
        if existing.first() is not None:
            return False

        self.session.add(ThreadAccess(thread_id=thread_id, role=role, permission=level))
        await self.session.flush()
        return True

    async def pearl_counts(self) -> Dict[uuid.UUID, int]:
        """Number of pearls per thread id (threads with none are absent)."""
        result = await self.session.execute(
            select(Pearl.thread_id, func.count(Pearl.id)).group_by(Pearl.thread_id)
        )
        return {thread_id: count for thread_id, count in result.all()}

    async def count(self) -> int:
        result = await self.session.execute(select(func.count(Thread.id)))
        return result.scalar_one()
