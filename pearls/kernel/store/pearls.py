"""
Pearl data access. Like ThreadStore, it never checks permissions: every read
takes an explicit thread id set (None meaning unrestricted, for admin).
"""

import uuid
from datetime import datetime
from typing import Any, Collection, Dict, List, Optional, Tuple

from sqlalchemy import delete, distinct, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from pearls.kernel.models.base import as_utc
from pearls.kernel.models.pearl import Pearl, PearlStatus
from pearls.kernel.models.thread import Thread
from pearls.kernel.store.search import SearchHit, backend_for


class PearlStore:
    """Typed operations over `pearls`."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def insert(
        self,
        thread_id: uuid.UUID,
        content: str,
        title: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        created_by: Optional[str] = None,
        instance_id: Optional[str] = None,
        in_reply_to: Optional[uuid.UUID] = None,
        pearl_type: Optional[str] = None,
        authorship_type: Optional[str] = None,
    ) -> Pearl:
        pearl = Pearl(
            thread_id=thread_id,
            content=content,
            title=title,
            metadata_=metadata,
            created_by=created_by,
            instance_id=instance_id,
            in_reply_to=in_reply_to,
            pearl_type=pearl_type,
            authorship_type=authorship_type,
            status=PearlStatus.ACTIVE.value,
        )
        self.session.add(pearl)
        await self.session.flush()
        return pearl

    async def get(self, pearl_id: uuid.UUID) -> Optional[Pearl]:
        return await self.session.get(Pearl, pearl_id)

    async def query_recent(
        self,
        thread_ids: Optional[Collection[uuid.UUID]],
        limit: int,
        before: Optional[datetime] = None,
        offset: int = 0,
    ) -> List[Pearl]:
        """
        Newest first.

        Args:
            thread_ids: Threads to read from; None means all threads
            limit: Maximum rows
            before: Exclusive upper bound on created_at
            offset: Rows to skip (admin paging)
        """
        if thread_ids is not None and not thread_ids:
            return []

        query = select(Pearl)
        if thread_ids is not None:
            query = query.where(Pearl.thread_id.in_(list(thread_ids)))
        if before is not None:
            query = query.where(Pearl.created_at < as_utc(before))
        query = query.order_by(Pearl.created_at.desc()).offset(offset).limit(limit)

        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def search(
        self,
        query: str,
        thread_ids: Optional[Collection[uuid.UUID]],
        limit: int,
    ) -> List[SearchHit]:
        if thread_ids is not None and not thread_ids:
            return []
        backend = backend_for(self.session.get_bind().dialect.name)
        return await backend.search(self.session, query, thread_ids, limit)

    async def mark_corrected(
        self,
        pearl: Pearl,
        correction: Optional[Pearl] = None,
        reason: Optional[str] = None,
    ) -> Pearl:
        """Set status to corrected and point `correction` back at `pearl`."""
        pearl.status = PearlStatus.CORRECTED.value
        if reason:
            # reassign so the JSON column is flagged dirty
            pearl.metadata_ = {**(pearl.metadata_ or {}), "correction_reason": reason}
        if correction is not None:
            correction.parent_pearl = pearl.id
        await self.session.flush()
        return pearl

    async def delete(self, pearl_id: uuid.UUID) -> bool:
        result = await self.session.execute(delete(Pearl).where(Pearl.id == pearl_id))
        return result.rowcount > 0

    async def set_embedding(self, pearl_id: uuid.UUID, embedding: List[float]) -> None:
        await self.session.execute(
            update(Pearl).where(Pearl.id == pearl_id).values(embedding=embedding)
        )

    async def embedded(
        self,
        thread_ids: Optional[Collection[uuid.UUID]],
    ) -> List[Tuple[Pearl, List[float]]]:
        """Pearls that have an embedding, paired with the vector."""
        if thread_ids is not None and not thread_ids:
            return []
        query = select(Pearl, Pearl.embedding).where(Pearl.embedding.is_not(None))
        if thread_ids is not None:
            query = query.where(Pearl.thread_id.in_(list(thread_ids)))
        result = await self.session.execute(query)
        return [(pearl, vector) for pearl, vector in result.all() if vector]

    async def missing_embedding(self, limit: int = 100) -> List[Pearl]:
        result = await self.session.execute(
            select(Pearl)
            .where(Pearl.embedding.is_(None))
            .order_by(Pearl.created_at)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def count(self, thread_ids: Optional[Collection[uuid.UUID]] = None) -> int:
        if thread_ids is not None and not thread_ids:
            return 0
        query = select(func.count(Pearl.id))
        if thread_ids is not None:
            query = query.where(Pearl.thread_id.in_(list(thread_ids)))
        result = await self.session.execute(query)
        return result.scalar_one()

    async def stats(self, thread_ids: Optional[Collection[uuid.UUID]]) -> Dict[str, Any]:
        """
        Corpus summary over the given threads: totals, distinct creators and
        instances, date range, counts by type and by thread slug.
        """
        empty = {
            "total": 0,
            "unique_creators": 0,
            "unique_instances": 0,
            "earliest": None,
            "latest": None,
            "by_type": {},
            "by_thread": {},
        }
        if thread_ids is not None and not thread_ids:
            return empty

        def scoped(query):
            if thread_ids is not None:
                return query.where(Pearl.thread_id.in_(list(thread_ids)))
            return query

        result = await self.session.execute(
            scoped(
                select(
                    func.count(Pearl.id),
                    func.count(distinct(Pearl.created_by)),
                    func.count(distinct(Pearl.instance_id)),
                    func.min(Pearl.created_at),
                    func.max(Pearl.created_at),
                )
            )
        )
        total, creators, instances, earliest, latest = result.one()
        if not total:
            return empty

        by_type = await self.session.execute(
            scoped(
                select(Pearl.pearl_type, func.count(Pearl.id)).group_by(Pearl.pearl_type)
            )
        )
        by_thread = await self.session.execute(
            scoped(
                select(Thread.slug, func.count(Pearl.id))
                .select_from(Pearl)
                .join(Thread, Thread.id == Pearl.thread_id)
                .group_by(Thread.slug)
            )
        )

        return {
            "total": total,
            "unique_creators": creators,
            "unique_instances": instances,
            "earliest": as_utc(earliest) if earliest else None,
            "latest": as_utc(latest) if latest else None,
            "by_type": {(kind or "untyped"): count for kind, count in by_type.all()},
            "by_thread": {slug: count for slug, count in by_thread.all()},
        }

    async def count_by_creator(
        self,
        created_by: str,
        thread_ids: Optional[Collection[uuid.UUID]] = None,
    ) -> int:
        if thread_ids is not None and not thread_ids:
            return 0
        query = select(func.count(Pearl.id)).where(Pearl.created_by == created_by)
        if thread_ids is not None:
            query = query.where(Pearl.thread_id.in_(list(thread_ids)))
        result = await self.session.execute(query)
        return result.scalar_one()

    async def metadata_values(
        self,
        key: str,
        thread_ids: Optional[Collection[uuid.UUID]] = None,
    ) -> List[str]:
        """Distinct string values stored under `key` in pearl metadata, sorted."""
        if thread_ids is not None and not thread_ids:
            return []
        query = select(Pearl.metadata_).where(Pearl.metadata_.is_not(None))
        if thread_ids is not None:
            query = query.where(Pearl.thread_id.in_(list(thread_ids)))
        result = await self.session.execute(query)

        values = set()
        for metadata in result.scalars().all():
            if isinstance(metadata, dict) and isinstance(metadata.get(key), str):
                values.add(metadata[key])
        return sorted(values)
