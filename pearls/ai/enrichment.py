"""
Fire-and-forget embedding of newly created pearls.

Enrichment runs after the creating transaction commits, in its own session,
and only ever receives the pearl id and text. A failure is logged and
dropped; it never touches the pearl that was written.
"""

import asyncio
import uuid
from functools import lru_cache
from typing import Callable, List, Optional, Set

from sqlalchemy.ext.asyncio import AsyncSession

from pearls.ai.embeddings import EmbeddingService, get_embedding_service
from pearls.kernel.store.pearls import PearlStore
from pearls.logging_config import get_logger

logger = get_logger(__name__)


class EmbeddingEnricher:
    """Schedules and runs background embedding tasks."""

    def __init__(
        self,
        service: EmbeddingService,
        session_factory: Optional[Callable[[], AsyncSession]] = None,
    ):
        self.service = service
        self._session_factory = session_factory
        # Strong references so pending tasks are not garbage collected
        self._tasks: Set[asyncio.Task] = set()

    @property
    def session_factory(self) -> Callable[[], AsyncSession]:
        if self._session_factory is None:
            from pearls.database import async_session_maker

            self._session_factory = async_session_maker
        return self._session_factory

    @property
    def enabled(self) -> bool:
        return self.service.available

    def schedule(self, pearl_id: uuid.UUID, text: str) -> Optional[asyncio.Task]:
        """Start embedding in the background. No-op when embeddings are disabled."""
        if not self.enabled:
            return None
        task = asyncio.create_task(self.enrich(pearl_id, text))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def enrich(self, pearl_id: uuid.UUID, text: str) -> bool:
        """Embed and store. Returns False on any failure."""
        try:
            embedding = await self.service.embed(text)
            async with self.session_factory() as session:
                await PearlStore(session).set_embedding(pearl_id, embedding)
                await session.commit()
        except Exception:
            logger.exception("Embedding enrichment failed", extra={"pearl_id": str(pearl_id)})
            return False

        logger.debug("Stored embedding", extra={"pearl_id": str(pearl_id)})
        return True

    async def backfill(self, batch_size: int = 50) -> int:
        """Embed every pearl that has no embedding yet. Returns the number stored."""
        stored = 0
        while True:
            async with self.session_factory() as session:
                store = PearlStore(session)
                pending = await store.missing_embedding(limit=batch_size)
                if not pending:
                    return stored

                texts = [f"{p.title or ''}\n\n{p.content}".strip() for p in pending]
                vectors = await self.service.embed_many(texts)
                for pearl, vector in zip(pending, vectors):
                    await store.set_embedding(pearl.id, vector)
                await session.commit()

            stored += len(pending)
            logger.info("Backfilled embeddings", extra={"count": len(pending), "total": stored})

    async def drain(self) -> None:
        """Wait for in-flight tasks (shutdown and tests)."""
        pending: List[asyncio.Task] = list(self._tasks)
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    def __len__(self) -> int:
        return len(self._tasks)


@lru_cache
def get_enricher() -> EmbeddingEnricher:
    return EmbeddingEnricher(get_embedding_service())
