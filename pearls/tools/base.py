"""
Shared pieces for tool handlers: the per-call context and the Tool descriptor.
"""

import uuid
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Set, Type

from mcp.types import Tool as ToolDescriptor
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from pearls.ai.embeddings import EmbeddingService
from pearls.ai.enrichment import EmbeddingEnricher
from pearls.config import Settings
from pearls.kernel.identity.identity import Identity
from pearls.kernel.models.pearl import Pearl
from pearls.kernel.models.thread import Permission
from pearls.kernel.permissions.permission_service import PermissionService
from pearls.kernel.store.pearls import PearlStore
from pearls.kernel.store.threads import ThreadStore
from pearls.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class OperationContext:
    """
    Everything a handler may touch during one call.

    Work registered with `after_commit` runs only once the dispatcher has
    committed the handler's transaction.
    """

    identity: Identity
    session: AsyncSession
    settings: Settings
    embeddings: EmbeddingService
    enricher: Optional[EmbeddingEnricher] = None
    _after_commit: List[Callable[[], Any]] = field(default_factory=list)

    @property
    def permissions(self) -> PermissionService:
        return PermissionService(self.session)

    @property
    def threads(self) -> ThreadStore:
        return ThreadStore(self.session)

    @property
    def pearls(self) -> PearlStore:
        return PearlStore(self.session)

    def after_commit(self, callback: Callable[[], Any]) -> None:
        self._after_commit.append(callback)

    def discard_after_commit(self) -> None:
        self._after_commit.clear()

    def run_after_commit(self) -> None:
        callbacks, self._after_commit = self._after_commit, []
        for callback in callbacks:
            try:
                callback()
            except Exception:
                logger.exception("After-commit callback failed")

    def schedule_enrichment(self, pearl: Pearl) -> None:
        if self.enricher is None or not self.enricher.enabled:
            return
        pearl_id = pearl.id
        text = f"{pearl.title or ''}\n\n{pearl.content}".strip()
        self.after_commit(lambda: self.enricher.schedule(pearl_id, text))

    async def read_scope(self, slug: Optional[str] = None) -> Optional[Set[uuid.UUID]]:
        """
        Thread ids a read may cover.

        None means unrestricted (admin without a thread filter). An unknown
        or unreadable slug gives an empty set rather than an error.
        """
        if slug:
            thread = await self.threads.find_by_slug(slug)
            if thread is None:
                return set()
            if not await self.permissions.can_access(thread.id, self.identity, Permission.READ):
                return set()
            return {thread.id}

        if self.identity.is_admin:
            return None
        return await self.permissions.accessible_thread_ids(self.identity)

    async def slugs_by_id(self, thread_ids: Iterable[uuid.UUID]) -> Dict[uuid.UUID, str]:
        ids = set(thread_ids)
        if not ids:
            return {}
        threads = await self.threads.list_threads(ids)
        return {thread.id: thread.slug for thread in threads}


Handler = Callable[[Any, OperationContext], Awaitable[BaseModel]]


@dataclass(frozen=True)
class Tool:
    """A named operation: argument model plus handler."""

    name: str
    description: str
    args_model: Type[BaseModel]
    handler: Handler

    def parse(self, raw_args: Any) -> BaseModel:
        return self.args_model.model_validate(raw_args if raw_args is not None else {})

    def input_schema(self) -> Dict[str, Any]:
        schema = self.args_model.model_json_schema()
        schema.pop("title", None)
        schema.setdefault("properties", {})
        return schema

    def descriptor(self) -> ToolDescriptor:
        return ToolDescriptor(
            name=self.name,
            description=self.description,
            inputSchema=self.input_schema(),
        )
