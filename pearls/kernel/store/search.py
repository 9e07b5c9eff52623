"""
Full-text search backends.

PostgreSQL gets native `ts_rank`/`ts_headline`; every other dialect falls back
to term matching ranked in Python.
"""

import re
import uuid
from dataclasses import dataclass
from typing import Collection, List, Optional, Protocol

from sqlalchemy import Text, and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from pearls.kernel.models.pearl import Pearl

SNIPPET_RADIUS = 120
CANDIDATE_LIMIT = 500

_TERM_RE = re.compile(r"\w+", re.UNICODE)


@dataclass
class SearchHit:
    pearl: Pearl
    snippet: str
    rank: float


class SearchBackend(Protocol):
    async def search(
        self,
        session: AsyncSession,
        query: str,
        thread_ids: Optional[Collection[uuid.UUID]],
        limit: int,
    ) -> List[SearchHit]:
        ...


def _document():
    return func.coalesce(Pearl.title, "") + " " + Pearl.content


class PostgresFullTextSearch:
    """`plainto_tsquery` over title and content, english configuration."""

    async def search(self, session, query, thread_ids, limit):
        tsquery = func.plainto_tsquery("english", query)
        vector = func.to_tsvector("english", _document())
        rank = func.ts_rank(vector, tsquery).label("rank")
        snippet = func.ts_headline(
            "english", Pearl.content, tsquery, "MaxWords=50, MinWords=20"
        ).label("snippet")

        stmt = select(Pearl, snippet, rank).where(vector.op("@@")(tsquery))
        if thread_ids is not None:
            stmt = stmt.where(Pearl.thread_id.in_(list(thread_ids)))
        stmt = stmt.order_by(rank.desc()).limit(limit)

        result = await session.execute(stmt)
        return [
            SearchHit(pearl=pearl, snippet=row_snippet, rank=float(row_rank))
            for pearl, row_snippet, row_rank in result.all()
        ]


class TermMatchSearch:
    """
    Case-insensitive term matching for databases without a text search engine.

    A pearl matches when it contains every query term. Rank is the number of
    term occurrences normalised by document length.
    """

    async def search(self, session, query, thread_ids, limit):
        terms = [t.lower() for t in _TERM_RE.findall(query)]
        if not terms:
            return []

        document = func.lower(_document(), type_=Text)
        stmt = select(Pearl).where(and_(*[document.contains(t) for t in terms]))
        if thread_ids is not None:
            stmt = stmt.where(Pearl.thread_id.in_(list(thread_ids)))
        stmt = stmt.order_by(Pearl.created_at.desc()).limit(CANDIDATE_LIMIT)

        result = await session.execute(stmt)
        hits = []
        for pearl in result.scalars().all():
            text = f"{pearl.title or ''} {pearl.content}".lower()
            occurrences = sum(text.count(t) for t in terms)
            words = max(len(_TERM_RE.findall(text)), 1)
            hits.append(
                SearchHit(
                    pearl=pearl,
                    snippet=make_snippet(pearl.content, terms),
                    rank=occurrences / words,
                )
            )

        # sort is stable, so equal ranks keep newest-first order
        hits.sort(key=lambda hit: hit.rank, reverse=True)
        return hits[:limit]


def make_snippet(content: str, terms: List[str]) -> str:
    """Window of text around the first matched term."""
    lowered = content.lower()
    positions = [lowered.find(t) for t in terms if lowered.find(t) >= 0]
    if not positions:
        return content[: SNIPPET_RADIUS * 2]

    first = min(positions)
    start = max(first - SNIPPET_RADIUS, 0)
    end = min(first + SNIPPET_RADIUS, len(content))
    snippet = content[start:end].strip()
    if start > 0:
        snippet = "..." + snippet
    if end < len(content):
        snippet = snippet + "..."
    return snippet


def backend_for(dialect_name: str) -> SearchBackend:
    if dialect_name == "postgresql":
        return PostgresFullTextSearch()
    return TermMatchSearch()
