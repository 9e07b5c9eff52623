"""
pearl_search_similar - semantic search by embedding similarity.
"""

from pearls.ai.embeddings import rank_by_similarity
from pearls.kernel.models.base import as_utc
from pearls.schemas.pearl import (
    PearlSearchSimilarArgs,
    PearlSearchSimilarResult,
    SimilarResultItem,
)
from pearls.tools.base import OperationContext, Tool

PREVIEW_CHARS = 500


def preview(content: str) -> str:
    if len(content) <= PREVIEW_CHARS:
        return content
    return content[:PREVIEW_CHARS] + "..."


async def handle_pearl_search_similar(
    args: PearlSearchSimilarArgs,
    ctx: OperationContext,
) -> PearlSearchSimilarResult:
    if not ctx.embeddings.available:
        return PearlSearchSimilarResult(
            query=args.query,
            error="Vector search unavailable",
            message="OPENAI_API_KEY not configured. Use pearl_search for keyword-based search instead.",
        )

    scope = await ctx.read_scope(args.thread)
    if scope is not None and not scope:
        return PearlSearchSimilarResult(query=args.query)

    candidates = await ctx.pearls.embedded(scope)
    if not candidates:
        return PearlSearchSimilarResult(query=args.query)

    query_vector = await ctx.embeddings.embed(args.query)
    ranked = rank_by_similarity(query_vector, candidates, args.limit)
    slugs = await ctx.slugs_by_id(pearl.thread_id for pearl, _ in ranked)

    return PearlSearchSimilarResult(
        count=len(ranked),
        query=args.query,
        results=[
            SimilarResultItem(
                id=pearl.id,
                thread=slugs.get(pearl.thread_id),
                title=pearl.title,
                content=preview(pearl.content),
                similarity=round(score, 4),
                pearl_type=pearl.pearl_type,
                authorship_type=pearl.authorship_type,
                created_at=as_utc(pearl.created_at),
                created_by=pearl.created_by,
            )
            for pearl, score in ranked
        ],
    )


pearl_search_similar_tool = Tool(
    name="pearl_search_similar",
    description=(
        "Find semantically similar pearls using embeddings. Finds related "
        "content even when it uses different vocabulary."
    ),
    args_model=PearlSearchSimilarArgs,
    handler=handle_pearl_search_similar,
)
