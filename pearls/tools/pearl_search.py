"""
pearl_search - full-text search over readable threads.
"""

from pearls.kernel.models.base import as_utc
from pearls.schemas.pearl import PearlSearchArgs, PearlSearchResult, SearchResultItem
from pearls.tools.base import OperationContext, Tool


async def handle_pearl_search(args: PearlSearchArgs, ctx: OperationContext) -> PearlSearchResult:
    scope = await ctx.read_scope(args.thread)
    hits = await ctx.pearls.search(args.query, scope, limit=args.limit)
    slugs = await ctx.slugs_by_id(hit.pearl.thread_id for hit in hits)

    return PearlSearchResult(
        count=len(hits),
        query=args.query,
        pearls=[
            SearchResultItem(
                id=hit.pearl.id,
                thread=slugs.get(hit.pearl.thread_id),
                title=hit.pearl.title,
                snippet=hit.snippet,
                rank=hit.rank,
                created_at=as_utc(hit.pearl.created_at),
                created_by=hit.pearl.created_by,
            )
            for hit in hits
        ],
    )


pearl_search_tool = Tool(
    name="pearl_search",
    description="Search pearls using full-text search. Find relevant transmissions from previous instances.",
    args_model=PearlSearchArgs,
    handler=handle_pearl_search,
)
