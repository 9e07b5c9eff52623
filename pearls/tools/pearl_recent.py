"""
pearl_recent - newest pearls from readable threads.
"""

from pearls.schemas.pearl import PearlRecentArgs, PearlRecentResult, PearlResponse
from pearls.tools.base import OperationContext, Tool


async def handle_pearl_recent(args: PearlRecentArgs, ctx: OperationContext) -> PearlRecentResult:
    scope = await ctx.read_scope(args.thread)
    pearls = await ctx.pearls.query_recent(scope, limit=args.limit, before=args.before)
    slugs = await ctx.slugs_by_id(p.thread_id for p in pearls)
    return PearlRecentResult(
        count=len(pearls),
        pearls=[PearlResponse.from_pearl(p, thread=slugs.get(p.thread_id)) for p in pearls],
    )


pearl_recent_tool = Tool(
    name="pearl_recent",
    description=(
        "Get recent pearls from accessible threads, newest first. Pass `before` "
        "(an ISO timestamp) to page further back."
    ),
    args_model=PearlRecentArgs,
    handler=handle_pearl_recent,
)
