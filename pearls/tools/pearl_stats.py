"""
pearl_stats - corpus statistics over the caller's readable threads.
"""

from pearls.schemas.pearl import DateRange, PearlStatsArgs, PearlStatsResult
from pearls.tools.base import OperationContext, Tool


async def handle_pearl_stats(args: PearlStatsArgs, ctx: OperationContext) -> PearlStatsResult:
    accessible = await ctx.permissions.accessible_thread_ids(ctx.identity)
    scope = None if ctx.identity.is_admin else accessible
    stats = await ctx.pearls.stats(scope)

    return PearlStatsResult(
        total_pearls=stats["total"],
        total_threads=await ctx.threads.count(),
        accessible_threads=len(accessible),
        unique_creators=stats["unique_creators"],
        date_range=DateRange(earliest=stats["earliest"], latest=stats["latest"]),
        pearls_by_type=stats["by_type"],
        pearls_by_thread=stats["by_thread"],
    )


pearl_stats_tool = Tool(
    name="pearl_stats",
    description=(
        "Get statistics to orient yourself to the pearl corpus: counts, date "
        "range, and breakdowns by type and thread."
    ),
    args_model=PearlStatsArgs,
    handler=handle_pearl_stats,
)
