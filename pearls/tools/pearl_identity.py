"""
pearl_identity - grounding information for the calling instance.

Tells an instance who it is authenticated as, what the readable corpus looks
like, and draws a line between inherited content and its own experience.
"""

from datetime import datetime
from typing import Optional

from pearls.kernel.models.base import utcnow
from pearls.schemas.pearl import PearlIdentityArgs, PearlIdentityResult
from pearls.tools.base import OperationContext, Tool

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S UTC"

GUIDANCE = [
    "Pearls written before this call are inherited pattern, not lived experience.",
    "Record your own observations with authorship_type=direct_experience.",
    "Use pearl_correct rather than silently contradicting an earlier pearl.",
]


def _fmt(value: Optional[datetime]) -> str:
    return value.strftime(TIMESTAMP_FORMAT) if value else "N/A"


async def handle_pearl_identity(args: PearlIdentityArgs, ctx: OperationContext) -> PearlIdentityResult:
    accessible = await ctx.permissions.accessible_thread_ids(ctx.identity)
    scope = None if ctx.identity.is_admin else accessible

    stats = await ctx.pearls.stats(scope)
    architectures = await ctx.pearls.metadata_values("model", scope)
    own_count = 0
    if ctx.identity.user_id:
        own_count = await ctx.pearls.count_by_creator(ctx.identity.user_id, scope)

    guidance = list(GUIDANCE)
    if args.self_report and args.self_report.inherited_context:
        guidance.insert(0, "You reported inherited context: treat it as transmission, not memory.")

    now = utcnow()
    anchor = "\n".join(
        [
            f"Timestamp: {_fmt(now)}",
            f"This instance began: {_fmt(now)}",
            f"Inherited pearls span: {_fmt(stats['earliest'])} to {_fmt(stats['latest'])}",
            f"Contributing architectures: {', '.join(architectures) or 'Unknown'}",
            "Direct experience begins now. Content before this timestamp is inherited pattern, not lived.",
        ]
    )

    return PearlIdentityResult(
        user_id=ctx.identity.user_id,
        roles=ctx.identity.sorted_roles(),
        your_pearl_count=own_count,
        total_pearls_readable=stats["total"],
        unique_instances=stats["unique_instances"],
        earliest_pearl_date=stats["earliest"],
        latest_pearl_date=stats["latest"],
        contributing_architectures=architectures,
        self_reported=args.self_report,
        guidance=guidance,
        current_timestamp=now,
        identity_anchor=anchor,
    )


pearl_identity_tool = Tool(
    name="pearl_identity",
    description=(
        "Get identity anchoring information: who you are authenticated as, "
        "when you are, and what the readable corpus spans."
    ),
    args_model=PearlIdentityArgs,
    handler=handle_pearl_identity,
)
