"""
thread_list and thread_create.
"""

from pearls.kernel.errors import AuthorizationError
from pearls.logging_config import get_logger
from pearls.schemas.thread import (
    ThreadCreateArgs,
    ThreadCreateResult,
    ThreadListArgs,
    ThreadListResult,
    ThreadResponse,
)
from pearls.tools.base import OperationContext, Tool

logger = get_logger(__name__)


async def handle_thread_list(args: ThreadListArgs, ctx: OperationContext) -> ThreadListResult:
    if ctx.identity.is_admin:
        scope = None
    else:
        scope = await ctx.permissions.accessible_thread_ids(ctx.identity)

    threads = await ctx.threads.list_threads(scope, include_public=args.include_public)
    return ThreadListResult(
        count=len(threads),
        threads=[ThreadResponse.from_thread(t) for t in threads],
    )


async def handle_thread_create(args: ThreadCreateArgs, ctx: OperationContext) -> ThreadCreateResult:
    if not ctx.identity.is_admin:
        raise AuthorizationError("Admin access required to create threads")

    thread = await ctx.threads.insert_thread(
        slug=args.slug,
        name=args.name,
        description=args.description,
        is_public=args.is_public,
        created_by=ctx.identity.user_id,
    )
    for grant in args.grant_access:
        await ctx.threads.insert_grant(thread.id, grant.role, grant.permission)

    logger.info(
        "Thread created",
        extra={"slug": thread.slug, "grants": len(args.grant_access)},
    )
    return ThreadCreateResult(
        thread=ThreadResponse.from_thread(thread),
        grants=args.grant_access,
    )


thread_list_tool = Tool(
    name="thread_list",
    description="List threads you can access. Admin sees every thread; others see public and granted threads.",
    args_model=ThreadListArgs,
    handler=handle_thread_list,
)

thread_create_tool = Tool(
    name="thread_create",
    description="Create a new thread with optional initial access grants. Admin only.",
    args_model=ThreadCreateArgs,
    handler=handle_thread_create,
)
