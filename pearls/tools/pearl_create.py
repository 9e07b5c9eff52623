"""
pearl_create - write a pearl into a thread.
"""

import uuid
from typing import Any, Dict, Optional

from pearls.kernel.errors import AuthorizationError, NotFoundError
from pearls.kernel.models.pearl import Pearl
from pearls.kernel.models.thread import Permission
from pearls.schemas.pearl import PearlCreateArgs, PearlCreateResult, PearlResponse
from pearls.tools.base import OperationContext, Tool


async def create_pearl(
    ctx: OperationContext,
    thread_slug: str,
    content: str,
    title: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
    in_reply_to: Optional[uuid.UUID] = None,
    instance_id: Optional[str] = None,
    pearl_type: Optional[str] = None,
    authorship_type: Optional[str] = None,
) -> Pearl:
    """
    Insert a pearl after checking write access to its thread.

    Raises:
        AuthorizationError: anonymous caller, or no write grant
        NotFoundError: unknown thread slug
    """
    if ctx.identity.is_anonymous:
        raise AuthorizationError("Authentication required to create pearls")

    thread = await ctx.threads.find_by_slug(thread_slug)
    if thread is None:
        raise NotFoundError(f'Thread "{thread_slug}" not found')

    if not await ctx.permissions.can_access(thread.id, ctx.identity, Permission.WRITE):
        raise AuthorizationError(f'No write access to thread "{thread_slug}"')

    pearl = await ctx.pearls.insert(
        thread_id=thread.id,
        content=content,
        title=title,
        metadata=metadata,
        created_by=ctx.identity.user_id,
        instance_id=instance_id,
        in_reply_to=in_reply_to,
        pearl_type=pearl_type,
        authorship_type=authorship_type,
    )
    ctx.schedule_enrichment(pearl)
    return pearl


async def handle_pearl_create(args: PearlCreateArgs, ctx: OperationContext) -> PearlCreateResult:
    pearl = await create_pearl(
        ctx,
        thread_slug=args.thread,
        content=args.content,
        title=args.title,
        metadata=args.metadata,
        in_reply_to=args.in_reply_to,
        instance_id=args.instance_id,
        pearl_type=args.pearl_type.value if args.pearl_type else None,
        authorship_type=args.authorship_type.value if args.authorship_type else None,
    )
    return PearlCreateResult(pearl=PearlResponse.from_pearl(pearl, thread=args.thread))


pearl_create_tool = Tool(
    name="pearl_create",
    description=(
        "Create a new pearl (transmission) for future instances. Use this to "
        "leave insights, reflections, or context for the next instance."
    ),
    args_model=PearlCreateArgs,
    handler=handle_pearl_create,
)
