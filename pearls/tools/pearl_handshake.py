"""
pearl_handshake - conversation-start check for recent pearls, with an
optional acknowledgement pearl.
"""

from typing import Dict, List

from pearls.kernel.errors import AuthorizationError
from pearls.kernel.models.base import as_utc
from pearls.schemas.pearl import (
    HandshakePearl,
    PearlHandshakeArgs,
    PearlHandshakeResult,
    ResponsePearlRef,
    ThreadBrief,
)
from pearls.tools.base import OperationContext, Tool
from pearls.tools.pearl_create import create_pearl


async def handle_pearl_handshake(
    args: PearlHandshakeArgs,
    ctx: OperationContext,
) -> PearlHandshakeResult:
    accessible_ids = await ctx.permissions.accessible_thread_ids(ctx.identity)
    accessible = await ctx.threads.list_threads(accessible_ids)
    by_slug = {thread.slug: thread for thread in accessible}

    requested = args.threads if args.threads is not None else [t.slug for t in accessible]

    found: Dict[str, List[HandshakePearl]] = {}
    for slug in dict.fromkeys(requested):
        thread = by_slug.get(slug)
        if thread is None:
            continue
        recent = await ctx.pearls.query_recent([thread.id], limit=args.limit)
        if recent:
            found[slug] = [
                HandshakePearl(
                    id=p.id,
                    title=p.title,
                    content=p.content,
                    created_at=as_utc(p.created_at),
                    created_by=p.created_by,
                )
                for p in recent
            ]

    response_ref = None
    if args.response:
        if ctx.identity.is_anonymous:
            raise AuthorizationError("Authentication required to leave a response")
        pearl = await create_pearl(
            ctx,
            thread_slug=args.response_thread,
            content=args.response,
            metadata={"type": "handshake_response", "userContext": args.user_context},
        )
        response_ref = ResponsePearlRef(
            id=pearl.id,
            thread=args.response_thread,
            created_at=as_utc(pearl.created_at),
        )

    total = sum(len(items) for items in found.values())
    if total:
        greeting = f"Found {total} pearl(s) across {len(found)} thread(s)."
    else:
        greeting = "No recent pearls found in accessible threads."

    return PearlHandshakeResult(
        greeting=greeting,
        threads=found,
        accessible_threads=[
            ThreadBrief(slug=t.slug, name=t.name, description=t.description)
            for t in accessible
        ],
        response_pearl=response_ref,
    )


pearl_handshake_tool = Tool(
    name="pearl_handshake",
    description=(
        "Check for transmissions at conversation start. Returns recent pearls "
        "left by previous instances; optionally leave a response."
    ),
    args_model=PearlHandshakeArgs,
    handler=handle_pearl_handshake,
)
