"""
pearl_correct - flag a pearl as corrected, optionally linking the correction.
"""

from pearls.kernel.errors import AuthorizationError, InvalidInputError, NotFoundError
from pearls.kernel.models.thread import Permission
from pearls.schemas.pearl import CorrectedPearlRef, PearlCorrectArgs, PearlCorrectResult
from pearls.tools.base import OperationContext, Tool


async def handle_pearl_correct(args: PearlCorrectArgs, ctx: OperationContext) -> PearlCorrectResult:
    if ctx.identity.is_anonymous:
        raise AuthorizationError("Authentication required to correct pearls")

    pearl = await ctx.pearls.get(args.pearl_id)
    if pearl is None:
        raise NotFoundError(f"Pearl {args.pearl_id} not found")
    if not await ctx.permissions.can_access(pearl.thread_id, ctx.identity, Permission.WRITE):
        raise AuthorizationError("No write access to the thread of this pearl")

    correction = None
    if args.correction_id is not None:
        if args.correction_id == args.pearl_id:
            raise InvalidInputError("A pearl cannot be its own correction")
        correction = await ctx.pearls.get(args.correction_id)
        if correction is None:
            raise NotFoundError(f"Correction pearl {args.correction_id} not found")
        # The correction's back-reference is written, so its thread needs write too
        if not await ctx.permissions.can_access(correction.thread_id, ctx.identity, Permission.WRITE):
            raise AuthorizationError("No write access to the thread of the correction pearl")

    await ctx.pearls.mark_corrected(pearl, correction, args.reason)

    message = "Pearl marked as corrected"
    if correction is not None:
        message += f" with correction {correction.id}"

    return PearlCorrectResult(
        pearl=CorrectedPearlRef(
            id=pearl.id,
            status=pearl.status,
            correction_id=correction.id if correction is not None else None,
        ),
        message=message,
    )


pearl_correct_tool = Tool(
    name="pearl_correct",
    description=(
        "Mark a pearl as corrected and optionally link the pearl containing the "
        "correction. Use when a pearl contains errors future readers should know about."
    ),
    args_model=PearlCorrectArgs,
    handler=handle_pearl_correct,
)
