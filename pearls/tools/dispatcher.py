"""
Operation dispatcher: name + raw arguments -> validated handler call -> envelope.

This is the one place handler failures become error envelopes. Nothing raised
by a handler reaches the transport.
"""

import json
from typing import Any, Dict, Iterable, List, Optional

from fastapi.encoders import jsonable_encoder
from mcp.types import CallToolResult, TextContent, Tool as ToolDescriptor
from pydantic import BaseModel, ValidationError

from pearls.kernel.errors import PearlsError
from pearls.logging_config import get_logger
from pearls.tools.base import OperationContext, Tool
from pearls.tools.pearl_correct import pearl_correct_tool
from pearls.tools.pearl_create import pearl_create_tool
from pearls.tools.pearl_handshake import pearl_handshake_tool
from pearls.tools.pearl_identity import pearl_identity_tool
from pearls.tools.pearl_recent import pearl_recent_tool
from pearls.tools.pearl_search import pearl_search_tool
from pearls.tools.pearl_search_similar import pearl_search_similar_tool
from pearls.tools.pearl_stats import pearl_stats_tool
from pearls.tools.threads import thread_create_tool, thread_list_tool

logger = get_logger(__name__)

DEFAULT_TOOLS = (
    pearl_create_tool,
    pearl_search_tool,
    pearl_search_similar_tool,
    pearl_recent_tool,
    pearl_handshake_tool,
    pearl_correct_tool,
    pearl_stats_tool,
    pearl_identity_tool,
    thread_list_tool,
    thread_create_tool,
)


def format_validation_error(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ())) or "arguments"
        parts.append(f"{location}: {error.get('msg', 'invalid value')}")
    return "Invalid arguments: " + "; ".join(parts)


def success_result(value: BaseModel) -> CallToolResult:
    text = json.dumps(jsonable_encoder(value), indent=2)
    return CallToolResult(content=[TextContent(type="text", text=text)])


def error_result(message: str) -> CallToolResult:
    text = json.dumps({"error": True, "message": message}, indent=2)
    return CallToolResult(content=[TextContent(type="text", text=text)], isError=True)


class OperationDispatcher:
    """Closed registry of tools plus the envelope policy around them."""

    def __init__(self, tools: Iterable[Tool] = DEFAULT_TOOLS):
        self._tools: Dict[str, Tool] = {}
        for tool in tools:
            if tool.name in self._tools:
                raise ValueError(f"Duplicate tool name: {tool.name}")
            self._tools[tool.name] = tool

    @property
    def names(self) -> List[str]:
        return list(self._tools)

    def get(self, name: str) -> Optional[Tool]:
        return self._tools.get(name)

    def list_tools(self) -> List[ToolDescriptor]:
        return [tool.descriptor() for tool in self._tools.values()]

    async def dispatch(self, name: str, raw_args: Any, ctx: OperationContext) -> CallToolResult:
        """
        Run one operation inside the context's transaction.

        Success commits and then runs after-commit work. Any failure rolls
        back, drops after-commit work and returns an error envelope.
        """
        tool = self._tools.get(name)
        if tool is None:
            return error_result(f"Unknown tool: {name}")

        try:
            args = tool.parse(raw_args)
            result = await tool.handler(args, ctx)
            await ctx.session.commit()
        except ValidationError as exc:
            await self._abort(ctx)
            return error_result(format_validation_error(exc))
        except PearlsError as exc:
            await self._abort(ctx)
            logger.info(
                "Tool rejected",
                extra={"tool": name, "error_type": type(exc).__name__, "reason": exc.message},
            )
            return error_result(exc.message)
        except Exception as exc:
            await self._abort(ctx)
            logger.exception("Tool failed", extra={"tool": name})
            message = str(exc) if ctx.settings.debug else "Internal server error"
            return error_result(message)

        ctx.run_after_commit()
        logger.debug("Tool completed", extra={"tool": name})
        return success_result(result)

    @staticmethod
    async def _abort(ctx: OperationContext) -> None:
        ctx.discard_after_commit()
        await ctx.session.rollback()


_dispatcher: Optional[OperationDispatcher] = None


def get_dispatcher() -> OperationDispatcher:
    """Get or create the default dispatcher."""
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = OperationDispatcher()
    return _dispatcher
