"""
Tools - the closed set of RPC operations and their dispatcher.
"""

from pearls.tools.base import OperationContext, Tool
from pearls.tools.dispatcher import (
    DEFAULT_TOOLS,
    OperationDispatcher,
    error_result,
    get_dispatcher,
    success_result,
)

__all__ = [
    "DEFAULT_TOOLS",
    "OperationContext",
    "OperationDispatcher",
    "Tool",
    "error_result",
    "get_dispatcher",
    "success_result",
]
