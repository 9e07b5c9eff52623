"""
MCP endpoint: stateless JSON-RPC 2.0 over HTTP POST.

One message per request; the identity is resolved from that request's
bearer credential.
"""

import json
from typing import Annotated, Any, Dict, Optional, Union

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse
from mcp.types import (
    INVALID_PARAMS,
    INVALID_REQUEST,
    LATEST_PROTOCOL_VERSION,
    METHOD_NOT_FOUND,
    PARSE_ERROR,
    Implementation,
    InitializeResult,
    ListToolsResult,
    ServerCapabilities,
    ToolsCapability,
)
from pydantic import BaseModel

from pearls.ai.embeddings import EmbeddingService, get_embedding_service
from pearls.ai.enrichment import EmbeddingEnricher, get_enricher
from pearls.api.deps import AppSettings, CurrentIdentity, DbSession
from pearls.logging_config import get_logger
from pearls.tools.base import OperationContext
from pearls.tools.dispatcher import OperationDispatcher, get_dispatcher

logger = get_logger(__name__)

router = APIRouter()

SUPPORTED_PROTOCOL_VERSIONS = (LATEST_PROTOCOL_VERSION, "2025-03-26", "2024-11-05")

Dispatcher = Annotated[OperationDispatcher, Depends(get_dispatcher)]
Embeddings = Annotated[EmbeddingService, Depends(get_embedding_service)]
Enricher = Annotated[EmbeddingEnricher, Depends(get_enricher)]

RequestId = Optional[Union[str, int]]


def rpc_result(message_id: RequestId, result: Union[BaseModel, Dict[str, Any]]) -> JSONResponse:
    if isinstance(result, BaseModel):
        result = result.model_dump(mode="json", by_alias=True, exclude_none=True)
    return JSONResponse({"jsonrpc": "2.0", "id": message_id, "result": result})


def rpc_error(
    message_id: RequestId,
    code: int,
    message: str,
    status_code: int = status.HTTP_200_OK,
) -> JSONResponse:
    return JSONResponse(
        {"jsonrpc": "2.0", "id": message_id, "error": {"code": code, "message": message}},
        status_code=status_code,
    )


def negotiate_version(requested: Any) -> str:
    if isinstance(requested, str) and requested in SUPPORTED_PROTOCOL_VERSIONS:
        return requested
    return LATEST_PROTOCOL_VERSION


@router.post("/mcp")
async def handle_mcp(
    request: Request,
    db: DbSession,
    identity: CurrentIdentity,
    settings: AppSettings,
    dispatcher: Dispatcher,
    embeddings: Embeddings,
    enricher: Enricher,
):
    """Handle one JSON-RPC message."""
    try:
        body = json.loads(await request.body())
    except ValueError:
        return rpc_error(None, PARSE_ERROR, "Parse error", status.HTTP_400_BAD_REQUEST)

    if (
        not isinstance(body, dict)
        or body.get("jsonrpc") != "2.0"
        or not isinstance(body.get("method"), str)
    ):
        message_id = body.get("id") if isinstance(body, dict) else None
        return rpc_error(message_id, INVALID_REQUEST, "Invalid request", status.HTTP_400_BAD_REQUEST)

    method = body["method"]
    message_id = body.get("id")
    params = body.get("params") or {}
    if not isinstance(params, dict):
        return rpc_error(message_id, INVALID_PARAMS, "params must be an object")

    if method.startswith("notifications/"):
        return Response(status_code=status.HTTP_202_ACCEPTED)

    if method == "initialize":
        return rpc_result(
            message_id,
            InitializeResult(
                protocolVersion=negotiate_version(params.get("protocolVersion")),
                capabilities=ServerCapabilities(tools=ToolsCapability(listChanged=False)),
                serverInfo=Implementation(name="pearls", version=settings.version),
            ),
        )

    if method == "ping":
        return rpc_result(message_id, {})

    if method == "tools/list":
        return rpc_result(message_id, ListToolsResult(tools=dispatcher.list_tools()))

    if method == "tools/call":
        name = params.get("name")
        if not isinstance(name, str) or not name:
            return rpc_error(message_id, INVALID_PARAMS, "params.name is required")

        ctx = OperationContext(
            identity=identity,
            session=db,
            settings=settings,
            embeddings=embeddings,
            enricher=enricher,
        )
        result = await dispatcher.dispatch(name, params.get("arguments"), ctx)
        return rpc_result(message_id, result)

    logger.info("Unknown JSON-RPC method", extra={"rpc_method": method})
    return rpc_error(message_id, METHOD_NOT_FOUND, f"Method not found: {method}")


@router.get("/mcp")
async def mcp_stream_not_supported():
    """No server-initiated stream; the endpoint is request/response only."""
    return rpc_error(
        None,
        METHOD_NOT_FOUND,
        "Method not allowed. Use POST for MCP requests.",
        status.HTTP_405_METHOD_NOT_ALLOWED,
    )


@router.delete("/mcp")
async def end_session():
    """Sessions are stateless; nothing to tear down."""
    return {"success": True}
