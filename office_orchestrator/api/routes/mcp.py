"""
Raw tool gateway passthrough.

Forwards a JSON-RPC call from the office UI to the tool gateway unchanged and
wraps the result in a JSON-RPC response.
"""

import logging
import time
from typing import AsyncIterator

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ..schemas import JsonRpcError, McpRequest, McpResponse
from ...config import config
from ...errors import OrchestratorError
from ...tools import ToolGatewayClient

logger = logging.getLogger(__name__)

router = APIRouter()

INTERNAL_ERROR = -32603


async def get_gateway() -> AsyncIterator[ToolGatewayClient]:
    """Per-request gateway client (overridden in tests)."""
    async with ToolGatewayClient(config.gateway) as gateway:
        yield gateway


@router.post(
    "/mcp",
    response_model=McpResponse,
    response_model_exclude_none=True,
    summary="Tool gateway passthrough",
    description="Forward a JSON-RPC request to the tool gateway.",
)
async def mcp_proxy(
    request: McpRequest,
    gateway: ToolGatewayClient = Depends(get_gateway),
):
    """Forward one JSON-RPC call."""
    logger.info(f"MCP proxy: {request.method} {request.params.get('name', '')}")
    try:
        result = await gateway.call(request.method, request.params)
    except OrchestratorError as e:
        logger.error(f"MCP proxy error: {e}")
        body = McpResponse(
            id=request.id, error=JsonRpcError(code=INTERNAL_ERROR, message=str(e))
        )
        return JSONResponse(status_code=500, content=body.model_dump(exclude_none=True))

    return McpResponse(id=request.id or int(time.time() * 1000), result=result)
