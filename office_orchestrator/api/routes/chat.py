"""
Agent chat endpoints.

/chat runs an exchange to completion and returns the final payload;
/chat/stream reports the same exchange as Server-Sent Events while it runs.
"""

import json
import logging
import uuid
from typing import AsyncIterator

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, StreamingResponse

from ..schemas import ChatRequest, ChatResponse, ErrorResponse
from ...config import config
from ...orchestration import APOLOGY_TEXT
from ...orchestrator import OfficeOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter()


def get_orchestrator() -> OfficeOrchestrator:
    """Build the orchestrator for a request (overridden in tests)."""
    return OfficeOrchestrator(app_config=config)


def format_sse(event: str, data: dict) -> str:
    """Format one Server-Sent Events frame."""
    return f"event: {event}\ndata: {json.dumps(data)}\n\n"


@router.post(
    "/chat",
    response_model=ChatResponse,
    response_model_exclude_none=True,
    responses={
        500: {"model": ErrorResponse, "description": "Exchange failed"},
        504: {"model": ErrorResponse, "description": "Exchange timed out"},
    },
    summary="Chat with an office agent",
    description=(
        "Run one chat exchange for an agent persona. With enableTools the agent "
        "may discover and call gateway tools before answering."
    ),
)
async def chat(
    request: ChatRequest,
    orchestrator: OfficeOrchestrator = Depends(get_orchestrator),
):
    """Process a chat exchange through the orchestration loop."""
    execution_id = f"exec-{uuid.uuid4().hex[:8]}"
    logger.info(
        f"[{execution_id}] Chat: {request.agent_name} ({request.role}/{request.personality}) "
        f"- enableTools: {request.enable_tools}, isTaskExecution: {request.is_task_execution}"
    )

    result = await orchestrator.run(request.to_exchange_request(), execution_id=execution_id)

    if result.failed:
        status_code = 504 if result.error_type == "timeout" else 500
        logger.error(f"[{execution_id}] Chat failed ({status_code}): {result.error}")
        return JSONResponse(
            status_code=status_code,
            content=ErrorResponse(error=result.error, response=APOLOGY_TEXT).model_dump(),
        )

    logger.info(
        f"[{execution_id}] Response length: {len(result.final_text)}, "
        f"tools used: {len(result.tools_used)}, tool steps: {len(result.tool_steps)}"
    )
    return ChatResponse.model_validate(result.to_payload())


async def _event_stream(
    orchestrator: OfficeOrchestrator, request: ChatRequest, execution_id: str
) -> AsyncIterator[str]:
    async for event in orchestrator.stream(
        request.to_exchange_request(), execution_id=execution_id
    ):
        yield format_sse(event.type, event.data)


@router.post(
    "/chat/stream",
    summary="Chat with an office agent (streaming)",
    description=(
        "Same exchange as /chat, reported as Server-Sent Events: status, "
        "tool_call, tool_result, then done or error."
    ),
    response_class=StreamingResponse,
)
async def chat_stream(
    request: ChatRequest,
    orchestrator: OfficeOrchestrator = Depends(get_orchestrator),
) -> StreamingResponse:
    """Stream a chat exchange as Server-Sent Events."""
    execution_id = f"exec-{uuid.uuid4().hex[:8]}"
    logger.info(
        f"[{execution_id}] ChatStream: {request.agent_name} ({request.role}/{request.personality}) "
        f"- enableTools: {request.enable_tools}"
    )
    return StreamingResponse(
        _event_stream(orchestrator, request, execution_id),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )
