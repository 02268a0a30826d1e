"""
Tool Executor

Runs one resolved gateway tool and shapes its result for re-injection into
the conversation. Failures are returned as values, never raised.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Optional

from ..models import GatewayConfig
from .gateway import ToolGatewayClient

logger = logging.getLogger(__name__)

RESULT_LIMIT = 3000


@dataclass(frozen=True)
class ToolOutcome:
    """Result of one tool execution: either output text or an error message."""

    tool_name: str
    ok: bool
    output: str = ""
    error: Optional[str] = None

    @classmethod
    def success(cls, tool_name: str, output: str) -> "ToolOutcome":
        return cls(tool_name=tool_name, ok=True, output=output)

    @classmethod
    def failure(cls, tool_name: str, error: str) -> "ToolOutcome":
        return cls(tool_name=tool_name, ok=False, error=error)

    def as_feedback(self) -> str:
        """Text of the synthetic turn that reports this outcome to the model."""
        if self.ok:
            return f"Tool result for {self.tool_name}:\n{self.output}"
        return f"Tool {self.tool_name} failed: {self.error}"


def stringify_result(result: Any, limit: int = RESULT_LIMIT) -> str:
    """Render an arbitrary gateway result as bounded text."""
    if isinstance(result, str):
        text = result
    else:
        text = json.dumps(result, default=str, ensure_ascii=False)
    return text[:limit]


def _error_text(result: Any) -> str:
    """Best-effort message from an ``isError`` tool result."""
    try:
        return str(result["content"][0]["text"])
    except (KeyError, IndexError, TypeError):
        return "tool reported an error"


class ToolExecutor:
    """Executes discovered tools through the gateway's execute tool."""

    def __init__(
        self,
        gateway: ToolGatewayClient,
        gateway_config: GatewayConfig,
        result_limit: int = RESULT_LIMIT,
    ):
        self.gateway = gateway
        self.execute_tool = gateway_config.execute_tool
        self.result_limit = result_limit

    async def execute(
        self, tool_name: str, arguments: dict, session: Optional[str]
    ) -> ToolOutcome:
        """
        Execute a tool by its gateway name.

        Args:
            tool_name: Gateway-native tool slug.
            arguments: Tool arguments.
            session: Current gateway session id.

        Returns:
            ToolOutcome; exceptions from the gateway become failures.
        """
        try:
            result = await self.gateway.call(
                "tools/call",
                {
                    "name": self.execute_tool,
                    "arguments": {
                        "tools": [{"tool_slug": tool_name, "arguments": arguments}],
                        "sync_response_to_workbench": False,
                        "memory": {},
                        "session_id": session,
                    },
                },
            )
        except Exception as e:
            logger.error("Tool '%s' execution failed: %s", tool_name, e)
            error_msg = str(e) or type(e).__name__
            if len(error_msg) > 500:
                error_msg = error_msg[:500] + "..."
            return ToolOutcome.failure(tool_name, error_msg)

        if isinstance(result, dict) and result.get("isError"):
            message = _error_text(result)[:500]
            logger.warning("Tool '%s' reported an error: %s", tool_name, message)
            return ToolOutcome.failure(tool_name, message)

        return ToolOutcome.success(tool_name, stringify_result(result, self.result_limit))
