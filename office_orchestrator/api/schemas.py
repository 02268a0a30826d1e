"""
Pydantic schemas for the office API.

Field names follow the camelCase JSON the office UI sends and expects
(``agentName``, ``enableTools``, ``toolSteps`` ...). Python code uses the
snake_case attribute names.
"""

from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..models import ConversationTurn, ExchangeRequest, Persona
from ..orchestration import normalize_history


class ContentPart(BaseModel):
    """A single part of multimodal content."""

    type: str = Field(..., description="The type of content part")
    text: Optional[str] = Field(default=None, description="Text content (for type='text')")


class ChatMessage(BaseModel):
    """A single message in the agent conversation."""

    role: str = Field(default="user", description="user, or anything else for the agent")
    content: Union[str, list[ContentPart], None] = Field(
        default="", description="Message text (string or list of content parts)"
    )

    @field_validator("content", mode="before")
    @classmethod
    def normalize_content(cls, v):
        """Accept numbers and other scalars the UI may send as content."""
        if v is None or isinstance(v, (str, list)):
            return v
        return str(v)

    def get_text_content(self) -> str:
        """Extract text content regardless of format."""
        if self.content is None:
            return ""
        if isinstance(self.content, str):
            return self.content
        return "\n".join(part.text for part in self.content if part.type == "text" and part.text)


class ChatRequest(BaseModel):
    """Request body for /chat and /chat/stream."""

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "agentName": "Nova",
                "role": "researcher",
                "personality": "chatty",
                "messages": [{"role": "user", "content": "Find the latest AI news"}],
                "enableTools": True,
            }
        },
    )

    agent_name: str = Field(default="Agent", alias="agentName")
    role: str = Field(default="developer", description="Persona role")
    personality: str = Field(default="focused", description="Persona personality")
    messages: list[ChatMessage] = Field(default_factory=list)
    enable_tools: bool = Field(default=False, alias="enableTools")
    session_id: Optional[str] = Field(default=None, alias="sessionId")
    is_task_execution: bool = Field(default=False, alias="isTaskExecution")

    def to_exchange_request(self) -> ExchangeRequest:
        history: list[ConversationTurn] = normalize_history(
            {"role": message.role, "content": message.get_text_content()}
            for message in self.messages
        )
        return ExchangeRequest(
            persona=Persona(
                name=self.agent_name, role=self.role, personality=self.personality
            ),
            history=history,
            tools_enabled=self.enable_tools,
            session=self.session_id,
            task_execution=self.is_task_execution,
        )


class ToolStepSchema(BaseModel):
    """One tool invocation as displayed in the activity log."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    tool_name: str = Field(..., alias="toolName")
    action: str
    status: Literal["success", "error", "pending"]
    summary: str = ""
    timestamp: int


class ChatResponse(BaseModel):
    """Response body for /chat."""

    model_config = ConfigDict(populate_by_name=True)

    response: str
    tools_used: Optional[list[str]] = Field(default=None, alias="toolsUsed")
    tool_steps: Optional[list[ToolStepSchema]] = Field(default=None, alias="toolSteps")
    session_id: Optional[str] = Field(default=None, alias="sessionId")


class ErrorResponse(BaseModel):
    """Error body for a failed chat exchange."""

    error: str
    response: str


class McpRequest(BaseModel):
    """Raw JSON-RPC call forwarded to the tool gateway."""

    method: str
    params: dict[str, Any] = Field(default_factory=dict)
    id: Optional[Union[int, str]] = None


class JsonRpcError(BaseModel):
    code: int
    message: str


class McpResponse(BaseModel):
    """JSON-RPC response envelope returned by /mcp."""

    jsonrpc: Literal["2.0"] = "2.0"
    id: Optional[Union[int, str]] = None
    result: Any = None
    error: Optional[JsonRpcError] = None


class HealthResponse(BaseModel):
    """Response body for /health endpoint."""

    status: Literal["ok", "unhealthy"]
    gateway: str
    model: str
    runtime: str
