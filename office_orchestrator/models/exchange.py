"""
Request-scoped data types for one chat exchange.

Nothing here outlives a single request except the session id, which the
caller may persist and hand back on the next turn.
"""

import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Literal, Optional

Role = Literal["user", "assistant"]
StepStatus = Literal["success", "error", "pending"]


@dataclass(frozen=True)
class ConversationTurn:
    """A single turn of conversation history."""

    role: Role
    content: str

    def to_message(self) -> dict:
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True)
class ToolDescriptor:
    """A discovered gateway tool, normalized for the model's tool manifest."""

    name: str
    sanitized_name: str
    description: str
    input_schema: dict


@dataclass(frozen=True)
class ToolCallIntent:
    """A tool call proposed by the model (name is the sanitized name)."""

    id: str
    name: str
    arguments: dict


@dataclass(frozen=True)
class ModelReply:
    """Provider-independent model reply."""

    text: str
    tool_calls: list[ToolCallIntent] = field(default_factory=list)
    input_tokens: int = 0
    output_tokens: int = 0


@dataclass
class ToolStep:
    """One tool invocation as shown to the UI and kept for audit."""

    id: str
    tool_name: str
    action: str
    status: StepStatus
    summary: str = ""
    timestamp: int = field(default_factory=lambda: int(time.time() * 1000))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "toolName": self.tool_name,
            "action": self.action,
            "status": self.status,
            "summary": self.summary,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class Persona:
    """Who is speaking: the office agent's name, role and personality."""

    name: str = "Agent"
    role: str = "developer"
    personality: str = "focused"


@dataclass
class ExchangeRequest:
    """Everything the orchestration loop needs for one exchange."""

    persona: Persona
    history: list[ConversationTurn]
    tools_enabled: bool = False
    session: Optional[str] = None
    task_execution: bool = False


@dataclass
class OrchestrationResult:
    """Final payload of an exchange."""

    final_text: str
    tools_used: list[str] = field(default_factory=list)
    tool_steps: list[ToolStep] = field(default_factory=list)
    session: Optional[str] = None
    error: Optional[str] = None
    error_type: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error is not None

    def to_payload(self) -> dict:
        """Serialize in the camelCase shape the office UI consumes."""
        payload: dict[str, Any] = {"response": self.final_text}
        if self.tools_used:
            payload["toolsUsed"] = list(self.tools_used)
        if self.tool_steps:
            payload["toolSteps"] = [step.to_dict() for step in self.tool_steps]
        if self.session:
            payload["sessionId"] = self.session
        return payload


EventType = Literal["status", "tool_call", "tool_result", "done", "error"]


@dataclass(frozen=True)
class StreamEvent:
    """A progress event emitted by the streaming variant of the loop."""

    type: EventType
    data: dict


def new_step_id() -> str:
    """Short random id for tool calls that arrive without one."""
    return uuid.uuid4().hex[:9]

