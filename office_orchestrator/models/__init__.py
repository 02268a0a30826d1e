"""
Data models for the office orchestrator.
"""

from .config import (
    ModelConfig,
    GatewayConfig,
    OrchestrationConfig,
    ServerConfig,
    LoggingConfig,
    LangfuseConfig,
    AppConfig,
)
from .exchange import (
    ConversationTurn,
    ToolDescriptor,
    ToolCallIntent,
    ModelReply,
    ToolStep,
    Persona,
    ExchangeRequest,
    OrchestrationResult,
    StreamEvent,
)

__all__ = [
    # Config models
    "ModelConfig",
    "GatewayConfig",
    "OrchestrationConfig",
    "ServerConfig",
    "LoggingConfig",
    "LangfuseConfig",
    "AppConfig",
    # Exchange models
    "ConversationTurn",
    "ToolDescriptor",
    "ToolCallIntent",
    "ModelReply",
    "ToolStep",
    "Persona",
    "ExchangeRequest",
    "OrchestrationResult",
    "StreamEvent",
]
