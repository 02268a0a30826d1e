"""
Configuration models for the office orchestrator.

Defines dataclasses for the unified YAML configuration file.
"""

from dataclasses import dataclass, field


@dataclass
class ModelConfig:
    """Configuration for the hosted language model.

    ``provider`` selects the backend: ``openai`` for OpenAI-compatible chat
    completions, ``messages`` for an Anthropic-style messages API, and
    ``bedrock`` for AWS Bedrock ``InvokeModel``. The ``aws_*`` fields apply
    to Bedrock only; empty credentials fall back to the default AWS chain.
    """
    provider: str = "openai"
    base_url: str = "https://api.openai.com/v1"
    api_key: str = ""
    model: str = "gpt-4o-mini"
    max_tokens: int = 4096
    temperature: float = 0.7
    timeout: float = 120.0
    api_version: str = "2023-06-01"
    region: str = "us-east-1"
    aws_access_key_id: str = ""
    aws_secret_access_key: str = ""


@dataclass
class GatewayConfig:
    """Configuration for the remote tool gateway."""
    url: str = "https://rube.app/mcp"
    token: str = ""
    timeout: float = 60.0
    search_tool: str = "RUBE_SEARCH_TOOLS"
    execute_tool: str = "RUBE_MULTI_EXECUTE_TOOL"


@dataclass
class OrchestrationConfig:
    """Bounds applied to every exchange."""
    max_iterations: int = 5
    exchange_timeout: float = 300.0
    description_limit: int = 500
    result_limit: int = 3000
    summary_limit: int = 200


@dataclass
class ServerConfig:
    """Configuration for the FastAPI server."""
    host: str = "0.0.0.0"
    port: int = 3001
    workers: int = 1
    reload: bool = False
    cors_origins: list[str] = field(
        default_factory=lambda: [
            "http://localhost:5173",
            "http://localhost:5174",
            "http://localhost:5175",
            "http://localhost:3000",
        ]
    )


@dataclass
class LoggingConfig:
    """Configuration for logging."""
    level: str = "INFO"


@dataclass
class LangfuseConfig:
    """Configuration for Langfuse observability.

    Tracing auto-enables when both public_key and secret_key are provided.
    """
    public_key: str = ""
    secret_key: str = ""
    host: str = ""
    debug: bool = False

    @property
    def is_configured(self) -> bool:
        """Check if Langfuse is configured (both keys present)."""
        return bool(self.public_key and self.secret_key)


@dataclass
class AppConfig:
    """
    Unified application configuration container.

    Holds all configuration sections loaded from config/config.yaml.
    """
    version: str = "1.0"
    model: ModelConfig = field(default_factory=ModelConfig)
    gateway: GatewayConfig = field(default_factory=GatewayConfig)
    orchestration: OrchestrationConfig = field(default_factory=OrchestrationConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    langfuse: LangfuseConfig = field(default_factory=LangfuseConfig)

    @property
    def log_level(self) -> str:
        """Shortcut for logging.level."""
        return self.logging.level
