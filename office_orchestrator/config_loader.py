"""
Configuration loader for the office orchestrator.

Loads configuration from a YAML file with support for
environment variable interpolation.
"""

import logging
import os
import re
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import load_dotenv

from .models import (
    ModelConfig,
    GatewayConfig,
    OrchestrationConfig,
    ServerConfig,
    LoggingConfig,
    LangfuseConfig,
    AppConfig,
)

logger = logging.getLogger(__name__)

# Default config path relative to project root
DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / "config" / "config.yaml"

# Regex for environment variable interpolation: ${VAR} or ${VAR:-default}
ENV_VAR_PATTERN = re.compile(r"\$\{([^}:]+)(?::-([^}]*))?\}")

SUPPORTED_PROVIDERS = ("openai", "messages", "bedrock")

# Singleton cache for app config
_app_config: Optional[AppConfig] = None


def resolve_env_vars(value: str) -> str:
    """
    Resolve environment variable references in a string.

    Supports ${VAR} and ${VAR:-default} syntax.

    Args:
        value: String potentially containing env var references

    Returns:
        String with env vars resolved
    """

    def replace_match(match: re.Match) -> str:
        var_name = match.group(1)
        default_value = match.group(2) if match.group(2) is not None else ""
        return os.environ.get(var_name, default_value)

    return ENV_VAR_PATTERN.sub(replace_match, value)


def _substitute_env_vars_recursive(data: Any) -> Any:
    """Recursively substitute environment variables in a data structure."""
    if isinstance(data, dict):
        return {k: _substitute_env_vars_recursive(v) for k, v in data.items()}
    elif isinstance(data, list):
        return [_substitute_env_vars_recursive(item) for item in data]
    elif isinstance(data, str):
        return resolve_env_vars(data)
    return data


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return bool(value)


def _parse_model_config(data: dict) -> ModelConfig:
    """Parse model configuration from dict."""
    provider = str(data.get("provider", "openai")).lower()
    if provider not in SUPPORTED_PROVIDERS:
        raise ValueError(
            f"Unknown model provider: {provider} "
            f"(expected one of {', '.join(SUPPORTED_PROVIDERS)})"
        )
    return ModelConfig(
        provider=provider,
        base_url=data.get("base_url", ModelConfig.base_url),
        api_key=data.get("api_key", ""),
        model=data.get("model", ModelConfig.model),
        max_tokens=int(data.get("max_tokens", 4096)),
        temperature=float(data.get("temperature", 0.7)),
        timeout=float(data.get("timeout", 120)),
        api_version=data.get("api_version", ModelConfig.api_version),
        region=data.get("region") or ModelConfig.region,
        aws_access_key_id=data.get("aws_access_key_id", ""),
        aws_secret_access_key=data.get("aws_secret_access_key", ""),
    )


def _parse_gateway_config(data: dict) -> GatewayConfig:
    """Parse tool gateway configuration from dict."""
    return GatewayConfig(
        url=data.get("url", GatewayConfig.url),
        token=data.get("token", ""),
        timeout=float(data.get("timeout", 60)),
        search_tool=data.get("search_tool", GatewayConfig.search_tool),
        execute_tool=data.get("execute_tool", GatewayConfig.execute_tool),
    )


def _parse_orchestration_config(data: dict) -> OrchestrationConfig:
    """Parse orchestration bounds from dict."""
    max_iterations = int(data.get("max_iterations", 5))
    if max_iterations < 1:
        raise ValueError("orchestration.max_iterations must be at least 1")
    return OrchestrationConfig(
        max_iterations=max_iterations,
        exchange_timeout=float(data.get("exchange_timeout", 300)),
        description_limit=int(data.get("description_limit", 500)),
        result_limit=int(data.get("result_limit", 3000)),
        summary_limit=int(data.get("summary_limit", 200)),
    )


def _parse_server_config(data: dict) -> ServerConfig:
    """Parse server configuration from dict."""
    origins = data.get("cors_origins")
    if isinstance(origins, str):
        origins = [o.strip() for o in origins.split(",") if o.strip()]

    server = ServerConfig(
        host=data.get("host", "0.0.0.0"),
        port=int(data.get("port", 3001)),
        workers=int(data.get("workers", 1)),
        reload=_as_bool(data.get("reload", False)),
    )
    if origins:
        server.cors_origins = list(origins)
    return server


def _parse_logging_config(data: dict) -> LoggingConfig:
    """Parse logging configuration from dict."""
    return LoggingConfig(level=data.get("level", "INFO"))


def _parse_langfuse_config(data: dict) -> LangfuseConfig:
    """Parse Langfuse configuration from dict."""
    return LangfuseConfig(
        public_key=data.get("public_key", ""),
        secret_key=data.get("secret_key", ""),
        host=data.get("host", ""),
        debug=_as_bool(data.get("debug", False)),
    )


def parse_app_config(raw_config: dict) -> AppConfig:
    """Build an AppConfig from an already-interpolated dict."""
    return AppConfig(
        version=str(raw_config.get("version", "1.0")),
        model=_parse_model_config(raw_config.get("model") or {}),
        gateway=_parse_gateway_config(raw_config.get("gateway") or {}),
        orchestration=_parse_orchestration_config(
            raw_config.get("orchestration") or {}
        ),
        server=_parse_server_config(raw_config.get("server") or {}),
        logging=_parse_logging_config(raw_config.get("logging") or {}),
        langfuse=_parse_langfuse_config(raw_config.get("langfuse") or {}),
    )


def load_app_config(path: Optional[str] = None, reload: bool = False) -> AppConfig:
    """
    Load unified application configuration from a YAML file.

    Uses a singleton pattern - subsequent calls return the cached config
    unless reload=True is specified. A missing file yields the defaults.

    Args:
        path: Path to the YAML configuration file. If None, uses
              CONFIG_PATH env var or the default path (config/config.yaml).
        reload: If True, force reload from disk instead of using cache.

    Returns:
        AppConfig with all configuration loaded

    Raises:
        ValueError: If the config is invalid
    """
    global _app_config

    if _app_config is not None and not reload:
        return _app_config

    load_dotenv()

    if path is None:
        path = os.environ.get("CONFIG_PATH", str(DEFAULT_CONFIG_PATH))

    config_path = Path(path)

    if not config_path.exists():
        logger.warning(f"Config not found at {config_path}, using defaults")
        _app_config = parse_app_config({})
        return _app_config

    logger.info(f"Loading configuration from {config_path}")

    with open(config_path, "r") as f:
        raw_config = yaml.safe_load(f)

    if raw_config is None:
        raise ValueError(f"Configuration file {config_path} is empty")

    raw_config = _substitute_env_vars_recursive(raw_config)
    _app_config = parse_app_config(raw_config)

    logger.debug(
        f"Configuration loaded: version={_app_config.version}, "
        f"provider={_app_config.model.provider}, model={_app_config.model.model}"
    )
    return _app_config


def reset_config_cache() -> None:
    """Reset the configuration cache, forcing a reload on next access."""
    global _app_config
    _app_config = None
    logger.debug("Configuration cache reset")
