"""
Langfuse tracing integration.

Provides observability for model calls, tool discovery and tool executions.
"""

from .client import (
    TracingClient,
    init_tracing_client,
    get_tracing_client,
    shutdown_tracing,
)
from .context import ExchangeTrace, Observation

__all__ = [
    "TracingClient",
    "init_tracing_client",
    "get_tracing_client",
    "shutdown_tracing",
    "ExchangeTrace",
    "Observation",
]
