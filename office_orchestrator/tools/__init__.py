"""
Tool gateway integration.

- gateway: JSON-RPC client for the remote tool service
- catalog: tool discovery and descriptor normalization
- registry: request-scoped tool manifest
- executor: tool execution with bounded, failure-tolerant results
"""

from .gateway import ToolGatewayClient, unwrap_envelope
from .catalog import DiscoveryResult, ToolCatalog, sanitize_tool_name
from .registry import ToolManifest
from .executor import ToolExecutor, ToolOutcome

__all__ = [
    "ToolGatewayClient",
    "unwrap_envelope",
    "DiscoveryResult",
    "ToolCatalog",
    "sanitize_tool_name",
    "ToolManifest",
    "ToolExecutor",
    "ToolOutcome",
]
