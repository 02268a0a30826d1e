"""
Office Orchestrator - tool-use orchestration proxy for virtual office agents

This package provides:
- Tool gateway client, catalog resolver and executor (remote MCP tools)
- Model invocation adapter for OpenAI-compatible and content-block endpoints
- Bounded tool-use orchestration loop with a streaming variant
- FastAPI service and interactive CLI
"""

from .orchestrator import OfficeOrchestrator, run_exchange
from .llm_call import ModelClient

__all__ = [
    "OfficeOrchestrator",
    "ModelClient",
    "run_exchange",
]

__version__ = "0.1.0"
