"""API route modules."""

from . import chat, health, mcp

__all__ = ["chat", "health", "mcp"]
