"""
FastAPI server module for the office orchestrator.

Provides the chat, gateway passthrough and health endpoints used by the
office UI.
"""

from .main import app, create_app

__all__ = ["app", "create_app"]
