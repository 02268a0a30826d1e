"""
Pytest configuration and fixtures for office orchestrator tests.

Gateway traffic goes through ``httpx.MockTransport``; the model is replaced
by a scripted stand-in that replays canned replies.
"""

import asyncio
import json
from typing import Any, Callable, Optional

import httpx
import pytest

from office_orchestrator.config_loader import reset_config_cache
from office_orchestrator.models import AppConfig, GatewayConfig, ModelReply
from office_orchestrator.tools import ToolGatewayClient


class ScriptedModel:
    """Model client stand-in replaying replies (or raising exceptions) in order."""

    model = "scripted-model"

    def __init__(self, replies: list, delay: float = 0.0):
        self.replies = list(replies)
        self.delay = delay
        self.calls: list[dict] = []

    async def invoke(self, history, system_prompt, tools=None) -> ModelReply:
        self.calls.append(
            {"history": list(history), "system_prompt": system_prompt, "tools": tools}
        )
        if self.delay:
            await asyncio.sleep(self.delay)
        if not self.replies:
            return ModelReply(text="")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


@pytest.fixture
def scripted_model() -> type:
    """The ScriptedModel class, for building per-test instances."""
    return ScriptedModel


@pytest.fixture
def gateway_config() -> GatewayConfig:
    return GatewayConfig(url="https://gateway.test/mcp", token="test-token")


@pytest.fixture
def app_config(gateway_config) -> AppConfig:
    config = AppConfig()
    config.gateway = gateway_config
    return config


@pytest.fixture
def rpc_response() -> Callable[..., httpx.Response]:
    """Build a gateway JSON-RPC response, optionally in a ``data:`` envelope."""

    def build(
        result: Any = None,
        error: Optional[dict] = None,
        envelope: bool = False,
        status_code: int = 200,
    ) -> httpx.Response:
        body: dict = {"jsonrpc": "2.0", "id": 1}
        if error is not None:
            body["error"] = error
        else:
            body["result"] = result
        text = json.dumps(body)
        if envelope:
            text = f"event: message\ndata: {text}\n\n"
        return httpx.Response(status_code, text=text)

    return build


@pytest.fixture
def search_result() -> Callable[..., dict]:
    """Build the nested result the gateway's search tool returns."""

    def build(schemas: dict, session_id: Optional[str] = "sess-123") -> dict:
        entry: dict = {"tool_schemas": schemas}
        if session_id:
            entry["session"] = {"id": session_id}
        payload = {"data": {"data": {"results": [entry]}}}
        return {"content": [{"type": "text", "text": json.dumps(payload)}]}

    return build


@pytest.fixture
def gateway_factory(gateway_config) -> Callable[[Callable], ToolGatewayClient]:
    """Build a gateway client whose HTTP traffic is served by ``handler``."""

    def build(handler: Callable[[httpx.Request], httpx.Response]) -> ToolGatewayClient:
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return ToolGatewayClient(gateway_config, http_client=http_client)

    return build


@pytest.fixture(autouse=True)
def reset_config():
    """Drop any cached configuration after each test."""
    yield
    reset_config_cache()
