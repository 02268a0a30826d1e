"""Tests for the streaming variant of the orchestration loop."""

import asyncio
import json

import httpx
import pytest

from office_orchestrator.errors import ModelInvocationError
from office_orchestrator.models import ConversationTurn, ExchangeRequest, ModelReply, Persona, ToolCallIntent
from office_orchestrator.orchestration import OrchestrationLoop
from office_orchestrator.tools import ToolCatalog, ToolExecutor


def _request(tools_enabled: bool = True) -> ExchangeRequest:
    return ExchangeRequest(
        persona=Persona(name="Max"),
        history=[ConversationTurn(role="user", content="post the standup notes")],
        tools_enabled=tools_enabled,
    )


def _collect(loop: OrchestrationLoop, request: ExchangeRequest) -> list:
    async def consume():
        return [event async for event in loop.stream(request)]

    return asyncio.run(consume())


@pytest.fixture
def tools(gateway_factory, gateway_config, rpc_response, search_result):
    schemas = {
        "SLACK.POST": {"description": "Post a Slack message"},
        "NOTION.CREATE": {"description": "Create a Notion page"},
    }

    def handler(request: httpx.Request) -> httpx.Response:
        params = json.loads(request.content)["params"]
        if params["name"] == "RUBE_SEARCH_TOOLS":
            return rpc_response(result=search_result(schemas, "sess-s"))
        return rpc_response(result={"ok": True})

    gateway = gateway_factory(handler)
    return ToolCatalog(gateway, gateway_config), ToolExecutor(gateway, gateway_config)


class TestStream:
    """Tests for OrchestrationLoop.stream."""

    def test_plain_exchange(self, scripted_model):
        events = _collect(
            OrchestrationLoop(scripted_model([ModelReply(text="Sure!")])), _request(False)
        )
        assert [event.type for event in events] == ["status", "done"]
        assert events[0].data == {"message": "Agent started processing..."}
        assert events[-1].data == {"response": "Sure!"}

    def test_tool_exchange_event_order(self, scripted_model, tools):
        catalog, executor = tools
        model = scripted_model(
            [
                ModelReply(
                    text="",
                    tool_calls=[
                        ToolCallIntent(id="t1", name="SLACK_POST", arguments={"text": "notes"}),
                        ToolCallIntent(id="t2", name="NOTION_CREATE", arguments={}),
                    ],
                ),
                ModelReply(text="Posted and saved."),
            ]
        )

        events = _collect(OrchestrationLoop(model, catalog, executor), _request())

        assert [event.type for event in events] == [
            "status",
            "status",
            "tool_call",
            "tool_result",
            "tool_call",
            "tool_result",
            "done",
        ]
        assert events[1].data["tools"] == ["SLACK.POST", "NOTION.CREATE"]

        call, result = events[2].data, events[3].data
        assert call["id"] == result["id"] == "t1"
        assert call["status"] == "pending"
        assert call["toolName"] == "SLACK.POST"
        assert call["action"] == "Notifying via Slack"
        assert result["status"] == "success"
        assert events[5].data["action"] == "Saving to Notion"

        done = events[-1].data
        assert done["response"] == "Posted and saved."
        assert done["toolsUsed"] == ["SLACK.POST", "NOTION.CREATE"]
        assert [step["id"] for step in done["toolSteps"]] == ["t1", "t2"]
        assert done["sessionId"] == "sess-s"

    def test_result_never_precedes_call(self, scripted_model, tools):
        catalog, executor = tools
        model = scripted_model(
            [
                ModelReply(
                    text="",
                    tool_calls=[
                        ToolCallIntent(id=f"t{i}", name="SLACK_POST", arguments={}) for i in range(3)
                    ],
                ),
                ModelReply(text="ok"),
            ]
        )
        events = _collect(OrchestrationLoop(model, catalog, executor), _request())

        positions = {}
        for index, event in enumerate(events):
            if event.type in ("tool_call", "tool_result"):
                positions.setdefault(event.data["id"], {})[event.type] = index
        assert len(positions) == 3
        for seen in positions.values():
            assert seen["tool_call"] < seen["tool_result"]

    def test_error_event(self, scripted_model):
        model = scripted_model([ModelInvocationError("provider down")])
        events = _collect(OrchestrationLoop(model), _request(False))

        assert [event.type for event in events] == ["status", "error"]
        assert events[-1].data["error"] == "provider down"
        assert events[-1].data["type"] == "model"

    def test_run_matches_stream(self, scripted_model, tools):
        """Both entry points produce the same final payload."""
        catalog, executor = tools

        def replies():
            return [
                ModelReply(text="", tool_calls=[ToolCallIntent(id="t1", name="SLACK_POST", arguments={})]),
                ModelReply(text="Done."),
            ]

        events = _collect(OrchestrationLoop(scripted_model(replies()), catalog, executor), _request())
        result = asyncio.run(
            OrchestrationLoop(scripted_model(replies()), catalog, executor).run(_request())
        )

        streamed = events[-1].data
        payload = result.to_payload()
        assert streamed["response"] == payload["response"]
        assert streamed["toolsUsed"] == payload["toolsUsed"]
        assert [s["id"] for s in streamed["toolSteps"]] == [s["id"] for s in payload["toolSteps"]]
