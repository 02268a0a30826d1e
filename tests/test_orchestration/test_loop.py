"""Tests for the orchestration loop."""

import asyncio
import json
import logging

import httpx
import pytest

from office_orchestrator.errors import ModelInvocationError
from office_orchestrator.models import (
    ConversationTurn,
    ExchangeRequest,
    ModelReply,
    Persona,
    ToolCallIntent,
)
from office_orchestrator.orchestration import (
    APOLOGY_TEXT,
    FALLBACK_TEXT,
    OrchestrationLoop,
    normalize_history,
)
from office_orchestrator.tools import ToolCatalog, ToolExecutor

SEARCH_SCHEMAS = {
    "EXA.SEARCH": {
        "description": "Search the web",
        "input_schema": {"type": "object", "properties": {"q": {"type": "string"}}},
    }
}


def _request(text: str = "hello", tools_enabled: bool = False, **kwargs) -> ExchangeRequest:
    return ExchangeRequest(
        persona=Persona(name="Ada", role="researcher", personality="focused"),
        history=[ConversationTurn(role="user", content=text)],
        tools_enabled=tools_enabled,
        **kwargs,
    )


def _call(call_id: str, name: str = "EXA_SEARCH", **arguments) -> ToolCallIntent:
    return ToolCallIntent(id=call_id, name=name, arguments=arguments)


@pytest.fixture
def tool_gateway(gateway_factory, gateway_config, rpc_response, search_result):
    """
    Build (catalog, executor, calls) over a fake gateway.

    ``results`` maps tool slugs to execute results (or httpx.Response for
    transport-level failures); ``calls`` records every request's params.
    """

    def build(schemas=None, results=None, search_failure=None):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            params = json.loads(request.content)["params"]
            calls.append(params)
            if params["name"] == "RUBE_SEARCH_TOOLS":
                if search_failure is not None:
                    return search_failure
                return rpc_response(result=search_result(schemas or {}), envelope=True)
            slug = params["arguments"]["tools"][0]["tool_slug"]
            outcome = (results or {}).get(slug, "ok")
            if isinstance(outcome, httpx.Response):
                return outcome
            return rpc_response(result=outcome)

        gateway = gateway_factory(handler)
        return ToolCatalog(gateway, gateway_config), ToolExecutor(gateway, gateway_config), calls

    return build


class TestNormalizeHistory:
    """Tests for incoming history normalization."""

    def test_roles_and_blanks(self):
        turns = normalize_history(
            [
                {"role": "system", "content": "be nice"},
                {"role": "user", "content": "  hi  "},
                {"role": "assistant", "content": ""},
                {"role": "tool", "content": None},
                {"role": "agent", "content": 42},
            ]
        )
        assert turns == [
            ConversationTurn(role="assistant", content="be nice"),
            ConversationTurn(role="user", content="hi"),
            ConversationTurn(role="assistant", content="42"),
        ]

    def test_accepts_turns(self):
        turn = ConversationTurn(role="user", content="x")
        assert normalize_history([turn]) == [turn]


class TestPlainChat:
    """Exchanges without tools."""

    def test_hello(self, scripted_model):
        """Tools disabled: one invocation, reply text returned as-is."""
        model = scripted_model([ModelReply(text="Hello there!")])
        result = asyncio.run(OrchestrationLoop(model).run(_request("hello")))

        assert result.final_text == "Hello there!"
        assert result.tools_used == []
        assert result.tool_steps == []
        assert result.failed is False
        assert len(model.calls) == 1
        assert result.to_payload() == {"response": "Hello there!"}

    def test_tools_disabled_never_calls_gateway(self, scripted_model, tool_gateway):
        """Tool calls proposed with tools disabled are ignored."""
        catalog, executor, calls = tool_gateway(SEARCH_SCHEMAS)
        model = scripted_model([ModelReply(text="I would search.", tool_calls=[_call("c1")])])

        result = asyncio.run(OrchestrationLoop(model, catalog, executor).run(_request()))

        assert calls == []
        assert len(model.calls) == 1
        assert model.calls[0]["tools"] is None
        assert result.final_text == "I would search."

    def test_empty_reply_gets_fallback(self, scripted_model):
        result = asyncio.run(OrchestrationLoop(scripted_model([ModelReply(text="")])).run(_request()))
        assert result.final_text == FALLBACK_TEXT

    def test_session_passed_through(self, scripted_model):
        model = scripted_model([ModelReply(text="hi")])
        result = asyncio.run(OrchestrationLoop(model).run(_request(session="sess-old")))
        assert result.session == "sess-old"

    def test_persona_system_prompt(self, scripted_model):
        model = scripted_model([ModelReply(text="hi")])
        asyncio.run(OrchestrationLoop(model).run(_request()))
        system_prompt = model.calls[0]["system_prompt"]
        assert system_prompt.startswith("Your name is Ada.")
        assert "Tool Usage Instructions" not in system_prompt

    def test_task_execution_prompt(self, scripted_model):
        model = scripted_model([ModelReply(text="done")])
        asyncio.run(OrchestrationLoop(model).run(_request(task_execution=True)))
        assert "Tool Usage Instructions" in model.calls[0]["system_prompt"]


class TestToolUse:
    """Exchanges where the model calls gateway tools."""

    def test_search_42(self, scripted_model, tool_gateway):
        """One tool call, fed back, then a final answer."""
        catalog, executor, calls = tool_gateway(SEARCH_SCHEMAS, results={"EXA.SEARCH": "42"})
        model = scripted_model(
            [
                ModelReply(text="", tool_calls=[_call("call_1", q="meaning of life")]),
                ModelReply(text="The answer is 42."),
            ]
        )

        result = asyncio.run(
            OrchestrationLoop(model, catalog, executor).run(
                _request("search the meaning of life", tools_enabled=True)
            )
        )

        assert result.final_text == "The answer is 42."
        assert result.tools_used == ["EXA.SEARCH"]
        assert result.session == "sess-123"
        assert len(result.tool_steps) == 1
        step = result.tool_steps[0]
        assert (step.id, step.tool_name, step.status) == ("call_1", "EXA.SEARCH", "success")
        assert step.action == "Researching with web tools"
        assert step.summary == "42"

        # discovery seeded by the user turn, then execution in the new session
        assert calls[0]["arguments"]["queries"][0]["use_case"] == "search the meaning of life"
        assert calls[1]["arguments"]["tools"] == [
            {"tool_slug": "EXA.SEARCH", "arguments": {"q": "meaning of life"}}
        ]
        assert calls[1]["arguments"]["session_id"] == "sess-123"

        assert len(model.calls) == 2
        assert model.calls[0]["tools"].names == ["EXA.SEARCH"]
        second_history = model.calls[1]["history"]
        assert second_history[-2] == ConversationTurn(role="assistant", content="Using tool...")
        assert second_history[-1] == ConversationTurn(
            role="user", content="Tool result for EXA.SEARCH:\n42"
        )

    def test_offered_tools_logged(self, scripted_model, tool_gateway, caplog):
        """The discovered manifest is logged once per exchange."""
        catalog, executor, _ = tool_gateway(SEARCH_SCHEMAS)
        model = scripted_model([ModelReply(text="done")])
        caplog.set_level(logging.DEBUG, logger="office_orchestrator.orchestration.loop")

        asyncio.run(
            OrchestrationLoop(model, catalog, executor, execution_id="exec-log").run(
                _request(tools_enabled=True)
            )
        )

        assert "[exec-log] Tools offered this exchange:\n- EXA.SEARCH: Search the web" in caplog.text

    def test_pre_tool_text_echoed(self, scripted_model, tool_gateway):
        catalog, executor, _ = tool_gateway(SEARCH_SCHEMAS)
        model = scripted_model(
            [
                ModelReply(text="Let me look that up.", tool_calls=[_call("c1")]),
                ModelReply(text=""),
            ]
        )
        result = asyncio.run(
            OrchestrationLoop(model, catalog, executor).run(_request(tools_enabled=True))
        )
        assert model.calls[1]["history"][-2].content == "Let me look that up."
        # last non-empty text wins
        assert result.final_text == "Let me look that up."

    def test_iteration_ceiling(self, scripted_model, tool_gateway):
        """A model that always calls tools stops after five invocations."""
        catalog, executor, calls = tool_gateway(SEARCH_SCHEMAS)
        model = scripted_model(
            [ModelReply(text="", tool_calls=[_call(f"c{i}")]) for i in range(10)]
        )

        result = asyncio.run(
            OrchestrationLoop(model, catalog, executor).run(_request(tools_enabled=True))
        )

        assert len(model.calls) == 5
        # the call proposed by the fifth invocation is never executed
        assert len(result.tool_steps) == 4
        assert len(calls) == 1 + 4
        assert result.final_text == FALLBACK_TEXT
        assert result.failed is False

    def test_all_calls_executed_within_tool_budget(self, scripted_model, tool_gateway):
        """Several calls per reply run in order until the budget is used up."""
        catalog, executor, calls = tool_gateway(SEARCH_SCHEMAS)
        model = scripted_model(
            [
                ModelReply(
                    text="",
                    tool_calls=[_call(f"r{r}c{c}", "EXA_SEARCH", n=c) for c in range(3)],
                )
                for r in range(5)
            ]
        )

        result = asyncio.run(
            OrchestrationLoop(model, catalog, executor).run(_request(tools_enabled=True))
        )

        assert len(model.calls) == 5
        assert len(result.tool_steps) == 5
        assert [step.id for step in result.tool_steps] == ["r0c0", "r0c1", "r0c2", "r1c0", "r1c1"]
        assert len(calls) == 1 + 5
        budget_turn = model.calls[2]["history"][-1].content
        assert "Tool result for EXA.SEARCH:" in budget_turn
        assert "tool budget" in budget_turn

    def test_single_feedback_turn_per_iteration(self, scripted_model, tool_gateway):
        catalog, executor, _ = tool_gateway(SEARCH_SCHEMAS, results={"EXA.SEARCH": "found"})
        model = scripted_model(
            [
                ModelReply(text="", tool_calls=[_call("a"), _call("b")]),
                ModelReply(text="Done."),
            ]
        )
        asyncio.run(OrchestrationLoop(model, catalog, executor).run(_request(tools_enabled=True)))

        history = model.calls[1]["history"]
        assert len(history) == 3
        assert history[-1].content == (
            "Tool result for EXA.SEARCH:\nfound\n\nTool result for EXA.SEARCH:\nfound"
        )

    def test_tools_used_distinct_and_ordered(self, scripted_model, tool_gateway):
        schemas = dict(SEARCH_SCHEMAS, **{"SLACK.POST": {"description": "Post"}})
        catalog, executor, _ = tool_gateway(schemas)
        model = scripted_model(
            [
                ModelReply(text="", tool_calls=[_call("a", "SLACK_POST"), _call("b")]),
                ModelReply(text="", tool_calls=[_call("c", "SLACK_POST")]),
                ModelReply(text="All done."),
            ]
        )
        result = asyncio.run(
            OrchestrationLoop(model, catalog, executor).run(_request(tools_enabled=True))
        )
        assert result.tools_used == ["SLACK.POST", "EXA.SEARCH"]
        assert len(result.tool_steps) == 3

    def test_unknown_tool_name_passes_through(self, scripted_model, tool_gateway):
        catalog, executor, calls = tool_gateway(SEARCH_SCHEMAS)
        model = scripted_model(
            [ModelReply(text="", tool_calls=[_call("x", "MYSTERY_TOOL")]), ModelReply(text="ok")]
        )
        asyncio.run(OrchestrationLoop(model, catalog, executor).run(_request(tools_enabled=True)))
        assert calls[1]["arguments"]["tools"][0]["tool_slug"] == "MYSTERY_TOOL"


class TestDegradation:
    """Failures that must not abort the exchange."""

    def test_discovery_failure_means_no_tools(self, scripted_model, tool_gateway):
        catalog, executor, _ = tool_gateway(search_failure=httpx.Response(500, text="down"))
        model = scripted_model([ModelReply(text="I can still chat.")])

        result = asyncio.run(
            OrchestrationLoop(model, catalog, executor).run(_request(tools_enabled=True))
        )

        assert result.final_text == "I can still chat."
        assert result.failed is False
        assert not model.calls[0]["tools"]

    def test_empty_discovery_still_answers(self, scripted_model, tool_gateway):
        """An empty tool catalog leaves the model without tools but the exchange completes."""
        catalog, executor, calls = tool_gateway({})
        model = scripted_model([ModelReply(text="")])

        result = asyncio.run(
            OrchestrationLoop(model, catalog, executor).run(_request(tools_enabled=True))
        )

        assert result.final_text == FALLBACK_TEXT
        assert result.final_text.strip()
        assert result.failed is False
        assert result.tool_steps == []
        assert len(model.calls) == 1
        assert not model.calls[0]["tools"]
        assert [params["name"] for params in calls] == ["RUBE_SEARCH_TOOLS"]

    def test_tool_failure_continues(self, scripted_model, tool_gateway):
        catalog, executor, _ = tool_gateway(
            SEARCH_SCHEMAS, results={"EXA.SEARCH": httpx.Response(500, text="boom")}
        )
        model = scripted_model(
            [
                ModelReply(text="", tool_calls=[_call("c1")]),
                ModelReply(text="The search tool is down, sorry."),
            ]
        )

        result = asyncio.run(
            OrchestrationLoop(model, catalog, executor).run(_request(tools_enabled=True))
        )

        assert result.final_text == "The search tool is down, sorry."
        assert result.tool_steps[0].status == "error"
        assert len(model.calls) == 2
        assert model.calls[1]["history"][-1].content.startswith("Tool EXA.SEARCH failed:")

    def test_tool_reported_error(self, scripted_model, tool_gateway):
        catalog, executor, _ = tool_gateway(
            SEARCH_SCHEMAS,
            results={"EXA.SEARCH": {"isError": True, "content": [{"type": "text", "text": "quota"}]}},
        )
        model = scripted_model([ModelReply(text="", tool_calls=[_call("c1")]), ModelReply(text="k")])
        result = asyncio.run(
            OrchestrationLoop(model, catalog, executor).run(_request(tools_enabled=True))
        )
        assert result.tool_steps[0].status == "error"
        assert result.tool_steps[0].summary == "quota"


class TestFailures:
    """Failures that abort the exchange but never raise."""

    def test_model_error(self, scripted_model):
        model = scripted_model([ModelInvocationError("Model API returned 500")])
        result = asyncio.run(OrchestrationLoop(model).run(_request()))

        assert result.failed is True
        assert result.error_type == "model"
        assert result.error == "Model API returned 500"
        assert result.final_text == APOLOGY_TEXT

    def test_model_error_keeps_partial_text(self, scripted_model, tool_gateway):
        catalog, executor, _ = tool_gateway(SEARCH_SCHEMAS)
        model = scripted_model(
            [
                ModelReply(text="Searching now.", tool_calls=[_call("c1")]),
                ModelInvocationError("gone"),
            ]
        )
        result = asyncio.run(
            OrchestrationLoop(model, catalog, executor).run(_request(tools_enabled=True))
        )
        assert result.failed is True
        assert result.final_text == "Searching now."
        assert len(result.tool_steps) == 1

    def test_timeout(self, scripted_model):
        model = scripted_model([ModelReply(text="too late")], delay=0.5)
        loop = OrchestrationLoop(model, exchange_timeout=0.05)

        result = asyncio.run(loop.run(_request()))

        assert result.failed is True
        assert result.error_type == "timeout"
        assert result.final_text == APOLOGY_TEXT

    def test_unexpected_exception_reported(self, scripted_model):
        model = scripted_model([RuntimeError("kaboom")])
        result = asyncio.run(OrchestrationLoop(model).run(_request()))
        assert result.failed is True
        assert result.error_type == "internal"
        assert result.error == "kaboom"
