"""
Tool-use orchestration loop.

Drives one chat exchange: optional tool discovery seeded by the latest user
message, then up to ``max_iterations`` model invocations. Whenever the model
proposes tool calls they are executed sequentially through the gateway and
their results are fed back as synthetic conversation turns.

The request/response entry point (``run``) and the streaming entry point
(``stream``) share one state machine; ``run`` simply drains the event stream.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, AsyncIterator, Iterable, Optional, Union

from ..errors import ExchangeTimeoutError, OrchestratorError
from ..models import (
    ConversationTurn,
    ExchangeRequest,
    ModelReply,
    OrchestrationResult,
    StreamEvent,
    ToolCallIntent,
    ToolStep,
)
from ..prompts import build_system_prompt, build_tool_aware_prompt
from ..tools.executor import ToolOutcome
from ..tools.registry import ToolManifest
from ..tracing import ExchangeTrace
from .text import (
    APOLOGY_TEXT,
    FALLBACK_TEXT,
    SUMMARY_LIMIT,
    TOOL_PLACEHOLDER,
    derive_action,
    summarize,
)

if TYPE_CHECKING:
    from ..llm_call import ModelClient
    from ..tools.catalog import ToolCatalog
    from ..tools.executor import ToolExecutor

logger = logging.getLogger(__name__)

MAX_ITERATIONS = 5
EXCHANGE_TIMEOUT = 300.0


def normalize_history(
    messages: Iterable[Union[dict, ConversationTurn]],
) -> list[ConversationTurn]:
    """
    Coerce incoming history into ConversationTurns.

    Any role other than ``user`` becomes ``assistant``; content is stripped
    and empty turns are dropped.
    """
    turns: list[ConversationTurn] = []
    for message in messages:
        if isinstance(message, ConversationTurn):
            role, content = message.role, message.content
        else:
            role, content = message.get("role"), message.get("content")
        text = str(content or "").strip()
        if not text:
            continue
        turns.append(
            ConversationTurn(role="user" if role == "user" else "assistant", content=text)
        )
    return turns


@dataclass
class _ExchangeState:
    """Mutable, request-scoped loop state."""

    history: list[ConversationTurn]
    session: Optional[str]
    manifest: ToolManifest = field(default_factory=ToolManifest)
    last_text: str = ""
    invocations: int = 0
    tool_steps: list[ToolStep] = field(default_factory=list)
    tools_used: list[str] = field(default_factory=list)
    result: Optional[OrchestrationResult] = None

    def build_result(self, final_text: str, error: Optional[OrchestratorError] = None):
        self.result = OrchestrationResult(
            final_text=final_text,
            tools_used=list(self.tools_used),
            tool_steps=list(self.tool_steps),
            session=self.session,
            error=str(error) if error else None,
            error_type=error.error_type if error else None,
        )
        return self.result


class OrchestrationLoop:
    """
    Bounded iterate/invoke/execute/feed-back cycle.

    States: Start -> Discover (optional) -> Invoke -> {Done | ExecuteTool -> Invoke}.

    Per-iteration flow:
        1. Invoke the model with the current history and tool manifest
        2. Remember the reply text (last non-empty text wins)
        3. No tool calls, tools disabled, or ceiling reached: done
        4. Otherwise execute every proposed call in order, within the tool
           budget, and append an assistant turn plus one tool-result turn
    """

    def __init__(
        self,
        model: "ModelClient",
        catalog: Optional["ToolCatalog"] = None,
        executor: Optional["ToolExecutor"] = None,
        max_iterations: int = MAX_ITERATIONS,
        exchange_timeout: float = EXCHANGE_TIMEOUT,
        summary_limit: int = SUMMARY_LIMIT,
        execution_id: Optional[str] = None,
        trace: Optional[ExchangeTrace] = None,
    ):
        self.model = model
        self.catalog = catalog
        self.executor = executor
        self.max_iterations = max_iterations
        self.exchange_timeout = exchange_timeout
        self.summary_limit = summary_limit
        self.execution_id = execution_id or f"exec-{uuid.uuid4().hex[:8]}"
        self.trace = trace or ExchangeTrace(execution_id=self.execution_id)
        self._id_prefix = f"[{self.execution_id}] "

    async def run(self, request: ExchangeRequest) -> OrchestrationResult:
        """
        Run an exchange to completion.

        Never raises for transport, model or timeout failures; those are
        reported through ``OrchestrationResult.error``.
        """
        state = self._new_state(request)
        async for _ in self._drive(request, state):
            pass
        return state.result

    async def stream(self, request: ExchangeRequest) -> AsyncIterator[StreamEvent]:
        """
        Run an exchange, yielding progress events as they happen.

        Events: ``status``, ``tool_call``, ``tool_result``, then exactly one
        of ``done`` (final payload) or ``error``.
        """
        state = self._new_state(request)
        async for event in self._drive(request, state):
            yield event

    def _new_state(self, request: ExchangeRequest) -> _ExchangeState:
        return _ExchangeState(
            history=normalize_history(request.history), session=request.session
        )

    async def _drive(
        self, request: ExchangeRequest, state: _ExchangeState
    ) -> AsyncIterator[StreamEvent]:
        self.trace.session_id = request.session
        self.trace.start(
            name="chat_exchange",
            input={"history_length": len(state.history)},
            metadata={"tools_enabled": request.tools_enabled},
        )
        logger.info(
            "%sExchange for %s (%s/%s) - tools: %s, turns: %d",
            self._id_prefix,
            request.persona.name,
            request.persona.role,
            request.persona.personality,
            request.tools_enabled,
            len(state.history),
        )
        yield StreamEvent("status", {"message": "Agent started processing..."})

        try:
            async for event in self._iterate(request, state):
                yield event
        except OrchestratorError as e:
            logger.error("%sExchange failed (%s): %s", self._id_prefix, e.error_type, e)
            result = state.build_result(state.last_text or APOLOGY_TEXT, error=e)
            self.trace.end(output=str(e), status="error")
            self._log_summary(state)
            yield StreamEvent(
                "error",
                {"error": result.error, "type": result.error_type, "response": result.final_text},
            )
            return
        except Exception as e:
            logger.exception("%sUnexpected orchestration failure: %s", self._id_prefix, e)
            failure = OrchestratorError(str(e) or type(e).__name__)
            result = state.build_result(state.last_text or APOLOGY_TEXT, error=failure)
            self.trace.end(output=str(e), status="error")
            self._log_summary(state)
            yield StreamEvent(
                "error",
                {"error": result.error, "type": result.error_type, "response": result.final_text},
            )
            return

        result = state.build_result(state.last_text or FALLBACK_TEXT)
        self.trace.end(output=result.final_text[:500])
        self._log_summary(state)
        yield StreamEvent("done", result.to_payload())

    async def _iterate(
        self, request: ExchangeRequest, state: _ExchangeState
    ) -> AsyncIterator[StreamEvent]:
        system_prompt = (
            build_tool_aware_prompt(request.persona)
            if request.task_execution
            else build_system_prompt(request.persona)
        )

        if request.tools_enabled:
            await self._discover(state)
            yield StreamEvent(
                "status",
                {"message": f"Found {len(state.manifest)} tools", "tools": state.manifest.names},
            )

        deadline: Optional[float] = None
        for iteration in range(1, self.max_iterations + 1):
            if deadline is None:
                deadline = asyncio.get_running_loop().time() + self.exchange_timeout

            reply = await self._within(
                deadline, self._invoke(state, system_prompt, request.tools_enabled, iteration)
            )
            if reply.text:
                state.last_text = reply.text

            if not reply.tool_calls or not request.tools_enabled:
                break

            if iteration == self.max_iterations:
                logger.warning(
                    "%sIteration ceiling (%d) reached with %d tool call(s) pending",
                    self._id_prefix,
                    self.max_iterations,
                    len(reply.tool_calls),
                )
                break

            feedback: list[str] = []
            for call in reply.tool_calls:
                if len(state.tool_steps) >= self.max_iterations:
                    tool_name = state.manifest.resolve(call.name)
                    logger.warning(
                        "%sTool budget exhausted, skipping '%s'", self._id_prefix, tool_name
                    )
                    feedback.append(
                        f"Tool {tool_name} was not executed: the tool budget for this request is used up."
                    )
                    continue
                async for event in self._run_tool(call, state, deadline, feedback):
                    yield event

            state.history.append(
                ConversationTurn(role="assistant", content=reply.text or TOOL_PLACEHOLDER)
            )
            state.history.append(ConversationTurn(role="user", content="\n\n".join(feedback)))

    async def _discover(self, state: _ExchangeState) -> None:
        """Populate the manifest once per exchange; failures mean no tools."""
        query = next(
            (turn.content for turn in reversed(state.history) if turn.role == "user"), ""
        )
        if self.catalog is None or not query:
            logger.info("%sSkipping tool discovery (no catalog or query)", self._id_prefix)
            return

        with self.trace.span(name="tool_discovery", input={"query": query[:500]}) as span:
            try:
                discovery = await self.catalog.discover(query, state.session)
            except OrchestratorError as e:
                logger.error("%sTool discovery failed: %s", self._id_prefix, e)
                span.set_status("error")
                return
            span.set_output({"tools": [t.name for t in discovery.tools]})

        state.manifest = ToolManifest(discovery.tools)
        state.session = discovery.session or state.session
        if state.manifest:
            logger.debug(
                "%sTools offered this exchange:\n%s",
                self._id_prefix,
                state.manifest.get_tools_summary(),
            )
        collisions = state.manifest.collisions()
        if collisions:
            logger.warning(
                "%sSanitized tool name collisions (first match wins): %s",
                self._id_prefix,
                collisions,
            )

    async def _invoke(
        self,
        state: _ExchangeState,
        system_prompt: str,
        tools_enabled: bool,
        iteration: int,
    ) -> ModelReply:
        manifest = state.manifest if tools_enabled else None
        state.invocations += 1
        logger.debug(
            "%sModel call iteration %d (%d turns, %d tools)",
            self._id_prefix,
            iteration,
            len(state.history),
            len(manifest or ()),
        )
        with self.trace.generation(
            name=f"model_iteration_{iteration}",
            model=getattr(self.model, "model", "unknown"),
            input=[turn.to_message() for turn in state.history],
        ) as gen:
            try:
                reply = await self.model.invoke(list(state.history), system_prompt, manifest)
            except OrchestratorError:
                gen.set_status("error")
                raise
            gen.set_output({"text": reply.text[:2000], "tool_calls": [c.name for c in reply.tool_calls]})
            if reply.input_tokens or reply.output_tokens:
                gen.set_usage(reply.input_tokens, reply.output_tokens)
        return reply

    async def _run_tool(
        self,
        call: ToolCallIntent,
        state: _ExchangeState,
        deadline: float,
        feedback: list[str],
    ) -> AsyncIterator[StreamEvent]:
        tool_name = state.manifest.resolve(call.name)
        action = derive_action(tool_name, call.arguments)
        if tool_name not in state.tools_used:
            state.tools_used.append(tool_name)

        pending = ToolStep(id=call.id, tool_name=tool_name, action=action, status="pending")
        logger.info("%sTool call: %s %s", self._id_prefix, tool_name, call.arguments)
        yield StreamEvent("tool_call", pending.to_dict())

        outcome = await self._within(deadline, self._execute(tool_name, call.arguments, state))
        step = ToolStep(
            id=call.id,
            tool_name=tool_name,
            action=action,
            status="success" if outcome.ok else "error",
            summary=summarize(outcome.output if outcome.ok else outcome.error, self.summary_limit),
        )
        state.tool_steps.append(step)
        feedback.append(outcome.as_feedback())
        logger.info("%sTool result: %s - %s", self._id_prefix, step.status, tool_name)
        yield StreamEvent("tool_result", step.to_dict())

    async def _execute(
        self, tool_name: str, arguments: dict, state: _ExchangeState
    ) -> ToolOutcome:
        if self.executor is None:
            return ToolOutcome.failure(tool_name, "no tool executor configured")
        with self.trace.span(name=f"tool:{tool_name}", input=arguments) as span:
            outcome = await self.executor.execute(tool_name, arguments, state.session)
            if outcome.ok:
                span.set_output({"result": outcome.output[:500]})
            else:
                span.set_status("error")
                span.set_output({"error": outcome.error})
        return outcome

    async def _within(self, deadline: float, awaitable):
        """Await under the exchange's wall-clock budget."""
        remaining = deadline - asyncio.get_running_loop().time()
        if remaining <= 0:
            awaitable.close()
            raise ExchangeTimeoutError(
                f"Exchange timed out after {self.exchange_timeout:.0f} seconds"
            )
        try:
            return await asyncio.wait_for(awaitable, timeout=remaining)
        except asyncio.TimeoutError:
            raise ExchangeTimeoutError(
                f"Exchange timed out after {self.exchange_timeout:.0f} seconds"
            ) from None

    def _log_summary(self, state: _ExchangeState) -> None:
        """Log a compact exchange summary."""
        logger.info("%s%s", self._id_prefix, "─" * 50)
        logger.info(
            "%sEXCHANGE SUMMARY: %d model call(s), %d tool step(s), session=%s",
            self._id_prefix,
            state.invocations,
            len(state.tool_steps),
            state.session or "-",
        )
        for step in state.tool_steps:
            logger.info(
                "%s  %s [%s] %s", self._id_prefix, step.tool_name, step.status, step.summary[:80]
            )
        if state.result is not None:
            logger.info(
                "%sResponse length: %d", self._id_prefix, len(state.result.final_text)
            )
