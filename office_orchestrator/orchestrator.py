"""
Office Orchestrator

Entry point for one chat exchange: builds the request-scoped model client,
gateway client and orchestration loop from configuration, runs the loop and
releases every client afterwards.
"""

import logging
import uuid
from contextlib import AsyncExitStack
from typing import AsyncIterator, Optional

from .config_loader import load_app_config
from .llm_call import ModelClient
from .models import AppConfig, ExchangeRequest, OrchestrationResult, StreamEvent
from .orchestration import OrchestrationLoop
from .tools import ToolCatalog, ToolExecutor, ToolGatewayClient
from .tracing import ExchangeTrace, get_tracing_client

logger = logging.getLogger(__name__)


class OfficeOrchestrator:
    """
    Runs chat exchanges for office agents.

    Nothing is shared between exchanges: each call to ``run`` or ``stream``
    opens its own clients unless explicit ones were injected (tests).
    """

    def __init__(
        self,
        app_config: Optional[AppConfig] = None,
        model_client: Optional[ModelClient] = None,
        gateway: Optional[ToolGatewayClient] = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            app_config: Application configuration (loaded from YAML if not provided)
            model_client: Model client to use instead of building one per exchange
            gateway: Gateway client to use instead of building one per exchange
        """
        self.config = app_config or load_app_config()
        self._model_client = model_client
        self._gateway = gateway

    async def run(
        self, request: ExchangeRequest, execution_id: Optional[str] = None
    ) -> OrchestrationResult:
        """Run one exchange to completion; failures are reported in the result."""
        execution_id = execution_id or f"exec-{uuid.uuid4().hex[:8]}"
        async with AsyncExitStack() as stack:
            loop = await self._build_loop(stack, request, execution_id)
            result = await loop.run(request)
        _flush_tracing()
        return result

    async def stream(
        self, request: ExchangeRequest, execution_id: Optional[str] = None
    ) -> AsyncIterator[StreamEvent]:
        """Run one exchange, yielding progress events as they happen."""
        execution_id = execution_id or f"exec-{uuid.uuid4().hex[:8]}"
        async with AsyncExitStack() as stack:
            loop = await self._build_loop(stack, request, execution_id)
            async for event in loop.stream(request):
                yield event
        _flush_tracing()

    async def _build_loop(
        self, stack: AsyncExitStack, request: ExchangeRequest, execution_id: str
    ) -> OrchestrationLoop:
        settings = self.config.orchestration

        model = self._model_client
        if model is None:
            model = await stack.enter_async_context(ModelClient(self.config.model))

        catalog = executor = None
        if request.tools_enabled:
            gateway = self._gateway
            if gateway is None:
                gateway = await stack.enter_async_context(
                    ToolGatewayClient(self.config.gateway)
                )
            catalog = ToolCatalog(gateway, self.config.gateway, settings.description_limit)
            executor = ToolExecutor(gateway, self.config.gateway, settings.result_limit)

        return OrchestrationLoop(
            model=model,
            catalog=catalog,
            executor=executor,
            max_iterations=settings.max_iterations,
            exchange_timeout=settings.exchange_timeout,
            summary_limit=settings.summary_limit,
            execution_id=execution_id,
            trace=ExchangeTrace(execution_id=execution_id, session_id=request.session),
        )


async def run_exchange(
    request: ExchangeRequest, app_config: Optional[AppConfig] = None
) -> OrchestrationResult:
    """
    Convenience function to run a single exchange.

    Args:
        request: The exchange to run
        app_config: Optional configuration override

    Returns:
        The orchestration result
    """
    return await OfficeOrchestrator(app_config=app_config).run(request)


def _flush_tracing() -> None:
    """Flush tracing client if available."""
    client = get_tracing_client()
    if client:
        client.flush()
