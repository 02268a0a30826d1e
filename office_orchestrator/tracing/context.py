"""
Exchange-scoped tracing using the Langfuse SDK v3 observation API.

One ``ExchangeTrace`` per chat request opens a root span; discovery, model
calls and tool executions nest under it through explicit trace context.
All methods are no-ops when tracing is disabled.
"""

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Iterator, Optional

from .client import get_tracing_client

logger = logging.getLogger(__name__)


@dataclass
class Observation:
    """A span or generation being recorded."""

    name: str
    _handle: Any = field(default=None, repr=False)
    _observation: Any = field(default=None, repr=False)
    _start_time: float = field(default_factory=time.time, repr=False)
    _output: Any = field(default=None, repr=False)
    _usage: Optional[dict] = field(default=None, repr=False)
    _status: str = field(default="success", repr=False)

    def set_output(self, output: Any) -> None:
        self._output = output

    def set_status(self, status: str) -> None:
        self._status = status

    def set_usage(self, input_tokens: int, output_tokens: int) -> None:
        self._usage = {"input": input_tokens, "output": output_tokens}

    def _close(self) -> None:
        if self._observation is None:
            return
        try:
            update: dict[str, Any] = {
                "metadata": {
                    "status": self._status,
                    "duration_ms": round((time.time() - self._start_time) * 1000, 2),
                }
            }
            if self._output is not None:
                update["output"] = self._output
            if self._usage:
                update["usage_details"] = self._usage
            self._observation.update(**update)
            self._handle.__exit__(None, None, None)
        except Exception as e:
            logger.warning(f"Failed to end observation '{self.name}': {e}")


@dataclass
class ExchangeTrace:
    """Request-scoped trace for one chat exchange."""

    execution_id: str
    session_id: Optional[str] = None
    _root: Optional[Observation] = field(default=None, repr=False)
    _trace_id: Optional[str] = field(default=None, repr=False)
    _root_id: Optional[str] = field(default=None, repr=False)

    @property
    def enabled(self) -> bool:
        client = get_tracing_client()
        return client is not None and client.enabled

    def _open(self, as_type: str, name: str, **kwargs) -> Observation:
        observation = Observation(name=name)
        client = get_tracing_client()
        if client is None or client.client is None:
            return observation
        try:
            if self._trace_id and self._root_id:
                from langfuse.types import TraceContext

                kwargs["trace_context"] = TraceContext(
                    trace_id=self._trace_id, parent_span_id=self._root_id
                )
            handle = client.client.start_as_current_observation(
                as_type=as_type, name=name, **kwargs
            )
            observation._handle = handle
            observation._observation = handle.__enter__()
        except Exception as e:
            logger.warning(f"[{self.execution_id}] Failed to start '{name}': {e}")
            observation._observation = None
        return observation

    def start(self, name: str, input: Any = None, metadata: Optional[dict] = None) -> None:
        """Open the root span of the exchange."""
        if not self.enabled:
            return
        trace_metadata = {"execution_id": self.execution_id, **(metadata or {})}
        self._root = self._open("span", name, input=input, metadata=trace_metadata)
        root = self._root._observation
        if root is None:
            return
        self._trace_id = getattr(root, "trace_id", None)
        self._root_id = getattr(root, "id", None)
        try:
            root.update_trace(session_id=self.session_id)
        except Exception as e:
            logger.debug(f"[{self.execution_id}] update_trace failed: {e}")

    def end(self, output: Any = None, status: str = "success") -> None:
        """Close the root span."""
        if self._root is None:
            return
        self._root.set_output(output)
        self._root.set_status(status)
        self._root._close()
        self._root = None

    @contextmanager
    def span(
        self, name: str, input: Any = None, metadata: Optional[dict] = None
    ) -> Iterator[Observation]:
        """Record a child span."""
        observation = (
            self._open("span", name, input=input, metadata=metadata)
            if self.enabled
            else Observation(name=name)
        )
        try:
            yield observation
        finally:
            observation._close()

    @contextmanager
    def generation(
        self,
        name: str,
        model: str,
        input: Any = None,
        model_parameters: Optional[dict] = None,
    ) -> Iterator[Observation]:
        """Record a model call."""
        observation = (
            self._open(
                "generation",
                name,
                model=model,
                input=input,
                model_parameters=model_parameters,
            )
            if self.enabled
            else Observation(name=name)
        )
        try:
            yield observation
        finally:
            observation._close()
