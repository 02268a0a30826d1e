"""
Error taxonomy for the orchestration core.

Tool-level failures never surface as exceptions from the loop; these classes
cover transport, gateway, model and timeout failures so callers can tell
"ran out of time" apart from "failed".
"""

from typing import Optional


class OrchestratorError(Exception):
    """Base class for all orchestration errors."""

    error_type = "internal"


class TransportError(OrchestratorError):
    """Network/HTTP failure talking to the gateway or model provider."""

    error_type = "transport"

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class GatewayError(OrchestratorError):
    """The tool gateway answered with a structured error payload."""

    error_type = "gateway"

    def __init__(self, message: str, code: Optional[int] = None):
        super().__init__(message)
        self.code = code


class ParseError(OrchestratorError):
    """Unexpected response shape from the gateway or the model."""

    error_type = "parse"


class ModelInvocationError(OrchestratorError):
    """The model call failed (timeout, provider error, malformed reply)."""

    error_type = "model"


class ExchangeTimeoutError(OrchestratorError):
    """The wall-clock budget of an exchange was exceeded."""

    error_type = "timeout"
