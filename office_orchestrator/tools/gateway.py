"""
Tool Gateway Client

Low-level JSON-RPC transport to the remote tool-hosting service (an MCP
endpoint reached over streamable HTTP).
"""

import json
import logging
import re
import time
from typing import Any, Optional

import httpx

from ..errors import GatewayError, TransportError
from ..models import GatewayConfig

logger = logging.getLogger(__name__)

# Streaming-protocol artifact: the JSON body may arrive on an SSE ``data: {...}`` line.
ENVELOPE_PATTERN = re.compile(r"^data:\s*(\{.*\})\s*$", re.MULTILINE)


def unwrap_envelope(text: str) -> dict:
    """
    Parse a gateway response body, unwrapping a ``data:`` envelope if present.

    Args:
        text: Raw response body.

    Returns:
        The decoded JSON-RPC response object.

    Raises:
        TransportError: If the body is not a JSON object.
    """
    payload = text.strip()
    if not payload.startswith("{"):
        match = ENVELOPE_PATTERN.search(text)
        if match:
            payload = match.group(1)
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as e:
        raise TransportError(f"Malformed gateway response: {e}") from e
    if not isinstance(data, dict):
        raise TransportError(
            f"Malformed gateway response: expected object, got {type(data).__name__}"
        )
    return data


class ToolGatewayClient:
    """
    Async JSON-RPC client for the tool gateway.

    No retries happen at this layer; failures propagate as
    ``GatewayError`` (structured error payload) or ``TransportError``.
    """

    def __init__(
        self,
        gateway_config: GatewayConfig,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.url = gateway_config.url
        self._token = gateway_config.token
        self._timeout = gateway_config.timeout
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=self._timeout)

    async def __aenter__(self) -> "ToolGatewayClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client:
            await self._http.aclose()

    def _headers(self) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json, text/event-stream",
        }
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    async def call(self, method: str, params: dict) -> Any:
        """
        Issue a single JSON-RPC request and return its ``result``.

        Args:
            method: JSON-RPC method, e.g. ``tools/call``.
            params: Method parameters.

        Returns:
            The ``result`` member of the response (may be None).
        """
        request_id = int(time.time() * 1000)
        body = {"jsonrpc": "2.0", "id": request_id, "method": method, "params": params}
        logger.debug("Gateway call %s (%s)", method, params.get("name", "-"))

        try:
            response = await self._http.post(
                self.url, json=body, headers=self._headers(), timeout=self._timeout
            )
        except httpx.TimeoutException as e:
            raise TransportError(f"Gateway request timed out: {e}") from e
        except httpx.HTTPError as e:
            raise TransportError(f"Gateway request failed: {e}") from e

        if response.status_code >= 400:
            raise TransportError(
                f"Gateway returned HTTP {response.status_code}: {response.text[:300]}",
                status_code=response.status_code,
            )

        data = unwrap_envelope(response.text)

        error = data.get("error")
        if error:
            if isinstance(error, dict):
                raise GatewayError(
                    error.get("message") or "MCP error", code=error.get("code")
                )
            raise GatewayError(str(error))

        return data.get("result")
