"""
Langfuse tracing client with graceful degradation.

Tracing is optional: without credentials, or when the Langfuse host cannot
be reached at startup, every tracing call becomes a no-op.
"""

import logging
from typing import Any, Optional

from langfuse import Langfuse

logger = logging.getLogger(__name__)


class TracingClient:
    """Process-wide Langfuse handle; disabled unless fully configured."""

    def __init__(
        self,
        public_key: str = "",
        secret_key: str = "",
        host: str = "",
        debug: bool = False,
    ):
        self._client: Optional[Langfuse] = None
        self._error: Optional[str] = None

        if not public_key or not secret_key:
            self._error = "Langfuse credentials not configured"
            logger.debug(f"Tracing disabled: {self._error}")
            return

        if host and not host.startswith(("http://", "https://")):
            logger.warning(
                f"LANGFUSE_HOST '{host}' may be malformed. "
                "Expected format: http://hostname:port or https://hostname:port."
            )

        kwargs: dict[str, Any] = {
            "public_key": public_key,
            "secret_key": secret_key,
            "debug": debug,
        }
        if host:
            kwargs["host"] = host

        try:
            client = Langfuse(**kwargs)
            if not client.auth_check():
                self._error = "Langfuse auth_check() failed - check host and credentials"
                logger.warning(f"Tracing disabled: {self._error}")
                return
            self._client = client
            logger.info(f"Langfuse tracing enabled (host: {host or 'default'})")
        except Exception as e:
            self._error = f"Langfuse unavailable: {e}"
            logger.warning(f"Tracing disabled: {self._error}")

    @property
    def enabled(self) -> bool:
        return self._client is not None

    @property
    def error(self) -> Optional[str]:
        """Why tracing is disabled, if it is."""
        return self._error

    @property
    def client(self) -> Optional[Langfuse]:
        return self._client

    def flush(self) -> None:
        """Flush pending events."""
        if not self._client:
            return
        try:
            self._client.flush()
        except Exception as e:
            logger.warning(f"Failed to flush tracing events: {e}")

    def shutdown(self) -> None:
        """Flush and release the Langfuse client."""
        if not self._client:
            return
        try:
            self._client.shutdown()
        except Exception as e:
            logger.warning(f"Error during tracing client shutdown: {e}")
        finally:
            self._client = None


_tracing_client: Optional[TracingClient] = None


def init_tracing_client(
    public_key: str = "",
    secret_key: str = "",
    host: str = "",
    debug: bool = False,
) -> TracingClient:
    """Create the process-wide tracing client."""
    global _tracing_client
    _tracing_client = TracingClient(
        public_key=public_key, secret_key=secret_key, host=host, debug=debug
    )
    return _tracing_client


def get_tracing_client() -> Optional[TracingClient]:
    """Get the process-wide tracing client, if initialized."""
    return _tracing_client


def shutdown_tracing() -> None:
    """Shut down and forget the process-wide tracing client."""
    global _tracing_client
    if _tracing_client:
        _tracing_client.shutdown()
        _tracing_client = None
