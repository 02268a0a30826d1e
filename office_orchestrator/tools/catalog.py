"""
Tool Catalog Resolver

Turns a free-text need into a bounded set of tool descriptors by asking the
gateway's search tool, and normalizes the schemas it returns.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Optional

from ..errors import ParseError
from ..models import GatewayConfig, ToolDescriptor
from .gateway import ToolGatewayClient

logger = logging.getLogger(__name__)

DESCRIPTION_LIMIT = 500

_DISALLOWED_NAME_CHARS = re.compile(r"[^a-zA-Z0-9_-]")

EMPTY_SCHEMA: dict = {"type": "object", "properties": {}}


def sanitize_tool_name(name: str) -> str:
    """Rewrite a gateway tool slug into a model-safe identifier."""
    return _DISALLOWED_NAME_CHARS.sub("_", name)


def build_descriptor(
    slug: str, schema: Any, description_limit: int = DESCRIPTION_LIMIT
) -> ToolDescriptor:
    """Normalize one ``slug -> schema`` entry into a ToolDescriptor."""
    schema = schema if isinstance(schema, dict) else {}
    description = schema.get("description") or ""
    input_schema = schema.get("input_schema")
    return ToolDescriptor(
        name=slug,
        sanitized_name=sanitize_tool_name(slug),
        description=str(description)[:description_limit],
        input_schema=input_schema if isinstance(input_schema, dict) else dict(EMPTY_SCHEMA),
    )


@dataclass
class DiscoveryResult:
    """Tools discovered for a query plus the (possibly new) session id."""

    tools: list[ToolDescriptor] = field(default_factory=list)
    session: Optional[str] = None


def _extract_search_payload(result: Any) -> dict:
    """
    Dig the first search result out of the gateway's nested envelope.

    Layout: ``result.content[0].text`` holds JSON whose
    ``data.data.results[0]`` carries ``tool_schemas`` and ``session``.
    """
    try:
        text = result["content"][0]["text"]
    except (KeyError, IndexError, TypeError) as e:
        raise ParseError("Search result has no text content") from e

    try:
        parsed = json.loads(text)
    except (json.JSONDecodeError, TypeError) as e:
        raise ParseError(f"Search result text is not JSON: {e}") from e

    try:
        first = parsed["data"]["data"]["results"][0]
    except (KeyError, IndexError, TypeError) as e:
        raise ParseError("Search result has no results[0] entry") from e

    if not isinstance(first, dict):
        raise ParseError("Search result entry is not an object")
    return first


class ToolCatalog:
    """Discovers gateway tools relevant to a natural-language query."""

    def __init__(
        self,
        gateway: ToolGatewayClient,
        gateway_config: GatewayConfig,
        description_limit: int = DESCRIPTION_LIMIT,
    ):
        self.gateway = gateway
        self.search_tool = gateway_config.search_tool
        self.description_limit = description_limit

    async def discover(
        self, query: str, session: Optional[str] = None
    ) -> DiscoveryResult:
        """
        Discover tools for a query.

        Gateway and transport errors propagate to the caller; a response
        with a missing or malformed structure yields an empty tool list.

        Args:
            query: Free-text description of the user's need.
            session: Existing session id, or None to mint a new one.

        Returns:
            DiscoveryResult with normalized descriptors and the session id.
        """
        result = await self.gateway.call(
            "tools/call",
            {
                "name": self.search_tool,
                "arguments": {
                    "queries": [{"use_case": query, "known_fields": ""}],
                    "session": {"id": session} if session else {"generate_id": True},
                },
            },
        )

        try:
            entry = _extract_search_payload(result)
        except ParseError as e:
            logger.warning("Tool discovery returned an unusable payload: %s", e)
            return DiscoveryResult(tools=[], session=session)

        session_info = entry.get("session")
        new_session = session
        if isinstance(session_info, dict) and session_info.get("id"):
            new_session = str(session_info["id"])

        schemas = entry.get("tool_schemas")
        if not isinstance(schemas, dict):
            schemas = {}

        tools = [
            build_descriptor(slug, schema, self.description_limit)
            for slug, schema in schemas.items()
        ]
        logger.info(
            "Discovered %d tools for query: %s", len(tools), [t.name for t in tools]
        )
        return DiscoveryResult(tools=tools, session=new_session)
