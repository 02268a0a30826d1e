"""
Tool Manifest - the tools offered to the model for one exchange.

Unlike a process-wide registry, a manifest is built fresh from each
discovery call and discarded with the request.
"""

from typing import Iterable, Iterator, Optional

from ..models import ToolDescriptor


class ToolManifest:
    """Request-scoped set of discovered tools."""

    def __init__(self, tools: Optional[Iterable[ToolDescriptor]] = None):
        self._tools: list[ToolDescriptor] = list(tools or [])

    def __len__(self) -> int:
        return len(self._tools)

    def __iter__(self) -> Iterator[ToolDescriptor]:
        return iter(self._tools)

    def __bool__(self) -> bool:
        return bool(self._tools)

    @property
    def names(self) -> list[str]:
        """Gateway-native names, in discovery order."""
        return [tool.name for tool in self._tools]

    def get(self, sanitized_name: str) -> Optional[ToolDescriptor]:
        """Get a descriptor by sanitized name (first match wins)."""
        for tool in self._tools:
            if tool.sanitized_name == sanitized_name:
                return tool
        return None

    def resolve(self, sanitized_name: str) -> str:
        """
        Map a model-facing tool name back to the gateway tool name.

        Unknown names are returned unchanged.
        """
        tool = self.get(sanitized_name)
        return tool.name if tool else sanitized_name

    def collisions(self) -> dict[str, list[str]]:
        """Sanitized names shared by more than one gateway tool."""
        seen: dict[str, list[str]] = {}
        for tool in self._tools:
            seen.setdefault(tool.sanitized_name, []).append(tool.name)
        return {name: originals for name, originals in seen.items() if len(originals) > 1}

    def get_tools_summary(self) -> str:
        """Get formatted summary of all tools for logs and prompts."""
        return "\n".join(f"- {tool.name}: {tool.description}" for tool in self._tools)
