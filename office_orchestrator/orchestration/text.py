"""
Text shaping for model output and tool-step display.
"""

import json
import re
from typing import Any

FALLBACK_TEXT = "I processed your request but couldn't generate a text response."
APOLOGY_TEXT = "Sorry, I had trouble processing that request."
TOOL_PLACEHOLDER = "Using tool..."

SUMMARY_LIMIT = 200

# Only well-formed pairs; an unterminated <reasoning> tag is left as-is.
_REASONING_PATTERN = re.compile(r"<reasoning>[\s\S]*?</reasoning>")


def strip_reasoning(text: str) -> str:
    """Remove ``<reasoning>...</reasoning>`` spans and trim the result."""
    return _REASONING_PATTERN.sub("", text).strip()


def summarize(content: Any, limit: int = SUMMARY_LIMIT) -> str:
    """Short preview of a tool result for the UI."""
    text = content if isinstance(content, str) else json.dumps(content, default=str)
    return text[:limit] + ("..." if len(text) > limit else "")


# keyword -> label, checked in order against the tool name and arguments
_ACTION_LABELS: tuple[tuple[tuple[str, ...], str], ...] = (
    (("exa", "search"), "Researching with web tools"),
    (("notion",), "Saving to Notion"),
    (("slack",), "Notifying via Slack"),
    (("gmail", "email"), "Sending email"),
    (("github",), "Working in GitHub"),
    (("calendar",), "Updating calendar"),
)


def derive_action(tool_name: str, arguments: Any) -> str:
    """Human-readable label for a tool invocation."""
    haystack = (tool_name + " " + json.dumps(arguments or {}, default=str)).lower()
    for keywords, label in _ACTION_LABELS:
        if any(keyword in haystack for keyword in keywords):
            return label
    return f"Executing tool: {tool_name[:60]}"
