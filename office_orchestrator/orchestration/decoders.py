"""
Reply decoders for the Model Invocation Adapter.

Providers answer in different shapes. Each decoder recognizes one shape and
turns it into the canonical ``ModelReply``; ``decode_reply`` tries them in
order. A new provider shape gets a new decoder appended to ``DECODERS``.
"""

import json
import logging
from typing import Any

from ..errors import ParseError
from ..models import ModelReply, ToolCallIntent
from ..models.exchange import new_step_id
from .text import strip_reasoning

logger = logging.getLogger(__name__)


def _parse_arguments(raw: Any) -> dict:
    """Tool arguments as a dict; JSON strings are decoded, junk becomes {}."""
    if isinstance(raw, dict):
        return raw
    if isinstance(raw, str):
        if not raw.strip():
            return {}
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Unparseable tool arguments: %s", raw[:200])
            return {}
        return parsed if isinstance(parsed, dict) else {}
    return {}


def _token_counts(body: dict, input_key: str, output_key: str) -> tuple[int, int]:
    usage = body.get("usage")
    if not isinstance(usage, dict):
        return 0, 0
    try:
        return int(usage.get(input_key) or 0), int(usage.get(output_key) or 0)
    except (TypeError, ValueError):
        return 0, 0


class ReplyDecoder:
    """Base class for provider reply shapes."""

    shape = "unknown"

    def matches(self, body: dict) -> bool:
        raise NotImplementedError

    def decode(self, body: dict) -> ModelReply:
        raise NotImplementedError


class ChoicesDecoder(ReplyDecoder):
    """
    Role/choices shape (OpenAI-compatible)::

        {"choices": [{"message": {"content": "...",
                                  "tool_calls": [{"id", "function": {"name", "arguments": "<json>"}}]}}]}
    """

    shape = "choices"

    def matches(self, body: dict) -> bool:
        choices = body.get("choices")
        return isinstance(choices, list) and len(choices) > 0

    def decode(self, body: dict) -> ModelReply:
        message = body["choices"][0].get("message") or {}
        content = message.get("content") or ""
        if isinstance(content, list):
            # Some compatible servers return content parts instead of a string
            content = "".join(
                part.get("text", "") for part in content
                if isinstance(part, dict) and part.get("type") == "text"
            )

        calls = []
        for raw_call in message.get("tool_calls") or []:
            function = raw_call.get("function") or {}
            name = function.get("name") or raw_call.get("name")
            if not name:
                continue
            calls.append(
                ToolCallIntent(
                    id=raw_call.get("id") or new_step_id(),
                    name=name,
                    arguments=_parse_arguments(function.get("arguments")),
                )
            )
        input_tokens, output_tokens = _token_counts(body, "prompt_tokens", "completion_tokens")
        return ModelReply(
            text=strip_reasoning(str(content)),
            tool_calls=calls,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
        )


class ContentBlocksDecoder(ReplyDecoder):
    """
    Content-block shape (Bedrock / Anthropic messages)::

        {"content": [{"type": "text", "text": "..."},
                     {"type": "tool_use", "id", "name", "input": {...}}]}
    """

    shape = "content_blocks"

    def matches(self, body: dict) -> bool:
        return isinstance(body.get("content"), list)

    def decode(self, body: dict) -> ModelReply:
        texts: list[str] = []
        calls = []
        for block in body["content"]:
            if isinstance(block, str):
                texts.append(block)
                continue
            if not isinstance(block, dict):
                continue
            if block.get("type") == "text":
                texts.append(block.get("text") or "")
            elif block.get("type") == "tool_use" and block.get("name"):
                calls.append(
                    ToolCallIntent(
                        id=block.get("id") or new_step_id(),
                        name=block["name"],
                        arguments=_parse_arguments(block.get("input")),
                    )
                )
        input_tokens, output_tokens = _token_counts(body, "input_tokens", "output_tokens")
        return ModelReply(
            text=strip_reasoning("\n".join(texts)),
            tool_calls=calls,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
        )


DECODERS: list[ReplyDecoder] = [ChoicesDecoder(), ContentBlocksDecoder()]


def decode_reply(body: Any) -> ModelReply:
    """
    Normalize a raw provider reply.

    Raises:
        ParseError: If no decoder recognizes the shape.
    """
    if not isinstance(body, dict):
        raise ParseError(f"Model reply is not an object: {type(body).__name__}")
    for decoder in DECODERS:
        if decoder.matches(body):
            return decoder.decode(body)
    raise ParseError(f"Unrecognized model reply shape (keys: {sorted(body)[:10]})")
