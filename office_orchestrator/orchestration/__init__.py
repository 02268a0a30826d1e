"""
Tool-use orchestration loop.

Bounded invoke/execute/feed-back cycle over a hosted model and a remote tool
gateway, with provider-independent reply decoding.
"""

from .decoders import ChoicesDecoder, ContentBlocksDecoder, ReplyDecoder, decode_reply
from .tool_defs import build_block_tools, build_function_tools
from .loop import EXCHANGE_TIMEOUT, MAX_ITERATIONS, OrchestrationLoop, normalize_history
from .text import APOLOGY_TEXT, FALLBACK_TEXT, derive_action, strip_reasoning, summarize

__all__ = [
    "ReplyDecoder",
    "ChoicesDecoder",
    "ContentBlocksDecoder",
    "decode_reply",
    "build_function_tools",
    "build_block_tools",
    "OrchestrationLoop",
    "normalize_history",
    "MAX_ITERATIONS",
    "EXCHANGE_TIMEOUT",
    "APOLOGY_TEXT",
    "FALLBACK_TEXT",
    "derive_action",
    "strip_reasoning",
    "summarize",
]
