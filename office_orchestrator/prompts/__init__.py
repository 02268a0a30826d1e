"""
Prompt construction for office agent personas.
"""

from .personas import (
    ROLE_PROMPTS,
    PERSONALITY_PROMPTS,
    build_system_prompt,
    build_tool_aware_prompt,
)

__all__ = [
    "ROLE_PROMPTS",
    "PERSONALITY_PROMPTS",
    "build_system_prompt",
    "build_tool_aware_prompt",
]
