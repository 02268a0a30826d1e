"""
Tool manifest formats for the model request.

Converts discovered ToolDescriptors into the tool definitions each model
backend expects: OpenAI function-calling format for chat completions and
``{name, description, input_schema}`` for content-block endpoints.
"""

from ..tools.registry import ToolManifest


def build_function_tools(manifest: ToolManifest) -> list[dict]:
    """
    Build OpenAI function-calling tool definitions.

    Args:
        manifest: Tools discovered for this exchange.

    Returns:
        List of OpenAI-format tool definitions, keyed by sanitized name.
    """
    return [
        {
            "type": "function",
            "function": {
                "name": tool.sanitized_name,
                "description": tool.description,
                "parameters": tool.input_schema,
            },
        }
        for tool in manifest
    ]


def build_block_tools(manifest: ToolManifest) -> list[dict]:
    """Build content-block (Bedrock/Anthropic) tool definitions."""
    return [
        {
            "name": tool.sanitized_name,
            "description": tool.description,
            "input_schema": tool.input_schema,
        }
        for tool in manifest
    ]
