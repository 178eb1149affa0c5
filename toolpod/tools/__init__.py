"""
Tool definitions, argument schemas and the tool registry.

A tool is a named async handler plus a set of argument schemas. The
registry validates every call against those schemas and races the handler
against the call's cancellation signal and a fixed timeout.
"""

from toolpod.tools.arguments import (
    Argument,
    ArgumentSchema,
    ArgumentValidationError,
    MISSING,
    array,
    boolean,
    integer,
    number,
    obj,
    string,
)
from toolpod.tools.cancellation import CancelSignal
from toolpod.tools.registry import TOOL_TIMEOUT, ToolRegistry
from toolpod.tools.schema import (
    CallToolParams,
    CallToolRequest,
    CallToolResult,
    ImageContent,
    ListToolsResult,
    PodOptions,
    TextContent,
    Tool,
    ToolContext,
    ToolDefinition,
)

__all__ = [
    "Argument",
    "ArgumentSchema",
    "ArgumentValidationError",
    "MISSING",
    "array",
    "boolean",
    "integer",
    "number",
    "obj",
    "string",
    "CancelSignal",
    "TOOL_TIMEOUT",
    "ToolRegistry",
    "CallToolParams",
    "CallToolRequest",
    "CallToolResult",
    "ImageContent",
    "ListToolsResult",
    "PodOptions",
    "TextContent",
    "Tool",
    "ToolContext",
    "ToolDefinition",
]
