"""Data models for tools, call requests, results and protocol listings."""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from toolpod.tools.arguments import ArgumentSchema
from toolpod.tools.cancellation import CancelSignal


# ── Protocol payloads ────────────────────────────────────────────────────


class TextContent(BaseModel):
    type: Literal["text"] = "text"
    text: str


class ImageContent(BaseModel):
    type: Literal["image"] = "image"
    data: str  # base64
    mimeType: str


Content = Union[TextContent, ImageContent]


class CallToolResult(BaseModel):
    """Success payload of a ``tools/call`` request."""

    content: List[Content] = Field(default_factory=list)
    isError: bool = False

    @classmethod
    def text(cls, text: str) -> "CallToolResult":
        """Shortcut for a result with a single text block."""
        return cls(content=[TextContent(text=text)])


class CallToolParams(BaseModel):
    name: str
    arguments: Dict[str, Any] = Field(default_factory=dict)


class CallToolRequest(BaseModel):
    """A ``tools/call`` request envelope."""

    method: Literal["tools/call"] = "tools/call"
    params: CallToolParams

    @classmethod
    def build(cls, name: str, arguments: Optional[Dict[str, Any]] = None) -> "CallToolRequest":
        return cls(params=CallToolParams(name=name, arguments=arguments or {}))


class PropertySchema(BaseModel):
    type: str
    description: Optional[str] = None


class InputSchema(BaseModel):
    type: Literal["object"] = "object"
    properties: Dict[str, PropertySchema] = Field(default_factory=dict)
    required: List[str] = Field(default_factory=list)


class ToolDefinition(BaseModel):
    """Protocol-facing descriptor of one registered tool."""

    name: str
    description: str
    inputSchema: InputSchema


class ListToolsResult(BaseModel):
    tools: List[ToolDefinition] = Field(default_factory=list)


# ── Tools ────────────────────────────────────────────────────────────────


@dataclass
class ToolContext:
    """Per-call context handed to a tool handler."""

    logger: logging.LoggerAdapter
    signal: CancelSignal


ToolHandler = Callable[[Dict[str, Any], ToolContext], Awaitable[Any]]


class Tool(BaseModel):
    """
    A named, immutable tool.

    ``arguments`` maps argument names to schemas; ``handler`` is an async
    function called with the validated arguments and a ``ToolContext``.

    Example:
        >>> async def greet(args, ctx):
        ...     return CallToolResult.text(f"Hello {args['name']}")
        >>> tool = Tool(
        ...     name="greet",
        ...     description="Say hello",
        ...     arguments={"name": string("Who to greet")},
        ...     handler=greet,
        ... )
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str = Field(min_length=1)
    description: str = ""
    arguments: Dict[str, ArgumentSchema] = Field(default_factory=dict)
    handler: ToolHandler

    @field_validator("handler")
    @classmethod
    def _require_async(cls, handler: Any) -> Any:
        if not inspect.iscoroutinefunction(handler):
            raise ValueError("handler must be an async function")
        return handler


class PodOptions(BaseModel):
    """Options for building a ``Pod``."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str
    version: str
    tools: List[Tool] = Field(default_factory=list)
    capabilities: Dict[str, Any] = Field(default_factory=lambda: {"tools": {}})
