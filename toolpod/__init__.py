"""
toolpod - a small runtime for schema-validated tools.

Tools are named async handlers with declared argument schemas. A pod holds
them in a registry, validates every call, and settles each call exactly
once: with the handler's result, with ``Aborted`` when the caller cancels,
or with ``Timeout`` after a fixed 30 seconds.

Architecture:
- toolpod.tools       registry, argument schemas, cancellation signal
- toolpod.server      Pod facade and the stdio JSON-RPC transport
- toolpod.validation  toolpod.yaml loading
- toolpod.cli         `toolpod serve | list | call`
"""

__version__ = "0.1.0"
__license__ = "Apache-2.0"

from toolpod.errors import ErrorCode, ErrorKind, PodError, ToolError, ToolpodError
from toolpod.server import Pod
from toolpod.tools import CallToolResult, CancelSignal, PodOptions, Tool, ToolContext, ToolRegistry

__all__ = [
    "ErrorCode",
    "ErrorKind",
    "PodError",
    "ToolError",
    "ToolpodError",
    "Pod",
    "CallToolResult",
    "CancelSignal",
    "PodOptions",
    "Tool",
    "ToolContext",
    "ToolRegistry",
    "__version__",
]
