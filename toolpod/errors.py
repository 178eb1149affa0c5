"""Structured errors raised across the registry and pod boundary."""

from __future__ import annotations

from enum import Enum, IntEnum
from typing import Any, Dict, Optional


class ErrorCode(IntEnum):
    """JSON-RPC error codes used on the wire."""

    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603
    REQUEST_TIMEOUT = -32001


class ErrorKind(str, Enum):
    """Failure taxonomy for tool registration and execution."""

    DUPLICATE_TOOL = "DuplicateTool"
    TOOL_NOT_FOUND = "ToolNotFound"
    ABORTED_BEFORE_START = "AbortedBeforeStart"
    INVALID_ARGUMENT = "InvalidArgument"
    ABORTED = "Aborted"
    TIMEOUT = "Timeout"
    HANDLER_FAILURE = "HandlerFailure"


_KIND_CODES: Dict[ErrorKind, ErrorCode] = {
    ErrorKind.DUPLICATE_TOOL: ErrorCode.INVALID_REQUEST,
    ErrorKind.TOOL_NOT_FOUND: ErrorCode.METHOD_NOT_FOUND,
    ErrorKind.ABORTED_BEFORE_START: ErrorCode.INTERNAL_ERROR,
    ErrorKind.INVALID_ARGUMENT: ErrorCode.INVALID_PARAMS,
    ErrorKind.ABORTED: ErrorCode.INTERNAL_ERROR,
    ErrorKind.TIMEOUT: ErrorCode.REQUEST_TIMEOUT,
    ErrorKind.HANDLER_FAILURE: ErrorCode.INTERNAL_ERROR,
}


class ToolpodError(Exception):
    """Base class for every error toolpod raises on purpose."""

    code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(self, message: str, data: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.data = data or {}

    def to_jsonrpc(self) -> Dict[str, Any]:
        """Render as a JSON-RPC ``error`` object."""
        error: Dict[str, Any] = {"code": int(self.code), "message": self.message}
        if self.data:
            error["data"] = self.data
        return error


class ToolError(ToolpodError):
    """
    A registry failure with a fixed ``kind``.

    Every failure that leaves ``ToolRegistry.execute`` is one of these, so
    callers can tell bad input apart from a broken handler, a timeout or
    their own cancellation.
    """

    def __init__(self, kind: ErrorKind, message: str, data: Optional[Dict[str, Any]] = None):
        super().__init__(message, {"kind": kind.value, **(data or {})})
        self.kind = kind
        self.code = _KIND_CODES[kind]

    @property
    def reason(self) -> Any:
        """Cancellation reason for ``Aborted`` errors."""
        return self.data.get("reason")

    def __repr__(self) -> str:
        return f"ToolError({self.kind.value}, {self.message!r})"


class PodError(ToolpodError):
    """Raised by the pod facade for transport or lifecycle failures."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, data)
        self.code = code
