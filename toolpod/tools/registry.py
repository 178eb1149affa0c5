"""Tool registry: registration, argument validation and the execution race."""

from __future__ import annotations

import asyncio
import functools
import logging
from typing import Any, Dict, List, Optional, Set

from toolpod.errors import ErrorKind, ToolError
from toolpod.log import tool_logger
from toolpod.tools.arguments import MISSING
from toolpod.tools.cancellation import CancelSignal
from toolpod.tools.schema import (
    CallToolRequest,
    CallToolResult,
    InputSchema,
    ListToolsResult,
    PropertySchema,
    Tool,
    ToolContext,
    ToolDefinition,
)

logger = logging.getLogger(__name__)

TOOL_TIMEOUT = 30.0  # seconds, measured from the end of argument validation


class ToolRegistry:
    """
    Holds the tools a pod exposes and runs calls against them.

    The registry guarantees:
    - unique tool names (a duplicate is rejected, the first one stays)
    - argument validation before a handler ever runs
    - exactly one outcome per call: the handler's result, ``Aborted`` when
      the call's signal fires, or ``Timeout`` after ``TOOL_TIMEOUT``
    - every failure leaves ``execute`` as a ``ToolError``

    A handler that loses the race is not cancelled. It keeps running in the
    background and whatever it eventually produces is dropped.
    """

    def __init__(self) -> None:
        self._tools: Dict[str, Tool] = {}
        self._detached: Set[asyncio.Future] = set()

    # ── Registration ──────────────────────────────────────────────────────

    def register(self, tool: Tool) -> None:
        """Add a tool. Raises ``ToolError(DuplicateTool)`` if the name is taken."""
        if tool.name in self._tools:
            raise ToolError(
                ErrorKind.DUPLICATE_TOOL,
                f'Tool "{tool.name}" is already registered',
                {"tool": tool.name},
            )
        self._tools[tool.name] = tool
        logger.info("Tool registered: %s", tool.name, extra={"tool": tool.name})

    def has(self, name: str) -> bool:
        return name in self._tools

    def get(self, name: str) -> Optional[Tool]:
        return self._tools.get(name)

    def names(self) -> List[str]:
        return list(self._tools)

    def __len__(self) -> int:
        return len(self._tools)

    @property
    def detached_calls(self) -> int:
        """Handlers still running after losing their race."""
        return len(self._detached)

    # ── Listing ───────────────────────────────────────────────────────────

    def list_definitions(self) -> ListToolsResult:
        """
        Describe every tool in registration order.

        The input schema of each tool is rebuilt from its argument schemas on
        every call, so tools registered late show up immediately.
        """
        definitions = []
        for tool in self._tools.values():
            properties = {}
            required = []
            for key, schema in tool.arguments.items():
                properties[key] = PropertySchema(
                    type=schema.kind,
                    description=schema.description or None,
                )
                if not schema.optional:
                    required.append(key)

            definitions.append(ToolDefinition(
                name=tool.name,
                description=tool.description,
                inputSchema=InputSchema(properties=properties, required=required),
            ))
        return ListToolsResult(tools=definitions)

    # ── Execution ─────────────────────────────────────────────────────────

    async def execute(self, request: CallToolRequest, signal: CancelSignal) -> CallToolResult:
        """
        Run one tool call.

        Parameters
        ----------
        request : the ``tools/call`` request (tool name + raw arguments)
        signal : cancellation signal owned by the caller

        Raises
        ------
        ToolError
            ``ToolNotFound``, ``AbortedBeforeStart``, ``InvalidArgument``,
            ``Aborted``, ``Timeout`` or ``HandlerFailure``.
        """
        name = request.params.name
        tool = self._tools.get(name)
        if tool is None:
            raise ToolError(ErrorKind.TOOL_NOT_FOUND, f'Tool "{name}" not found', {"tool": name})

        if signal.cancelled:
            raise ToolError(
                ErrorKind.ABORTED_BEFORE_START,
                f'Tool "{name}" execution was aborted before starting',
                {"tool": name, "reason": signal.reason},
            )

        args = self._validate_arguments(tool, request.params.arguments)
        context = ToolContext(logger=tool_logger(logger, tool.name), signal=signal)

        try:
            result = await self._race(tool, args, context)
            if isinstance(result, CallToolResult):
                return result
            return CallToolResult.model_validate(result)
        except ToolError:
            raise
        except Exception as exc:
            context.logger.error("Tool execution error: %s", exc, exc_info=exc)
            raise ToolError(
                ErrorKind.HANDLER_FAILURE,
                f'Tool "{name}" execution failed: {exc}',
                {"tool": name},
            ) from exc

    def _validate_arguments(self, tool: Tool, raw: Dict[str, Any]) -> Dict[str, Any]:
        """Validate declared arguments in order, stopping at the first failure."""
        validated: Dict[str, Any] = {}
        for key, schema in tool.arguments.items():
            try:
                validated[key] = schema.validate(raw.get(key, MISSING))
            except Exception as exc:
                raise ToolError(
                    ErrorKind.INVALID_ARGUMENT,
                    f'Invalid argument "{key}" for tool "{tool.name}": {exc}',
                    {"tool": tool.name, "argument": key},
                ) from exc
        return validated

    async def _race(self, tool: Tool, args: Dict[str, Any], context: ToolContext) -> Any:
        handler = asyncio.ensure_future(tool.handler(args, context))
        aborted = asyncio.ensure_future(context.signal.wait())
        timed_out = asyncio.ensure_future(asyncio.sleep(TOOL_TIMEOUT))

        try:
            done, _ = await asyncio.wait(
                [handler, aborted, timed_out],
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            aborted.cancel()
            timed_out.cancel()
            if not handler.done():
                self._detach(tool.name, handler)

        # Branches that settled in the same loop iteration are checked in
        # creation order. That is scheduler order, not a priority.
        if handler in done:
            if handler.cancelled():
                raise ToolError(
                    ErrorKind.HANDLER_FAILURE,
                    f'Tool "{tool.name}" execution failed: handler was cancelled',
                    {"tool": tool.name},
                )
            return handler.result()

        if aborted in done:
            reason = aborted.result()
            context.logger.warning("Tool execution aborted (reason: %r)", reason)
            suffix = f": {reason}" if reason is not None else ""
            raise ToolError(
                ErrorKind.ABORTED,
                f'Tool "{tool.name}" execution was aborted{suffix}',
                {"tool": tool.name, "reason": reason},
            )

        timeout_ms = int(TOOL_TIMEOUT * 1000)
        context.logger.warning("Tool execution timed out after %dms", timeout_ms)
        raise ToolError(
            ErrorKind.TIMEOUT,
            f'Tool "{tool.name}" execution timed out after {timeout_ms}ms',
            {"tool": tool.name, "timeout_ms": timeout_ms},
        )

    # ── Losing handlers ───────────────────────────────────────────────────

    def _detach(self, name: str, task: asyncio.Future) -> None:
        self._detached.add(task)
        task.add_done_callback(functools.partial(self._on_detached_done, name))

    def _on_detached_done(self, name: str, task: asyncio.Future) -> None:
        self._detached.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.debug("Discarded failure from %s after it lost the race: %s", name, exc)
        else:
            logger.debug("Discarded late result from %s", name)
