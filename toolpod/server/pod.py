"""
Pod - the server facade.

A pod owns one ``ToolRegistry``, answers ``tools/list`` and ``tools/call``
requests from the stdio transport, offers the same call path to Python
callers, and shuts down cleanly on SIGINT/SIGTERM.
"""

from __future__ import annotations

import asyncio
import logging
import signal
from typing import Any, Dict, Optional

from pydantic import ValidationError

from toolpod.errors import ErrorCode, ErrorKind, PodError, ToolError, ToolpodError
from toolpod.server.transport import StdioServerTransport, jsonrpc_error, jsonrpc_result
from toolpod.tools.cancellation import CancelSignal
from toolpod.tools.registry import ToolRegistry
from toolpod.tools.schema import CallToolRequest, CallToolResult, ListToolsResult, PodOptions, Tool

logger = logging.getLogger(__name__)

PROTOCOL_VERSION = "2024-11-05"


class Pod:
    """
    Runs a set of tools behind a JSON-RPC stdio server.

    Example:
        >>> pod = Pod(PodOptions(name="demo", version="1.0.0", tools=[echo]))
        >>> result = await pod.call_tool("echo", {"text": "hi"})
        >>> await pod.serve()  # blocks until stdin closes or SIGINT
    """

    def __init__(self, options: PodOptions, transport: Optional[StdioServerTransport] = None):
        logger.info("Pod %s initializing", options.name)

        self.name = options.name
        self.version = options.version
        self.capabilities = options.capabilities

        self._registry = ToolRegistry()
        for tool in options.tools:
            self._registry.register(tool)

        self._transport = transport
        self._inflight: Dict[Any, CancelSignal] = {}
        self._shutdown_task: Optional[asyncio.Task] = None
        self._closed = False

        logger.info("Pod %s initialized with %d tools", self.name, len(self._registry))

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    @property
    def transport(self) -> Optional[StdioServerTransport]:
        return self._transport

    # ── Tools ─────────────────────────────────────────────────────────────

    def register_tool(self, tool: Tool) -> None:
        """Add a tool, also after the pod is serving. Names must be unique."""
        self._registry.register(tool)

    def list_tools(self) -> ListToolsResult:
        return self._registry.list_definitions()

    async def call_tool(self, name: str, args: Optional[Dict[str, Any]] = None) -> CallToolResult:
        """
        Call a tool directly, without a protocol envelope from a client.

        The call gets its own cancellation signal which nobody fires, so it
        ends with the handler's result, a failure, or a timeout.
        """
        if not self._registry.has(name):
            raise ToolError(ErrorKind.TOOL_NOT_FOUND, f'Tool "{name}" not found', {"tool": name})

        request = CallToolRequest.build(name, args)
        return await self._registry.execute(request, CancelSignal())

    # ── Protocol ──────────────────────────────────────────────────────────

    async def handle_message(self, message: Any) -> Optional[Dict[str, Any]]:
        """
        Handle one decoded JSON-RPC message.

        Returns the response to send back, or None for notifications.
        """
        if not isinstance(message, dict) or message.get("jsonrpc") != "2.0":
            return jsonrpc_error(None, {
                "code": int(ErrorCode.INVALID_REQUEST),
                "message": "Invalid JSON-RPC message",
            })

        method = message.get("method")
        msg_id = message.get("id")
        params = message.get("params") or {}

        if not isinstance(method, str) or not isinstance(params, dict) or not _valid_id(msg_id):
            return jsonrpc_error(msg_id if _valid_id(msg_id) else None, {
                "code": int(ErrorCode.INVALID_REQUEST),
                "message": "Invalid JSON-RPC request",
            })

        if "id" not in message:
            self._handle_notification(method, params)
            return None

        try:
            result = await self._handle_request(msg_id, method, params)
        except ToolpodError as exc:
            return jsonrpc_error(msg_id, exc.to_jsonrpc())
        return jsonrpc_result(msg_id, result)

    async def _handle_request(self, msg_id: Any, method: str, params: Dict[str, Any]) -> Dict[str, Any]:
        if method == "initialize":
            return {
                "protocolVersion": PROTOCOL_VERSION,
                "capabilities": self.capabilities,
                "serverInfo": {"name": self.name, "version": self.version},
            }

        if method == "ping":
            return {}

        if method == "tools/list":
            return self.list_tools().model_dump(exclude_none=True)

        if method == "tools/call":
            try:
                request = CallToolRequest(params=params)
            except ValidationError as exc:
                raise PodError(
                    f"Invalid tools/call params: {exc.error_count()} validation error(s)",
                    ErrorCode.INVALID_PARAMS,
                ) from exc

            cancel_signal = CancelSignal()
            if msg_id is not None:
                self._inflight[msg_id] = cancel_signal
            try:
                result = await self._registry.execute(request, cancel_signal)
            finally:
                # a reused id may already map to a newer call's signal
                if msg_id is not None and self._inflight.get(msg_id) is cancel_signal:
                    del self._inflight[msg_id]
            return result.model_dump(exclude_none=True)

        raise PodError(f'Method "{method}" not found', ErrorCode.METHOD_NOT_FOUND)

    def _handle_notification(self, method: str, params: Dict[str, Any]) -> None:
        if method == "notifications/cancelled":
            request_id = params.get("requestId")
            cancel_signal = self._inflight.get(request_id) if _valid_id(request_id) else None
            if cancel_signal is None:
                logger.debug("Cancellation for unknown request %r ignored", request_id)
                return
            logger.info("Cancelling request %r", request_id)
            cancel_signal.cancel(params.get("reason"))
        elif method == "notifications/initialized":
            logger.debug("Client initialized")
        else:
            logger.debug("Ignoring notification %s", method)

    # ── Lifecycle ─────────────────────────────────────────────────────────

    async def connect(self) -> None:
        """Start serving requests on stdio."""
        if self._transport is None:
            self._transport = StdioServerTransport()
        try:
            await self._transport.start(self.handle_message)
        except Exception as exc:
            message = "Connection establishment error"
            logger.error("%s: %s", message, exc, exc_info=exc)
            raise PodError(message) from exc
        logger.info("Pod %s running on stdio", self.name)

    async def shutdown(self) -> None:
        """
        Stop accepting requests and close the transport.

        Calls already running are not cancelled; each still settles against
        its own timeout. Safe to call more than once.
        """
        if self._closed:
            return
        self._closed = True
        logger.info("Pod %s shutting down", self.name)
        if self._transport is not None:
            await self._transport.close()

    async def serve(self) -> None:
        """Connect, then block until the transport closes or a signal arrives."""
        await self.connect()

        loop = asyncio.get_running_loop()
        installed = []
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self._on_signal, sig)
                installed.append(sig)
            except (NotImplementedError, RuntimeError):
                logger.debug("Signal handler for %s not supported here", sig.name)

        try:
            await self._transport.wait_closed()
            if self._shutdown_task is not None:
                await self._shutdown_task
        finally:
            for sig in installed:
                loop.remove_signal_handler(sig)

    def _on_signal(self, sig: signal.Signals) -> None:
        logger.info("Received %s, shutting down", sig.name)
        if self._shutdown_task is None:
            self._shutdown_task = asyncio.ensure_future(self.shutdown())


def _valid_id(msg_id: Any) -> bool:
    return msg_id is None or (isinstance(msg_id, (str, int)) and not isinstance(msg_id, bool))
