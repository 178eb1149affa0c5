"""Newline-delimited JSON-RPC over stdin/stdout, server side."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from typing import Any, Awaitable, BinaryIO, Callable, Dict, Optional, Set

from toolpod.errors import ErrorCode

logger = logging.getLogger(__name__)

MessageHandler = Callable[[Any], Awaitable[Optional[Dict[str, Any]]]]

MAX_LINE_BYTES = 16 * 1024 * 1024  # longest request line read from stdin


class TransportError(Exception):
    """Raised when the stdio transport cannot be opened or used."""


def jsonrpc_result(msg_id: Any, result: Dict[str, Any]) -> Dict[str, Any]:
    return {"jsonrpc": "2.0", "id": msg_id, "result": result}


def jsonrpc_error(msg_id: Any, error: Dict[str, Any]) -> Dict[str, Any]:
    return {"jsonrpc": "2.0", "id": msg_id, "error": error}


class StdioServerTransport:
    """
    Serve JSON-RPC messages read line by line from stdin.

    Every inbound line is decoded and handed to the message handler in its
    own task, so a slow tool call never blocks ``ping`` or a cancellation
    notification. Whatever the handler returns is written back as one line
    on stdout.

    ``reader`` and ``writer`` default to the process's stdin and stdout
    and can be replaced (tests feed an ``asyncio.StreamReader`` and a
    ``BytesIO``).
    """

    def __init__(
        self,
        reader: Optional[asyncio.StreamReader] = None,
        writer: Optional[BinaryIO] = None,
    ):
        self._reader = reader
        self._writer = writer
        self._handler: Optional[MessageHandler] = None
        self._read_task: Optional[asyncio.Task] = None
        self._inflight: Set[asyncio.Task] = set()
        self._write_lock = asyncio.Lock()
        self._closed = asyncio.Event()
        self._accepting = False

    # ── Lifecycle ─────────────────────────────────────────────────────────

    async def start(self, handler: MessageHandler) -> None:
        """Begin reading requests and dispatching them to ``handler``."""
        if self._accepting:
            raise TransportError("Transport already started")

        if self._reader is None:
            self._reader = await self._open_stdin()
        if self._writer is None:
            self._writer = sys.stdout.buffer

        self._handler = handler
        self._accepting = True
        self._read_task = asyncio.create_task(self._read_loop())

    async def close(self) -> None:
        """Stop accepting requests. In-flight handlers are left to finish."""
        self._accepting = False
        if self._read_task and not self._read_task.done():
            self._read_task.cancel()
            try:
                await self._read_task
            except asyncio.CancelledError:
                pass
        self._closed.set()

    async def wait_closed(self) -> None:
        await self._closed.wait()

    @property
    def is_running(self) -> bool:
        return self._accepting and not self._closed.is_set()

    @staticmethod
    async def _open_stdin() -> asyncio.StreamReader:
        loop = asyncio.get_running_loop()
        reader = asyncio.StreamReader(limit=MAX_LINE_BYTES)
        try:
            await loop.connect_read_pipe(lambda: asyncio.StreamReaderProtocol(reader), sys.stdin)
        except (OSError, ValueError) as exc:
            raise TransportError(f"Cannot read from stdin: {exc}") from exc
        return reader

    # ── Reading ───────────────────────────────────────────────────────────

    async def _read_loop(self) -> None:
        try:
            while self._accepting:
                raw = await self._read_line()
                if raw is None:
                    await self.send(jsonrpc_error(None, {
                        "code": int(ErrorCode.INVALID_REQUEST),
                        "message": "Request line too long",
                    }))
                    continue
                if not raw:
                    logger.info("stdin closed")
                    break

                line = raw.strip()
                if not line:
                    continue

                try:
                    message = json.loads(line)
                except json.JSONDecodeError as exc:
                    await self.send(jsonrpc_error(None, {
                        "code": int(ErrorCode.PARSE_ERROR),
                        "message": f"Parse error: {exc.msg}",
                    }))
                    continue

                task = asyncio.create_task(self._dispatch(message))
                self._inflight.add(task)
                task.add_done_callback(self._inflight.discard)

            # stdin hit EOF: answer what was already received before closing
            if self._inflight:
                await asyncio.wait(list(self._inflight))
        finally:
            self._accepting = False
            self._closed.set()

    async def _read_line(self) -> Optional[bytes]:
        """
        Read the next line, ``b""`` at EOF.

        A line longer than the reader's limit is consumed up to its newline
        and dropped; None is returned for it.
        """
        oversized = False
        while True:
            try:
                line = await self._reader.readuntil(b"\n")
            except asyncio.IncompleteReadError as exc:
                # EOF without a trailing newline
                return None if oversized else exc.partial
            except asyncio.LimitOverrunError as exc:
                oversized = True
                try:
                    await self._reader.readexactly(exc.consumed)
                except asyncio.IncompleteReadError:
                    return None
                continue
            return None if oversized else line

    async def _dispatch(self, message: Any) -> None:
        try:
            response = await self._handler(message)
        except Exception as exc:
            logger.exception("Unhandled error while handling message")
            msg_id = message.get("id") if isinstance(message, dict) else None
            response = jsonrpc_error(msg_id, {
                "code": int(ErrorCode.INTERNAL_ERROR),
                "message": f"Internal error: {exc}",
            })
        if response is not None:
            try:
                await self.send(response)
            except TransportError as exc:
                logger.error("Could not send response: %s", exc)

    # ── Writing ───────────────────────────────────────────────────────────

    async def send(self, message: Dict[str, Any]) -> None:
        """Write one message as a JSON line. Dropped once the transport is closed."""
        if self._closed.is_set() or self._writer is None:
            logger.debug("Transport closed, dropping message id=%s", message.get("id"))
            return

        line = json.dumps(message, default=str) + "\n"
        async with self._write_lock:
            try:
                self._writer.write(line.encode())
                self._writer.flush()
            except (BrokenPipeError, OSError) as exc:
                raise TransportError(f"stdout write failed: {exc}") from exc
