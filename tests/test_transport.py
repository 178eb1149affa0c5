"""Tests for the stdio JSON-RPC server transport."""

import asyncio
import io
import json

import pytest

from toolpod.errors import ErrorCode
from toolpod.server.transport import StdioServerTransport, TransportError


async def echo_handler(message):
    if "id" not in message:
        return None
    return {"jsonrpc": "2.0", "id": message["id"], "result": {"echo": message.get("params")}}


def responses(writer):
    return [json.loads(line) for line in writer.getvalue().decode().splitlines()]


class TestStdioServerTransport:
    @pytest.mark.asyncio
    async def test_each_line_gets_a_response(self):
        reader = asyncio.StreamReader()
        writer = io.BytesIO()
        transport = StdioServerTransport(reader, writer)

        reader.feed_data(b'{"jsonrpc": "2.0", "id": 1, "params": {"n": 1}}\n')
        reader.feed_data(b"\n")
        reader.feed_data(b'{"jsonrpc": "2.0", "id": 2, "params": {"n": 2}}\n')
        reader.feed_eof()

        await transport.start(echo_handler)
        await asyncio.wait_for(transport.wait_closed(), timeout=1)

        by_id = {r["id"]: r for r in responses(writer)}
        assert by_id[1]["result"] == {"echo": {"n": 1}}
        assert by_id[2]["result"] == {"echo": {"n": 2}}

    @pytest.mark.asyncio
    async def test_notifications_get_no_response(self):
        reader = asyncio.StreamReader()
        writer = io.BytesIO()
        transport = StdioServerTransport(reader, writer)

        reader.feed_data(b'{"jsonrpc": "2.0", "method": "notifications/initialized"}\n')
        reader.feed_eof()

        await transport.start(echo_handler)
        await asyncio.wait_for(transport.wait_closed(), timeout=1)

        assert writer.getvalue() == b""

    @pytest.mark.asyncio
    async def test_parse_error(self):
        reader = asyncio.StreamReader()
        writer = io.BytesIO()
        transport = StdioServerTransport(reader, writer)

        reader.feed_data(b"{not json\n")
        reader.feed_eof()

        await transport.start(echo_handler)
        await asyncio.wait_for(transport.wait_closed(), timeout=1)

        [response] = responses(writer)
        assert response["id"] is None
        assert response["error"]["code"] == ErrorCode.PARSE_ERROR

    @pytest.mark.asyncio
    async def test_line_over_limit_is_rejected_and_reading_continues(self):
        reader = asyncio.StreamReader(limit=1024)
        writer = io.BytesIO()
        transport = StdioServerTransport(reader, writer)

        reader.feed_data(b'{"jsonrpc": "2.0", "id": 9, "params": "' + b"x" * 4000 + b'"}\n')
        reader.feed_data(b'{"jsonrpc": "2.0", "id": 1, "method": "ping"}\n')
        reader.feed_eof()

        await transport.start(echo_handler)
        await asyncio.wait_for(transport.wait_closed(), timeout=1)

        first, second = responses(writer)
        assert first["id"] is None
        assert first["error"]["code"] == ErrorCode.INVALID_REQUEST
        assert second["id"] == 1
        assert "result" in second

    @pytest.mark.asyncio
    async def test_line_over_limit_split_across_reads(self):
        reader = asyncio.StreamReader(limit=1024)
        writer = io.BytesIO()
        transport = StdioServerTransport(reader, writer)
        await transport.start(echo_handler)

        reader.feed_data(b'{"jsonrpc": "2.0", "id": 9, "params": "' + b"x" * 3000)
        await asyncio.sleep(0.01)
        reader.feed_data(b"y" * 3000 + b'"}\n')
        reader.feed_data(b'{"jsonrpc": "2.0", "id": 2}\n')
        reader.feed_eof()
        await asyncio.wait_for(transport.wait_closed(), timeout=1)

        assert [r["id"] for r in responses(writer)] == [None, 2]
        assert transport.is_running is False

    @pytest.mark.asyncio
    async def test_handler_crash_becomes_internal_error(self):
        async def crashing(message):
            raise RuntimeError("kaboom")

        reader = asyncio.StreamReader()
        writer = io.BytesIO()
        transport = StdioServerTransport(reader, writer)

        reader.feed_data(b'{"jsonrpc": "2.0", "id": 5, "method": "x"}\n')
        reader.feed_eof()

        await transport.start(crashing)
        await asyncio.wait_for(transport.wait_closed(), timeout=1)

        [response] = responses(writer)
        assert response["id"] == 5
        assert response["error"]["code"] == ErrorCode.INTERNAL_ERROR
        assert "kaboom" in response["error"]["message"]

    @pytest.mark.asyncio
    async def test_slow_request_does_not_block_others(self):
        release = asyncio.Event()

        async def handler(message):
            if message["id"] == "slow":
                await release.wait()
            return {"jsonrpc": "2.0", "id": message["id"], "result": {}}

        reader = asyncio.StreamReader()
        writer = io.BytesIO()
        transport = StdioServerTransport(reader, writer)
        await transport.start(handler)

        reader.feed_data(b'{"jsonrpc": "2.0", "id": "slow"}\n')
        reader.feed_data(b'{"jsonrpc": "2.0", "id": "fast"}\n')
        await asyncio.sleep(0.01)

        assert [r["id"] for r in responses(writer)] == ["fast"]

        release.set()
        reader.feed_eof()
        await asyncio.wait_for(transport.wait_closed(), timeout=1)
        assert [r["id"] for r in responses(writer)] == ["fast", "slow"]

    @pytest.mark.asyncio
    async def test_messages_dropped_after_close(self):
        writer = io.BytesIO()
        transport = StdioServerTransport(asyncio.StreamReader(), writer)
        await transport.start(echo_handler)

        await transport.close()
        await transport.send({"jsonrpc": "2.0", "id": 1, "result": {}})

        assert writer.getvalue() == b""
        assert not transport.is_running

    @pytest.mark.asyncio
    async def test_cannot_start_twice(self):
        transport = StdioServerTransport(asyncio.StreamReader(), io.BytesIO())
        await transport.start(echo_handler)

        with pytest.raises(TransportError):
            await transport.start(echo_handler)

        await transport.close()

    @pytest.mark.asyncio
    async def test_non_json_values_are_stringified(self):
        writer = io.BytesIO()
        transport = StdioServerTransport(asyncio.StreamReader(), writer)
        await transport.start(echo_handler)

        await transport.send({"jsonrpc": "2.0", "id": 1, "error": {"data": {"reason": object()}}})
        await transport.close()

        [response] = responses(writer)
        assert response["error"]["data"]["reason"].startswith("<object object")
