"""Shared fixtures for toolpod tests."""

import asyncio
from typing import Any, List, Optional

import pytest

from toolpod.tools import registry as registry_module
from toolpod.tools.arguments import MISSING, ArgumentValidationError
from toolpod.tools.schema import CallToolResult, Tool


class SpySchema:
    """Argument schema that records every value it is asked to validate."""

    def __init__(self, kind: str = "string", description: str = "", optional: bool = False, fail: bool = False,
                 error: Optional[Exception] = None):
        self._kind = kind
        self.description = description
        self.optional = optional
        self.fail = fail
        self.error = error
        self.calls: List[Any] = []

    @property
    def kind(self) -> str:
        return self._kind

    def validate(self, raw: Any = MISSING) -> Any:
        self.calls.append(raw)
        if self.error is not None:
            raise self.error
        if self.fail:
            raise ArgumentValidationError("spy rejected value")
        if raw is MISSING:
            if self.optional:
                return None
            raise ArgumentValidationError("Required")
        return raw


def make_tool(tool_name: str, handler=None, **arguments) -> Tool:
    """Build a tool whose default handler echoes its arguments."""

    async def echo_args(args, ctx):
        return CallToolResult.text(repr(sorted(args.items())))

    return Tool(
        name=tool_name,
        description=f"{tool_name} tool",
        arguments=arguments,
        handler=handler or echo_args,
    )


@pytest.fixture
def fast_timeout(monkeypatch):
    """Shrink the tool timeout so timeout paths run in milliseconds."""
    monkeypatch.setattr(registry_module, "TOOL_TIMEOUT", 0.05)
    return 0.05


async def block_forever(args, ctx):
    await asyncio.Event().wait()
