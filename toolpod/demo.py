"""Small tool set used as the default pod and in the CLI examples."""

import asyncio

from toolpod.tools import CallToolResult, Tool, ToolContext, boolean, number, string


async def _echo(args: dict, ctx: ToolContext) -> CallToolResult:
    text = args["text"]
    if args["uppercase"]:
        text = text.upper()
    return CallToolResult.text(text)


async def _add(args: dict, ctx: ToolContext) -> CallToolResult:
    total = args["a"] + args["b"]
    ctx.logger.debug("add(%s, %s) = %s", args["a"], args["b"], total)
    return CallToolResult.text(f"{total:g}")


async def _sleep(args: dict, ctx: ToolContext) -> CallToolResult:
    # Stop early when the caller cancels; the registry only stops waiting.
    try:
        await asyncio.wait_for(ctx.signal.wait(), timeout=args["seconds"])
    except asyncio.TimeoutError:
        return CallToolResult.text(f"slept {args['seconds']:g}s")
    return CallToolResult.text("interrupted")


TOOLS = [
    Tool(
        name="echo",
        description="Echo the given text back",
        arguments={
            "text": string("Text to echo"),
            "uppercase": boolean("Upper-case the text first", optional=True, default=False),
        },
        handler=_echo,
    ),
    Tool(
        name="add",
        description="Add two numbers",
        arguments={
            "a": number("First operand"),
            "b": number("Second operand"),
        },
        handler=_add,
    ),
    Tool(
        name="sleep",
        description="Wait for a number of seconds",
        arguments={"seconds": number("How long to wait")},
        handler=_sleep,
    ),
]
