"""Logging setup. Output goes to stderr because stdout carries the protocol."""

from __future__ import annotations

import logging
from typing import Any, MutableMapping, Tuple, Union

from rich.console import Console
from rich.logging import RichHandler


class ToolLoggerAdapter(logging.LoggerAdapter):
    """Prefixes records with the tool name and attaches it as ``record.tool``."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        tool = self.extra.get("tool", "?")
        extra = dict(kwargs.get("extra") or {})
        extra.setdefault("tool", tool)
        kwargs["extra"] = extra
        return f"[{tool}] {msg}", kwargs


def tool_logger(logger: logging.Logger, tool_name: str) -> ToolLoggerAdapter:
    """Child logger scoped to a single tool invocation."""
    return ToolLoggerAdapter(logger, {"tool": tool_name})


def setup_logging(level: Union[int, str] = logging.INFO) -> None:
    """Route ``toolpod`` logs to a rich handler on stderr."""
    handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))

    root = logging.getLogger("toolpod")
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level.upper() if isinstance(level, str) else level)
