"""One-shot cancellation signal observed by running tool calls."""

from __future__ import annotations

import asyncio
from typing import Any, Optional


class CancelSignal:
    """
    A one-shot cancellation event.

    The signal starts active and moves to cancelled the first time
    ``cancel()`` is called. It never goes back, and later ``cancel()`` calls
    keep the first reason. The registry only observes a signal; whoever
    created it decides when to fire it.

    Example:
        >>> signal = CancelSignal()
        >>> signal.cancel("user cancelled")
        >>> signal.cancelled, signal.reason
        (True, 'user cancelled')
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: Any = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> Any:
        return self._reason

    def cancel(self, reason: Optional[Any] = None) -> None:
        """Fire the signal. No-op when already cancelled."""
        if self._event.is_set():
            return
        self._reason = reason
        self._event.set()

    async def wait(self) -> Any:
        """Block until the signal fires and return its reason."""
        await self._event.wait()
        return self._reason

    def __repr__(self) -> str:
        state = f"cancelled reason={self._reason!r}" if self.cancelled else "active"
        return f"<CancelSignal {state}>"
