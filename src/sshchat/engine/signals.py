"""Coalescing wakeup signals used between the session workers and the event loop.

A :class:`Signal` carries no payload and holds at most one pending wakeup:
sending while a wakeup is still unconsumed is a no-op, so bursts collapse
into a single wakeup instead of queueing up.

Several signals can share one inbox queue. The consumer awaits the inbox,
receives the :class:`Signal` that fired, and calls :meth:`Signal.consume`
to re-arm it.

Signals are not thread-safe; send from the event loop thread only (use
``loop.call_soon_threadsafe`` from foreign threads).
"""

from __future__ import annotations

import asyncio
import logging

logger = logging.getLogger(__name__)


class Signal:
    """A named, non-blocking, at-most-one-pending notification channel."""

    def __init__(self, name: str, inbox: asyncio.Queue[Signal] | None = None) -> None:
        self.name = name
        self._inbox: asyncio.Queue[Signal] = inbox if inbox is not None else asyncio.Queue()
        self._pending = False
        self._closed = False

    @property
    def pending(self) -> bool:
        return self._pending

    @property
    def closed(self) -> bool:
        return self._closed

    def try_send(self) -> bool:
        """Queue a wakeup unless one is already pending.

        Returns:
            True if a wakeup was queued, False if it was coalesced.

        Raises:
            SignalClosedError: If the signal has been closed.
        """
        if self._closed:
            raise SignalClosedError(f"send on closed signal {self.name!r}")
        if self._pending:
            return False
        self._pending = True
        self._inbox.put_nowait(self)
        return True

    def consume(self) -> None:
        """Mark the pending wakeup as taken so the next send queues again."""
        self._pending = False

    async def wait(self) -> None:
        """Wait for the next wakeup on a signal that owns its inbox."""
        fired = await self._inbox.get()
        fired.consume()

    def close(self) -> None:
        """Close the signal. Closing twice is a fault, like sending after close."""
        if self._closed:
            raise SignalClosedError(f"signal {self.name!r} already closed")
        self._closed = True
        logger.debug("Signal %s closed", self.name)

    def __repr__(self) -> str:
        state = "closed" if self._closed else ("pending" if self._pending else "idle")
        return f"Signal({self.name!r}, {state})"


class SignalClosedError(Exception):
    """Raised when a closed signal is sent on or closed again."""
