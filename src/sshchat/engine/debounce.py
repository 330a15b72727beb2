"""Trailing-edge debounce for render requests."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

logger = logging.getLogger(__name__)


class RenderScheduler:
    """Coalesces bursts of render requests into one trailing render.

    The first request in a quiet period arms a timer of ``delay`` seconds;
    each further request while it is armed restarts it. When the timer
    expires ``fire`` is called once and the scheduler goes idle again.

    Must be used from the event loop thread.
    """

    def __init__(self, fire: Callable[[], object], delay: float = 0.05) -> None:
        self._fire = fire
        self._delay = delay
        self._handle: asyncio.TimerHandle | None = None

    @property
    def delay(self) -> float:
        return self._delay

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def request(self) -> None:
        """Ask for a render, restarting the timer if one is already armed."""
        if self._handle is not None:
            self._handle.cancel()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self._delay, self._expire)

    def cancel(self) -> None:
        """Drop a pending render without firing it."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _expire(self) -> None:
        self._handle = None
        self._fire()
