"""Window-size tracking for a chat session."""

from __future__ import annotations

import logging
from typing import Callable

from sshchat.engine.signals import Signal
from sshchat.engine.state import SessionState
from sshchat.session.base import TerminalSession

logger = logging.getLogger(__name__)


class ResizeWatcher:
    """Background worker applying window-change notifications to the session state."""

    def __init__(
        self,
        session: TerminalSession,
        state: SessionState,
        resize_signal: Signal,
        request_render: Callable[[], None],
    ) -> None:
        self._session = session
        self._state = state
        self._resize_signal = resize_signal
        self._request_render = request_render

    async def run(self) -> None:
        async for width, height in self._session.window_changes():
            self._state.resize(width, height)
            logger.debug("Window resized to %dx%d", width, height)
            self._resize_signal.try_send()
            self._request_render()
