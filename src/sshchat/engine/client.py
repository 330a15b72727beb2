"""Per-session chat engine.

Ties together the input and resize watchers, the render debounce, the
renderer and the close coordination for one connected client.

Workers never block on the event loop: they update :class:`SessionState`
under its lock and then fire coalescing :class:`Signal` wakeups. The event
loop in :meth:`ChatClient.run` is the only consumer of those wakeups and
the only place that draws.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from datetime import datetime

from sshchat.config.settings import SessionConfig
from sshchat.domain.models import SessionInfo
from sshchat.engine.debounce import RenderScheduler
from sshchat.engine.input import InputWatcher
from sshchat.engine.render import render_screen
from sshchat.engine.resize import ResizeWatcher
from sshchat.engine.signals import Signal
from sshchat.engine.state import SessionState
from sshchat.session.base import SessionError, TerminalSession

logger = logging.getLogger(__name__)


class ChatClient:
    """The interactive terminal engine bound to a single session.

    Example usage::

        async with ChatClient(session, config, width=80, height=24) as client:
            await client.run()
    """

    def __init__(
        self,
        session: TerminalSession,
        config: SessionConfig | None = None,
        width: int = 80,
        height: int = 24,
        username: str | None = None,
        remote: str | None = None,
    ) -> None:
        self._session = session
        self._config = config or SessionConfig()
        self._username = username if username is not None else session.username
        self._remote = remote if remote is not None else session.remote_address
        self._state = SessionState(width, height, self._config.max_input_length)
        self.connected_at = datetime.now()

        # All four signals wake the same consumer.
        self._inbox: asyncio.Queue[Signal] = asyncio.Queue()
        self.render_signal = Signal("render", self._inbox)
        self.enter_signal = Signal("enter", self._inbox)
        self.resize_signal = Signal("resize", self._inbox)
        self.close_signal = Signal("close", self._inbox)

        self._scheduler = RenderScheduler(self.render_signal.try_send, self._config.render_debounce)
        self._input = InputWatcher(
            session,
            self._state,
            self.enter_signal,
            request_render=self._scheduler.request,
            on_close=self.trigger_close,
            username=self._username,
        )
        self._resize = ResizeWatcher(
            session,
            self._state,
            self.resize_signal,
            request_render=self._scheduler.request,
        )

        self._workers: list[asyncio.Task[None]] = []
        self._close_lock = threading.Lock()
        self._closing = False
        self._signals_closed = False
        self._cancel_handle: asyncio.TimerHandle | None = None

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def username(self) -> str:
        return self._username

    @property
    def remote(self) -> str:
        return self._remote

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def scheduler(self) -> RenderScheduler:
        return self._scheduler

    @property
    def signals(self) -> tuple[Signal, ...]:
        return (self.render_signal, self.enter_signal, self.resize_signal, self.close_signal)

    @property
    def is_closing(self) -> bool:
        return self._closing

    @property
    def is_closed(self) -> bool:
        return self._signals_closed

    def size(self) -> tuple[int, int]:
        return self._state.size()

    def info(self) -> SessionInfo:
        width, height = self._state.size()
        return SessionInfo(
            username=self._username,
            remote=self._remote,
            width=width,
            height=height,
            message_count=self._state.message_count(),
            connected_at=self.connected_at,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start the input, resize and session-end workers and queue a first draw."""
        if self._workers:
            return
        self._workers = [
            asyncio.create_task(self._input.run(), name=f"sshchat-input-{self._username}"),
            asyncio.create_task(self._resize.run(), name=f"sshchat-resize-{self._username}"),
            asyncio.create_task(self._watch_session_end(), name=f"sshchat-done-{self._username}"),
        ]
        self._scheduler.request()
        logger.debug("Started session workers for %s@%s", self._username, self._remote)

    async def run(self) -> None:
        """Dispatch wakeups until the close signal arrives."""
        while True:
            signal = await self._inbox.get()
            signal.consume()
            if signal is self.close_signal:
                self._handle_close()
                return
            # render, enter and resize all mean "redraw now"
            await self.render()

    def trigger_close(self) -> None:
        """Begin tearing the session down. Only the first call has any effect.

        Closes the transport, fires the close signal and cancels the
        workers after a short grace period so wakeups already in flight
        can still land.
        """
        with self._close_lock:
            if self._closing:
                return
            self._closing = True

        try:
            self._session.close()
        except Exception as e:
            logger.debug("Ignoring error while closing session for %s: %s", self._username, e)

        loop = asyncio.get_running_loop()
        self._cancel_handle = loop.call_later(self._config.close_grace, self._cancel_workers)
        self.close_signal.try_send()

    async def close(self) -> None:
        """Full teardown: close, wait for every worker, then close all signals once."""
        self.trigger_close()

        if self._workers:
            results = await asyncio.gather(*self._workers, return_exceptions=True)
            for result in results:
                if isinstance(result, Exception):
                    logger.error("Session worker for %s failed: %s", self._username, result)

        with self._close_lock:
            if self._signals_closed:
                return
            self._signals_closed = True

        self._scheduler.cancel()
        for signal in self.signals:
            signal.close()
        logger.debug("Session for %s@%s torn down", self._username, self._remote)

    async def __aenter__(self) -> ChatClient:
        self.start()
        return self

    async def __aexit__(self, exc_type: type | None, exc_val: Exception | None, exc_tb: object) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    async def render(self) -> None:
        """Draw the current state. Write failures are logged and dropped."""
        frame = render_screen(self._state.snapshot(), self._config.timestamp_format)
        try:
            await self._session.write(frame.encode("utf-8"))
        except (SessionError, OSError) as e:
            logger.debug("Render for %s dropped: %s", self._username, e)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _handle_close(self) -> None:
        self.trigger_close()
        logger.debug("Event loop for %s stopped", self._username)

    def _cancel_workers(self) -> None:
        for task in self._workers:
            if not task.done():
                task.cancel()

    async def _watch_session_end(self) -> None:
        try:
            await self._session.wait_closed()
        except SessionError as e:
            logger.debug("Session end watcher for %s failed: %s", self._username, e)
        logger.debug("Session for %s ended upstream", self._username)
        self.trigger_close()
