"""SSH session backed by a paramiko channel.

paramiko is thread based: channel reads and writes block, and server
callbacks (window changes) run on the transport's own thread. Reads
block for the whole life of the session, so each session reads on its
own thread; short writes go through the executor shared by the server.
Callbacks are marshalled back onto the event loop with
``loop.call_soon_threadsafe``, and the end of the session is noticed by
polling the channel and transport rather than parking a thread in
``transport.join``.
"""

from __future__ import annotations

import asyncio
import logging
import socket
from collections.abc import AsyncIterator
from concurrent.futures import Executor, ThreadPoolExecutor

import paramiko

from sshchat.session.base import SessionError, TerminalSession

logger = logging.getLogger(__name__)

_END = None


class ParamikoSession(TerminalSession):
    """Adapts an accepted paramiko ``Channel`` to :class:`TerminalSession`."""

    def __init__(
        self,
        channel: paramiko.Channel,
        username: str,
        remote_address: str,
        pty_size: tuple[int, int] | None,
        loop: asyncio.AbstractEventLoop,
        executor: Executor | None = None,
        read_size: int = 1024,
        poll_interval: float = 0.25,
    ) -> None:
        self._channel = channel
        self._username = username
        self._remote_address = remote_address
        self._pty_size = pty_size
        self._loop = loop
        self._executor = executor
        self._read_size = read_size
        self._poll_interval = poll_interval
        self._reader = ThreadPoolExecutor(max_workers=1, thread_name_prefix="sshchat-read")
        self._window_queue: asyncio.Queue[tuple[int, int] | None] = asyncio.Queue()
        self._closed = False

    @property
    def username(self) -> str:
        return self._username

    @property
    def remote_address(self) -> str:
        return self._remote_address

    @property
    def channel(self) -> paramiko.Channel:
        return self._channel

    def pty_size(self) -> tuple[int, int] | None:
        return self._pty_size

    async def read(self) -> bytes:
        try:
            return await self._loop.run_in_executor(self._reader, self._channel.recv, self._read_size)
        except (paramiko.SSHException, socket.error, EOFError, RuntimeError) as e:
            # RuntimeError: the reader thread was shut down by close()
            raise SessionError(f"Failed to read from channel: {e}") from e

    async def write(self, data: bytes) -> None:
        if self._channel.closed:
            raise SessionError("Channel is closed")
        try:
            await self._loop.run_in_executor(self._executor, self._channel.sendall, data)
        except (paramiko.SSHException, socket.error, EOFError) as e:
            raise SessionError(f"Failed to write to channel: {e}") from e

    async def window_changes(self) -> AsyncIterator[tuple[int, int]]:
        while True:
            size = await self._window_queue.get()
            if size is _END:
                return
            yield size

    def notify_window_change(self, width: int, height: int) -> None:
        """Queue a window change. Safe to call from any thread."""
        self._loop.call_soon_threadsafe(self._window_queue.put_nowait, (width, height))

    def is_active(self) -> bool:
        """True while both the channel and its transport are open."""
        if self._channel.closed:
            return False
        transport = self._channel.get_transport()
        return transport is not None and transport.is_active()

    async def wait_closed(self) -> None:
        while self.is_active():
            await asyncio.sleep(self._poll_interval)
        self._window_queue.put_nowait(_END)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._channel.close()
        self._reader.shutdown(wait=False)
        logger.debug("Closed channel for %s", self._username)

    async def exit(self, status: int) -> None:
        try:
            await self._loop.run_in_executor(self._executor, self._channel.send_exit_status, status)
        except (paramiko.SSHException, socket.error, EOFError) as e:
            logger.debug("Could not send exit status to %s: %s", self._username, e)
        self.close()
