"""Shared test fixtures for the sshchat test suite.

Provides an in-memory :class:`TerminalSession` so the chat engine can be
driven without a real SSH connection, plus fast session settings.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from datetime import datetime
from typing import Callable

import pytest

from sshchat.config.settings import SessionConfig
from sshchat.domain.models import Message
from sshchat.session.base import SessionError, TerminalSession


class FakeSession(TerminalSession):
    """Scriptable session: tests push keystrokes and resizes, and inspect output."""

    def __init__(
        self,
        username: str = "bob",
        remote_address: str = "10.0.0.5:52000",
        pty_size: tuple[int, int] | None = (80, 24),
    ) -> None:
        self._username = username
        self._remote_address = remote_address
        self._pty_size = pty_size
        self._reads: asyncio.Queue[bytes | Exception] = asyncio.Queue()
        self._windows: asyncio.Queue[tuple[int, int] | None] = asyncio.Queue()
        self._ended = asyncio.Event()
        self.writes: list[bytes] = []
        self.close_calls = 0
        self.exit_status: int | None = None
        self.fail_writes = False

    # -- test controls -------------------------------------------------

    def send_keys(self, data: bytes) -> None:
        self._reads.put_nowait(data)

    def fail_read(self, error: Exception) -> None:
        self._reads.put_nowait(error)

    def resize(self, width: int, height: int) -> None:
        self._windows.put_nowait((width, height))

    def end(self) -> None:
        """Simulate the connection dropping upstream."""
        self._ended.set()

    @property
    def output(self) -> str:
        return b"".join(self.writes).decode("utf-8")

    # -- TerminalSession -----------------------------------------------

    @property
    def username(self) -> str:
        return self._username

    @property
    def remote_address(self) -> str:
        return self._remote_address

    def pty_size(self) -> tuple[int, int] | None:
        return self._pty_size

    async def read(self) -> bytes:
        item = await self._reads.get()
        if isinstance(item, Exception):
            raise item
        return item

    async def write(self, data: bytes) -> None:
        if self.fail_writes:
            raise SessionError("write failed")
        self.writes.append(data)

    async def window_changes(self) -> AsyncIterator[tuple[int, int]]:
        while True:
            size = await self._windows.get()
            if size is None:
                return
            yield size

    async def wait_closed(self) -> None:
        await self._ended.wait()

    def close(self) -> None:
        self.close_calls += 1
        if self.close_calls == 1:
            # a closed channel reads as end of stream
            self._reads.put_nowait(b"")

    async def exit(self, status: int) -> None:
        self.exit_status = status
        self.close()


@pytest.fixture
def make_session() -> Callable[..., FakeSession]:
    """Factory for FakeSession instances with custom user, address or PTY."""
    return FakeSession


@pytest.fixture
def fake_session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def fast_config() -> SessionConfig:
    """Session settings with short timings so engine tests run quickly."""
    return SessionConfig(max_input_length=16, render_debounce=0.01, close_grace=0.005)


@pytest.fixture
def make_message() -> Callable[..., Message]:
    def _make(content: str, username: str = "bob", timestamp: datetime | None = None) -> Message:
        return Message(
            timestamp=timestamp or datetime(2025, 1, 1, 12, 0, 0),
            username=username,
            content=content,
        )

    return _make
