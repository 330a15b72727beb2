"""Abstract base class for an interactive remote terminal session.

The chat engine only talks to its client through this interface, so the
SSH transport can be swapped for an in-memory fake in tests without
changing any engine code.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator

logger = logging.getLogger(__name__)


class TerminalSession(ABC):
    """A connected client with a keystroke stream and a terminal to draw on.

    Example usage::

        size = session.pty_size()
        if size is None:
            await session.write(b"no pty\\r\\n")
            await session.exit(1)
            return
        async for width, height in session.window_changes():
            ...
    """

    @property
    @abstractmethod
    def username(self) -> str:
        """Authenticated user name; fixed for the session's lifetime."""
        ...

    @property
    @abstractmethod
    def remote_address(self) -> str:
        """Peer address as ``host:port`` (IPv6 hosts may be bracketed)."""
        ...

    @abstractmethod
    def pty_size(self) -> tuple[int, int] | None:
        """Return ``(width, height)`` of the negotiated PTY, or None without one."""
        ...

    @abstractmethod
    async def read(self) -> bytes:
        """Read the next chunk of client keystrokes.

        Returns:
            The bytes read, or ``b""`` once the stream has ended.

        Raises:
            SessionError: If the transport fails.
        """
        ...

    @abstractmethod
    async def write(self, data: bytes) -> None:
        """Write terminal output to the client.

        Raises:
            SessionError: If the transport fails.
        """
        ...

    @abstractmethod
    def window_changes(self) -> AsyncIterator[tuple[int, int]]:
        """Yield ``(width, height)`` for every window-size change until the session ends."""
        ...

    @abstractmethod
    async def wait_closed(self) -> None:
        """Return once the underlying connection has gone away."""
        ...

    @abstractmethod
    def close(self) -> None:
        """Close the session. Safe to call more than once."""
        ...

    @abstractmethod
    async def exit(self, status: int) -> None:
        """Report an exit status to the client and close the session."""
        ...


class SessionError(Exception):
    """Raised when reading from or writing to a session fails."""
