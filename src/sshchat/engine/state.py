"""Guarded per-session state.

All mutation and every read of the terminal size, input buffer and
message log goes through :class:`SessionState`, whose methods hold a single
lock for the duration of the access and never across I/O.
"""

from __future__ import annotations

import threading
from datetime import datetime

from sshchat.domain.models import Message, ScreenSnapshot


class InputBuffer:
    """Bounded, ordered sequence of typed characters."""

    def __init__(self, max_length: int = 128) -> None:
        if max_length < 1:
            raise ValueError("max_length must be positive")
        self.max_length = max_length
        self._chars: list[str] = []

    def __len__(self) -> int:
        return len(self._chars)

    @property
    def text(self) -> str:
        return "".join(self._chars)

    @property
    def full(self) -> bool:
        return len(self._chars) >= self.max_length

    def append(self, char: str) -> bool:
        """Append a character; returns False (and drops it) at capacity."""
        if self.full:
            return False
        self._chars.append(char)
        return True

    def backspace(self) -> bool:
        """Drop the last character; returns False if the buffer was empty."""
        if not self._chars:
            return False
        self._chars.pop()
        return True

    def take(self) -> str:
        """Return the buffered text and clear the buffer."""
        text = "".join(self._chars)
        self._chars.clear()
        return text


class SessionState:
    """Terminal size, input buffer and message log behind one lock."""

    def __init__(self, width: int, height: int, max_input_length: int = 128) -> None:
        self._lock = threading.Lock()
        self._width = width
        self._height = height
        self._input = InputBuffer(max_input_length)
        self._messages: list[Message] = []

    def size(self) -> tuple[int, int]:
        with self._lock:
            return self._width, self._height

    def resize(self, width: int, height: int) -> None:
        with self._lock:
            self._width = width
            self._height = height

    def append_char(self, char: str) -> bool:
        with self._lock:
            return self._input.append(char)

    def backspace(self) -> bool:
        with self._lock:
            return self._input.backspace()

    def input_text(self) -> str:
        with self._lock:
            return self._input.text

    def commit_line(self, username: str, now: datetime | None = None) -> Message | None:
        """Move the input buffer into the message log.

        Returns:
            The appended message, or None if the buffer was empty.
        """
        with self._lock:
            if not len(self._input):
                return None
            message = Message(
                timestamp=now or datetime.now(),
                username=username,
                content=self._input.take(),
            )
            self._messages.append(message)
            return message

    def messages(self) -> tuple[Message, ...]:
        with self._lock:
            return tuple(self._messages)

    def message_count(self) -> int:
        with self._lock:
            return len(self._messages)

    def snapshot(self) -> ScreenSnapshot:
        with self._lock:
            return ScreenSnapshot(
                width=self._width,
                height=self._height,
                messages=tuple(self._messages),
                input_text=self._input.text,
            )
