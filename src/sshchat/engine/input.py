"""Keystroke decoding and line editing for a chat session.

The watcher reads raw bytes from the session, decodes them as UTF-8
(sequences split across reads are reassembled) and applies each
character to the session state:

    CR / LF        commit the input buffer as a message
    Ctrl+C/Ctrl+D  close the session
    BS / DEL       delete the last character
    other < 0x20   ignored (ESC included), except TAB which is typed
    printable      appended, unless the buffer is full

Terminal escape sequences get no special treatment: the ESC byte is
dropped like any other control character and the printable bytes after
it are typed.
"""

from __future__ import annotations

import codecs
import logging
from typing import Callable

from sshchat.engine.signals import Signal
from sshchat.engine.state import SessionState
from sshchat.session.base import SessionError, TerminalSession

logger = logging.getLogger(__name__)

CTRL_C = "\x03"
CTRL_D = "\x04"
BACKSPACE = "\x08"
DELETE = "\x7f"
TAB = "\t"
LINE_ENDINGS = ("\r", "\n")


class InputWatcher:
    """Background worker turning the client's keystrokes into state changes."""

    def __init__(
        self,
        session: TerminalSession,
        state: SessionState,
        enter_signal: Signal,
        request_render: Callable[[], None],
        on_close: Callable[[], None],
        username: str | None = None,
    ) -> None:
        self._session = session
        self._state = state
        self._enter_signal = enter_signal
        self._request_render = request_render
        self._on_close = on_close
        self._username = username if username is not None else session.username
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="strict")

    async def run(self) -> None:
        """Read and apply keystrokes until the stream ends or the user quits."""
        while True:
            try:
                data = await self._session.read()
            except (SessionError, OSError) as e:
                logger.debug("Input stream for %s failed: %s", self._username, e)
                self._on_close()
                return

            if not data:
                logger.debug("Input stream for %s ended", self._username)
                self._on_close()
                return

            try:
                text = self._decoder.decode(data)
            except UnicodeDecodeError as e:
                logger.debug("Undecodable input from %s: %s", self._username, e)
                self._on_close()
                return

            if not self.feed(text):
                return

    def feed(self, text: str) -> bool:
        """Apply decoded characters to the session state.

        Returns:
            False once a close keystroke was seen; the rest of ``text``
            is discarded.
        """
        for char in text:
            if not self._handle_char(char):
                return False
        return True

    def _handle_char(self, char: str) -> bool:
        if char in LINE_ENDINGS:
            if self._state.commit_line(self._username) is not None:
                self._enter_signal.try_send()
                self._request_render()
        elif char in (CTRL_C, CTRL_D):
            logger.debug("Close keystroke from %s", self._username)
            self._on_close()
            return False
        elif char in (BACKSPACE, DELETE):
            if self._state.backspace():
                self._request_render()
        elif char < " " and char != TAB:
            pass
        elif self._state.append_char(char):
            self._request_render()
        return True
