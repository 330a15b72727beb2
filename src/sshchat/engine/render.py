"""Screen layout and ANSI output for a chat session.

The screen is a scrollback of committed messages drawn bottom-up above a
single prompt row on the last line of the terminal::

    [2025-01-01 12:00:00 bob] an older message that wra
    ps onto a second line
    [2025-01-01 12:00:05 bob] newest message
    > text being typed_

Everything here is pure: given a :class:`ScreenSnapshot` the output is
fully determined.
"""

from __future__ import annotations

from sshchat.domain.models import Message, ScreenSnapshot

ESC = "\x1b"
CLEAR_SCREEN = f"{ESC}[2J"
CURSOR_HOME = f"{ESC}[H"
PROMPT = "> "


def move_to_row(row: int) -> str:
    """Cursor to column 1 of a 1-based row."""
    return f"{ESC}[{row}H"


def move_to(row: int, col: int) -> str:
    return f"{ESC}[{row};{col}H"


def format_header(message: Message, timestamp_format: str = "%Y-%m-%d %H:%M:%S") -> str:
    return f"[{message.timestamp.strftime(timestamp_format)} {message.username}] "


def wrap_message_lines(header: str, content: str, width: int) -> list[str]:
    """Split ``header + content`` into display lines of at most ``width`` characters.

    The header takes up the start of the first line and the content
    continues on it; whenever a line is full a new one starts at full
    width. Joining the result gives back ``header + content`` unchanged.

    Raises:
        ValueError: If ``width`` is less than 1.
    """
    if width < 1:
        raise ValueError(f"width must be positive, got {width}")

    text = header + content
    if not text:
        return []
    return [text[i : i + width] for i in range(0, len(text), width)]


def layout_messages(
    messages: tuple[Message, ...] | list[Message],
    width: int,
    rows: int,
    timestamp_format: str = "%Y-%m-%d %H:%M:%S",
) -> list[tuple[int, str]]:
    """Place message lines bottom-up into rows ``1..rows``.

    The newest message ends on ``rows``; each older message sits directly
    above the one after it. A message that does not fit entirely stops the
    walk, so the result never contains a partial message.

    Returns:
        ``(row, text)`` pairs in top-to-bottom order.
    """
    if width < 1 or rows < 1:
        return []

    placed: list[tuple[int, str]] = []
    bottom = rows
    for message in reversed(messages):
        lines = wrap_message_lines(format_header(message, timestamp_format), message.content, width)
        top = bottom - len(lines) + 1
        if top < 1:
            break
        placed[:0] = [(top + offset, line) for offset, line in enumerate(lines)]
        bottom = top - 1
    return placed


def render_screen(snapshot: ScreenSnapshot, timestamp_format: str = "%Y-%m-%d %H:%M:%S") -> str:
    """Build the full escape-coded frame for ``snapshot``."""
    width = max(snapshot.width, 0)
    prompt_row = max(snapshot.height, 1)

    out = [CLEAR_SCREEN, CURSOR_HOME]

    for row, line in layout_messages(snapshot.messages, width, snapshot.height - 1, timestamp_format):
        out.append(move_to_row(row))
        out.append(line)

    out.append(move_to_row(prompt_row))
    prompt = PROMPT + snapshot.input_text
    out.append(prompt[:width])

    cursor_col = min(len(prompt) + 1, width)
    out.append(move_to(prompt_row, max(cursor_col, 1)))
    return "".join(out)
