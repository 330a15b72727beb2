"""Interactive terminal engine for sshchat.

One engine runs per connected session: background workers decode
keystrokes and track window size, a debounce coalesces redraw requests,
and a single event loop draws the scrollback and prompt.

Public API:
    ChatClient -- the per-session engine
    Signal -- coalescing wakeup channel
    RenderScheduler -- trailing render debounce
    render_screen / wrap_message_lines -- pure layout functions
"""

from sshchat.engine.client import ChatClient
from sshchat.engine.debounce import RenderScheduler
from sshchat.engine.render import render_screen, wrap_message_lines
from sshchat.engine.signals import Signal, SignalClosedError
from sshchat.engine.state import InputBuffer, SessionState

__all__ = [
    "ChatClient",
    "InputBuffer",
    "RenderScheduler",
    "SessionState",
    "Signal",
    "SignalClosedError",
    "render_screen",
    "wrap_message_lines",
]
