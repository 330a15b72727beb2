"""Remote terminal session abstraction for sshchat.

Public API:
    TerminalSession -- Abstract base class the engine talks to
    SessionError -- Raised on transport failures
    ParamikoSession -- SSH channel implementation
"""

from sshchat.session.base import SessionError, TerminalSession

__all__ = ["ParamikoSession", "SessionError", "TerminalSession"]


def __getattr__(name: str) -> type:
    """Lazy import for the paramiko-backed implementation."""
    if name == "ParamikoSession":
        from sshchat.session.paramiko_session import ParamikoSession
        return ParamikoSession
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
