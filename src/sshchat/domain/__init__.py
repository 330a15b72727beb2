"""Domain models for sshchat.

All models use Pydantic v2 for validation and are frozen once built.
"""

from sshchat.domain.models import Message, ScreenSnapshot, SessionInfo

__all__ = ["Message", "ScreenSnapshot", "SessionInfo"]
