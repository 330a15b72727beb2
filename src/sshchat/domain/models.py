"""Core domain models for the sshchat system.

These models represent the data flowing through a chat session: the
messages a user commits, the consistent view of session state handed to
the renderer, and the per-session summary published by the status
endpoint.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class Message(BaseModel):
    """A committed line of chat input.

    Messages are immutable once appended to a session's log and are
    kept in arrival order.
    """

    model_config = ConfigDict(frozen=True)

    timestamp: datetime = Field(default_factory=datetime.now, description="When the line was committed")
    username: str = Field(description="Authenticated SSH username of the author")
    content: str = Field(description="Text of the committed input line")


class ScreenSnapshot(BaseModel):
    """Everything the renderer needs, copied out of the session state at once."""

    model_config = ConfigDict(frozen=True)

    width: int = Field(description="Terminal width in columns")
    height: int = Field(description="Terminal height in rows")
    messages: tuple[Message, ...] = Field(default=(), description="Message log, oldest first")
    input_text: str = Field(default="", description="Current contents of the input buffer")


class SessionInfo(BaseModel):
    """Summary of an active session, as reported by the status endpoint."""

    model_config = ConfigDict(frozen=True)

    username: str
    remote: str
    width: int
    height: int
    message_count: int = Field(ge=0)
    connected_at: datetime
