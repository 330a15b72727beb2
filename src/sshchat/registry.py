"""Bookkeeping of the sessions currently attached to the server."""

from __future__ import annotations

import threading

from sshchat.domain.models import SessionInfo
from sshchat.engine.client import ChatClient


class SessionRegistry:
    """Thread-safe set of active :class:`ChatClient` engines."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._clients: dict[int, ChatClient] = {}

    def add(self, client: ChatClient) -> None:
        with self._lock:
            self._clients[id(client)] = client

    def remove(self, client: ChatClient) -> None:
        with self._lock:
            self._clients.pop(id(client), None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._clients)

    def sessions(self) -> list[SessionInfo]:
        """Summaries of every active session, oldest connection first."""
        with self._lock:
            clients = list(self._clients.values())
        return sorted((c.info() for c in clients), key=lambda info: info.connected_at)
