"""SSH front end for sshchat.

Accepts TCP connections on the event loop, runs the paramiko handshake
for each in a thread pool, and attaches a :class:`ChatClient` engine to
every interactive shell session.

Authentication is not enforced: any user name is accepted with ``none``,
``password`` or ``publickey`` auth.
"""

from __future__ import annotations

import asyncio
import logging
import socket
import threading
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from typing import Callable

import paramiko

from sshchat.config.settings import SessionConfig, Settings
from sshchat.engine.client import ChatClient
from sshchat.registry import SessionRegistry
from sshchat.session.base import SessionError, TerminalSession
from sshchat.session.paramiko_session import ParamikoSession

logger = logging.getLogger(__name__)

PTY_REQUIRED_MESSAGE = "Err: PTY requires. Reconnect with -t option."


class ChatServerInterface(paramiko.ServerInterface):
    """paramiko callbacks for a single connection.

    Runs on the paramiko transport thread; the only state shared with the
    event loop is guarded by ``_lock`` or handed over through
    ``shell_requested``.
    """

    def __init__(self) -> None:
        self.username = ""
        self.pty_size: tuple[int, int] | None = None
        self.shell_requested = threading.Event()
        self._lock = threading.Lock()
        self._window_listener: Callable[[int, int], None] | None = None

    def set_window_listener(
        self,
        listener: Callable[[int, int], None],
        known_size: tuple[int, int] | None = None,
    ) -> None:
        """Forward window changes to ``listener``.

        A change that arrived after the caller read ``known_size`` is
        replayed to the listener, so no resize is lost in between.
        """
        with self._lock:
            self._window_listener = listener
            if self.pty_size is not None and self.pty_size != known_size:
                listener(*self.pty_size)

    def get_allowed_auths(self, username: str) -> str:
        return "none,password,publickey"

    def check_auth_none(self, username: str) -> int:
        self.username = username
        return paramiko.AUTH_SUCCESSFUL

    def check_auth_password(self, username: str, password: str) -> int:
        self.username = username
        return paramiko.AUTH_SUCCESSFUL

    def check_auth_publickey(self, username: str, key: paramiko.PKey) -> int:
        self.username = username
        return paramiko.AUTH_SUCCESSFUL

    def check_channel_request(self, kind: str, chanid: int) -> int:
        if kind == "session":
            return paramiko.OPEN_SUCCEEDED
        return paramiko.OPEN_FAILED_ADMINISTRATIVELY_PROHIBITED

    def check_channel_pty_request(
        self, channel, term, width, height, pixelwidth, pixelheight, modes
    ) -> bool:
        with self._lock:
            self.pty_size = (width, height)
        return True

    def check_channel_shell_request(self, channel) -> bool:
        self.shell_requested.set()
        return True

    def check_channel_window_change_request(
        self, channel, width, height, pixelwidth, pixelheight
    ) -> bool:
        with self._lock:
            self.pty_size = (width, height)
            if self._window_listener is not None:
                self._window_listener(width, height)
        return True


def format_address(addr: tuple) -> str:
    """Render a socket address tuple as ``host:port`` (``[host]:port`` for IPv6)."""
    host, port = addr[0], addr[1]
    if ":" in host:
        return f"[{host}]:{port}"
    return f"{host}:{port}"


def normalize_remote(address: str) -> str:
    """Strip the port and any IPv6 brackets from a peer address."""
    if address.startswith("["):
        end = address.find("]")
        if end != -1:
            return address[1:end]
    if address.count(":") == 1:
        return address.split(":", 1)[0]
    return address.strip("[]")


async def handle_session(
    session: TerminalSession,
    config: SessionConfig,
    registry: SessionRegistry | None = None,
) -> None:
    """Run the chat engine for one interactive session until it ends.

    Sessions without a PTY are refused with a one-line error and exit
    status 1 before any engine is built.
    """
    size = session.pty_size()
    if size is None:
        try:
            await session.write(f"{PTY_REQUIRED_MESSAGE}\r\n".encode())
        except SessionError as e:
            logger.debug("Could not send PTY error: %s", e)
        await session.exit(1)
        return

    username = session.username
    remote = normalize_remote(session.remote_address)
    width, height = size
    logger.info("Connected: user=%s remote=%s size=%dx%d", username, remote, width, height)

    client = ChatClient(session, config, width=width, height=height, username=username, remote=remote)
    if registry is not None:
        registry.add(client)
    try:
        async with client:
            await client.run()
    finally:
        if registry is not None:
            registry.remove(client)
        logger.info("Disconnected: user=%s remote=%s", username, remote)


class ChatServer:
    """Listens for SSH connections and serves a chat engine per shell session."""

    def __init__(
        self,
        settings: Settings,
        host_keys: list[paramiko.PKey],
        registry: SessionRegistry | None = None,
    ) -> None:
        self._settings = settings
        self._host_keys = host_keys
        self._registry = registry if registry is not None else SessionRegistry()
        # A handshake may hold its thread for up to auth_timeout; writes have their own pool.
        self._handshake_executor = ThreadPoolExecutor(
            max_workers=settings.server.max_workers,
            thread_name_prefix="sshchat-handshake",
        )
        self._write_executor = ThreadPoolExecutor(
            max_workers=settings.server.max_workers,
            thread_name_prefix="sshchat-write",
        )
        self._sock: socket.socket | None = None
        self._connections: set[asyncio.Task[None]] = set()

    @property
    def registry(self) -> SessionRegistry:
        return self._registry

    @property
    def address(self) -> tuple[str, int] | None:
        if self._sock is None:
            return None
        return self._sock.getsockname()[:2]

    async def start(self) -> None:
        """Bind the listening socket."""
        cfg = self._settings.server
        self._sock = socket.create_server((cfg.host, cfg.port), backlog=100)
        self._sock.setblocking(False)
        host, port = self.address
        logger.info("Starting server on %s:%d", host, port)

    async def serve_forever(self) -> None:
        """Accept connections until cancelled."""
        if self._sock is None:
            await self.start()
        loop = asyncio.get_running_loop()
        while True:
            conn, addr = await loop.sock_accept(self._sock)
            task = asyncio.create_task(self._handle_connection(conn, addr))
            self._connections.add(task)
            task.add_done_callback(self._connections.discard)

    async def stop(self) -> None:
        """Stop listening, drop every connection and release the I/O threads."""
        if self._sock is not None:
            self._sock.close()
            self._sock = None

        tasks = list(self._connections)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        self._handshake_executor.shutdown(wait=False, cancel_futures=True)
        self._write_executor.shutdown(wait=False, cancel_futures=True)
        logger.info("Server stopped")

    async def _handle_connection(self, conn: socket.socket, addr: tuple) -> None:
        loop = asyncio.get_running_loop()
        remote = format_address(addr)
        timeout = self._settings.server.auth_timeout
        conn.setblocking(True)

        transport = paramiko.Transport(conn)
        for key in self._host_keys:
            transport.add_server_key(key)
        interface = ChatServerInterface()

        try:
            await loop.run_in_executor(
                self._handshake_executor, partial(transport.start_server, server=interface)
            )
            channel = await loop.run_in_executor(self._handshake_executor, transport.accept, timeout)
            if channel is None:
                logger.info("No session channel opened by %s", remote)
                return

            shell = await loop.run_in_executor(
                self._handshake_executor, interface.shell_requested.wait, timeout
            )
            if not shell:
                logger.info("No shell requested by %s", remote)
                channel.close()
                return

            session = ParamikoSession(
                channel,
                username=interface.username or transport.get_username() or "",
                remote_address=remote,
                pty_size=interface.pty_size,
                loop=loop,
                executor=self._write_executor,
                read_size=self._settings.session.read_size,
            )
            interface.set_window_listener(session.notify_window_change, session.pty_size())
            await handle_session(session, self._settings.session, self._registry)
        except (paramiko.SSHException, EOFError, OSError) as e:
            logger.warning("SSH connection from %s failed: %s", remote, e)
        finally:
            transport.close()
