"""Tests for the per-connection session handler and SSH callbacks."""

from __future__ import annotations

import asyncio
from unittest.mock import MagicMock

import paramiko
import pytest

from sshchat.registry import SessionRegistry
from sshchat.server import (
    PTY_REQUIRED_MESSAGE,
    ChatServerInterface,
    format_address,
    handle_session,
    normalize_remote,
)


class TestAddresses:
    @pytest.mark.parametrize(
        "address,expected",
        [
            ("10.0.0.5:52000", "10.0.0.5"),
            ("[::1]:2222", "::1"),
            ("[fe80::1%eth0]:22", "fe80::1%eth0"),
            ("::1", "::1"),
            ("localhost", "localhost"),
        ],
    )
    def test_normalize_remote(self, address: str, expected: str) -> None:
        assert normalize_remote(address) == expected

    def test_format_ipv4(self) -> None:
        assert format_address(("127.0.0.1", 5000)) == "127.0.0.1:5000"

    def test_format_ipv6(self) -> None:
        assert format_address(("::1", 5000, 0, 0)) == "[::1]:5000"


class TestHandleSession:
    @pytest.mark.asyncio
    async def test_refuses_session_without_pty(self, make_session, fast_config) -> None:
        session = make_session(pty_size=None)
        registry = SessionRegistry()

        await handle_session(session, fast_config, registry)

        assert session.output == PTY_REQUIRED_MESSAGE + "\r\n"
        assert session.exit_status == 1
        assert session.close_calls == 1
        assert len(registry) == 0

    @pytest.mark.asyncio
    async def test_runs_engine_until_close_key(self, make_session, fast_config) -> None:
        session = make_session(remote_address="[::1]:40000", pty_size=(60, 20))
        registry = SessionRegistry()

        task = asyncio.create_task(handle_session(session, fast_config, registry))
        await asyncio.sleep(0.05)
        assert len(registry) == 1
        info = registry.sessions()[0]
        assert info.remote == "::1"
        assert (info.width, info.height) == (60, 20)

        session.send_keys(b"hi\r")
        await asyncio.sleep(0.05)
        assert registry.sessions()[0].message_count == 1

        session.send_keys(b"\x04")
        await asyncio.wait_for(task, timeout=1.0)
        assert len(registry) == 0
        assert session.close_calls == 1
        assert session.exit_status is None


class TestChatServerInterface:
    def test_accepts_any_user(self) -> None:
        iface = ChatServerInterface()
        assert iface.check_auth_none("alice") == paramiko.AUTH_SUCCESSFUL
        assert iface.username == "alice"
        assert iface.check_auth_password("carol", "pw") == paramiko.AUTH_SUCCESSFUL
        assert iface.username == "carol"
        assert "none" in iface.get_allowed_auths("anyone")

    def test_only_session_channels(self) -> None:
        iface = ChatServerInterface()
        assert iface.check_channel_request("session", 1) == paramiko.OPEN_SUCCEEDED
        assert iface.check_channel_request("direct-tcpip", 2) == (
            paramiko.OPEN_FAILED_ADMINISTRATIVELY_PROHIBITED
        )

    def test_pty_and_shell_requests(self) -> None:
        iface = ChatServerInterface()
        assert iface.check_channel_pty_request(None, b"xterm", 80, 24, 0, 0, b"")
        assert iface.pty_size == (80, 24)
        assert not iface.shell_requested.is_set()
        assert iface.check_channel_shell_request(None)
        assert iface.shell_requested.is_set()

    def test_window_change_before_listener_updates_pty_size(self) -> None:
        iface = ChatServerInterface()
        iface.check_channel_pty_request(None, b"xterm", 80, 24, 0, 0, b"")
        iface.check_channel_window_change_request(None, 100, 40, 0, 0)
        assert iface.pty_size == (100, 40)

    def test_window_change_forwarded_to_listener(self) -> None:
        iface = ChatServerInterface()
        listener = MagicMock()
        iface.set_window_listener(listener)
        assert iface.check_channel_window_change_request(None, 120, 50, 0, 0)
        listener.assert_called_once_with(120, 50)

    def test_window_change_after_listener_still_recorded(self) -> None:
        iface = ChatServerInterface()
        iface.set_window_listener(MagicMock())
        iface.check_channel_window_change_request(None, 90, 30, 0, 0)
        assert iface.pty_size == (90, 30)

    def test_change_between_snapshot_and_listener_is_replayed(self) -> None:
        iface = ChatServerInterface()
        iface.check_channel_pty_request(None, b"xterm", 80, 24, 0, 0, b"")
        known = iface.pty_size
        iface.check_channel_window_change_request(None, 100, 40, 0, 0)

        listener = MagicMock()
        iface.set_window_listener(listener, known)
        listener.assert_called_once_with(100, 40)

    def test_no_replay_when_size_unchanged(self) -> None:
        iface = ChatServerInterface()
        iface.check_channel_pty_request(None, b"xterm", 80, 24, 0, 0, b"")
        listener = MagicMock()
        iface.set_window_listener(listener, iface.pty_size)
        listener.assert_not_called()
