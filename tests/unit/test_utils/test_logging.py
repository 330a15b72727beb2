"""Tests for logging setup."""

from __future__ import annotations

import logging
from pathlib import Path
from unittest.mock import MagicMock

import logging_loki
import pytest
import requests

from sshchat.config.settings import LoggingConfig
from sshchat.utils.logging import loki_push_url, setup_logging


class TestSetupLogging:
    def test_level_and_single_console_handler(self) -> None:
        setup_logging(LoggingConfig(level="debug"))
        setup_logging(LoggingConfig(level="debug"))
        logger = logging.getLogger("sshchat")
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1

    def test_file_handler(self, tmp_path: Path) -> None:
        log_file = tmp_path / "sshchat.log"
        setup_logging(LoggingConfig(file=str(log_file)))
        logging.getLogger("sshchat.test").info("hello from test")
        for handler in logging.getLogger("sshchat").handlers:
            handler.flush()
        assert "hello from test" in log_file.read_text()
        setup_logging()


class TestLokiShipping:
    def test_push_url(self) -> None:
        assert loki_push_url("http://loki:3100") == "http://loki:3100/loki/api/v1/push"
        assert loki_push_url("http://loki:3100/") == "http://loki:3100/loki/api/v1/push"
        assert loki_push_url("http://loki:3100/loki/api/v1/push") == "http://loki:3100/loki/api/v1/push"

    def test_no_loki_handler_by_default(self) -> None:
        setup_logging(LoggingConfig())
        handlers = logging.getLogger("sshchat").handlers
        assert not any(isinstance(h, logging_loki.LokiQueueHandler) for h in handlers)

    def test_records_shipped_with_labels(self, monkeypatch: pytest.MonkeyPatch) -> None:
        pushes = []

        def fake_post(session, url, json=None, **kwargs):
            pushes.append((url, json, dict(session.headers)))
            return MagicMock(status_code=204)

        monkeypatch.setattr(requests.Session, "post", fake_post)

        setup_logging(LoggingConfig(loki_url="http://loki:3100", identify="node-1"))
        handlers = logging.getLogger("sshchat").handlers
        assert sum(isinstance(h, logging_loki.LokiQueueHandler) for h in handlers) == 1
        logging.getLogger("sshchat.test").warning("shipped line")

        # replacing the handlers drains the Loki queue
        setup_logging()

        assert pushes
        url, payload, headers = pushes[-1]
        assert url == "http://loki:3100/loki/api/v1/push"
        assert headers["X-Scope-OrgID"] == "sshchat"
        streams = [stream for _, body, _ in pushes for stream in body["streams"]]
        labels = streams[0]["stream"]
        assert labels["app"] == "sshchat"
        assert labels["identify"] == "node-1"
        lines = [value[1] for stream in streams for value in stream["values"]]
        assert any("shipped line" in line for line in lines)
