"""Logging setup utilities for sshchat.

Configures logging for the entire application based on the logging
configuration settings. When a Loki URL is configured, records are also
shipped to Loki from a background thread, labelled with ``app`` and
``identify``.
"""

from __future__ import annotations

import logging
import sys
from queue import Queue

import logging_loki

from sshchat.config.settings import LoggingConfig

APP_LABEL = "sshchat"
LOKI_PUSH_PATH = "/loki/api/v1/push"
LOKI_TENANT_HEADER = "X-Scope-OrgID"


def loki_push_url(base_url: str) -> str:
    """Push endpoint for a Loki base URL such as ``http://loki:3100``."""
    base_url = base_url.rstrip("/")
    if base_url.endswith(LOKI_PUSH_PATH):
        return base_url
    return base_url + LOKI_PUSH_PATH


def create_loki_handler(config: LoggingConfig) -> logging_loki.LokiQueueHandler:
    """Build a queue-backed Loki handler so emitting never blocks the event loop."""
    handler = logging_loki.LokiQueueHandler(
        Queue(-1),
        url=loki_push_url(config.loki_url),
        tags={"app": APP_LABEL, "identify": config.identify},
        version="1",
    )
    handler.handler.emitter.session.headers[LOKI_TENANT_HEADER] = APP_LABEL
    return handler


def setup_logging(config: LoggingConfig | None = None) -> None:
    """Configure logging for the sshchat server.

    Sets up the ``sshchat`` logger with the specified level, format, and
    optional file and Loki handlers. Handlers installed by an earlier call
    are replaced, so calling this twice does not duplicate output.

    Args:
        config: Logging configuration. If None, uses defaults
                (INFO level, stderr output).
    """
    if config is None:
        config = LoggingConfig()

    root_logger = logging.getLogger("sshchat")
    root_logger.setLevel(getattr(logging, config.level.upper(), logging.INFO))
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        if isinstance(handler, logging_loki.LokiQueueHandler):
            # flushes queued records to Loki
            handler.listener.stop()
        handler.close()

    formatter = logging.Formatter(config.format)

    # Console handler
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # File handler (optional)
    if config.file:
        file_handler = logging.FileHandler(config.file)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    # Loki handler (optional)
    if config.loki_url:
        root_logger.addHandler(create_loki_handler(config))
        root_logger.info("Logging to Loki at %s", config.loki_url)

    root_logger.info("Logging initialized at %s level", config.level)
