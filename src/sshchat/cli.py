"""Command-line interface for the sshchat server.

Provides the main entry point for serving chat sessions over SSH and for
generating the server's host keys.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="sshchat",
        description="Live terminal chat interface over SSH",
    )
    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=None,
        help="Path to YAML configuration file (default: config/sshchat.yaml)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    serve_parser = subparsers.add_parser("serve", help="Run the SSH chat server")
    serve_parser.add_argument(
        "--port", type=int, default=None,
        help="Override the listening port",
    )
    serve_parser.add_argument(
        "--status", action="store_true",
        help="Also serve the HTTP status endpoint",
    )

    keygen_parser = subparsers.add_parser("keygen", help="Generate SSH host keys")
    keygen_parser.add_argument(
        "--force", action="store_true",
        help="Overwrite existing host keys",
    )

    return parser.parse_args(argv)


async def _serve(settings) -> None:
    """Load host keys, then run the SSH server (and status endpoint if enabled)."""
    from sshchat.hostkeys import load_or_generate_host_keys
    from sshchat.server import ChatServer

    keys = load_or_generate_host_keys(settings.server.host_key_dir)
    server = ChatServer(settings, keys)
    await server.start()

    try:
        if settings.status.enabled:
            from sshchat.status.server import create_server

            status = create_server(server.registry, settings.status)
            ssh_task = asyncio.create_task(server.serve_forever())
            # uvicorn owns SIGINT/SIGTERM and returns from serve() on shutdown
            await status.serve()
            ssh_task.cancel()
            try:
                await ssh_task
            except asyncio.CancelledError:
                pass
        else:
            await server.serve_forever()
    finally:
        await server.stop()


def _keygen(settings, force: bool) -> int:
    from sshchat.hostkeys import HostKeyError, check_host_keys, generate_host_keys

    key_dir = settings.server.host_key_dir
    if not force:
        try:
            check_host_keys(key_dir)
            print(f"Host keys already present in {key_dir} (use --force to replace)")
            return 0
        except HostKeyError:
            pass
    try:
        generate_host_keys(key_dir)
    except HostKeyError as e:
        logger.error("Key generation failed: %s", e)
        return 1
    print(f"Generated host keys in {key_dir}")
    return 0


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the sshchat CLI."""
    args = parse_args(argv)

    if args.command is None:
        parse_args(["--help"])
        return

    from sshchat.config.settings import load_settings
    from sshchat.utils.logging import setup_logging

    settings = load_settings(args.config)

    if args.verbose:
        settings.logging.level = "DEBUG"

    setup_logging(settings.logging)

    if args.command == "serve":
        if args.port is not None:
            settings.server.port = args.port
        if args.status:
            settings.status.enabled = True
        logger.info("Starting SSH chat server")
        try:
            asyncio.run(_serve(settings))
        except KeyboardInterrupt:
            logger.info("Interrupted, shutting down")

    elif args.command == "keygen":
        sys.exit(_keygen(settings, args.force))


if __name__ == "__main__":
    main()
