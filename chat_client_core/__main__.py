"""Command-line chat client.

    python -m chat_client_core --host chat.example.org Alice

Lines typed on stdin are sent as chat messages. ``/reconnect`` retries a
dropped connection right away, ``/uptime`` prints how long the client has
been running and ``/quit`` leaves.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from .client import ChatClient
from .config import ChatClientConfig, load_config
from .console import ConsoleRenderer
from .errors import ChatClientError, ConfigError
from .validation import validate_username

_LOGGER = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chat_client_core", description="Real-time chat client"
    )
    parser.add_argument("username", help="Name shown to other participants")
    parser.add_argument("--config", type=Path, help="YAML configuration file")
    parser.add_argument("--host", help="Chat server host")
    parser.add_argument("--http-port", type=int, help="REST endpoint port")
    parser.add_argument("--ws-port", type=int, help="WebSocket endpoint port")
    parser.add_argument(
        "--secure",
        action="store_true",
        default=None,
        help="Use https/wss instead of http/ws",
    )
    parser.add_argument(
        "--no-stats", action="store_true", help="Do not poll server statistics"
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity",
    )
    return parser


def resolve_config(args: argparse.Namespace) -> ChatClientConfig:
    """Config file values, overridden by command-line flags."""
    config = load_config(args.config) if args.config else ChatClientConfig()
    return config.with_overrides(
        host=args.host,
        http_port=args.http_port,
        ws_port=args.ws_port,
        secure=args.secure,
    )


async def open_stdin() -> asyncio.StreamReader:
    """Attach stdin to the running loop so reads can be cancelled."""
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader()
    try:
        await loop.connect_read_pipe(
            lambda: asyncio.StreamReaderProtocol(reader), sys.stdin
        )
    except (OSError, ValueError):
        # Regular files redirected to stdin cannot be polled.
        reader.feed_data(sys.stdin.buffer.read())
        reader.feed_eof()
    return reader


async def run_client(
    config: ChatClientConfig,
    username: str,
    *,
    poll_stats: bool = True,
    stdin: asyncio.StreamReader | None = None,
) -> int:
    renderer = ConsoleRenderer(username=username)
    async with ChatClient(config, renderer, poll_stats=poll_stats) as client:
        await client.join(username)
        reader = stdin if stdin is not None else await open_stdin()

        while True:
            line = await reader.readline()
            if not line:
                break
            text = line.decode(errors="replace").strip()
            if not text:
                continue
            if text == "/quit":
                break
            if text == "/reconnect":
                client.notify_visible()
                continue
            if text == "/uptime":
                renderer.show_uptime(client.uptime_ms)
                continue
            try:
                await client.send(text)
            except ChatClientError as err:
                renderer.show_error(str(err))
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = resolve_config(args)
        username = validate_username(args.username)
    except (ConfigError, ValueError) as err:
        print(f"error: {err}", file=sys.stderr)
        return 2

    try:
        return asyncio.run(run_client(config, username, poll_stats=not args.no_stats))
    except KeyboardInterrupt:
        _LOGGER.debug("Interrupted")
        return 130


if __name__ == "__main__":
    sys.exit(main())
