"""Terminal presentation adapter.

Implements the render capability consumed by the router plus the status,
fatal and stats hooks of the composition root. Nothing in the core imports
this module.
"""

from __future__ import annotations

import sys
from datetime import datetime
from typing import TextIO

from .http import ServerStats
from .protocol import ChatMessage


def format_uptime(milliseconds: int) -> str:
    """Format a duration as "1h 2m 3s", "2m 3s" or "3s"."""
    seconds = max(milliseconds, 0) // 1000
    minutes = seconds // 60
    hours = minutes // 60

    if hours > 0:
        return f"{hours}h {minutes % 60}m {seconds % 60}s"
    if minutes > 0:
        return f"{minutes}m {seconds % 60}s"
    return f"{seconds}s"


def format_time(timestamp_ms: int) -> str:
    """Local wall-clock HH:MM for an epoch-milliseconds timestamp.

    Timestamps the platform cannot represent render as ``--:--``.
    """
    try:
        return datetime.fromtimestamp(timestamp_ms / 1000).strftime("%H:%M")
    except (OverflowError, OSError, ValueError):
        return "--:--"



class ConsoleRenderer:
    """Write chat output as plain lines to a text stream."""

    def __init__(self, stream: TextIO | None = None, *, username: str | None = None):
        self._stream = stream or sys.stdout
        self.username = username

    def _write(self, line: str) -> None:
        self._stream.write(line + "\n")
        self._stream.flush()

    def render_message(self, message: ChatMessage) -> None:
        marker = "*" if message.username == self.username else " "
        self._write(
            f"{marker}[{format_time(message.timestamp)}] "
            f"{message.username}: {message.content}"
        )

    def render_notification(self, text: str) -> None:
        self._write(f"-- {text}")

    def show_status(self, connected: bool) -> None:
        self._write("[connected]" if connected else "[disconnected]")

    def show_chat(self) -> None:
        self._write("Joined the chat. Type a message and press Enter, /quit to leave.")

    def show_error(self, message: str) -> None:
        self._write(f"! {message}")

    def show_fatal(self, message: str) -> None:
        self._write(f"!! {message}")

    def show_stats(self, stats: ServerStats) -> None:
        def _fmt(value: int | None) -> str:
            return "-" if value is None else str(value)

        self._write(
            "[server] threads={} pool={} queue={} requests={}".format(
                _fmt(stats.active_threads),
                _fmt(stats.pool_size),
                _fmt(stats.queue_size),
                _fmt(stats.total_requests),
            )
        )

    def show_uptime(self, milliseconds: int) -> None:
        self._write(f"Uptime: {format_uptime(milliseconds)}")
