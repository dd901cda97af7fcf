"""Pytest configuration and fixtures for chat_client_core tests."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from chat_client_core.connection import ConnectionManager, ReconnectPolicy
from chat_client_core.errors import ChatConnectionError
from chat_client_core.protocol import ChatMessage
from chat_client_core.router import MessageRouter
from chat_client_core.ws_client import ChatWsMessage, ChatWsMessageType


@pytest.fixture
def mock_session() -> MagicMock:
    """Create a mock aiohttp ClientSession."""
    import aiohttp

    return MagicMock(spec=aiohttp.ClientSession)


def create_mock_response(
    status: int = 200,
    json_data: Any = None,
    json_error: Exception | None = None,
) -> AsyncMock:
    """Create a configured mock response.

    Args:
        status: HTTP status code
        json_data: Data to return from json() call
        json_error: Exception raised by json() instead

    Returns:
        Configured AsyncMock response
    """
    response = AsyncMock()
    response.status = status

    if json_error is not None:
        response.json.side_effect = json_error
    elif json_data is not None:
        response.json.return_value = json_data

    response.__aenter__.return_value = response
    response.__aexit__.return_value = None

    return response


async def settle(rounds: int = 20) -> None:
    """Let pending tasks on the loop run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


# -----------------------------------------------------------------------------
# Fake scheduler
# -----------------------------------------------------------------------------


@dataclass
class FakeTimer:
    """Timer recorded by FakeScheduler."""

    delay: float
    callback: Callable[[], None]
    cancelled: bool = False
    fired: bool = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    """Scheduler that only fires timers when told to."""

    def __init__(self) -> None:
        self.timers: list[FakeTimer] = []

    def call_later(self, delay: float, callback: Callable[[], None]) -> FakeTimer:
        timer = FakeTimer(delay, callback)
        self.timers.append(timer)
        return timer

    @property
    def pending(self) -> list[FakeTimer]:
        return [t for t in self.timers if not t.cancelled and not t.fired]

    @property
    def delays(self) -> list[float]:
        return [t.delay for t in self.timers]

    def fire_next(self) -> FakeTimer:
        timer = self.pending[0]
        timer.fired = True
        timer.callback()
        return timer


# -----------------------------------------------------------------------------
# Fake transport
# -----------------------------------------------------------------------------


class FakeTransport:
    """Queue-backed stand-in for ChatWsClient."""

    def __init__(
        self,
        *,
        connect_error: Exception | None = None,
        send_error: Exception | None = None,
    ) -> None:
        self.connect_error = connect_error
        self.send_error = send_error
        self.connect_calls: list[tuple[str, int, dict[str, Any]]] = []
        self.sent: list[str] = []
        self.closed = False
        self.gate: asyncio.Event | None = None
        self._inbox: asyncio.Queue[ChatWsMessage] = asyncio.Queue()

    @property
    def sent_frames(self) -> list[dict[str, Any]]:
        return [json.loads(frame) for frame in self.sent]

    async def connect(self, host: str, port: int, **kwargs: Any) -> None:
        self.connect_calls.append((host, port, kwargs))
        if self.gate is not None:
            await self.gate.wait()
        if self.connect_error is not None:
            raise self.connect_error

    async def close(self) -> None:
        if not self.closed:
            self.closed = True
            self._inbox.put_nowait(ChatWsMessage(ChatWsMessageType.CLOSED))

    async def send_text(self, frame: str) -> None:
        if self.send_error is not None:
            raise self.send_error
        self.sent.append(frame)

    def feed(self, payload: dict[str, Any] | str) -> None:
        """Deliver an inbound text frame."""
        data = payload if isinstance(payload, str) else json.dumps(payload)
        self._inbox.put_nowait(ChatWsMessage(ChatWsMessageType.TEXT, data))

    def drop(self, kind: ChatWsMessageType = ChatWsMessageType.CLOSED) -> None:
        """Simulate the server closing or the link failing."""
        self._inbox.put_nowait(ChatWsMessage(kind))

    def __aiter__(self):
        return self._iter()

    async def _iter(self):
        while True:
            msg = await self._inbox.get()
            yield msg
            if msg.type is not ChatWsMessageType.TEXT:
                return


class FakeTransportFactory:
    """Hands out FakeTransports, optionally preconfigured ones first."""

    def __init__(self) -> None:
        self.created: list[FakeTransport] = []
        self.queued: list[FakeTransport] = []

    def __call__(self) -> FakeTransport:
        transport = self.queued.pop(0) if self.queued else FakeTransport()
        self.created.append(transport)
        return transport

    def fail_next(self, count: int = 1, error: Exception | None = None) -> None:
        for _ in range(count):
            self.queued.append(
                FakeTransport(connect_error=error or ChatConnectionError("refused"))
            )

    @property
    def latest(self) -> FakeTransport:
        return self.created[-1]


class RecordingRenderer:
    """Renderer that records what it was asked to show."""

    def __init__(self) -> None:
        self.messages: list[ChatMessage] = []
        self.notifications: list[str] = []
        self.order: list[str] = []

    def render_message(self, message: ChatMessage) -> None:
        self.messages.append(message)
        self.order.append(f"message:{message.content}")

    def render_notification(self, text: str) -> None:
        self.notifications.append(text)
        self.order.append(f"notification:{text}")


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def transports() -> FakeTransportFactory:
    return FakeTransportFactory()


@pytest.fixture
def renderer() -> RecordingRenderer:
    return RecordingRenderer()


@pytest.fixture
def manager(
    scheduler: FakeScheduler,
    transports: FakeTransportFactory,
    renderer: RecordingRenderer,
) -> ConnectionManager:
    """ConnectionManager wired to fakes with the default backoff policy."""
    return ConnectionManager(
        "chat.local",
        router=MessageRouter(renderer),
        policy=ReconnectPolicy(),
        scheduler=scheduler,
        transport_factory=transports,
    )
