"""Composition root wiring the chat core to a presentation adapter.

A ``ChatClient`` is constructed and owned explicitly by the caller; there is
no module-level instance.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from types import TracebackType
from typing import Protocol

import aiohttp

from .bootstrap import SessionBootstrapper
from .config import ChatClientConfig
from .connection import ConnectionManager, ConnectionState, Transport
from .errors import ChatClientError
from .http import ChatHttpClient, ServerStats
from .router import ChatRenderer, MessageRouter
from .scheduler import Scheduler
from .stats import StatsPoller
from .validation import validate_username
from .ws_client import ChatWsClient

_LOGGER = logging.getLogger(__name__)


class ChatPresenter(ChatRenderer, Protocol):
    """Everything the client reports to the user."""

    def show_status(self, connected: bool) -> None: ...

    def show_chat(self) -> None: ...

    def show_fatal(self, message: str) -> None: ...

    def show_stats(self, stats: ServerStats) -> None: ...


class ChatClient:
    """One chat participant: session bootstrap, live connection and stats.

    Usage:
        async with ChatClient(config, presenter) as client:
            await client.join("Alice")
            await client.send("hello")
    """

    def __init__(
        self,
        config: ChatClientConfig,
        presenter: ChatPresenter,
        *,
        session: aiohttp.ClientSession | None = None,
        scheduler: Scheduler | None = None,
        transport_factory: Callable[[], Transport] = ChatWsClient,
        poll_stats: bool = True,
    ) -> None:
        self.config = config
        self._presenter = presenter
        self._session = session
        self._owns_session = session is None
        self._poll_stats = poll_stats
        self._started_at = time.monotonic()

        self._http: ChatHttpClient | None = None
        self._bootstrapper: SessionBootstrapper | None = None
        self._stats: StatsPoller | None = None

        self.router = MessageRouter(presenter)
        self.manager = ConnectionManager(
            config.host,
            config.ws_port,
            router=self.router,
            secure=config.secure,
            policy=config.reconnect,
            scheduler=scheduler,
            transport_factory=transport_factory,
            visibility_delay=config.visibility_delay,
            ping_interval=config.ping_interval,
            open_timeout=config.open_timeout,
        )
        self.manager.on_connection_status(presenter.show_status)
        self.manager.on_show_chat(presenter.show_chat)
        self.manager.on_fatal(presenter.show_fatal)

    @property
    def state(self) -> ConnectionState:
        return self.manager.state

    @property
    def session_id(self) -> str | None:
        """Session id from the last bootstrap, if the server issued one."""
        if self._bootstrapper is None:
            return None
        return self._bootstrapper.session_id

    @property
    def uptime_ms(self) -> int:
        return int((time.monotonic() - self._started_at) * 1000)

    async def start(self) -> None:
        """Open the HTTP session and start stats polling."""
        if self._http is not None:
            return
        if self._session is None:
            self._session = aiohttp.ClientSession()
        self._http = ChatHttpClient(
            self._session,
            self.config.host,
            self.config.http_port,
            secure=self.config.secure,
        )
        self._bootstrapper = SessionBootstrapper(self._http)
        self._stats = StatsPoller(
            self._http,
            self._presenter.show_stats,
            interval=self.config.stats_interval,
        )
        if self._poll_stats:
            self._stats.start()

    async def join(self, username: str) -> str | None:
        """Validate the username, bootstrap a session and connect.

        Returns:
            Session id, or None when the server issued none.

        Raises:
            ChatValidationError: If the username is invalid (nothing is sent)
        """
        name = validate_username(username)
        if self._bootstrapper is None:
            raise ChatClientError("Client not started")

        session_id = await self._bootstrapper.create_session()
        self.manager.connect(name)
        return session_id

    async def send(self, content: str) -> None:
        """Send a chat message; raises NotConnectedError when offline."""
        await self.manager.send_message(content)

    def notify_hidden(self) -> None:
        """The user moved away; stop polling stats until visible again."""
        if self._stats is not None:
            self._stats.pause()

    def notify_visible(self) -> None:
        """The user is back; resume stats and reconnect if the link dropped."""
        if self._stats is not None:
            self._stats.resume()
        self.manager.notify_visible()

    async def close(self) -> None:
        """Disconnect and release the HTTP session."""
        await self.manager.disconnect()
        if self._stats is not None:
            await self._stats.stop()
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None
        self._http = None
        self._bootstrapper = None
        self._stats = None
        _LOGGER.debug("Client closed after %dms", self.uptime_ms)

    async def __aenter__(self) -> ChatClient:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()
