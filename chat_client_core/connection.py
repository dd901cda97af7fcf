"""Connection manager for the chat live transport.

This module owns the single live WebSocket handle and runs the connection
state machine:

    DISCONNECTED -> CONNECTING -> OPEN -> RECONNECTING -> CONNECTING ...
    RECONNECTING -> CLOSED once the reconnect attempts are exhausted

Any state returns to DISCONNECTED on an explicit ``disconnect()``.

Every connection attempt gets a new generation number. Events coming from a
transport whose generation is no longer current are dropped, so a slow
handle from an earlier attempt can never touch the current state.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from .errors import (
    ChatClientError,
    NotConnectedError,
    ReconnectExhaustedError,
)
from .protocol import Join, OutboundIntent, Send, decode_event, encode_intent
from .router import MessageRouter
from .scheduler import LoopScheduler, Scheduler, TimerHandle
from .validation import validate_content, validate_username
from .ws import DEFAULT_WS_PORT, build_ws_url
from .ws_client import ChatWsClient, ChatWsMessage, ChatWsMessageType

_LOGGER = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Lifecycle states of the live connection."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    OPEN = "open"
    RECONNECTING = "reconnecting"
    CLOSED = "closed"


@dataclass(frozen=True)
class ReconnectPolicy:
    """Exponential backoff settings for automatic reconnection.

    Attributes:
        base_delay: Delay before the first reconnect (seconds).
        max_delay: Upper bound for any single delay (seconds).
        max_attempts: Reconnects tried before giving up.
    """

    base_delay: float = 1.0
    max_delay: float = 10.0
    max_attempts: int = 5

    def __post_init__(self) -> None:
        """Validate policy invariants."""
        if self.base_delay <= 0:
            raise ValueError(f"base_delay must be positive, got {self.base_delay}")
        if self.max_delay < self.base_delay:
            raise ValueError(
                f"max_delay ({self.max_delay}) must be >= base_delay ({self.base_delay})"
            )
        if self.max_attempts < 0:
            raise ValueError(f"max_attempts must be >= 0, got {self.max_attempts}")

    def delay_for(self, attempt: int) -> float:
        """Delay before reconnect number ``attempt`` (0-based)."""
        return min(self.base_delay * (2**attempt), self.max_delay)


class Transport(Protocol):
    """Live connection handle as used by the manager."""

    async def connect(
        self,
        host: str,
        port: int = ...,
        *,
        secure: bool = ...,
        path: str = ...,
        ping_interval: int | None = ...,
        timeout: float = ...,
    ) -> None: ...

    async def close(self) -> None: ...

    async def send_text(self, frame: str) -> None: ...

    def __aiter__(self) -> AsyncIterator[ChatWsMessage]: ...


class ConnectionManager:
    """Owns the live connection and its reconnection policy.

    Usage:
        manager = ConnectionManager("chat.example.org", router=router)
        manager.on_connection_status(status_handler)
        manager.on_fatal(fatal_handler)
        manager.connect("Alice")
        await manager.send_message("hello")
        await manager.disconnect()
    """

    def __init__(
        self,
        host: str,
        port: int = DEFAULT_WS_PORT,
        *,
        router: MessageRouter,
        secure: bool = False,
        policy: ReconnectPolicy | None = None,
        scheduler: Scheduler | None = None,
        transport_factory: Callable[[], Transport] = ChatWsClient,
        visibility_delay: float = 1.0,
        ping_interval: int | None = 20,
        open_timeout: float = 15.0,
    ) -> None:
        """Initialize manager.

        Args:
            host: Chat server host
            port: Live endpoint port
            router: Receives every decoded inbound event
            secure: Use wss:// instead of ws://
            policy: Reconnect backoff settings
            scheduler: Timer source for reconnect delays
            transport_factory: Builds a fresh transport for each attempt
            visibility_delay: Delay for reconnects triggered by notify_visible (seconds)
            ping_interval: Keepalive ping interval (seconds)
            open_timeout: Timeout for opening the transport (seconds)
        """
        self.host = host
        self.port = port
        self.secure = secure
        self.policy = policy or ReconnectPolicy()

        self._router = router
        self._scheduler = scheduler or LoopScheduler()
        self._transport_factory = transport_factory
        self._visibility_delay = visibility_delay
        self._ping_interval = ping_interval
        self._open_timeout = open_timeout

        # Connection state
        self._state = ConnectionState.DISCONNECTED
        self._transport: Transport | None = None
        self._generation = 0
        self._tasks: set[asyncio.Task[None]] = set()
        self._username: str | None = None
        self._connected = False
        self._chat_shown = False

        # Timers
        self._retry_attempts = 0
        self._reconnect_timer: TimerHandle | None = None
        self._visibility_timer: TimerHandle | None = None

        # Callbacks
        self._status_callback: Callable[[bool], None] | None = None
        self._show_chat_callback: Callable[[], None] | None = None
        self._fatal_callback: Callable[[str], None] | None = None
        self._state_callback: Callable[[ConnectionState], None] | None = None

    # -------------------------------------------------------------------------
    # Public API: Properties
    # -------------------------------------------------------------------------

    @property
    def url(self) -> str:
        """Live endpoint URL."""
        return build_ws_url(self.host, self.port, secure=self.secure)

    @property
    def state(self) -> ConnectionState:
        """Get current connection state."""
        return self._state

    @property
    def is_connected(self) -> bool:
        """Check if the connection is open and joined."""
        return self._state is ConnectionState.OPEN

    @property
    def username(self) -> str | None:
        return self._username

    @property
    def retry_attempts(self) -> int:
        """Reconnects scheduled since the last successful open."""
        return self._retry_attempts

    @property
    def generation(self) -> int:
        return self._generation

    # -------------------------------------------------------------------------
    # Public API: Callbacks
    # -------------------------------------------------------------------------

    def on_connection_status(self, callback: Callable[[bool], None]) -> None:
        """Register callback receiving True when connected, False when the link drops."""
        self._status_callback = callback

    def on_show_chat(self, callback: Callable[[], None]) -> None:
        """Register callback fired on the first successful open."""
        self._show_chat_callback = callback

    def on_fatal(self, callback: Callable[[str], None]) -> None:
        """Register callback for reconnect exhaustion (manual restart required)."""
        self._fatal_callback = callback

    def on_state_changed(self, callback: Callable[[ConnectionState], None]) -> None:
        """Register callback for every state transition."""
        self._state_callback = callback

    # -------------------------------------------------------------------------
    # Public API: Connection Management
    # -------------------------------------------------------------------------

    def connect(self, username: str) -> None:
        """Start connecting as ``username``.

        Raises:
            ChatValidationError: If the username is invalid
            ChatClientError: If already connecting or open as another user
        """
        name = validate_username(username)

        if self._state in (ConnectionState.OPEN, ConnectionState.CONNECTING):
            if name != self._username:
                raise ChatClientError(
                    f"Already connected as {self._username!r}; disconnect first"
                )
            _LOGGER.debug("[%s] Connect ignored: already %s", name, self._state.value)
            return

        self._username = name
        self._retry_attempts = 0
        self._start_attempt()

    async def disconnect(self) -> None:
        """Close the connection and stop any automatic reconnection."""
        _LOGGER.info("[%s] Disconnecting", self._username)
        self._cancel_timers()
        self._generation += 1
        self._retry_attempts = 0
        self._username = None

        transport = self._transport
        self._transport = None

        self._set_connected(False)
        self._set_state(ConnectionState.DISCONNECTED)

        current = asyncio.current_task()
        tasks = [task for task in self._tasks if task is not current]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        if transport is not None:
            await self._close_transport(transport)

    def notify_visible(self) -> None:
        """Reconnect shortly after the client returns to the foreground.

        Does nothing while open or connecting, or before a username is
        established. The backoff attempt counter is left untouched.
        """
        if not self._should_reconnect_on_visible():
            return
        if self._visibility_timer is not None:
            return
        self._visibility_timer = self._scheduler.call_later(
            self._visibility_delay, self._on_visibility_timer
        )

    # -------------------------------------------------------------------------
    # Public API: Sending
    # -------------------------------------------------------------------------

    async def send(self, intent: OutboundIntent) -> None:
        """Send an intent over the open connection.

        Raises:
            NotConnectedError: If the connection is not open; nothing is written
            ChatConnectionError: If the write fails
        """
        if isinstance(intent, Join):
            raise ChatClientError("Join is sent by the connection manager")
        transport = self._transport
        if self._state is not ConnectionState.OPEN or transport is None:
            raise NotConnectedError(f"Cannot send while {self._state.value}")
        await transport.send_text(encode_intent(intent))

    async def send_message(self, content: str) -> None:
        """Validate and send a chat message."""
        await self.send(Send(validate_content(content)))

    # -------------------------------------------------------------------------
    # Internal: Connection State Machine
    # -------------------------------------------------------------------------

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    def _set_state(self, state: ConnectionState) -> None:
        """Update connection state and notify callback."""
        if self._state is not state:
            _LOGGER.debug(
                "[%s] State: %s → %s", self._username, self._state.value, state.value
            )
            self._state = state
            self._safe_call(self._state_callback, state)

    def _set_connected(self, connected: bool) -> None:
        if self._connected != connected:
            self._connected = connected
            self._safe_call(self._status_callback, connected)

    def _safe_call(self, callback: Callable[..., None] | None, *args: object) -> None:
        if callback is None:
            return
        try:
            callback(*args)
        except Exception as err:
            _LOGGER.exception("[%s] Callback error: %s", self._username, err)

    def _cancel_timers(self) -> None:
        if self._reconnect_timer is not None:
            self._reconnect_timer.cancel()
            self._reconnect_timer = None
        if self._visibility_timer is not None:
            self._visibility_timer.cancel()
            self._visibility_timer = None

    def _start_attempt(self) -> None:
        """Begin a new connection attempt, superseding any earlier handle."""
        self._cancel_timers()
        self._generation += 1
        previous = self._transport
        self._transport = None

        self._set_state(ConnectionState.CONNECTING)
        _LOGGER.info(
            "[%s] Connecting to %s (attempt #%d)",
            self._username,
            self.url,
            self._retry_attempts + 1,
        )

        task = asyncio.create_task(self._run(self._generation, previous))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _handle_transport_failure(self) -> None:
        """Schedule reconnection with exponential backoff, or give up."""
        self._set_connected(False)
        self._set_state(ConnectionState.RECONNECTING)

        if self._retry_attempts >= self.policy.max_attempts:
            err = ReconnectExhaustedError(self._retry_attempts)
            _LOGGER.error("[%s] %s", self._username, err)
            self._set_state(ConnectionState.CLOSED)
            self._safe_call(self._fatal_callback, str(err))
            return

        delay = self.policy.delay_for(self._retry_attempts)
        self._retry_attempts += 1

        _LOGGER.info(
            "[%s] Reconnecting in %.1fs (attempt %d/%d)",
            self._username,
            delay,
            self._retry_attempts,
            self.policy.max_attempts,
        )
        self._reconnect_timer = self._scheduler.call_later(
            delay, self._on_reconnect_timer
        )

    def _handle_open(self) -> None:
        self._retry_attempts = 0
        self._set_state(ConnectionState.OPEN)
        _LOGGER.info("[%s] Connected to %s", self._username, self.url)
        self._set_connected(True)
        if not self._chat_shown:
            self._chat_shown = True
            self._safe_call(self._show_chat_callback)

    def _on_reconnect_timer(self) -> None:
        self._reconnect_timer = None
        if self._state is not ConnectionState.RECONNECTING:
            return
        self._start_attempt()

    def _should_reconnect_on_visible(self) -> bool:
        return self._username is not None and self._state not in (
            ConnectionState.OPEN,
            ConnectionState.CONNECTING,
        )

    def _on_visibility_timer(self) -> None:
        self._visibility_timer = None
        if not self._should_reconnect_on_visible():
            return
        _LOGGER.info("[%s] Visible again, reconnecting", self._username)
        self._start_attempt()

    async def _close_transport(self, transport: Transport) -> None:
        try:
            await asyncio.wait_for(transport.close(), timeout=2.0)
        except TimeoutError:
            _LOGGER.warning("[%s] WebSocket close timed out", self._username)

    # -------------------------------------------------------------------------
    # Internal: Connection Task
    # -------------------------------------------------------------------------

    async def _run(self, generation: int, previous: Transport | None) -> None:
        """Open a transport, join, then listen until it drops."""
        if previous is not None:
            await self._close_transport(previous)

        if not self._is_current(generation):
            return

        transport = self._transport_factory()
        try:
            await transport.connect(
                self.host,
                self.port,
                secure=self.secure,
                ping_interval=self._ping_interval,
                timeout=self._open_timeout,
            )
        except ChatClientError as err:
            if self._is_current(generation):
                _LOGGER.warning("[%s] Connection failed: %s", self._username, err)
                self._handle_transport_failure()
            return

        if not self._is_current(generation):
            _LOGGER.debug("[%s] Discarding superseded connection", self._username)
            await self._close_transport(transport)
            return

        self._transport = transport

        # Join goes out before the state becomes OPEN, so no Send can precede it.
        try:
            await transport.send_text(encode_intent(Join(self._username or "")))
        except ChatClientError as err:
            _LOGGER.warning("[%s] Join failed: %s", self._username, err)
            await self._drop_transport(generation, transport)
            return

        if not self._is_current(generation):
            return

        self._handle_open()
        await self._listen(generation, transport)

    async def _listen(self, generation: int, transport: Transport) -> None:
        """Decode and dispatch inbound frames in arrival order."""
        message_count = 0
        try:
            async for msg in transport:
                if not self._is_current(generation):
                    _LOGGER.debug(
                        "[%s] Dropping event from superseded connection",
                        self._username,
                    )
                    return

                if msg.type is ChatWsMessageType.TEXT:
                    message_count += 1
                    self._router.dispatch(decode_event(msg.data or ""))
                elif msg.type is ChatWsMessageType.CLOSED:
                    _LOGGER.info("[%s] WebSocket closed by server", self._username)
                    break
                else:
                    _LOGGER.error("[%s] WebSocket error", self._username)
                    break
        except asyncio.CancelledError:
            _LOGGER.debug(
                "[%s] Listener cancelled (%d messages)", self._username, message_count
            )
            raise
        except ChatClientError as err:
            _LOGGER.warning("[%s] Client error: %s", self._username, err)
        except Exception:
            _LOGGER.exception("[%s] Unexpected error in listener", self._username)

        await self._drop_transport(generation, transport)

    async def _drop_transport(self, generation: int, transport: Transport) -> None:
        """Discard a failed transport and hand over to the reconnect policy."""
        if not self._is_current(generation):
            return
        if self._transport is transport:
            self._transport = None
        self._handle_transport_failure()
        await self._close_transport(transport)
