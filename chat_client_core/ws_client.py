"""WebSocket client wrapper for the chat server."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from websockets.asyncio.client import ClientConnection
from websockets.exceptions import ConnectionClosed, WebSocketException

from .errors import ChatConnectionError
from .ws import DEFAULT_WS_PORT, connect_websocket

if TYPE_CHECKING:
    from collections.abc import AsyncIterator


class ChatWsMessageType(Enum):
    """Normalized WebSocket message types."""

    TEXT = "text"
    CLOSED = "closed"
    ERROR = "error"


@dataclass(frozen=True)
class ChatWsMessage:
    """Normalized WebSocket message payload."""

    type: ChatWsMessageType
    data: str | None = None


class ChatWsClient:
    """Wrapper around websockets library for the chat server."""

    def __init__(self) -> None:
        self._ws: ClientConnection | None = None

    async def connect(
        self,
        host: str,
        port: int = DEFAULT_WS_PORT,
        *,
        secure: bool = False,
        path: str = "/",
        ping_interval: int | None = 20,
        timeout: float = 15.0,
    ) -> None:
        """Connect to the chat websocket."""
        self._ws = await connect_websocket(
            host,
            port,
            secure=secure,
            path=path,
            ping_interval=ping_interval,
            timeout=timeout,
        )

    async def close(self) -> None:
        """Close the websocket connection."""
        if self._ws is not None:
            await self._ws.close()

    async def send_text(self, frame: str) -> None:
        """Send an encoded text frame."""
        if self._ws is None:
            raise ChatConnectionError("WebSocket is not connected")
        try:
            await self._ws.send(frame)
        except (ConnectionClosed, WebSocketException) as err:
            raise ChatConnectionError("WebSocket send failed") from err

    def __aiter__(self) -> AsyncIterator[ChatWsMessage]:
        if self._ws is None:
            raise ChatConnectionError("WebSocket is not connected")
        return self._iter_messages()

    async def _iter_messages(self) -> AsyncIterator[ChatWsMessage]:
        if self._ws is None:
            raise ChatConnectionError("WebSocket is not connected")

        try:
            async for msg in self._ws:
                normalized = self._normalize_message(msg)
                if normalized is None:
                    continue
                yield normalized
        except ConnectionClosed:
            yield ChatWsMessage(type=ChatWsMessageType.CLOSED)
        except Exception:
            yield ChatWsMessage(type=ChatWsMessageType.ERROR)
        else:
            # Normal iteration completion means the server closed gracefully.
            yield ChatWsMessage(type=ChatWsMessageType.CLOSED)

    @staticmethod
    def _normalize_message(msg: Any) -> ChatWsMessage | None:
        """Normalize received frames; binary frames are not part of the protocol."""
        if isinstance(msg, bytes):
            return None
        return ChatWsMessage(ChatWsMessageType.TEXT, str(msg))
