"""Tests for ChatWsClient WebSocket wrapper."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest
from websockets.exceptions import ConnectionClosed

from chat_client_core.errors import ChatConnectionError
from chat_client_core.ws_client import (
    ChatWsClient,
    ChatWsMessage,
    ChatWsMessageType,
)


class TestChatWsMessage:
    """Tests for ChatWsMessage dataclass."""

    def test_create_closed_message(self):
        """Test creating a closed message."""
        msg = ChatWsMessage(type=ChatWsMessageType.CLOSED)
        assert msg.type == ChatWsMessageType.CLOSED
        assert msg.data is None

    def test_message_is_frozen(self):
        """Test that messages are immutable."""
        msg = ChatWsMessage(type=ChatWsMessageType.TEXT, data="test")
        with pytest.raises(AttributeError):
            msg.data = "modified"  # type: ignore[misc]


class TestChatWsClientConnect:
    """Tests for ChatWsClient.connect()."""

    @pytest.mark.asyncio
    async def test_connect_defaults(self):
        """Test connection uses the chat port and plain ws by default."""
        mock_ws = AsyncMock()

        with patch(
            "chat_client_core.ws_client.connect_websocket",
            return_value=mock_ws,
        ) as mock_connect:
            client = ChatWsClient()
            await client.connect("chat.local")

            mock_connect.assert_called_once_with(
                "chat.local",
                8081,
                secure=False,
                path="/",
                ping_interval=20,
                timeout=15.0,
            )
            assert client._ws is mock_ws

    @pytest.mark.asyncio
    async def test_connect_propagates_errors(self):
        """Test that connection errors are propagated."""
        with patch(
            "chat_client_core.ws_client.connect_websocket",
            side_effect=ChatConnectionError("Connection failed"),
        ):
            client = ChatWsClient()
            with pytest.raises(ChatConnectionError, match="Connection failed"):
                await client.connect("chat.local")


class TestChatWsClientClose:
    """Tests for ChatWsClient.close()."""

    @pytest.mark.asyncio
    async def test_close_connected(self):
        """Test closing a connected client."""
        mock_ws = AsyncMock()

        with patch(
            "chat_client_core.ws_client.connect_websocket",
            return_value=mock_ws,
        ):
            client = ChatWsClient()
            await client.connect("chat.local")
            await client.close()

            mock_ws.close.assert_called_once()

    @pytest.mark.asyncio
    async def test_close_not_connected(self):
        """Test closing when not connected (no error)."""
        client = ChatWsClient()
        await client.close()


class TestChatWsClientSendText:
    """Tests for ChatWsClient.send_text()."""

    @pytest.mark.asyncio
    async def test_send_text_success(self):
        """Test sending an encoded frame."""
        mock_ws = AsyncMock()

        with patch(
            "chat_client_core.ws_client.connect_websocket",
            return_value=mock_ws,
        ):
            client = ChatWsClient()
            await client.connect("chat.local")
            await client.send_text('{"type": "join", "username": "Alice"}')

            mock_ws.send.assert_called_once_with('{"type": "join", "username": "Alice"}')

    @pytest.mark.asyncio
    async def test_send_text_not_connected(self):
        """Test send_text raises when not connected."""
        client = ChatWsClient()
        with pytest.raises(ChatConnectionError, match="not connected"):
            await client.send_text("{}")

    @pytest.mark.asyncio
    async def test_send_text_on_closed_socket(self):
        """Test a closed socket surfaces as ChatConnectionError."""
        mock_ws = AsyncMock()
        mock_ws.send.side_effect = ConnectionClosed(None, None)

        with patch(
            "chat_client_core.ws_client.connect_websocket",
            return_value=mock_ws,
        ):
            client = ChatWsClient()
            await client.connect("chat.local")
            with pytest.raises(ChatConnectionError, match="send failed"):
                await client.send_text("{}")


class AsyncIteratorMock:
    """Helper class to create a proper async iterator mock."""

    def __init__(self, items: list, *, raise_on_iter: Exception | None = None):
        self._items = items
        self._index = 0
        self._raise_on_iter = raise_on_iter
        self.close = AsyncMock()

    def __aiter__(self):
        return self

    async def __anext__(self):
        if self._raise_on_iter is not None:
            raise self._raise_on_iter
        if self._index >= len(self._items):
            raise StopAsyncIteration
        item = self._items[self._index]
        self._index += 1
        return item


async def _collect(mock_ws: AsyncIteratorMock) -> list[ChatWsMessage]:
    with patch(
        "chat_client_core.ws_client.connect_websocket",
        return_value=mock_ws,
    ):
        client = ChatWsClient()
        await client.connect("chat.local")
        return [msg async for msg in client]


class TestChatWsClientIteration:
    """Tests for ChatWsClient async iteration."""

    def test_iter_not_connected(self):
        """Test iteration raises when not connected."""
        client = ChatWsClient()
        with pytest.raises(ChatConnectionError, match="not connected"):
            client.__aiter__()

    @pytest.mark.asyncio
    async def test_iter_graceful_close(self):
        """Test iteration emits CLOSED on graceful completion."""
        messages = await _collect(AsyncIteratorMock(["hello"]))

        assert messages == [
            ChatWsMessage(ChatWsMessageType.TEXT, "hello"),
            ChatWsMessage(ChatWsMessageType.CLOSED),
        ]

    @pytest.mark.asyncio
    async def test_iter_connection_closed(self):
        """Test iteration handles ConnectionClosed."""
        messages = await _collect(
            AsyncIteratorMock([], raise_on_iter=ConnectionClosed(None, None))
        )

        assert messages == [ChatWsMessage(ChatWsMessageType.CLOSED)]

    @pytest.mark.asyncio
    async def test_iter_unexpected_error(self):
        """Test iteration handles unexpected errors."""
        messages = await _collect(
            AsyncIteratorMock([], raise_on_iter=RuntimeError("Unexpected"))
        )

        assert messages == [ChatWsMessage(ChatWsMessageType.ERROR)]

    @pytest.mark.asyncio
    async def test_iter_skips_binary_messages(self):
        """Test iteration skips binary frames."""
        messages = await _collect(AsyncIteratorMock(["one", b"\x00\x01", "two"]))

        text = [m.data for m in messages if m.type is ChatWsMessageType.TEXT]
        assert text == ["one", "two"]
