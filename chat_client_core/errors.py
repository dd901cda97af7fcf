"""Client error types for chat server interactions."""

from __future__ import annotations


class ChatClientError(Exception):
    """Base error for chat client failures."""


class ChatTimeout(ChatClientError):
    """Timeout while communicating with the chat server."""


class ChatConnectionError(ChatClientError):
    """Network connection to the chat server failed."""


class ChatHandshakeError(ChatClientError):
    """WebSocket handshake failed."""


class ChatResponseError(ChatClientError):
    """HTTP response error from the chat server."""

    def __init__(self, status: int, message: str) -> None:
        super().__init__(message)
        self.status = status


class ChatProtocolError(ChatClientError):
    """Server response body did not match the expected shape."""


class ChatValidationError(ChatClientError, ValueError):
    """Username or message content rejected before any network action."""


class NotConnectedError(ChatClientError):
    """Send attempted while the connection is not open."""


class ReconnectExhaustedError(ChatClientError):
    """All automatic reconnection attempts failed."""

    def __init__(self, attempts: int) -> None:
        super().__init__(
            f"Could not reconnect to the chat server after {attempts} attempts. "
            "Restart the client to try again."
        )
        self.attempts = attempts


class ConfigError(ChatClientError):
    """Configuration file missing or invalid."""
