"""Opening the live WebSocket connection to the chat server."""

from __future__ import annotations

import asyncio

import websockets
from websockets.asyncio.client import ClientConnection
from websockets.exceptions import (
    InvalidHandshake,
    InvalidStatus,
    InvalidURI,
    WebSocketException,
)

from .errors import (
    ChatConnectionError,
    ChatHandshakeError,
    ChatResponseError,
    ChatTimeout,
)

DEFAULT_WS_PORT = 8081
CLOSE_TIMEOUT = 5


def build_ws_url(
    host: str,
    port: int = DEFAULT_WS_PORT,
    *,
    secure: bool = False,
    path: str = "/",
) -> str:
    """Build the live endpoint URL, wss:// when the HTTP side is secure."""
    scheme = "wss" if secure else "ws"
    return f"{scheme}://{host}:{port}{path}"


async def connect_websocket(
    host: str,
    port: int = DEFAULT_WS_PORT,
    *,
    secure: bool = False,
    path: str = "/",
    ping_interval: int | None = 20,
    timeout: float = 15.0,
) -> ClientConnection:
    """Open the chat live connection.

    Raises:
        ChatTimeout: No completed upgrade within ``timeout`` seconds
        ChatResponseError: The server answered the upgrade with an HTTP error
        ChatHandshakeError: The upgrade response was not a valid handshake
        ChatConnectionError: Bad endpoint URL, refused or broken connection
    """
    url = build_ws_url(host, port, secure=secure, path=path)
    try:
        return await asyncio.wait_for(
            websockets.connect(
                url, ping_interval=ping_interval, close_timeout=CLOSE_TIMEOUT
            ),
            timeout=timeout,
        )
    except TimeoutError as err:
        raise ChatTimeout(f"No WebSocket upgrade from {url} after {timeout}s") from err
    except InvalidStatus as err:
        status = err.response.status_code
        raise ChatResponseError(
            status, f"Chat server refused the WebSocket upgrade with HTTP {status}"
        ) from err
    except InvalidURI as err:
        raise ChatConnectionError(f"Invalid chat endpoint {url}") from err
    except InvalidHandshake as err:
        raise ChatHandshakeError(f"Invalid WebSocket handshake from {url}") from err
    except (OSError, WebSocketException) as err:
        raise ChatConnectionError(f"Could not reach {url}: {err}") from err
