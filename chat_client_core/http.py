"""HTTP client for chat server REST endpoints."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import aiohttp

from .errors import (
    ChatConnectionError,
    ChatProtocolError,
    ChatResponseError,
    ChatTimeout,
)

DEFAULT_HTTP_PORT = 8080


@dataclass(frozen=True)
class ServerStats:
    """Thread pool statistics reported by /api/stats."""

    active_threads: int | None = None
    pool_size: int | None = None
    queue_size: int | None = None
    total_requests: int | None = None

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> ServerStats:
        """Build stats from the camelCase payload, ignoring non-integer fields."""

        def _int(key: str) -> int | None:
            value = data.get(key)
            if isinstance(value, bool) or not isinstance(value, int):
                return None
            return value

        return cls(
            active_threads=_int("activeThreads"),
            pool_size=_int("poolSize"),
            queue_size=_int("queueSize"),
            total_requests=_int("totalRequests"),
        )


class ChatHttpClient:
    """HTTP client wrapper for chat server endpoints."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        host: str,
        port: int = DEFAULT_HTTP_PORT,
        *,
        secure: bool = False,
    ) -> None:
        self._session = session
        self._host = host
        self._port = port
        self._secure = secure

    def _url(self, path: str) -> str:
        scheme = "https" if self._secure else "http"
        return f"{scheme}://{self._host}:{self._port}{path}"

    async def create_session(self) -> str:
        """Create a chat session via /api/session.

        Returns:
            Session identifier issued by the server.

        Raises:
            ChatResponseError: If server returns non-200 status
            ChatProtocolError: If the body carries no usable sessionId
            ChatTimeout: If request times out
            ChatConnectionError: If network request fails
        """
        url = self._url("/api/session")
        try:
            async with self._session.post(
                url,
                headers={"Content-Type": "application/json"},
                timeout=aiohttp.ClientTimeout(total=10),
            ) as resp:
                if resp.status != 200:
                    raise ChatResponseError(
                        resp.status, "Session request failed with non-200 response"
                    )
                try:
                    data = await resp.json(content_type=None)
                except ValueError as err:
                    raise ChatProtocolError("Session response is not JSON") from err
        except TimeoutError as err:
            raise ChatTimeout("Session request timed out") from err
        except aiohttp.ClientError as err:
            raise ChatConnectionError("Session request failed") from err
        except (RuntimeError, ValueError) as err:
            raise ChatConnectionError(f"Session request could not be sent: {err}") from err

        session_id = data.get("sessionId") if isinstance(data, dict) else None
        if not isinstance(session_id, str) or not session_id:
            raise ChatProtocolError("Session response has no sessionId")
        return session_id

    async def fetch_stats(self) -> ServerStats | None:
        """Fetch server statistics from /api/stats endpoint."""
        url = self._url("/api/stats")
        try:
            async with self._session.get(
                url,
                timeout=aiohttp.ClientTimeout(total=5),
            ) as resp:
                if resp.status != 200:
                    return None
                try:
                    data = await resp.json(content_type=None)
                except ValueError as err:
                    raise ChatProtocolError("Stats response is not JSON") from err
        except TimeoutError as err:
            raise ChatTimeout("Stats request timed out") from err
        except aiohttp.ClientError as err:
            raise ChatConnectionError("Failed to fetch server stats") from err
        except (RuntimeError, ValueError) as err:
            raise ChatConnectionError(f"Stats request could not be sent: {err}") from err

        if not isinstance(data, dict):
            raise ChatProtocolError("Stats response is not an object")
        return ServerStats.from_json(data)
