"""Best-effort session bootstrap performed before the live connection opens."""

from __future__ import annotations

import logging

from .errors import ChatClientError
from .http import ChatHttpClient

_LOGGER = logging.getLogger(__name__)


class SessionBootstrapper:
    """Obtain an optional session id from the chat server.

    The id is only used for observability. Any failure degrades to "no
    session" and the caller connects exactly as if none was ever issued.
    """

    def __init__(self, http_client: ChatHttpClient) -> None:
        self._http = http_client
        self.session_id: str | None = None

    async def create_session(self) -> str | None:
        """Request a session once; never raises for server or network failures."""
        try:
            session_id = await self._http.create_session()
        except ChatClientError as err:
            _LOGGER.warning("Session bootstrap failed, continuing without: %s", err)
            self.session_id = None
            return None

        _LOGGER.info("Session created: %s", session_id)
        self.session_id = session_id
        return session_id
