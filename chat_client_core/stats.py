"""Periodic server statistics polling for the presentation layer."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from .errors import ChatClientError
from .http import ChatHttpClient, ServerStats

_LOGGER = logging.getLogger(__name__)


class StatsPoller:
    """Fetch /api/stats once immediately and then every ``interval`` seconds.

    Failed polls are logged and skipped; the poller keeps running until
    ``stop()`` is called.
    """

    def __init__(
        self,
        http_client: ChatHttpClient,
        callback: Callable[[ServerStats], None],
        *,
        interval: float = 10.0,
    ) -> None:
        self._http = http_client
        self._callback = callback
        self._interval = interval
        self._task: asyncio.Task[None] | None = None
        self._paused = False

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def pause(self) -> None:
        """Skip polls while the client is in the background."""
        self._paused = True

    def resume(self) -> None:
        self._paused = False

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._poll_loop())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def poll_once(self) -> ServerStats | None:
        """Fetch and publish stats once; returns None when unavailable."""
        try:
            stats = await self._http.fetch_stats()
        except ChatClientError as err:
            _LOGGER.warning("Error loading server stats: %s", err)
            return None
        if stats is None:
            _LOGGER.debug("Server stats unavailable")
            return None
        try:
            self._callback(stats)
        except Exception as err:
            _LOGGER.exception("Stats callback error: %s", err)
        return stats

    async def _poll_loop(self) -> None:
        await self.poll_once()
        while True:
            await asyncio.sleep(self._interval)
            if not self._paused:
                await self.poll_once()
