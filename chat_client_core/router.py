"""Dispatch of decoded inbound events to presentation handlers."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Protocol

from .protocol import ChatMessage, InboundEvent, Notification, Unknown

_LOGGER = logging.getLogger(__name__)


class ChatRenderer(Protocol):
    """Render capability implemented by a presentation adapter."""

    def render_message(self, message: ChatMessage) -> None: ...

    def render_notification(self, text: str) -> None: ...


class MessageRouter:
    """Route inbound events to the renderer in arrival order.

    The router keeps no buffer: each event is handed over synchronously when
    dispatched. A failing handler is logged and does not affect later events.
    """

    def __init__(
        self,
        renderer: ChatRenderer,
        *,
        on_unknown: Callable[[Unknown], None] | None = None,
    ) -> None:
        self._renderer = renderer
        self._unknown_callback = on_unknown

    def dispatch(self, event: InboundEvent) -> None:
        """Hand one event to its handler."""
        try:
            if isinstance(event, ChatMessage):
                self._renderer.render_message(event)
            elif isinstance(event, Notification):
                self._renderer.render_notification(event.text)
            elif isinstance(event, Unknown):
                _LOGGER.debug("Ignoring unknown frame: %r", event.raw)
                if self._unknown_callback:
                    self._unknown_callback(event)
            else:
                _LOGGER.warning("Unroutable event type: %s", type(event).__name__)
        except Exception as err:
            _LOGGER.exception("Handler error for %s: %s", type(event).__name__, err)
