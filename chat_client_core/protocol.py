"""Wire codec for chat frames.

Outbound intents are encoded as JSON text frames, inbound frames are decoded
into typed events. Decoding never raises: anything the client does not
understand becomes an ``Unknown`` event and a log record.

Frames:
- outbound ``{"type": "join", "username": str}``
- outbound ``{"type": "message", "content": str}``
- inbound ``{"type": "message", "username": str, "content": str, "timestamp"?: int}``
- inbound ``{"type": "notification", "message": str}``
"""

from __future__ import annotations

import json
import logging
import math
import time
from dataclasses import dataclass
from typing import Any

_LOGGER = logging.getLogger(__name__)

MSG_TYPE_JOIN = "join"
MSG_TYPE_MESSAGE = "message"
MSG_TYPE_NOTIFICATION = "notification"


# --------------------------------------------------------------------------
# Outbound intents
# --------------------------------------------------------------------------


@dataclass(frozen=True)
class Join:
    """Announce the user to the room. Sent once per established connection."""

    username: str


@dataclass(frozen=True)
class Send:
    """Post a chat message."""

    content: str


OutboundIntent = Join | Send


# --------------------------------------------------------------------------
# Inbound events
# --------------------------------------------------------------------------


@dataclass(frozen=True)
class ChatMessage:
    """A chat line broadcast by the server.

    Attributes:
        username: Author of the message.
        content: Message text.
        timestamp: Epoch milliseconds, server provided or receipt time.
    """

    username: str
    content: str
    timestamp: int


@dataclass(frozen=True)
class Notification:
    """Server notice such as a user joining or leaving."""

    text: str


@dataclass(frozen=True)
class Unknown:
    """Frame the client could not interpret."""

    raw: str | bytes


InboundEvent = ChatMessage | Notification | Unknown


def build_frame(intent: OutboundIntent) -> dict[str, Any]:
    """Build the JSON-serializable frame for an outbound intent."""
    if isinstance(intent, Join):
        return {"type": MSG_TYPE_JOIN, "username": intent.username}
    if isinstance(intent, Send):
        return {"type": MSG_TYPE_MESSAGE, "content": intent.content}
    raise TypeError(f"Unsupported intent: {type(intent).__name__}")


def encode_intent(intent: OutboundIntent) -> str:
    """Encode an outbound intent as a JSON text frame."""
    return json.dumps(build_frame(intent))


def _now_ms() -> int:
    return int(time.time() * 1000)


def decode_event(raw: str | bytes, *, now_ms: int | None = None) -> InboundEvent:
    """Decode an inbound frame into a typed event.

    Args:
        raw: Frame payload as received from the transport.
        now_ms: Receipt time used when a chat message carries no timestamp.

    Returns:
        ChatMessage, Notification, or Unknown for anything malformed.
    """
    try:
        data = json.loads(raw)
    except (TypeError, ValueError, RecursionError) as err:
        _LOGGER.warning("Discarding malformed frame: %s", err)
        return Unknown(raw)

    if not isinstance(data, dict):
        _LOGGER.warning("Discarding non-object frame: %r", raw)
        return Unknown(raw)

    msg_type = data.get("type")

    if msg_type == MSG_TYPE_MESSAGE:
        username = data.get("username")
        content = data.get("content")
        if not isinstance(username, str) or not isinstance(content, str):
            _LOGGER.warning("Discarding message frame without username/content")
            return Unknown(raw)
        timestamp = data.get("timestamp")
        if isinstance(timestamp, bool) or not isinstance(timestamp, (int, float)):
            timestamp = now_ms if now_ms is not None else _now_ms()
        elif isinstance(timestamp, float) and not math.isfinite(timestamp):
            _LOGGER.warning("Discarding message frame with timestamp %r", timestamp)
            return Unknown(raw)
        return ChatMessage(username=username, content=content, timestamp=int(timestamp))

    if msg_type == MSG_TYPE_NOTIFICATION:
        text = data.get("message")
        if not isinstance(text, str):
            _LOGGER.warning("Discarding notification frame without message")
            return Unknown(raw)
        return Notification(text=text)

    _LOGGER.debug("Unknown message type: %s", msg_type)
    return Unknown(raw)
