"""Connection lifecycle and protocol core for the real-time chat client."""

__version__ = "0.1.0"

from .bootstrap import SessionBootstrapper
from .client import ChatClient, ChatPresenter
from .config import ChatClientConfig, load_config
from .connection import ConnectionManager, ConnectionState, ReconnectPolicy
from .errors import (
    ChatClientError,
    ChatConnectionError,
    ChatHandshakeError,
    ChatProtocolError,
    ChatResponseError,
    ChatTimeout,
    ChatValidationError,
    ConfigError,
    NotConnectedError,
    ReconnectExhaustedError,
)
from .http import ChatHttpClient, ServerStats
from .protocol import (
    ChatMessage,
    InboundEvent,
    Join,
    Notification,
    OutboundIntent,
    Send,
    Unknown,
    decode_event,
    encode_intent,
)
from .router import ChatRenderer, MessageRouter
from .ws import build_ws_url, connect_websocket
from .ws_client import ChatWsClient, ChatWsMessage, ChatWsMessageType

__all__ = [
    "ChatClient",
    "ChatClientConfig",
    "ChatClientError",
    "ChatConnectionError",
    "ChatHandshakeError",
    "ChatHttpClient",
    "ChatMessage",
    "ChatPresenter",
    "ChatProtocolError",
    "ChatRenderer",
    "ChatResponseError",
    "ChatTimeout",
    "ChatValidationError",
    "ChatWsClient",
    "ChatWsMessage",
    "ChatWsMessageType",
    "ConfigError",
    "ConnectionManager",
    "ConnectionState",
    "InboundEvent",
    "Join",
    "MessageRouter",
    "NotConnectedError",
    "Notification",
    "OutboundIntent",
    "ReconnectExhaustedError",
    "ReconnectPolicy",
    "Send",
    "ServerStats",
    "SessionBootstrapper",
    "Unknown",
    "__version__",
    "build_ws_url",
    "connect_websocket",
    "decode_event",
    "encode_intent",
    "load_config",
]
