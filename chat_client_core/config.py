"""Client configuration.

Settings are plain data. They can be built in code or loaded from a YAML
file such as::

    host: chat.example.org
    http_port: 8080
    ws_port: 8081
    secure: false
    reconnect:
      base_delay: 1.0
      max_delay: 10.0
      max_attempts: 5
    visibility_delay: 1.0
    stats_interval: 10.0
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

import yaml

from .connection import ReconnectPolicy
from .errors import ConfigError
from .http import DEFAULT_HTTP_PORT
from .ws import DEFAULT_WS_PORT


@dataclass(frozen=True)
class ChatClientConfig:
    """Connection and polling settings for a chat client.

    Attributes:
        host: Chat server host.
        http_port: Port of the REST endpoints (/api/session, /api/stats).
        ws_port: Port of the live WebSocket endpoint.
        secure: Use https/wss instead of http/ws.
        reconnect: Backoff policy for automatic reconnection.
        visibility_delay: Delay for foreground-triggered reconnects (seconds).
        stats_interval: Server stats polling period (seconds).
        ping_interval: WebSocket keepalive ping interval (seconds).
        open_timeout: Timeout for opening the WebSocket (seconds).
    """

    host: str = "localhost"
    http_port: int = DEFAULT_HTTP_PORT
    ws_port: int = DEFAULT_WS_PORT
    secure: bool = False
    reconnect: ReconnectPolicy = field(default_factory=ReconnectPolicy)
    visibility_delay: float = 1.0
    stats_interval: float = 10.0
    ping_interval: int | None = 20
    open_timeout: float = 15.0

    def with_overrides(self, **overrides: Any) -> ChatClientConfig:
        """Return a copy with every non-None override applied."""
        changes = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **changes)


_SCALAR_TYPES: dict[str, tuple[type, ...]] = {
    "host": (str,),
    "http_port": (int,),
    "ws_port": (int,),
    "secure": (bool,),
    "visibility_delay": (int, float),
    "stats_interval": (int, float),
    "ping_interval": (int, type(None)),
    "open_timeout": (int, float),
}


def _load_yaml(path: Path) -> dict[str, Any]:
    """Load YAML file and return parsed content."""
    if not path.exists():
        raise ConfigError(f"File not found: {path}")
    with path.open() as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as err:
            raise ConfigError(f"Invalid YAML in {path}: {err}") from err
    if not isinstance(data, dict):
        raise ConfigError(f"Top level of {path} must be a mapping")
    return data


def _parse_reconnect(data: Any) -> ReconnectPolicy:
    if not isinstance(data, dict):
        raise ConfigError("reconnect must be a mapping")
    known = {f.name for f in fields(ReconnectPolicy)}
    unknown = set(data) - known
    if unknown:
        raise ConfigError(f"Unknown reconnect settings: {', '.join(sorted(unknown))}")
    try:
        return ReconnectPolicy(**data)
    except (TypeError, ValueError) as err:
        raise ConfigError(f"Invalid reconnect settings: {err}") from err


def config_from_dict(data: dict[str, Any]) -> ChatClientConfig:
    """Build a config from parsed YAML, validating keys and value types."""
    values: dict[str, Any] = {}
    for key, value in data.items():
        if key == "reconnect":
            values[key] = _parse_reconnect(value)
            continue
        expected = _SCALAR_TYPES.get(key)
        if expected is None:
            raise ConfigError(f"Unknown setting: {key}")
        # bool is an int subclass; only "secure" may be a bool
        if isinstance(value, bool) and bool not in expected:
            raise ConfigError(f"Setting {key} must not be a boolean")
        if not isinstance(value, expected):
            raise ConfigError(
                f"Setting {key} has invalid type {type(value).__name__}"
            )
        values[key] = value
    return ChatClientConfig(**values)


def load_config(path: Path) -> ChatClientConfig:
    """Load client configuration from a YAML file.

    Raises:
        ConfigError: If the file is missing, unparsable or has invalid values.
    """
    return config_from_dict(_load_yaml(path))
