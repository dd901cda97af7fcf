"""Input checks applied before anything is sent to the chat server."""

from __future__ import annotations

import re
from typing import Final

from .errors import ChatValidationError

USERNAME_MIN_LENGTH: Final = 2
USERNAME_MAX_LENGTH: Final = 20
MESSAGE_MAX_LENGTH: Final = 500

_USERNAME_PATTERN: Final = re.compile(r"^[A-Za-z0-9_\- ]+$")


def validate_username(username: str) -> str:
    """Return the trimmed username or raise ChatValidationError."""
    name = username.strip()
    if len(name) < USERNAME_MIN_LENGTH:
        raise ChatValidationError(
            f"Username must be at least {USERNAME_MIN_LENGTH} characters"
        )
    if len(name) > USERNAME_MAX_LENGTH:
        raise ChatValidationError(
            f"Username must be at most {USERNAME_MAX_LENGTH} characters"
        )
    if not _USERNAME_PATTERN.match(name):
        raise ChatValidationError(
            "Username may only contain letters, digits, underscores, hyphens and spaces"
        )
    return name


def validate_content(content: str) -> str:
    """Return the trimmed message content or raise ChatValidationError."""
    text = content.strip()
    if not text:
        raise ChatValidationError("Message must not be empty")
    if len(text) > MESSAGE_MAX_LENGTH:
        raise ChatValidationError(
            f"Message must be at most {MESSAGE_MAX_LENGTH} characters"
        )
    return text
