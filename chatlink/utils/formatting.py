"""
Small text helpers shared by the state record and the command surface.
"""

import re
import time
from typing import Optional

_USERNAME_PATTERN = re.compile(r'^[A-Za-z0-9_-]+$')

USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 20

_ELLIPSIS = "..."


def format_duration(seconds: float) -> str:
    """
    Render a duration rounded to whole seconds, e.g. ``1h2m3s`` or ``45s``.

    Args:
        seconds: Duration in seconds (negative values render as ``0s``)

    Returns:
        Compact duration string
    """
    total = max(0, int(round(seconds)))
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)

    if hours:
        return f"{hours}h{minutes}m{secs}s"
    if minutes:
        return f"{minutes}m{secs}s"
    return f"{secs}s"


def format_clock(timestamp: Optional[float] = None) -> str:
    """Wall-clock ``HH:MM:SS`` for the given epoch timestamp (default now)."""
    return time.strftime("%H:%M:%S", time.localtime(timestamp if timestamp is not None else time.time()))


def format_timestamp(timestamp: Optional[float]) -> str:
    """Human readable ``YYYY-MM-DD HH:MM:SS`` or ``Never`` for unset timestamps."""
    if timestamp is None:
        return "Never"
    return time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(timestamp))


def validate_username(username: str) -> Optional[str]:
    """
    Check a username against the server's accepted format.

    Returns:
        None when valid, otherwise a description of the problem
    """
    username = username.strip()

    if len(username) < USERNAME_MIN_LENGTH:
        return f"username must be at least {USERNAME_MIN_LENGTH} characters long"
    if len(username) > USERNAME_MAX_LENGTH:
        return f"username cannot be longer than {USERNAME_MAX_LENGTH} characters"
    if not _USERNAME_PATTERN.match(username):
        return "username can only contain letters, numbers, underscores, and hyphens"
    return None


def truncate_message(message: str, max_length: int) -> str:
    """Limit a message to ``max_length`` characters, the ``...`` cut marker included."""
    if max_length <= 0 or len(message) <= max_length:
        return message
    if max_length <= len(_ELLIPSIS):
        return message[:max_length]
    return message[:max_length - len(_ELLIPSIS)] + _ELLIPSIS
