"""
Shared helper functions.
"""

from .formatting import (
    format_clock,
    format_duration,
    format_timestamp,
    truncate_message,
    validate_username,
)

__all__ = [
    "format_clock",
    "format_duration",
    "format_timestamp",
    "truncate_message",
    "validate_username",
]
