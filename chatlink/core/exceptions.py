"""
Exception hierarchy for the chat client core.
"""

from typing import Optional


class ChatLinkError(Exception):
    """Base exception for all client errors."""

    def __init__(self, message: str, error_code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or "CHATLINK_ERROR"


class TransportError(ChatLinkError):
    """An outbound emission or session operation failed."""

    def __init__(self, message: str, event: Optional[str] = None):
        super().__init__(message, "TRANSPORT_ERROR")
        self.event = event


class ConnectionFailedError(ChatLinkError):
    """A session could not be established within the retry bound."""

    def __init__(self, message: str, attempts: int = 0):
        super().__init__(message, "CONNECTION_FAILED")
        self.attempts = attempts


class NotConnectedError(ChatLinkError):
    """An operation needed a live session but none is available."""

    def __init__(self, message: str = "Not connected to server"):
        super().__init__(message, "NOT_CONNECTED")


class CommandUsageError(ChatLinkError):
    """A command was issued with malformed or missing arguments."""

    def __init__(self, usage: str):
        super().__init__(usage, "USAGE_ERROR")
        self.usage = usage
