"""
Logging infrastructure for the client.
"""

from .setup import setup_logging

__all__ = [
    "setup_logging",
]
