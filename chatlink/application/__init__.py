"""
Application layer: component wiring, lifecycle and the interactive console.
"""

from .startup import ChatClientApplication
from .console import ConsoleLoop

__all__ = [
    "ChatClientApplication",
    "ConsoleLoop",
]
