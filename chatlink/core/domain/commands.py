"""
Command results produced by the command dispatcher.
"""

import time
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Dict, Optional


class CommandStatus(Enum):
    """Outcome of processing one input line."""
    COMPLETED = auto()      # Command executed (event emitted or local read done)
    FAILED = auto()         # Transport or reconnection failure
    USAGE_ERROR = auto()    # Malformed arguments, nothing was sent
    NOT_CONNECTED = auto()  # Precondition failed, nothing was sent
    EXIT = auto()           # The user asked to leave


@dataclass
class CommandResult:
    """
    Result of dispatching one command line.

    ``event`` names the outbound event that was emitted, if any.
    """

    command: str
    status: CommandStatus
    message: str = ""
    event: Optional[str] = None
    error: Optional[str] = None
    timestamp: float = field(default_factory=time.time)

    @property
    def is_success(self) -> bool:
        """Check if the command completed."""
        return self.status == CommandStatus.COMPLETED

    @property
    def should_exit(self) -> bool:
        """Check if the console loop should terminate."""
        return self.status == CommandStatus.EXIT

    @classmethod
    def success(cls, command: str, message: str = "", event: Optional[str] = None) -> 'CommandResult':
        return cls(command=command, status=CommandStatus.COMPLETED, message=message, event=event)

    @classmethod
    def failure(cls, command: str, error: str) -> 'CommandResult':
        return cls(command=command, status=CommandStatus.FAILED, error=error, message=error)

    @classmethod
    def usage(cls, command: str, usage: str) -> 'CommandResult':
        return cls(command=command, status=CommandStatus.USAGE_ERROR, message=usage)

    @classmethod
    def not_connected(cls, command: str, message: str) -> 'CommandResult':
        return cls(command=command, status=CommandStatus.NOT_CONNECTED, message=message)

    @classmethod
    def exit(cls, command: str) -> 'CommandResult':
        return cls(command=command, status=CommandStatus.EXIT, message="Disconnecting and exiting...")

    def to_dict(self) -> Dict[str, Any]:
        """Convert result to dictionary representation."""
        return {
            'command': self.command,
            'status': self.status.name,
            'message': self.message,
            'event': self.event,
            'error': self.error,
            'timestamp': self.timestamp,
        }
