"""
Core module containing the chat client's state, protocol vocabulary and services.

Nothing in here depends on a concrete transport; sessions are reached only
through the interfaces in ``core.interfaces``.
"""

from .interfaces.lifecycle import IStartable, IStoppable, IHealthCheckable, IComponent
from .interfaces.transport import ISession, ITransport
from .domain.commands import CommandResult, CommandStatus
from .domain.events import InboundEvents, OutboundEvents

__all__ = [
    "IStartable",
    "IStoppable",
    "IHealthCheckable",
    "IComponent",
    "ISession",
    "ITransport",
    "CommandResult",
    "CommandStatus",
    "InboundEvents",
    "OutboundEvents",
]
