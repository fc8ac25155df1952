"""
Core interfaces: component lifecycle and the transport capability.
"""

from .lifecycle import IStartable, IStoppable, IHealthCheckable, IComponent
from .transport import ISession, ITransport, EventHandler

__all__ = [
    "IStartable",
    "IStoppable",
    "IHealthCheckable",
    "IComponent",
    "ISession",
    "ITransport",
    "EventHandler",
]
