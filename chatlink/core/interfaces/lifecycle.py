"""
Lifecycle interfaces for the long-running pieces of the client.

Background supervisors and the transport session follow the same
start/stop/health contract so the application can start them in order and
join them deterministically on shutdown.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict


class IStartable(ABC):
    """Interface for components that can be started."""

    @abstractmethod
    async def start(self) -> None:
        """
        Start the component.

        Calling start on an already running component is a no-op.
        """
        pass


class IStoppable(ABC):
    """Interface for components that can be stopped."""

    @abstractmethod
    async def stop(self) -> None:
        """
        Stop the component and wait until its background work has finished.

        Calling stop on a stopped component is a no-op.
        """
        pass


class IHealthCheckable(ABC):
    """Interface for components that can report their health status."""

    @abstractmethod
    async def check_health(self) -> Dict[str, Any]:
        """
        Check the health status of the component.

        Returns:
            Dict containing at least:
            - 'healthy': bool
            - 'status': str such as 'running' or 'stopped'
            - 'details': Dict with component specific values
        """
        pass


class IComponent(IStartable, IStoppable, IHealthCheckable):
    """
    Base interface for supervised client components.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Get the component name."""
        pass

    @property
    def is_running(self) -> bool:
        """Whether the component has been started and not yet stopped."""
        return False
