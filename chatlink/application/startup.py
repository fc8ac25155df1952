"""
Application startup and shutdown.

Builds the client components from an ``ApplicationConfig``, starts them in
order and stops them in reverse.
"""

import sys
from typing import Any, Dict, List, Optional

from loguru import logger

from ..core.exceptions import ConnectionFailedError
from ..core.interfaces.lifecycle import IComponent
from ..core.interfaces.transport import ITransport
from ..core.services.command_dispatcher import CommandDispatcher, OutputFn
from ..core.services.connection_state import ConnectionState
from ..core.services.event_router import EventRouter
from ..core.services.heartbeat import HeartbeatSupervisor
from ..core.services.reconnection import ReconnectionManager
from ..core.services.stats_reporter import StatsReporter
from ..infrastructure.config.models import ApplicationConfig
from ..infrastructure.transport.websocket import WebSocketTransport


class ChatClientApplication:
    """
    Owns every client component and their lifecycle.

    The transport can be injected; by default a ``WebSocketTransport`` is used.
    """

    def __init__(
        self,
        config: ApplicationConfig,
        transport: Optional[ITransport] = None,
        output: Optional[OutputFn] = None
    ) -> None:
        self._config = config
        self._started_components: List[IComponent] = []
        self._running = False

        self.state = ConnectionState(
            username=config.client.username,
            error_history_size=config.client.error_history_size,
        )
        self.router = EventRouter(self.state, output=output, greeting=config.client.greeting)
        self.transport = transport or WebSocketTransport(connect_timeout=config.server.connect_timeout)
        self.reconnection = ReconnectionManager(
            self.state,
            self.router,
            self.transport,
            host=config.server.host,
            port=config.server.port,
            path=config.server.path,
            scheme=config.server.scheme,
            max_attempts=config.reconnect.max_attempts,
            retry_delay=config.reconnect.retry_delay,
            confirm_timeout=config.reconnect.confirm_timeout,
        )
        self.dispatcher = CommandDispatcher(
            self.state,
            self.reconnection,
            output=output,
            max_message_length=config.client.max_message_length,
        )

        self.components: List[IComponent] = []
        if config.heartbeat.enabled:
            self.components.append(HeartbeatSupervisor(
                self.state,
                interval=config.heartbeat.interval,
                stale_threshold=config.heartbeat.stale_threshold,
            ))
        if config.stats.enabled:
            self.components.append(StatsReporter(self.state, interval=config.stats.interval))

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> bool:
        """
        Connect to the server and start the background components.

        Returns:
            True if the initial connection succeeded

        Raises:
            ConnectionFailedError: When the initial connection fails and
                ``client.exit_on_connect_failure`` is set
        """
        logger.info(f"Starting {self._config.name} v{self._config.version}")
        logger.info(f"Using username: {self.state.username}")

        connected = True
        try:
            await self.reconnection.connect()
        except ConnectionFailedError as e:
            if self._config.client.exit_on_connect_failure:
                raise
            connected = False
            logger.warning(f"Starting without a connection: {e}")

        for component in self.components:
            try:
                await component.start()
                self._started_components.append(component)
                logger.debug(f"Started component: {component.name}")
            except Exception as e:
                logger.error(f"Failed to start component {component.name}: {e}")
                await self.stop()
                raise

        self._running = True
        logger.info("Client startup completed")
        return connected

    async def stop(self) -> None:
        """Stop components in reverse order, close the session and log final stats."""
        logger.info("Shutting down client...")

        for component in reversed(self._started_components):
            try:
                await component.stop()
                logger.debug(f"Stopped component: {component.name}")
            except Exception as e:
                logger.error(f"Error stopping component {component.name}: {e}")

        self._started_components.clear()
        await self.reconnection.close_session()

        logger.info(f"FINAL STATS: {self.state.get_stats()}")
        self._running = False
        logger.info("Client shutdown completed")

    async def check_health(self) -> Dict[str, Any]:
        components = {}
        for component in self.components:
            components[component.name] = await component.check_health()

        return {
            'healthy': self._running and self.state.is_live(),
            'status': 'running' if self._running else 'stopped',
            'details': {
                'connected': self.state.is_connected(),
                'components': components,
                'reconnection': self.reconnection.get_metrics(),
                'commands': self.dispatcher.get_metrics(),
                'python': sys.version.split()[0],
            }
        }
