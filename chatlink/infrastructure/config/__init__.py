"""
Configuration management infrastructure.

This module provides configuration models plus loading and saving for
YAML, JSON and environment sources.
"""

from .models import (
    ApplicationConfig,
    ClientConfig,
    HeartbeatConfig,
    LoggingConfig,
    ReconnectConfig,
    ServerConfig,
    StatsConfig,
)
from .loader import ConfigLoader

__all__ = [
    "ApplicationConfig",
    "ClientConfig",
    "HeartbeatConfig",
    "LoggingConfig",
    "ReconnectConfig",
    "ServerConfig",
    "StatsConfig",
    "ConfigLoader",
]
