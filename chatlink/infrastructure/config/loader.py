"""
Configuration loading and saving utilities.

Configuration comes from an optional YAML or JSON file, overlaid by
``CHATLINK_*`` environment variables.
"""

import json
import os
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple

import yaml

from .models import ApplicationConfig


class ConfigLoader:
    """Configuration loader supporting YAML, JSON and environment sources."""

    def __init__(self, env_prefix: str = "CHATLINK_") -> None:
        self._env_prefix = env_prefix

    def load_config(self, config_file: Optional[str] = None) -> ApplicationConfig:
        """
        Load configuration from file and environment variables.

        Args:
            config_file: Path to configuration file (optional)

        Returns:
            Loaded and validated configuration
        """
        config_data: Dict[str, Any] = {}

        if config_file:
            config_data = self._load_from_file(config_file)

        env_overrides = self._load_from_environment()
        config_data = self._merge_configs(config_data, env_overrides)

        config = ApplicationConfig.from_dict(config_data)
        config.config_file_path = config_file

        return config

    def save_config(self, config: ApplicationConfig, file_path: str, format: str = "yaml") -> None:
        """
        Save configuration to file.

        Args:
            config: Configuration to save
            file_path: Output file path
            format: File format (yaml or json)
        """
        config_data = config.to_dict()
        config_data.pop('config_file_path', None)

        if format.lower() == "yaml":
            self._save_yaml(config_data, file_path)
        elif format.lower() == "json":
            self._save_json(config_data, file_path)
        else:
            raise ValueError(f"Unsupported format: {format}")

    def _load_from_file(self, file_path: str) -> Dict[str, Any]:
        path = Path(file_path)

        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {file_path}")

        if path.suffix.lower() in ['.yaml', '.yml']:
            return self._load_yaml(file_path)
        elif path.suffix.lower() == '.json':
            return self._load_json(file_path)
        else:
            raise ValueError(f"Unsupported configuration file format: {path.suffix}")

    def _load_yaml(self, file_path: str) -> Dict[str, Any]:
        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in {file_path}: {e}")
        except OSError as e:
            raise ValueError(f"Error reading {file_path}: {e}")

        if not isinstance(data, dict):
            raise ValueError(f"Configuration in {file_path} must be a mapping")
        return data

    def _load_json(self, file_path: str) -> Dict[str, Any]:
        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in {file_path}: {e}")
        except OSError as e:
            raise ValueError(f"Error reading {file_path}: {e}")

        if not isinstance(data, dict):
            raise ValueError(f"Configuration in {file_path} must be a mapping")
        return data

    def _save_yaml(self, data: Dict[str, Any], file_path: str) -> None:
        try:
            with open(file_path, 'w', encoding='utf-8') as f:
                yaml.dump(data, f, default_flow_style=False, indent=2, sort_keys=False)
        except OSError as e:
            raise ValueError(f"Error writing YAML to {file_path}: {e}")

    def _save_json(self, data: Dict[str, Any], file_path: str) -> None:
        try:
            with open(file_path, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2)
        except OSError as e:
            raise ValueError(f"Error writing JSON to {file_path}: {e}")

    def _env_mappings(self) -> Dict[str, Tuple[str, Callable[[str], Any]]]:
        p = self._env_prefix
        return {
            f"{p}DEBUG": ("debug", self._parse_bool),
            f"{p}HOST": ("server.host", str),
            f"{p}PORT": ("server.port", int),
            f"{p}PATH": ("server.path", str),
            f"{p}SCHEME": ("server.scheme", str),
            f"{p}CONNECT_TIMEOUT": ("server.connect_timeout", float),
            f"{p}USERNAME": ("client.username", str),
            f"{p}GREETING": ("client.greeting", str),
            f"{p}EXIT_ON_CONNECT_FAILURE": ("client.exit_on_connect_failure", self._parse_bool),
            f"{p}HEARTBEAT_ENABLED": ("heartbeat.enabled", self._parse_bool),
            f"{p}HEARTBEAT_INTERVAL": ("heartbeat.interval", float),
            f"{p}HEARTBEAT_STALE_THRESHOLD": ("heartbeat.stale_threshold", float),
            f"{p}RECONNECT_ATTEMPTS": ("reconnect.max_attempts", int),
            f"{p}RECONNECT_DELAY": ("reconnect.retry_delay", float),
            f"{p}STATS_ENABLED": ("stats.enabled", self._parse_bool),
            f"{p}STATS_INTERVAL": ("stats.interval", float),
            f"{p}LOG_LEVEL": ("logging.level", str),
            f"{p}LOG_DIR": ("logging.log_directory", str),
            f"{p}LOG_FILE": ("logging.log_file", str),
        }

    def _load_from_environment(self) -> Dict[str, Any]:
        """Load configuration overrides from environment variables."""
        config: Dict[str, Any] = {}

        for env_var, (config_path, converter) in self._env_mappings().items():
            value = os.getenv(env_var)
            if value is not None:
                try:
                    self._set_nested_value(config, config_path, converter(value))
                except (ValueError, TypeError) as e:
                    raise ValueError(f"Invalid value for {env_var}: {value} ({e})")

        return config

    def _parse_bool(self, value: str) -> bool:
        return value.lower() in ('true', '1', 'yes', 'on', 'enabled')

    def _set_nested_value(self, config: Dict[str, Any], path: str, value: Any) -> None:
        """Set a nested configuration value using dot notation."""
        keys = path.split('.')
        current = config

        for key in keys[:-1]:
            if key not in current:
                current[key] = {}
            current = current[key]

        current[keys[-1]] = value

    def _merge_configs(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Recursively merge two configuration dictionaries."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge_configs(result[key], value)
            else:
                result[key] = value

        return result
