"""
Process-wide configuration for Enact.

EnactConfig is built once at process start (from environment variables and
optionally a YAML/JSON file) and passed explicitly to the Engine. It is
treated as read-only while runs are in flight.

Keys are addressed with dotted paths of at most two levels
(``section.option``), e.g. ``environment_options.token``.

Environment variables:
    ENACT_ENV_TYPE              Execution backend (local, docker, windmill)
    ENACT_ENV_DOCKER_PATH       docker binary (docker backend)
    ENACT_ENV_DOCKER_NETWORK    container network mode (docker backend)
    ENACT_ENV_DOCKER_MEMORY     container memory limit (docker backend)
    ENACT_ENV_DOCKER_CPUS       container CPU limit (docker backend)
    ENACT_ENV_WINDMILL_API_URL  Windmill API base URL (windmill backend)
    ENACT_ENV_WINDMILL_WORKSPACE Windmill workspace (windmill backend)
    ENACT_ENV_WINDMILL_TOKEN    Windmill access token (windmill backend)
    ENACT_REGISTRY_TYPE         Capability registry (local, http)
    ENACT_REGISTRY_URL          Base URL of the http registry
    ENACT_LOG_LEVEL             Log verbosity
    ENACT_DEFAULT_TIMEOUT       Default timeout in milliseconds
"""

import copy
import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from enact.errors import ConfigError
from enact.log import configure_logging

logger = logging.getLogger(__name__)

DEFAULT_CONFIG: dict[str, Any] = {
    "execution_environment": "local",
    "environment_options": {},
    "capability_registry": "local",
    "registry_options": {},
    "log_level": "info",
    "default_timeout": 300000,  # 5 minutes in ms
}


class EnactConfig:
    """
    Dotted-key configuration store.

    Usage:
        config = EnactConfig.from_env()
        config.load_file("enact.yaml")
        backend = config.get("execution_environment", "local")
    """

    def __init__(self, values: Mapping[str, Any] | None = None) -> None:
        """
        Initialize with defaults, overlaid by ``values``.

        Args:
            values: Optional top-level values (shallow-merged over defaults)
        """
        self._config: dict[str, Any] = copy.deepcopy(DEFAULT_CONFIG)
        if values:
            self._config.update(copy.deepcopy(dict(values)))

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "EnactConfig":
        """Build a configuration seeded from ENACT_* environment variables."""
        config = cls()
        config.load_from_environment(os.environ if environ is None else environ)
        return config

    def load_from_environment(self, environ: Mapping[str, str]) -> None:
        """Overlay settings from ENACT_* environment variables."""
        if environ.get("ENACT_ENV_TYPE"):
            self._config["execution_environment"] = environ["ENACT_ENV_TYPE"]

        env_type = str(self._config["execution_environment"]).lower()

        if env_type == "docker":
            self._config["environment_options"] = {
                "docker_path": environ.get("ENACT_ENV_DOCKER_PATH", "docker"),
                "network_mode": environ.get("ENACT_ENV_DOCKER_NETWORK", "bridge"),
                "memory": environ.get("ENACT_ENV_DOCKER_MEMORY", "512m"),
                "cpus": environ.get("ENACT_ENV_DOCKER_CPUS", "1.0"),
            }

        if env_type == "windmill":
            self._config["environment_options"] = {
                "api_url": environ.get("ENACT_ENV_WINDMILL_API_URL", "https://app.windmill.dev/api/v1"),
                "workspace": environ.get("ENACT_ENV_WINDMILL_WORKSPACE", "default"),
                "token": environ.get("ENACT_ENV_WINDMILL_TOKEN"),
            }

        if environ.get("ENACT_REGISTRY_TYPE"):
            self._config["capability_registry"] = environ["ENACT_REGISTRY_TYPE"]
        if environ.get("ENACT_REGISTRY_URL"):
            self._config["registry_options"] = {"base_url": environ["ENACT_REGISTRY_URL"]}

        if environ.get("ENACT_LOG_LEVEL"):
            self._config["log_level"] = environ["ENACT_LOG_LEVEL"]

        if environ.get("ENACT_DEFAULT_TIMEOUT"):
            raw = environ["ENACT_DEFAULT_TIMEOUT"]
            try:
                self._config["default_timeout"] = int(raw, 10)
            except ValueError as e:
                raise ConfigError(
                    message=f"ENACT_DEFAULT_TIMEOUT must be an integer, got {raw!r}",
                ) from e

    def load_file(self, path: Path | str) -> None:
        """
        Shallow-merge a YAML or JSON mapping over the current values.

        Raises:
            ConfigError: If the file can't be read or isn't a mapping
        """
        path = Path(path)
        try:
            with path.open(encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(path=str(path), suggestion=str(e)) from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError(
                message=f"Configuration file must contain a mapping: {path}",
                path=str(path),
            )

        self._config.update(data)
        logger.info("Loaded Enact configuration from %s", path)

    def set(self, key: str, value: Any) -> None:
        """Set a value; ``section.option`` creates the section if needed."""
        if "." in key:
            section, option = key.split(".", 1)
            current = self._config.get(section)
            if not isinstance(current, dict):
                current = {}
                self._config[section] = current
            current[option] = value
        else:
            self._config[key] = value

    def get(self, key: str, default: Any = None) -> Any:
        """Look up a value by (dotted) key, returning ``default`` when unset."""
        if "." in key:
            section, option = key.split(".", 1)
            current = self._config.get(section)
            if isinstance(current, dict) and current.get(option) is not None:
                return current[option]
            return default

        value = self._config.get(key)
        return default if value is None else value

    def get_all(self) -> dict[str, Any]:
        """Return a copy of every configured value."""
        return copy.deepcopy(self._config)

    def __repr__(self) -> str:
        """String representation of the configuration."""
        return f"<EnactConfig: execution_environment={self._config['execution_environment']!r}>"


def initialize(config_path: Path | str | None = None) -> EnactConfig:
    """
    Build the process configuration and configure logging.

    Args:
        config_path: Optional YAML/JSON file overlaid on the environment

    Returns:
        The configuration to pass to the Engine
    """
    config = EnactConfig.from_env()
    if config_path is not None:
        config.load_file(config_path)

    level = config.get("log_level", "info")
    configure_logging(level)
    logger.info("Initializing Enact with log level: %s", level)
    return config
