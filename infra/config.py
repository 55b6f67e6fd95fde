"""
Configuration Manager
---------------------
Centralized configuration and secret lookup for the OpenTrade client.

Rules:
- Secrets never in code or in the YAML file
- Secrets come from the environment only
- Environment variables override file config
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
import logging
import os

import yaml

ENV_PREFIX = "OPENTRADE"


@dataclass
class SecretConfig:
    """Configuration for a secret."""
    name: str
    env_var: str
    required: bool = True
    description: str = ""


class SecretManager:
    """
    Manages secrets loaded from environment variables.

    Values are never logged, only their names.
    """

    REQUIRED_SECRETS: List[SecretConfig] = [
        SecretConfig("client_secret", "OPENTRADE_CLIENT_SECRET",
                     description="OAuth client secret issued for this shop"),
    ]

    def __init__(self, secrets: Optional[List[SecretConfig]] = None):
        self._specs = list(secrets) if secrets is not None else list(self.REQUIRED_SECRETS)
        self._secrets: Dict[str, str] = {}
        self._logger = logging.getLogger("opentrade.infra.secrets")
        self._load_secrets()

    def _load_secrets(self) -> None:
        """Load secrets from environment."""
        for secret in self._specs:
            value = os.getenv(secret.env_var)
            if value:
                self._secrets[secret.name] = value
                self._logger.debug(f"Loaded secret: {secret.name}")
            elif secret.required:
                self._logger.warning(f"Missing required secret: {secret.name} ({secret.env_var})")

    def get(self, name: str) -> Optional[str]:
        """Get a secret by name."""
        return self._secrets.get(name)

    def has(self, name: str) -> bool:
        return name in self._secrets

    def list_available(self) -> List[str]:
        """List names of available secrets (not values!)."""
        return list(self._secrets.keys())

    def validate(self) -> Dict[str, bool]:
        """Check that every required secret is present."""
        return {
            secret.name: self.has(secret.name) or not secret.required
            for secret in self._specs
        }


class ConfigManager:
    """
    Loads configuration from YAML with environment variable overrides.

    Keys use dot notation ('api.url_rest'); the matching environment
    variable is OPENTRADE_API_URL_REST.
    """

    def __init__(
        self,
        config_path: Union[str, Path] = "opentrade.yaml",
        env_prefix: str = ENV_PREFIX,
    ):
        self._config_path = Path(config_path)
        self._env_prefix = env_prefix
        self._config: Dict[str, Any] = {}
        self._logger = logging.getLogger("opentrade.infra.config")

        self._load_config()

    def _load_config(self) -> None:
        """Load configuration from file."""
        if self._config_path.exists():
            with open(self._config_path, "r", encoding="utf-8") as f:
                loaded = yaml.safe_load(f) or {}
            if not isinstance(loaded, dict):
                raise ValueError(f"Config file {self._config_path} must contain a mapping")
            self._config = loaded
            self._logger.info(f"Loaded config from {self._config_path}")
        else:
            self._config = {}
            self._logger.debug(f"Config file not found: {self._config_path}")

    def env_key(self, key: str) -> str:
        return f"{self._env_prefix}_{key.upper().replace('.', '_')}"

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value.
        Environment variables override file config.
        """
        env_value = os.getenv(self.env_key(key))
        if env_value is not None:
            return env_value

        value: Any = self._config
        for part in key.split("."):
            if isinstance(value, dict) and part in value:
                value = value[part]
            else:
                return default

        return value

    def set(self, key: str, value: Any) -> None:
        """Set a configuration value (runtime only, not persisted)."""
        parts = key.split(".")
        config = self._config

        for part in parts[:-1]:
            config = config.setdefault(part, {})

        config[parts[-1]] = value

    def get_section(self, section: str) -> Dict[str, Any]:
        """Get an entire configuration section."""
        return dict(self._config.get(section, {}))

    def reload(self) -> None:
        """Reload configuration from file."""
        self._load_config()
