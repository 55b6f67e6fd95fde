"""
API Configuration
-----------------
Credentials of the client application registered on OpenTrade.

Rules:
- Every value is a non-empty string, checked once at construction
- The secret is never logged or shown in repr()
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional
import logging

from core.errors import ConfigError
from infra.config import ConfigManager, SecretManager

AUTH_PATH = "/oauth/authorization"


def _require(name: str, value: Optional[str]) -> str:
    if value is None or not str(value).strip():
        raise ConfigError(f"Missing configuration value: {name}", field=name)
    return str(value)


class ApiConfig(ABC):
    """Provides the credentials used to talk to the REST service."""

    @abstractmethod
    def get_secret(self) -> str:
        """Client secret of the application."""

    @abstractmethod
    def get_url_auth(self) -> str:
        """Absolute URL of the OAuth authorization endpoint."""

    @abstractmethod
    def get_url_rest(self) -> str:
        """Base URL of the REST API."""

    @abstractmethod
    def get_client_id(self) -> str:
        """Identifier of the application."""


@dataclass(frozen=True)
class StaticApiConfig(ApiConfig):
    """
    Immutable credentials supplied in code.

    url_auth defaults to <url_rest>/oauth/authorization.
    """
    client_id: str
    secret: str = field(repr=False)
    url_rest: str
    url_auth: str = ""

    def __post_init__(self):
        _require("client_id", self.client_id)
        _require("secret", self.secret)
        _require("url_rest", self.url_rest)
        if not self.url_auth:
            object.__setattr__(self, "url_auth", self.url_rest.rstrip("/") + AUTH_PATH)

    def get_secret(self) -> str:
        return self.secret

    def get_url_auth(self) -> str:
        return self.url_auth

    def get_url_rest(self) -> str:
        return self.url_rest

    def get_client_id(self) -> str:
        return self.client_id


class ManagedApiConfig(ApiConfig):
    """
    Credentials read from ConfigManager (api.client_id, api.url_rest,
    api.url_auth) and the client secret from SecretManager.

    Values are resolved on each call so a reloaded config file is seen
    by the next token refresh.
    """

    def __init__(
        self,
        config: Optional[ConfigManager] = None,
        secrets: Optional[SecretManager] = None,
        section: str = "api",
    ):
        self._config = config or ConfigManager()
        self._secrets = secrets or SecretManager()
        self._section = section
        self._logger = logging.getLogger("opentrade.api.config")

    def _value(self, key: str) -> str:
        return _require(f"{self._section}.{key}", self._config.get(f"{self._section}.{key}"))

    def get_secret(self) -> str:
        return _require("client_secret", self._secrets.get("client_secret"))

    def get_url_auth(self) -> str:
        url_auth = self._config.get(f"{self._section}.url_auth")
        if url_auth:
            return str(url_auth)
        return self.get_url_rest().rstrip("/") + AUTH_PATH

    def get_url_rest(self) -> str:
        return self._value("url_rest")

    def get_client_id(self) -> str:
        return self._value("client_id")

    def validate(self) -> bool:
        """Check that every value resolves. Logs what is missing."""
        try:
            self.get_client_id()
            self.get_url_rest()
            self.get_secret()
        except ConfigError as e:
            self._logger.error(f"Invalid API configuration: {e}")
            return False
        return True
