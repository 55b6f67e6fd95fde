# Infrastructure module - Logging and configuration
# Rich console + JSON file logging, YAML config with env overrides

from .config import ConfigManager, SecretManager, SecretConfig
from .logging import (
    get_logger, configure_logging, RequestContext,
    with_request_context, get_request_id, generate_request_id
)

__all__ = [
    # Config
    "ConfigManager",
    "SecretManager",
    "SecretConfig",
    # Logging
    "get_logger",
    "configure_logging",
    "RequestContext",
    "with_request_context",
    "get_request_id",
    "generate_request_id",
]
