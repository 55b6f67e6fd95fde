"""
Error Handling Module
---------------------
Typed errors for every way a call to the OpenTrade REST service can fail.

Taxonomy:
- InvalidArgumentError: bad caller input, no network call was made
- ConfigError: a configuration value is missing or empty
- AuthError: the access token could not be acquired
- ApiError: the service answered with an error envelope
- MalformedResponseError: the body is not JSON or lacks the envelope shape

Transport failures (timeouts, refused connections) are NOT wrapped:
they surface as httpx exceptions so callers can tell them apart.

Debug detail sent by the service is for developers only. It is written
to the logs and never appears in str(error) or in user-facing messages.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum, auto
from typing import Any, Dict, List, Mapping, Optional
import logging


class ErrorCategory(Enum):
    """Categories of errors for handling decisions."""
    INVALID_ARGUMENT = auto()    # Caller input rejected before any I/O
    CONFIG = auto()              # Missing configuration value
    AUTH = auto()                # Token acquisition failed
    API = auto()                 # Error envelope from the service
    MALFORMED_RESPONSE = auto()  # Unparseable or unexpected body


@dataclass(frozen=True)
class ErrorDetail:
    """
    Immutable structured description of a failure.

    Built in one step; nothing is attached after construction.
    """
    category: ErrorCategory
    message: str
    http_status: Optional[int] = None
    debug_detail: Optional[Any] = None
    timestamp: Optional[datetime] = None


class OpenTradeError(Exception):
    """Base class for all errors raised by the client."""

    category: ErrorCategory = ErrorCategory.API

    def __init__(
        self,
        message: str,
        http_status: Optional[int] = None,
        debug_detail: Optional[Any] = None,
    ):
        super().__init__(message)
        self._detail = ErrorDetail(
            category=self.category,
            message=message,
            http_status=http_status,
            debug_detail=debug_detail,
            timestamp=datetime.now(),
        )

    @property
    def detail(self) -> ErrorDetail:
        return self._detail

    @property
    def message(self) -> str:
        return self._detail.message

    @property
    def http_status(self) -> Optional[int]:
        return self._detail.http_status

    @property
    def debug_detail(self) -> Optional[Any]:
        return self._detail.debug_detail

    def __str__(self) -> str:
        return self._detail.message

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}({self._detail.message!r}, "
            f"http_status={self._detail.http_status})"
        )


class InvalidArgumentError(OpenTradeError, ValueError):
    """Caller input is invalid. Raised before any HTTP request."""

    category = ErrorCategory.INVALID_ARGUMENT

    LIMIT_MESSAGE = "limit must be greater than zero"
    OFFSET_MESSAGE = "offset must be greater than or equal to zero"

    def __init__(self, message: str, field: str = ""):
        super().__init__(message, http_status=400)
        self.field = field


class ConfigError(InvalidArgumentError):
    """A required configuration value is missing or empty."""

    category = ErrorCategory.CONFIG


class AuthError(OpenTradeError):
    """The authorization endpoint refused to issue an access token."""

    category = ErrorCategory.AUTH

    DEFAULT_MESSAGE = "Unable to connect to the server"


class ApiError(OpenTradeError):
    """The service returned an error envelope (or an unexpected status)."""

    category = ErrorCategory.API

    DEFAULT_MESSAGE = "The service could not process the request"

    @classmethod
    def from_envelope(
        cls,
        envelope: Optional[Mapping[str, Any]],
        http_status: Optional[int] = None,
    ) -> "ApiError":
        """
        Build an error from the {code, status, data: {message, httpCode, debug}}
        envelope. Missing fields fall back to generic values.
        """
        data = envelope.get("data") if isinstance(envelope, Mapping) else None
        if not isinstance(data, Mapping):
            return cls(cls.DEFAULT_MESSAGE, http_status=http_status, debug_detail=data)

        status = data.get("httpCode", http_status)
        try:
            status = int(status) if status is not None else None
        except (TypeError, ValueError):
            status = http_status

        return cls(
            str(data.get("message") or cls.DEFAULT_MESSAGE),
            http_status=status,
            debug_detail=data.get("debug"),
        )


class MalformedResponseError(OpenTradeError):
    """The response body is not JSON or does not have the envelope shape."""

    category = ErrorCategory.MALFORMED_RESPONSE

    DEFAULT_MESSAGE = "The service returned an unreadable response"


class ErrorHandler:
    """
    Central error handler with logging and user-facing messages.

    Debug detail is logged at DEBUG level only.
    """

    USER_MESSAGES: Dict[ErrorCategory, str] = {
        ErrorCategory.CONFIG: "The shop is not configured correctly. Please try again later.",
        ErrorCategory.AUTH: "We could not reach the shop right now. Please try again later.",
        ErrorCategory.MALFORMED_RESPONSE: "Something went wrong on our side. Please try again later.",
    }

    LOG_LEVELS: Dict[ErrorCategory, int] = {
        ErrorCategory.INVALID_ARGUMENT: logging.INFO,
        ErrorCategory.CONFIG: logging.CRITICAL,
        ErrorCategory.AUTH: logging.ERROR,
        ErrorCategory.API: logging.WARNING,
        ErrorCategory.MALFORMED_RESPONSE: logging.ERROR,
    }

    def __init__(self, max_history: int = 100):
        self._logger = logging.getLogger("opentrade.errors")
        self._error_history: List[ErrorDetail] = []
        self._max_history = max_history

    def handle(self, error: OpenTradeError) -> str:
        """
        Log an error and return a message safe to show an end user.
        """
        self._log_error(error)

        self._error_history.append(error.detail)
        if len(self._error_history) > self._max_history:
            self._error_history.pop(0)

        return self.user_message(error)

    def _log_error(self, error: OpenTradeError) -> None:
        """Log error with appropriate level."""
        detail = error.detail
        level = self.LOG_LEVELS.get(detail.category, logging.ERROR)

        self._logger.log(
            level,
            f"{detail.category.name}: {detail.message} (http_status={detail.http_status})",
        )

        if detail.debug_detail is not None:
            self._logger.debug(f"{detail.category.name} debug detail: {detail.debug_detail}")

    def user_message(self, error: OpenTradeError) -> str:
        """Message for end users. The upstream message is already user-facing."""
        return self.USER_MESSAGES.get(error.category, error.message)

    def get_error_stats(self) -> Dict[str, int]:
        """Get error statistics."""
        stats: Dict[str, int] = {}
        for detail in self._error_history:
            key = detail.category.name
            stats[key] = stats.get(key, 0) + 1
        return stats

    def clear_history(self) -> None:
        """Clear error history."""
        self._error_history.clear()
