# Core module - Token cache, single flight, envelope decoding, errors
# No I/O here: the api package owns the HTTP transport

from .cache import TTLCache, CacheEntry, ACCESS_TOKEN_TTL, COLLECTION_TTL
from .singleflight import SingleFlight
from .envelope import (
    EnvelopeRule, Reply, SuccessCheck,
    decode, decode_reply, parse_envelope,
    CODE_OK, CODE_CREATED, SUCCESS_STATUS,
)
from .errors import (
    ErrorHandler, ErrorCategory, ErrorDetail, OpenTradeError,
    InvalidArgumentError, ConfigError, AuthError, ApiError,
    MalformedResponseError,
)

__all__ = [
    "TTLCache", "CacheEntry", "ACCESS_TOKEN_TTL", "COLLECTION_TTL",
    "SingleFlight",
    "EnvelopeRule", "Reply", "SuccessCheck",
    "decode", "decode_reply", "parse_envelope",
    "CODE_OK", "CODE_CREATED", "SUCCESS_STATUS",
    "ErrorHandler", "ErrorCategory", "ErrorDetail", "OpenTradeError",
    "InvalidArgumentError", "ConfigError", "AuthError", "ApiError",
    "MalformedResponseError",
]
