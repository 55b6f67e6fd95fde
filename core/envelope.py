"""
Response Envelope Decoder
-------------------------
Interprets the JSON envelope returned by every OpenTrade endpoint:

    {"code": 2000, "status": "success", "data": {...}}
    {"code": 4004, "status": "error",
     "data": {"message": "...", "httpCode": 404, "debug": "..."}}

What counts as success differs per endpoint (code 2000 for reads,
2001 for creations, status == "success" for some writes, plain HTTP
status for others), so each operation supplies an EnvelopeRule and a
single routine applies it.

Rules:
- Invalid JSON, or an envelope missing the checked field, raises
  MalformedResponseError
- A failed check raises ApiError built from data.message/httpCode/debug
- Special HTTP statuses (204, 404, 201...) are handled per rule, never
  globally
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from functools import cached_property
from http import HTTPStatus
from typing import Any, Callable, Dict, FrozenSet, Iterable, Mapping, Optional
import json
import logging

from .errors import ApiError, MalformedResponseError

logger = logging.getLogger("opentrade.core.envelope")

SUCCESS_STATUS = "success"

CODE_OK = 2000
CODE_CREATED = 2001


class SuccessCheck(Enum):
    """Which part of the reply decides success."""
    CODE = auto()            # envelope["code"] in expected
    STATUS = auto()          # envelope["status"] in expected
    HTTP = auto()            # HTTP status in expected, body not required
    DATA_HTTP_CODE = auto()  # envelope["data"]["httpCode"] in expected


def parse_envelope(raw_body: str, http_status: Optional[int] = None) -> Optional[Dict[str, Any]]:
    """
    Parse a response body into an envelope dict.

    Returns None for an empty body or a JSON null.
    """
    if raw_body is None or not raw_body.strip():
        return None
    try:
        parsed = json.loads(raw_body)
    except ValueError as e:
        raise MalformedResponseError(
            MalformedResponseError.DEFAULT_MESSAGE,
            http_status=http_status,
            debug_detail=f"{e}: {raw_body[:500]}",
        ) from e
    if parsed is None:
        return None
    if not isinstance(parsed, dict):
        raise MalformedResponseError(
            MalformedResponseError.DEFAULT_MESSAGE,
            http_status=http_status,
            debug_detail=f"expected a JSON object, got {type(parsed).__name__}",
        )
    return parsed


class Reply:
    """
    A raw HTTP reply. The envelope is parsed on first access so that
    status-driven rules never touch a body they do not need.
    """

    def __init__(self, http_status: int, body: str = "", reason_phrase: str = ""):
        self.http_status = http_status
        self.body = body or ""
        self._reason_phrase = reason_phrase

    @cached_property
    def envelope(self) -> Optional[Dict[str, Any]]:
        return parse_envelope(self.body, self.http_status)

    @property
    def data(self) -> Any:
        envelope = self.envelope
        return envelope.get("data") if envelope is not None else None

    @property
    def reason_phrase(self) -> str:
        if self._reason_phrase:
            return self._reason_phrase
        try:
            return HTTPStatus(self.http_status).phrase
        except ValueError:
            return ""

    def __repr__(self) -> str:
        return f"Reply(http_status={self.http_status}, body={self.body[:80]!r})"


Handler = Callable[[Reply], Any]


# =============================================================================
# Handlers
# =============================================================================

def return_data(reply: Reply) -> Any:
    """Return envelope["data"]."""
    return reply.data


def return_message(reply: Reply) -> Any:
    """Return envelope["data"]["message"]."""
    data = reply.data
    if not isinstance(data, Mapping):
        raise MalformedResponseError(
            MalformedResponseError.DEFAULT_MESSAGE,
            http_status=reply.http_status,
            debug_detail=f"missing data.message in {reply.body[:500]}",
        )
    return data.get("message")


def return_none(reply: Reply) -> None:
    return None


def return_empty_list(reply: Reply) -> list:
    return []


def return_value(value: Any) -> Handler:
    """Handler returning a constant."""
    def _handler(reply: Reply) -> Any:
        return value
    return _handler


def raise_api_error(reply: Reply) -> Any:
    """Raise ApiError from the error envelope."""
    raise ApiError.from_envelope(reply.envelope, reply.http_status)


def raise_with_message(message: str) -> Handler:
    """Handler raising ApiError with a fixed user message."""
    def _handler(reply: Reply) -> Any:
        data = reply.data
        status = reply.http_status
        if isinstance(data, Mapping) and data.get("httpCode") is not None:
            status = _as_int(data.get("httpCode"))
        raise ApiError(message, http_status=status, debug_detail=reply.body or None)
    return _handler


def raise_reason_phrase(reply: Reply) -> Any:
    """Raise ApiError carrying the HTTP reason phrase and the raw body as debug detail."""
    raise ApiError(
        reply.reason_phrase or ApiError.DEFAULT_MESSAGE,
        http_status=reply.http_status,
        debug_detail=reply.body or None,
    )


# =============================================================================
# Rules
# =============================================================================

@dataclass(frozen=True)
class EnvelopeRule:
    """
    How one operation decides success and what it returns.

    Args:
        check: Which part of the reply is compared to `expected`.
        expected: Accepted values (envelope codes, statuses or HTTP statuses).
        on_status: Handlers for specific HTTP statuses, consulted first.
        on_empty: Handler for an empty or null body (envelope checks only).
        extract: Builds the result of a successful reply.
        on_failure: Replaces the default ApiError on a failed check.
    """
    check: SuccessCheck = SuccessCheck.CODE
    expected: FrozenSet[Any] = frozenset({CODE_OK})
    on_status: Mapping[int, Handler] = field(default_factory=dict)
    on_empty: Optional[Handler] = None
    extract: Handler = return_data
    on_failure: Handler = raise_api_error


def expect_codes(*values: int, **kwargs: Any) -> EnvelopeRule:
    """Rule checking the numeric envelope code."""
    return EnvelopeRule(check=SuccessCheck.CODE, expected=frozenset(values), **kwargs)


def expect_success_status(**kwargs: Any) -> EnvelopeRule:
    """Rule checking envelope["status"] == "success"."""
    return EnvelopeRule(check=SuccessCheck.STATUS, expected=frozenset({SUCCESS_STATUS}), **kwargs)


def expect_http(*values: int, **kwargs: Any) -> EnvelopeRule:
    """Rule checking the HTTP status only."""
    return EnvelopeRule(check=SuccessCheck.HTTP, expected=frozenset(values), **kwargs)


def expect_data_http_code(*values: int, **kwargs: Any) -> EnvelopeRule:
    """Rule checking envelope["data"]["httpCode"]."""
    return EnvelopeRule(check=SuccessCheck.DATA_HTTP_CODE, expected=frozenset(values), **kwargs)


# =============================================================================
# Decoding
# =============================================================================

def _as_int(value: Any) -> Any:
    try:
        return int(value)
    except (TypeError, ValueError):
        return value


def _checked_value(rule: EnvelopeRule, reply: Reply, envelope: Mapping[str, Any]) -> Any:
    if rule.check is SuccessCheck.CODE:
        key, value = "code", envelope.get("code")
        value = _as_int(value) if value is not None else None
    elif rule.check is SuccessCheck.STATUS:
        key, value = "status", envelope.get("status")
    else:
        data = envelope.get("data")
        key = "data.httpCode"
        value = _as_int(data.get("httpCode")) if isinstance(data, Mapping) else None

    if value is None:
        raise MalformedResponseError(
            MalformedResponseError.DEFAULT_MESSAGE,
            http_status=reply.http_status,
            debug_detail=f"envelope has no '{key}' field: {reply.body[:500]}",
        )
    return value


def decode_reply(reply: Reply, rule: EnvelopeRule) -> Any:
    """
    Apply a rule to a reply: return the operation result or raise.
    """
    handler = rule.on_status.get(reply.http_status)
    if handler is not None:
        logger.debug(f"Special status {reply.http_status} handled by {getattr(handler, '__name__', handler)}")
        return handler(reply)

    if rule.check is SuccessCheck.HTTP:
        succeeded = reply.http_status in rule.expected
    else:
        envelope = reply.envelope
        if envelope is None:
            if rule.on_empty is not None:
                return rule.on_empty(reply)
            raise MalformedResponseError(
                MalformedResponseError.DEFAULT_MESSAGE,
                http_status=reply.http_status,
                debug_detail="empty response body",
            )
        succeeded = _checked_value(rule, reply, envelope) in rule.expected

    if succeeded:
        return rule.extract(reply)
    return rule.on_failure(reply)


def decode(raw_body: str, expected_codes: Iterable[int]) -> Any:
    """
    Decode an envelope and return its data when its code is expected.

    Raises:
        MalformedResponseError: body is not a JSON envelope
        ApiError: envelope code not in expected_codes
    """
    return decode_reply(Reply(200, raw_body), expect_codes(*expected_codes))
