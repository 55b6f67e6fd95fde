"""
Operation Table
---------------
One EnvelopeRule per RestRequest operation: which field decides
success, which values count as success, and how special HTTP statuses
are turned into results.

Most reads check envelope code 2000, creations 2001. Some writes only
report status == "success", some endpoints are judged on the HTTP
status alone. Both paths are kept per endpoint as the service answers.
"""

from typing import Any, Dict
import json
import logging

from core.envelope import (
    CODE_CREATED,
    CODE_OK,
    EnvelopeRule,
    Reply,
    expect_codes,
    expect_data_http_code,
    expect_http,
    expect_success_status,
    raise_reason_phrase,
    raise_with_message,
    return_empty_list,
    return_message,
    return_none,
    return_value,
)
from core.errors import ApiError, MalformedResponseError

logger = logging.getLogger("opentrade.api.operations")

MERCHANT_INACTIVE_MESSAGE = "The merchant user accounts are inactive!"


def _is_code_ok(reply: Reply) -> bool:
    # 2000: now following, 2001: unfollowed
    return int(reply.envelope["code"]) == CODE_OK


def _return_api_error(reply: Reply) -> ApiError:
    return ApiError.from_envelope(reply.envelope, reply.http_status)


def _log_and_raise(reply: Reply) -> Any:
    error = ApiError.from_envelope(reply.envelope, reply.http_status)
    logger.error(f"Write rejected by the service: {error.message} (http_status={error.http_status})")
    if error.debug_detail is not None:
        logger.debug(f"Service debug detail: {error.debug_detail}")
    raise error


def _decode_data_json(reply: Reply) -> Any:
    data = reply.data
    if not isinstance(data, str):
        return data
    try:
        return json.loads(data)
    except ValueError as e:
        raise MalformedResponseError(
            MalformedResponseError.DEFAULT_MESSAGE,
            http_status=reply.http_status,
            debug_detail=f"data is not a JSON document: {data[:500]}",
        ) from e


def _raw_body(reply: Reply) -> str:
    return reply.body


def _token_update_failed(reply: Reply) -> bool:
    logger.warning(f"Social network token update failed: HTTP {reply.http_status}")
    logger.warning(f"Social network token update response body: {reply.body[:500]}")
    return False


OPERATIONS: Dict[str, EnvelopeRule] = {
    # Users
    "follow": expect_codes(CODE_OK, CODE_CREATED, extract=_is_code_ok),
    "login": expect_codes(CODE_OK),
    "get_followers_or_subscriptions": expect_codes(CODE_OK),
    "get_user_info": expect_codes(CODE_OK),
    "update_user_info": expect_codes(CODE_OK),
    "user_stats": expect_http(200, on_status={204: return_empty_list}),
    "confirmation": expect_success_status(extract=_decode_data_json),
    "signup": expect_codes(CODE_CREATED, extract=return_none),
    "register": expect_codes(CODE_CREATED, extract=return_none),
    "get_shops": expect_http(200),
    "contact_by_email": expect_data_http_code(202, extract=return_message),

    # Catalog
    "get_categories": expect_codes(CODE_OK),
    "get_payments": expect_success_status(),
    "get_items": expect_codes(CODE_OK),
    "get_item": expect_codes(CODE_OK),
    "add_item": expect_codes(CODE_CREATED, on_failure=_log_and_raise),
    "update_item": expect_success_status(on_failure=_log_and_raise),
    "delete_item": expect_codes(CODE_OK),
    "like": expect_codes(CODE_OK, CODE_CREATED),
    "likes": expect_codes(CODE_OK, on_failure=_return_api_error),
    "popularity": expect_http(204, extract=return_none),
    "search": expect_codes(CODE_OK),
    "recommendations": expect_http(200, on_status={204: return_empty_list}),

    # Comments
    "get_comments_by_item_id": expect_codes(CODE_OK),
    "add_comment": expect_success_status(),
    "update_comment": expect_success_status(),

    # Baskets and orders
    "get_baskets": expect_codes(CODE_OK, on_empty=return_empty_list),
    "increase_purchase_in_basket": expect_codes(CODE_OK),
    "get_orders": expect_codes(CODE_OK),
    "get_one_order": expect_codes(CODE_OK, on_status={404: return_message}),
    "search_orders": expect_http(200, on_status={204: return_empty_list, 404: return_empty_list}),
    "order": expect_http(201, on_status={204: raise_with_message(MERCHANT_INACTIVE_MESSAGE)}),

    # Social networks
    "get_authentication_url": expect_http(200, extract=_raw_body, on_failure=return_value("#")),
    "update_social_network_access_token": expect_http(
        200, 204, extract=return_value(True), on_failure=_token_update_failed
    ),
    "update_social_network_template_message": expect_http(200, on_failure=raise_reason_phrase),
}


def rule_for(operation: str) -> EnvelopeRule:
    """Look up the rule of an operation. Unknown names are a programming error."""
    try:
        return OPERATIONS[operation]
    except KeyError:
        raise KeyError(f"No envelope rule registered for operation '{operation}'") from None


__all__ = ["OPERATIONS", "MERCHANT_INACTIVE_MESSAGE", "rule_for"]
