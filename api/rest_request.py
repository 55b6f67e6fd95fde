"""
REST Request
------------
Domain operations of the OpenTrade REST service.

Every operation follows the same sequence:
    validate arguments -> access token -> one HTTP call -> envelope rule

Rules:
- Invalid arguments raise InvalidArgumentError before any HTTP call
- Envelope failures raise ApiError, except likes() which returns it
- get_categories() and get_payments() never raise: on failure they log
  and return an empty list, and the failure is not cached
- Each call runs in a request context so its log lines share a request_id
"""

from typing import Any, Iterable, List, Mapping, Optional, Sequence, Union
from urllib.parse import quote
import logging
import warnings

import httpx

from core.cache import CATEGORIES_KEY, PAYMENTS_KEY
from core.envelope import decode_reply
from core.errors import InvalidArgumentError, OpenTradeError
from infra.logging import with_request_context

from .client import BodyType, QueryParams, RestClient, encode_fields
from .forms import ContactForm
from .operations import rule_for

logger = logging.getLogger("opentrade.api.rest_request")

ITEM_ID_LENGTH = 24

DEFAULT_FIELDS = "all"
DEFAULT_ORDERS = ("reviews",)
ONE_ORDER_FIELDS = ("total", "id", "orderAlias", "status", "date")

FOLLOW_RELATIONS = frozenset({"followers", "following"})
RECOMMENDATION_TYPES = frozenset({"content", "collaborative"})

# Recommendation engine iterations requested per call
RECOMMENDATION_MAX_ITER = 2


def _require_id(name: str, value: Optional[str]) -> str:
    if value is None or not str(value).strip():
        raise InvalidArgumentError(f"{name} must not be empty", field=name)
    return str(value)


def _require_page(limit: int, offset: int) -> None:
    if limit <= 0:
        raise InvalidArgumentError(InvalidArgumentError.LIMIT_MESSAGE, field="limit")
    if offset < 0:
        raise InvalidArgumentError(InvalidArgumentError.OFFSET_MESSAGE, field="offset")


def _require_choice(name: str, value: str, choices: Iterable[str]) -> str:
    if value not in choices:
        allowed = ", ".join(sorted(choices))
        raise InvalidArgumentError(f"{name} must be one of: {allowed}", field=name)
    return value


def _segment(value: str) -> str:
    """Percent-encode one path segment."""
    return quote(str(value), safe=",@")


class RestRequest(RestClient):
    """
    Typed access to every OpenTrade endpoint.

    Example:
        api = RestRequest(StaticApiConfig("id", "secret", "https://api.example"))
        user = api.login("jane@example.com", "s3cret")
        items = api.get_items(limit=20)
    """

    def _call(
        self,
        operation: str,
        method: str,
        path: str,
        query: QueryParams = None,
        body_type: Optional[BodyType] = None,
        data: Any = None,
        with_client_id: bool = False,
    ) -> Any:
        """Authorize, send, and decode one request with the operation's rule."""
        rule = rule_for(operation)
        params = self.authorized_query(query, with_client_id=with_client_id)
        response = self._request(method, path, params, body_type, data)
        logger.debug(
            f"{operation}: HTTP {response.status_code}",
            extra={"operation": operation, "http_status": response.status_code},
        )
        return decode_reply(self.reply(response), rule)

    # =========================================================================
    # Users
    # =========================================================================

    @with_request_context
    def login(self, login: str, password: str) -> Any:
        """Sign a user in with a username or email and a clear-text password."""
        _require_id("login", login)
        if password is None or password == "":
            raise InvalidArgumentError("password must not be empty", field="password")

        return self._call(
            "login", "POST", "/user/signin",
            body_type=BodyType.FORM_PARAMS,
            data={"login": login, "password": password},
        )

    @with_request_context
    def follow(self, user_id: str, trader_id: str, notify: bool) -> bool:
        """
        Subscribe a customer to a trader, or unsubscribe when already subscribed.

        Returns:
            True when the customer now follows the trader, False when unfollowed
        """
        _require_id("user_id", user_id)
        _require_id("trader_id", trader_id)

        return self._call(
            "follow", "POST", f"/user/subscribe/{_segment(user_id)}",
            body_type=BodyType.FORM_PARAMS,
            data={"customer_id": user_id, "trader_id": trader_id, "notify": bool(notify)},
        )

    @with_request_context
    def get_followers_or_subscriptions(self, user_id: str, relation: str, limit: int, offset: int = 0) -> Any:
        """List the followers of a user, or the traders the user follows."""
        _require_id("user_id", user_id)
        _require_choice("relation", relation, FOLLOW_RELATIONS)
        _require_page(limit, offset)

        return self._call(
            "get_followers_or_subscriptions", "GET",
            f"/user/{_segment(user_id)}/{relation}",
            query={"limit": limit, "offset": offset},
        )

    @with_request_context
    def get_user_info(self, login_or_id: str, fields: Sequence[str] = ()) -> Any:
        _require_id("login_or_id", login_or_id)

        return self._call(
            "get_user_info", "GET", f"/user/{_segment(login_or_id)}",
            query={"fields": encode_fields(fields)},
            with_client_id=True,
        )

    def _update_user_info(self, path: str, info: Mapping[str, Any]) -> Any:
        return self._call("update_user_info", "PUT", path, body_type=BodyType.JSON, data=dict(info))

    @with_request_context
    def update_shop_info(self, info: Mapping[str, Any], user_id: str) -> Any:
        _require_id("user_id", user_id)
        return self._update_user_info(f"/user/{_segment(user_id)}/shopinfo", info)

    @with_request_context
    def update_profile(self, info: Mapping[str, Any], user_id: str) -> Any:
        _require_id("user_id", user_id)
        return self._update_user_info(f"/user/{_segment(user_id)}", info)

    @with_request_context
    def user_stats(self, user_id: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        """Statistics of a user. An empty list when the service has none (HTTP 204)."""
        _require_id("user_id", user_id)

        return self._call(
            "user_stats", "GET", f"/user/{_segment(user_id)}/stats",
            query=params,
            with_client_id=True,
        )

    @with_request_context
    def confirmation(self, token: str) -> Any:
        """Validate an account activation token. Returns the user data."""
        _require_id("token", token)

        return self._call(
            "confirmation", "POST", "/user/account/confirm",
            body_type=BodyType.FORM_PARAMS,
            data={"token": token},
            with_client_id=True,
        )

    @with_request_context
    def signup(self, multipart: Any, redirect_url: str) -> None:
        """Create a user account from a multipart form. Use register() instead."""
        warnings.warn(
            "signup() is deprecated, use register() instead",
            DeprecationWarning,
            stacklevel=3,
        )
        self._call(
            "signup", "POST", "/user/signup",
            query={"redirect_url": redirect_url},
            body_type=BodyType.MULTIPART,
            data=multipart,
            with_client_id=True,
        )

    @with_request_context
    def register(self, data: Mapping[str, Any], redirect_url: str) -> None:
        """Create a user account. The service emails the activation link."""
        self._call(
            "register", "POST", "/user/register",
            query={"redirect_url": redirect_url},
            body_type=BodyType.JSON,
            data=dict(data),
            with_client_id=True,
        )

    @with_request_context
    def get_shops(self, limit: int, offset: int = 0) -> Any:
        _require_page(limit, offset)
        return self._call("get_shops", "GET", "/user/shops", query={"limit": limit, "offset": offset})

    @with_request_context
    def contact_by_email(self, trader_id: str, form: ContactForm) -> Any:
        """
        Email a trader through the service.

        Returns:
            The confirmation message of the service
        """
        if form is None:
            raise InvalidArgumentError("contact form is required", field="form")
        _require_id("trader_id", trader_id)

        return self._call(
            "contact_by_email", "POST", f"/user/{_segment(trader_id)}/contact/email",
            body_type=BodyType.FORM_PARAMS,
            data=form.to_form_params(),
        )

    # =========================================================================
    # Categories and payments (cached, never raise)
    # =========================================================================

    def _cached_collection(self, key: str, operation: str, path: str, with_client_id: bool) -> List[Any]:
        def _load() -> List[Any]:
            data = self._call(operation, "GET", path, with_client_id=with_client_id)
            return data if data is not None else []

        try:
            # Callers get their own list, the cached entry is never handed out
            return list(self._cache.get_or_load(key, _load, self.settings.collection_ttl_seconds))
        except (OpenTradeError, httpx.HTTPError) as e:
            logger.warning(f"Could not load {key}, returning an empty list: {e}")
            debug_detail = getattr(e, "debug_detail", None)
            if debug_detail is not None:
                logger.debug(f"{key} debug detail: {debug_detail}")
            return []

    @with_request_context
    def get_categories(self) -> List[Any]:
        """All item categories, cached for 24 hours. Empty list on failure."""
        return self._cached_collection(CATEGORIES_KEY, "get_categories", "/categories", with_client_id=False)

    def get_category(self, category_id: str) -> Optional[Any]:
        """The category with this id, or None."""
        for category in self.get_categories():
            if isinstance(category, Mapping) and str(category.get("id")) == category_id:
                return category
        return None

    @with_request_context
    def get_payments(self) -> List[Any]:
        """Available payment methods, cached for 24 hours. Empty list on failure."""
        return self._cached_collection(PAYMENTS_KEY, "get_payments", "/payments", with_client_id=True)

    # =========================================================================
    # Items
    # =========================================================================

    def _get_items(
        self,
        path: str,
        limit: int,
        offset: int,
        fields: str = DEFAULT_FIELDS,
        orders: Optional[Sequence[str]] = None,
    ) -> Any:
        _require_page(limit, offset)
        query = {
            "limit": limit,
            "offset": offset,
            "fields": fields,
            "orderBy": ",".join(orders if orders is not None else DEFAULT_ORDERS),
        }
        return self._call("get_items", "GET", path, query=query)

    @with_request_context
    def get_items(self, limit: int, offset: int = 0, fields: str = DEFAULT_FIELDS,
                  orders: Optional[Sequence[str]] = None) -> Any:
        """
        List items.

        Args:
            orders: Sort criteria among reviews, price, quantity, addedAt
        """
        return self._get_items("/items", limit, offset, fields, orders)

    @with_request_context
    def get_items_by_ids(self, ids: Union[str, Sequence[str]], limit: int, offset: int = 0,
                         fields: str = DEFAULT_FIELDS, orders: Optional[Sequence[str]] = None) -> Any:
        """List the items whose ids are given (a list or a comma-separated string)."""
        if not isinstance(ids, str):
            ids = ",".join(ids)
        _require_id("ids", ids)
        return self._get_items(f"/items/{_segment(ids)}", limit, offset, fields, orders)

    @with_request_context
    def get_items_by_user_id(self, user_id: str, limit: int, offset: int = 0,
                             fields: str = DEFAULT_FIELDS, orders: Optional[Sequence[str]] = None) -> Any:
        _require_id("user_id", user_id)
        return self._get_items(f"/items/user/{_segment(user_id)}", limit, offset, fields, orders)

    @with_request_context
    def get_items_by_category(self, category_id: str, limit: int, offset: int = 0,
                              fields: str = DEFAULT_FIELDS, orders: Optional[Sequence[str]] = None) -> Any:
        _require_id("category_id", category_id)
        return self._get_items(f"/category/{_segment(category_id)}/items", limit, offset, fields, orders)

    @with_request_context
    def get_item(self, item_id: str, fields: str = DEFAULT_FIELDS) -> Any:
        """Fetch one item. item_id is a 24-character hexadecimal object id."""
        if not item_id or len(item_id) != ITEM_ID_LENGTH:
            raise InvalidArgumentError("invalid hexadecimal representation of id", field="item_id")

        return self._call(
            "get_item", "GET", f"/item/{_segment(item_id)}",
            query={"fields": fields},
            with_client_id=True,
        )

    @with_request_context
    def add_item(self, user_id: str, multipart: Any, action: str) -> Any:
        """
        Publish a new item.

        Args:
            multipart: Item fields and pictures
            action: Link under which the item will be available

        Returns:
            The data of the new item
        """
        _require_id("user_id", user_id)

        return self._call(
            "add_item", "POST", f"/items/user/{_segment(user_id)}",
            query={"action": action},
            body_type=BodyType.MULTIPART,
            data=multipart,
        )

    @with_request_context
    def update_item(self, user_id: str, item_id: str, data: Mapping[str, Any], action: str) -> Any:
        _require_id("user_id", user_id)
        _require_id("item_id", item_id)

        return self._call(
            "update_item", "PUT", f"/items/user/{_segment(user_id)}/{_segment(item_id)}",
            query={"action": action},
            body_type=BodyType.JSON,
            data=dict(data),
        )

    @with_request_context
    def delete_item(self, user_id: str, item_id: str) -> Any:
        _require_id("user_id", user_id)
        _require_id("item_id", item_id)

        return self._call(
            "delete_item", "DELETE", f"/item/user/{_segment(user_id)}/{_segment(item_id)}",
            with_client_id=True,
        )

    @with_request_context
    def like(self, item_id: str, user_id: str, value: bool) -> Any:
        """Like (True) or unlike (False) an item."""
        _require_id("item_id", item_id)
        _require_id("user_id", user_id)

        return self._call(
            "like", "PUT", f"/items/{_segment(item_id)}/like",
            body_type=BodyType.FORM_PARAMS,
            data={"user_id": user_id, "like": bool(value)},
        )

    @with_request_context
    def likes(self, item_id: str) -> Any:
        """
        Like statistics of an item.

        Unlike every other operation, a failure envelope is returned as an
        ApiError instance instead of being raised.
        """
        _require_id("item_id", item_id)
        return self._call("likes", "GET", f"/items/{_segment(item_id)}/like", with_client_id=True)

    @with_request_context
    def popularity(self, item_id: str, what: str) -> None:
        """Record a popularity event (view, share...) for an item."""
        _require_id("item_id", item_id)

        self._call(
            "popularity", "PUT", f"/items/{_segment(item_id)}/popularity",
            body_type=BodyType.FORM_PARAMS,
            data={"what": what},
        )

    @with_request_context
    def search(self, criteria: Mapping[str, Any]) -> Any:
        return self._call(
            "search", "POST", "/items/search",
            body_type=BodyType.JSON,
            data=dict(criteria),
            with_client_id=True,
        )

    @with_request_context
    def recommendations(self, kind: str, user_id: str, limit: int, offset: int = 0,
                        fields: str = DEFAULT_FIELDS) -> Any:
        """
        Items recommended to a user.

        Args:
            kind: 'content' (preference based) or 'collaborative'

        Returns:
            The recommended items, or an empty list when there are none (HTTP 204)
        """
        _require_choice("kind", kind, RECOMMENDATION_TYPES)
        _require_id("user_id", user_id)
        _require_page(limit, offset)

        return self._call(
            "recommendations", "GET", f"/recommendation/{_segment(user_id)}/{kind}/",
            query={
                "limit": limit,
                "offset": offset,
                "maxIter": RECOMMENDATION_MAX_ITER,
                "fields": fields,
            },
        )

    def get_preferenced_items(self, user_id: str, limit: int, offset: int = 0,
                              fields: str = DEFAULT_FIELDS) -> Any:
        """Preference based recommendations for a user."""
        return self.recommendations("content", user_id, limit, offset, fields)

    # =========================================================================
    # Comments
    # =========================================================================

    @with_request_context
    def get_comments_by_item_id(self, item_id: str, limit: int, offset: int = 0) -> Any:
        _require_id("item_id", item_id)
        _require_page(limit, offset)

        return self._call(
            "get_comments_by_item_id", "GET", f"/comments/items/{_segment(item_id)}",
            query={"limit": limit, "offset": offset},
        )

    @with_request_context
    def add_comment(self, user_id: str, item_id: str, text: str,
                    anonymous_name: str = "", anonymous_email: str = "") -> Any:
        """
        Comment an item.

        user_id is empty for an anonymous visitor, who then gives a name
        and an email instead.
        """
        _require_id("item_id", item_id)

        return self._call(
            "add_comment", "POST", f"/comments/items/{_segment(item_id)}",
            body_type=BodyType.FORM_PARAMS,
            data={
                "user_id": user_id,
                "comment_text": text,
                "anonymous_name": anonymous_name,
                "anonymous_email": anonymous_email,
            },
        )

    @with_request_context
    def update_comment(self, user_id: str, comment_id: str, text: str) -> Any:
        _require_id("user_id", user_id)
        _require_id("comment_id", comment_id)

        return self._call(
            "update_comment", "PUT", f"/comments/user/{_segment(user_id)}/{_segment(comment_id)}",
            body_type=BodyType.FORM_PARAMS,
            data={"comment_text": text},
            with_client_id=True,
        )

    # =========================================================================
    # Baskets and orders
    # =========================================================================

    @with_request_context
    def get_baskets(self, user_id: str, limit: int, offset: int = 0) -> Any:
        """Baskets of a customer. An empty list when the service sends no body."""
        _require_id("user_id", user_id)
        _require_page(limit, offset)

        return self._call(
            "get_baskets", "GET", f"/baskets/user/{_segment(user_id)}",
            query={"limit": limit, "offset": offset},
        )

    @with_request_context
    def increase_purchase_in_basket(self, user_id: str, basket_id: str, purchase_id: str, value: int) -> Any:
        """Change the quantity of a purchase in a basket by value (may be negative)."""
        _require_id("user_id", user_id)
        _require_id("basket_id", basket_id)
        _require_id("purchase_id", purchase_id)

        path = f"/baskets/{_segment(basket_id)}/user/{_segment(user_id)}/purchases/{_segment(purchase_id)}"
        return self._call(
            "increase_purchase_in_basket", "PUT", path,
            body_type=BodyType.FORM_PARAMS,
            data={"value": int(value)},
            with_client_id=True,
        )

    def _get_orders(self, path: str, limit: int, offset: int, fields: Sequence[str] = ()) -> Any:
        _require_page(limit, offset)
        return self._call(
            "get_orders", "GET", f"/orders/{path}",
            query={"limit": limit, "offset": offset, "fields": encode_fields(fields)},
        )

    @with_request_context
    def get_trader_orders(self, trader_id: str, limit: int, offset: int = 0) -> Any:
        """Orders received by a trader."""
        _require_id("trader_id", trader_id)
        return self._get_orders(f"traders/{_segment(trader_id)}", limit, offset)

    @with_request_context
    def get_customer_orders(self, customer_id: str, limit: int, offset: int = 0,
                            fields: Sequence[str] = ()) -> Any:
        """Orders placed by a customer."""
        _require_id("customer_id", customer_id)
        return self._get_orders(f"customers/{_segment(customer_id)}", limit, offset, fields)

    @with_request_context
    def get_one_order(self, order_id: str, customer_id: str, trader_id: str = "") -> Any:
        """
        Details of one order, seen by its customer or, when trader_id is
        given, by one of its traders.

        Returns:
            The order, or the service's message when it does not exist (HTTP 404)
        """
        _require_id("order_id", order_id)
        _require_id("customer_id", customer_id)

        if trader_id:
            path = (f"/orders/{_segment(order_id)}/traders/{_segment(trader_id)}"
                    f"/customers/{_segment(customer_id)}")
        else:
            path = f"/orders/{_segment(order_id)}/customers/{_segment(customer_id)}"

        return self._call(
            "get_one_order", "GET", path,
            query={"fields": encode_fields(ONE_ORDER_FIELDS)},
        )

    @with_request_context
    def search_orders(self, user_id: str, form: Mapping[str, Any], limit: int, offset: int = 0) -> Any:
        """Search the order history of a user. An empty list when nothing matches."""
        _require_id("user_id", user_id)
        _require_page(limit, offset)

        return self._call(
            "search_orders", "POST", f"/orders/search/{_segment(user_id)}",
            query={"limit": limit, "offset": offset},
            body_type=BodyType.FORM_PARAMS,
            data=dict(form),
            with_client_id=True,
        )

    @with_request_context
    def order(self, user_id: str, backend_url: str, body: Mapping[str, Any]) -> str:
        """
        Place an order.

        Args:
            backend_url: Admin page where traders consult the order

        Returns:
            The id of the new order

        Raises:
            ApiError: the merchants' accounts are inactive (HTTP 204), or the
                service refused the order
        """
        _require_id("user_id", user_id)

        return self._call(
            "order", "POST", f"/orders/customers/{_segment(user_id)}",
            query={"backend_url": backend_url},
            body_type=BodyType.JSON,
            data=dict(body),
            with_client_id=True,
        )

    # =========================================================================
    # Social networks
    # =========================================================================

    @with_request_context
    def get_authentication_url(self, network: str, callback_url: str) -> str:
        """Link to authorize OpenTrade on a social network, or '#' on failure."""
        _require_id("network", network)

        return self._call(
            "get_authentication_url", "GET", f"/social/{_segment(network)}",
            query={"callback_url": callback_url},
        )

    @with_request_context
    def update_social_network_access_token(self, network: str, user_id: str,
                                           oauth_verifier: str, oauth_token: str) -> bool:
        """Store the OAuth token of a user's social network account. False on failure."""
        _require_id("network", network)
        _require_id("user_id", user_id)

        return self._call(
            "update_social_network_access_token", "POST",
            f"/social/{_segment(network)}/users/{_segment(user_id)}/tokens",
            body_type=BodyType.FORM_PARAMS,
            data={"oauth_token": oauth_token, "oauth_verifier": oauth_verifier},
        )

    @with_request_context
    def update_social_network_template_message(self, user_id: str, network: str,
                                               message_type: str, template: str) -> Any:
        """
        Change the message posted on a social network for new items
        (message_type 'new') or promotions ('promotion').
        """
        _require_id("user_id", user_id)
        _require_id("network", network)
        _require_id("message_type", message_type)

        return self._call(
            "update_social_network_template_message", "PUT",
            f"/social/{_segment(network)}/templates/{_segment(user_id)}/{_segment(message_type)}",
            body_type=BodyType.FORM_PARAMS,
            data={"template": template},
        )
