"""
REST Request Tests
------------------
Tests cover:
- Argument validation before any HTTP call
- Users: login, follow, profile updates, confirmation, signup
- Items: listing queries, item lookup, likes, popularity, recommendations
- Comments
- Body encodings and transport errors
"""

import json
from pathlib import Path
from urllib.parse import parse_qs
import sys

import httpx
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from api.forms import ContactForm
from core.errors import ApiError, InvalidArgumentError
from conftest import failure, ok

ITEM_ID = "5f1e9c2ab4d3e80012345678"


def form_of(request):
    return {key: values[0] for key, values in parse_qs(request.content.decode()).items()}


class TestValidation:
    """Invalid arguments never reach the network."""

    @pytest.mark.parametrize("item_id", ["", "short-id", ITEM_ID + "0"])
    def test_bad_item_id(self, api, service, item_id):
        """Item ids must have 24 characters."""
        with pytest.raises(InvalidArgumentError) as exc:
            api.get_item(item_id)

        assert exc.value.field == "item_id"
        assert service.requests == []

    def test_limit_must_be_positive(self, api, service):
        """limit = 0 is rejected."""
        with pytest.raises(InvalidArgumentError) as exc:
            api.get_items(0)

        assert str(exc.value) == InvalidArgumentError.LIMIT_MESSAGE
        assert service.requests == []

    def test_offset_must_not_be_negative(self, api, service):
        """offset = -1 is rejected."""
        with pytest.raises(InvalidArgumentError) as exc:
            api.get_comments_by_item_id(ITEM_ID, 10, -1)

        assert str(exc.value) == InvalidArgumentError.OFFSET_MESSAGE
        assert service.requests == []

    def test_empty_user_id(self, api, service):
        """Required ids must not be empty."""
        with pytest.raises(InvalidArgumentError):
            api.get_baskets("", 10)
        with pytest.raises(InvalidArgumentError):
            api.delete_item("u1", "  ")
        assert service.requests == []

    def test_relation_choice(self, api, service):
        """Only followers and following are accepted."""
        with pytest.raises(InvalidArgumentError):
            api.get_followers_or_subscriptions("u1", "friends", 10)
        assert service.requests == []

    def test_invalid_body_type(self, api, service):
        """An unknown body encoding is rejected before sending."""
        with pytest.raises(InvalidArgumentError) as exc:
            api.post("/items/search", "xml", {"q": "shoes"})

        assert "multipart, form_params, json" in str(exc.value)
        assert service.requests == []

    def test_invalid_argument_is_value_error(self, api):
        """Callers may catch ValueError."""
        with pytest.raises(ValueError):
            api.get_shops(-5)


class TestUsers:
    """Tests for user operations."""

    def test_login(self, api, service):
        """Credentials are posted as a form, the user is returned."""
        service.add("POST", "/user/signin", json=ok({"id": "u1", "login": "jane"}))

        assert api.login("jane", "pw") == {"id": "u1", "login": "jane"}
        assert form_of(service.last()) == {"login": "jane", "password": "pw"}

    def test_login_refused(self, api, service):
        """Bad credentials raise ApiError with the service's message."""
        service.add("POST", "/user/signin", status=401, json=failure("Bad credentials", 401, code=4001))

        with pytest.raises(ApiError) as exc:
            api.login("jane", "wrong")
        assert exc.value.message == "Bad credentials"
        assert exc.value.http_status == 401

    def test_follow_and_unfollow(self, api, service):
        """Code 2000 means following, 2001 means unfollowed."""
        service.add("POST", "/user/subscribe/u1", json=ok(None, code=2000))
        assert api.follow("u1", "t1", True) is True
        assert form_of(service.last())["trader_id"] == "t1"

        service.add("POST", "/user/subscribe/u1", json=ok(None, code=2001))
        assert api.follow("u1", "t1", False) is False

    def test_followers(self, api, service):
        """Relation is part of the path."""
        service.add("GET", "/user/u1/followers", json=ok([{"id": "u2"}]))

        assert api.get_followers_or_subscriptions("u1", "followers", 5, 10) == [{"id": "u2"}]
        params = service.last().url.params
        assert params["limit"] == "5"
        assert params["offset"] == "10"

    def test_get_user_info(self, api, service):
        """Fields are JSON encoded and client_id is sent."""
        service.add("GET", "/user/jane", json=ok({"login": "jane"}))

        api.get_user_info("jane", ["login", "email"])
        params = service.last().url.params
        assert json.loads(params["fields"]) == ["login", "email"]
        assert params["client_id"] == "shop-42"

    def test_update_profile_and_shop(self, api, service):
        """Profile and shop info are sent as JSON to their own paths."""
        service.add("PUT", "/user/u1", json=ok({"firstname": "Jane"}))
        service.add("PUT", "/user/u1/shopinfo", json=ok({"name": "Acme"}))

        api.update_profile({"firstname": "Jane"}, "u1")
        assert json.loads(service.last().content) == {"firstname": "Jane"}

        assert api.update_shop_info({"name": "Acme"}, "u1") == {"name": "Acme"}
        assert service.last().url.path == "/user/u1/shopinfo"

    def test_user_stats_empty(self, api, service):
        """HTTP 204 means no statistics."""
        service.add("GET", "/user/u1/stats", status=204)

        assert api.user_stats("u1", {"from": "2024-01-01"}) == []
        assert service.last().url.params["from"] == "2024-01-01"

    def test_confirmation_decodes_data(self, api, service):
        """The data string is a JSON document."""
        service.add("POST", "/user/account/confirm",
                    json={"status": "success", "data": json.dumps({"id": "u1", "active": True})})

        assert api.confirmation("tok") == {"id": "u1", "active": True}
        assert form_of(service.last()) == {"token": "tok"}

    def test_signup_is_deprecated(self, api, service):
        """signup() warns and posts a multipart body."""
        service.add("POST", "/user/signup", json=ok(None, code=2001))

        with pytest.warns(DeprecationWarning):
            assert api.signup({"login": "jane", "avatar": ("a.png", b"\x89PNG")}, "https://shop/ok") is None

        request = service.last()
        assert request.headers["content-type"].startswith("multipart/form-data")
        assert b'filename="a.png"' in request.content
        assert request.url.params["redirect_url"] == "https://shop/ok"

    def test_register(self, api, service):
        """register() expects code 2001."""
        service.add("POST", "/user/register", json=ok(None, code=2001))

        assert api.register({"login": "jane"}, "https://shop/ok") is None

        service.add("POST", "/user/register", status=409, json=failure("Login taken", 409, code=4009))
        with pytest.raises(ApiError):
            api.register({"login": "jane"}, "https://shop/ok")

    def test_get_shops(self, api, service):
        """Shops are judged on HTTP 200."""
        service.add("GET", "/user/shops", json=ok([{"name": "Acme"}]))

        assert api.get_shops(20) == [{"name": "Acme"}]

    def test_contact_by_email(self, api, service):
        """The confirmation message is returned when data.httpCode is 202."""
        service.add("POST", "/user/t1/contact/email", json=ok({"message": "Email sent", "httpCode": 202}))
        form = ContactForm(subject="Hi", message="Is it red?", from_email="a@b.c")

        assert api.contact_by_email("t1", form) == "Email sent"
        assert form_of(service.last())["subject"] == "Hi"

    def test_contact_form_requires_fields(self):
        """Empty form fields are rejected."""
        with pytest.raises(InvalidArgumentError):
            ContactForm(subject="", message="x", from_email="a@b.c")


class TestItems:
    """Tests for item operations."""

    def test_get_items_query(self, api, service):
        """Default fields and order are sent with the token."""
        service.add("GET", "/items", json=ok([]))

        api.get_items(20)
        params = service.last().url.params
        assert params["limit"] == "20"
        assert params["offset"] == "0"
        assert params["fields"] == "all"
        assert params["orderBy"] == "reviews"
        assert params["access_token"] == "token-1"
        assert "client_id" not in params

    def test_get_items_orders(self, api, service):
        """Several sort criteria are comma joined."""
        service.add("GET", "/items", json=ok([]))

        api.get_items(20, 40, orders=["price", "addedAt"])
        assert service.last().url.params["orderBy"] == "price,addedAt"

    def test_get_items_by_ids(self, api, service):
        """A list of ids becomes one path segment."""
        service.add("GET", "/items/a,b", json=ok([{"id": "a"}, {"id": "b"}]))

        assert len(api.get_items_by_ids(["a", "b"], 10)) == 2

    def test_get_items_by_category_and_user(self, api, service):
        """Category and user listings have their own paths."""
        service.add("GET", "/category/c1/items", json=ok([]))
        service.add("GET", "/items/user/u1", json=ok([]))

        api.get_items_by_category("c1", 10)
        api.get_items_by_user_id("u1", 10)
        assert [r.url.path for r in service.api_requests] == ["/category/c1/items", "/items/user/u1"]

    def test_get_item(self, api, service):
        """One item, requested with client_id."""
        service.add("GET", f"/item/{ITEM_ID}", json=ok({"id": ITEM_ID}))

        assert api.get_item(ITEM_ID) == {"id": ITEM_ID}
        assert service.last().url.params["client_id"] == "shop-42"

    def test_get_item_not_found(self, api, service):
        """An error envelope raises ApiError."""
        service.add("GET", f"/item/{ITEM_ID}", status=404, json=failure("Item not found", 404))

        with pytest.raises(ApiError) as exc:
            api.get_item(ITEM_ID)
        assert exc.value.message == "Item not found"
        assert exc.value.debug_detail == "stack trace"

    def test_add_item(self, api, service, caplog):
        """add_item expects 2001 and logs a refused write."""
        service.add("POST", "/items/user/u1", json=ok({"id": ITEM_ID}, code=2001))
        assert api.add_item("u1", {"title": "Red shoes"}, "https://shop/item") == {"id": ITEM_ID}

        service.add("POST", "/items/user/u1", status=400, json=failure("Price required", 400, code=4000))
        with pytest.raises(ApiError):
            api.add_item("u1", {"title": "Red shoes"}, "https://shop/item")
        assert any("Price required" in r.getMessage() for r in caplog.records)

    def test_update_item(self, api, service):
        """update_item is judged on status."""
        path = f"/items/user/u1/{ITEM_ID}"
        service.add("PUT", path, json={"status": "success", "data": {"price": 10}})

        assert api.update_item("u1", ITEM_ID, {"price": 10}, "https://shop/item") == {"price": 10}
        assert json.loads(service.last().content) == {"price": 10}

    def test_delete_item(self, api, service):
        """Items are deleted with client_id."""
        service.add("DELETE", f"/item/user/u1/{ITEM_ID}", json=ok(None))

        assert api.delete_item("u1", ITEM_ID) is None
        assert service.last().url.params["client_id"] == "shop-42"

    def test_like(self, api, service):
        """Like is a form PUT."""
        service.add("PUT", f"/items/{ITEM_ID}/like", json=ok({"likes": 3}, code=2001))

        assert api.like(ITEM_ID, "u1", True) == {"likes": 3}
        assert form_of(service.last())["like"] == "true"

    def test_likes_returns_error(self, api, service):
        """likes() returns the error instead of raising."""
        service.add("GET", f"/items/{ITEM_ID}/like", status=404, json=failure("No likes yet", 404))

        result = api.likes(ITEM_ID)
        assert isinstance(result, ApiError)
        assert result.message == "No likes yet"

    def test_popularity(self, api, service):
        """204 is success, anything else raises."""
        service.add("PUT", f"/items/{ITEM_ID}/popularity", status=204)
        assert api.popularity(ITEM_ID, "view") is None
        assert form_of(service.last()) == {"what": "view"}

        service.add("PUT", f"/items/{ITEM_ID}/popularity", status=400, json=failure("Unknown event", 400))
        with pytest.raises(ApiError):
            api.popularity(ITEM_ID, "teleport")

    def test_search(self, api, service):
        """Criteria are sent as JSON with client_id."""
        service.add("POST", "/items/search", json=ok([{"id": ITEM_ID}]))

        assert api.search({"q": "shoes"}) == [{"id": ITEM_ID}]
        assert json.loads(service.last().content) == {"q": "shoes"}
        assert service.last().url.params["client_id"] == "shop-42"

    def test_recommendations(self, api, service):
        """Recommendations path and query."""
        service.add("GET", "/recommendation/u1/collaborative/", json=ok([{"id": ITEM_ID}]))

        assert api.recommendations("collaborative", "u1", 8) == [{"id": ITEM_ID}]
        assert service.last().url.params["maxIter"] == "2"

    def test_preferenced_items_empty(self, api, service):
        """204 means no recommendation."""
        service.add("GET", "/recommendation/u1/content/", status=204)

        assert api.get_preferenced_items("u1", 8) == []

    def test_recommendation_kind(self, api, service):
        """Unknown kinds are rejected."""
        with pytest.raises(InvalidArgumentError):
            api.recommendations("random", "u1", 8)
        assert service.requests == []


class TestComments:
    """Tests for comment operations."""

    def test_get_comments(self, api, service):
        service.add("GET", f"/comments/items/{ITEM_ID}", json=ok([{"text": "Nice"}]))

        assert api.get_comments_by_item_id(ITEM_ID, 10) == [{"text": "Nice"}]

    def test_add_anonymous_comment(self, api, service):
        """Anonymous visitors give a name and an email."""
        service.add("POST", f"/comments/items/{ITEM_ID}", json={"status": "success", "data": {"id": "k1"}})

        api.add_comment("", ITEM_ID, "Nice", anonymous_name="Bob", anonymous_email="bob@x.y")
        form = form_of(service.last())
        assert form["comment_text"] == "Nice"
        assert form["anonymous_name"] == "Bob"

    def test_update_comment(self, api, service):
        """update_comment sends the token and client_id."""
        service.add("PUT", "/comments/user/u1/k1", json={"status": "success", "data": {"id": "k1"}})

        assert api.update_comment("u1", "k1", "Edited") == {"id": "k1"}
        params = service.last().url.params
        assert params["access_token"] == "token-1"
        assert params["client_id"] == "shop-42"

    def test_comment_refused(self, api, service):
        """A failed status raises ApiError."""
        service.add("PUT", "/comments/user/u1/k1", status=403, json=failure("Not your comment", 403))

        with pytest.raises(ApiError):
            api.update_comment("u1", "k1", "Edited")


class TestTransport:
    """Transport failures are not wrapped."""

    def test_connect_error_propagates(self, api, service):
        service.fail_with("GET", "/items", httpx.ConnectError("connection refused"))

        with pytest.raises(httpx.ConnectError):
            api.get_items(10)

    def test_timeout_propagates(self, api, service):
        service.fail_with("GET", f"/item/{ITEM_ID}", httpx.ReadTimeout("timed out"))

        with pytest.raises(httpx.TimeoutException):
            api.get_item(ITEM_ID)

    def test_malformed_body(self, api, service):
        """A non-JSON body on an envelope endpoint is malformed."""
        from core.errors import MalformedResponseError

        service.add("GET", "/items", text="<html>502</html>")
        with pytest.raises(MalformedResponseError):
            api.get_items(10)
