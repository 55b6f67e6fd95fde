"""
REST Client
-----------
HTTP primitives bound to the OpenTrade REST base URL, plus the
access-token lifecycle every authenticated call relies on.

Rules:
- The client secret is only ever sent to the authorization endpoint
- A token is reused until its cache entry expires (58 minutes)
- Concurrent callers that miss the cache share one token request
- Transport failures (timeouts, refused connections) propagate as
  httpx exceptions, they are never wrapped
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple, Union
import json
import logging
import time

import httpx

from core.cache import ACCESS_TOKEN_KEY, ACCESS_TOKEN_TTL, COLLECTION_TTL, TTLCache
from core.envelope import Reply
from core.errors import AuthError, InvalidArgumentError, MalformedResponseError

from .config import ApiConfig

DEFAULT_USER_AGENT = "opentrade-client/0.1"

QueryParams = Optional[Mapping[str, Any]]


class BodyType(Enum):
    """Body encodings accepted by PUT and POST."""
    MULTIPART = "multipart"
    FORM_PARAMS = "form_params"
    JSON = "json"

    @classmethod
    def coerce(cls, value: Union["BodyType", str]) -> "BodyType":
        """Accept a member or its string value."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            allowed = ", ".join(member.value for member in cls)
            raise InvalidArgumentError(
                f"body_type must be one of: {allowed}", field="body_type"
            ) from None


@dataclass
class ClientSettings:
    """Tunables of a RestClient."""
    timeout_seconds: float = 30.0
    token_ttl_seconds: float = ACCESS_TOKEN_TTL
    collection_ttl_seconds: float = COLLECTION_TTL
    user_agent: str = DEFAULT_USER_AGENT
    headers: Dict[str, str] = field(default_factory=dict)


def _clean_query(query: QueryParams) -> Dict[str, Any]:
    """Drop None values so they are not sent as empty parameters."""
    if not query:
        return {}
    return {key: value for key, value in query.items() if value is not None}


def _multipart(data: Any) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """
    Split a multipart body into httpx (data, files).

    Accepts a mapping of field -> value, where bytes, file objects and
    (filename, content[, content_type]) tuples are sent as files, or a
    sequence of {"name", "contents", "filename"} parts.
    """
    if isinstance(data, Mapping):
        parts = [{"name": name, "contents": value} for name, value in data.items()]
    else:
        parts = list(data)

    fields: Dict[str, Any] = {}
    files: Dict[str, Any] = {}
    for part in parts:
        name, contents = part["name"], part["contents"]
        filename = part.get("filename")
        if filename is not None:
            files[name] = (filename, contents)
        elif isinstance(contents, (bytes, tuple)) or hasattr(contents, "read"):
            files[name] = contents
        else:
            fields[name] = contents
    return fields, files


class RestClient:
    """
    Low-level OpenTrade client: get/put/post/delete plus get_access_token().

    The cache is injected so several clients can share one token, and
    so tests can drive expiry with a fake clock.

    Example:
        with RestClient(StaticApiConfig("id", "secret", "https://api.example")) as client:
            token = client.get_access_token()
            response = client.get("/items", {"access_token": token})
    """

    def __init__(
        self,
        config: ApiConfig,
        settings: Optional[ClientSettings] = None,
        cache: Optional[TTLCache] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.config = config
        self.settings = settings or ClientSettings()
        self._cache = cache if cache is not None else TTLCache()
        self._logger = logging.getLogger("opentrade.api.client")

        headers = {"User-Agent": self.settings.user_agent, "Accept": "application/json"}
        headers.update(self.settings.headers)

        self._http = httpx.Client(
            base_url=config.get_url_rest(),
            timeout=self.settings.timeout_seconds,
            headers=headers,
            transport=transport,
        )

    @property
    def cache(self) -> TTLCache:
        return self._cache

    # =========================================================================
    # Access token
    # =========================================================================

    def get_access_token(self) -> str:
        """
        Return a valid access token, requesting a new one on cache miss.

        Raises:
            AuthError: the authorization endpoint answered with a non-200 status
            MalformedResponseError: the token response is not JSON or has no access_token
        """
        return self._cache.get_or_load(
            ACCESS_TOKEN_KEY,
            self._fetch_access_token,
            self.settings.token_ttl_seconds,
        )

    def invalidate_access_token(self) -> bool:
        """Forget the cached token. The next call requests a new one."""
        return self._cache.delete(ACCESS_TOKEN_KEY)

    def _fetch_access_token(self) -> str:
        grant = {
            "client_id": self.config.get_client_id(),
            "client_secret": self.config.get_secret(),
            "grant_type": "client_credentials",
        }
        url_auth = self.config.get_url_auth()

        start = time.monotonic()
        response = self._http.post(url_auth, data=grant)
        elapsed_ms = (time.monotonic() - start) * 1000

        if response.status_code != 200:
            self._logger.error(f"Access token request refused: HTTP {response.status_code}")
            raise AuthError(
                AuthError.DEFAULT_MESSAGE,
                http_status=response.status_code,
                debug_detail=response.text,
            )

        try:
            token = response.json().get("access_token")
        except (ValueError, AttributeError) as e:
            raise MalformedResponseError(
                MalformedResponseError.DEFAULT_MESSAGE,
                http_status=response.status_code,
                debug_detail=f"token response: {response.text[:500]}",
            ) from e

        if not token:
            raise MalformedResponseError(
                MalformedResponseError.DEFAULT_MESSAGE,
                http_status=response.status_code,
                debug_detail="token response has no access_token",
            )

        self._logger.info(f"Access token refreshed ({elapsed_ms:.0f}ms)")
        return token

    def authorized_query(self, query: QueryParams = None, with_client_id: bool = False) -> Dict[str, Any]:
        """Query parameters carrying the access token (and the client id when asked)."""
        params: Dict[str, Any] = {}
        if with_client_id:
            params["client_id"] = self.config.get_client_id()
        params["access_token"] = self.get_access_token()
        params.update(_clean_query(query))
        return params

    # =========================================================================
    # HTTP primitives
    # =========================================================================

    def get(self, path: str, query: QueryParams = None, timeout: Optional[float] = None) -> httpx.Response:
        """Make a GET request."""
        return self._request("GET", path, query, timeout=timeout)

    def delete(self, path: str, query: QueryParams = None, timeout: Optional[float] = None) -> httpx.Response:
        """Make a DELETE request."""
        return self._request("DELETE", path, query, timeout=timeout)

    def post(
        self,
        path: str,
        body_type: Union[BodyType, str],
        data: Any,
        query: QueryParams = None,
        timeout: Optional[float] = None,
    ) -> httpx.Response:
        """Make a POST request with a multipart, form or JSON body."""
        return self._request("POST", path, query, BodyType.coerce(body_type), data, timeout)

    def put(
        self,
        path: str,
        body_type: Union[BodyType, str],
        data: Any,
        query: QueryParams = None,
        timeout: Optional[float] = None,
    ) -> httpx.Response:
        """Make a PUT request with a multipart, form or JSON body."""
        return self._request("PUT", path, query, BodyType.coerce(body_type), data, timeout)

    def _request(
        self,
        method: str,
        path: str,
        query: QueryParams = None,
        body_type: Optional[BodyType] = None,
        data: Any = None,
        timeout: Optional[float] = None,
    ) -> httpx.Response:
        """Send one request. Non-2xx statuses are returned, not raised."""
        kwargs: Dict[str, Any] = {"params": _clean_query(query)}

        if body_type is BodyType.JSON:
            kwargs["json"] = data
        elif body_type is BodyType.FORM_PARAMS:
            kwargs["data"] = dict(data or {})
        elif body_type is BodyType.MULTIPART:
            fields, files = _multipart(data or {})
            kwargs["data"] = fields
            kwargs["files"] = files

        if timeout is not None:
            kwargs["timeout"] = timeout

        start = time.monotonic()
        response = self._http.request(method, path, **kwargs)
        elapsed_ms = (time.monotonic() - start) * 1000

        self._logger.debug(
            f"{method} {path} -> {response.status_code} ({elapsed_ms:.0f}ms)",
            extra={
                "http_method": method,
                "path": path,
                "http_status": response.status_code,
                "elapsed_ms": round(elapsed_ms, 1),
            },
        )
        return response

    @staticmethod
    def reply(response: httpx.Response) -> Reply:
        """Wrap an httpx response for the envelope decoder."""
        return Reply(response.status_code, response.text, response.reason_phrase)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "RestClient":
        return self

    def __exit__(self, *args) -> None:
        self.close()


def encode_fields(fields: Sequence[str]) -> str:
    """JSON-encode a list of field names for the 'fields' query parameter."""
    return json.dumps(list(fields))
