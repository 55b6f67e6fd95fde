"""
Shop Helpers
------------
Accessors over the shop info returned by the service, with defaults
for missing or empty values, and checks on social network links.
"""

from typing import Any, Iterable, Mapping, Optional, Tuple

from markupsafe import Markup

from .templates import compile_template, render

FACEBOOK_PREFIXES = ("https://www.facebook", "https://m.facebook", "https://web.facebook", "https://facebook")
INSTAGRAM_PREFIXES = ("https://www.instagram", "https://m.instagram", "https://web.instagram", "https://instagram")
TWITTER_PREFIXES = ("https://m.twitter", "https://www.twitter", "https://twitter")

_REQUIRED_STAR = compile_template("<i style='color: {{ color }}'>*</i>")

_END = object()


def required_star(color: str = "red") -> Markup:
    """Star marking a required form field."""
    return render(_REQUIRED_STAR, color=color)


def is_empty(value: Any) -> bool:
    """
    True for None, an empty string or an empty collection.

    Raises:
        TypeError: value is neither a string nor a collection
    """
    if value is None:
        return True
    if isinstance(value, str):
        return len(value) == 0
    if hasattr(value, "__len__"):
        return len(value) == 0
    if isinstance(value, Iterable):
        return next(iter(value), _END) is _END
    raise TypeError("value must be a string, a collection or an iterable")


def _shop_value(info: Mapping[str, Any], key: str, default: Any) -> Any:
    value = info.get(key)
    return default if is_empty(value) else value


def get_shop_logo(info: Mapping[str, Any], default: str) -> Any:
    return _shop_value(info, "logo", default)


def get_shop_banner(info: Mapping[str, Any], default: str) -> Any:
    return _shop_value(info, "banner", default)


def get_shop_description(info: Mapping[str, Any], default: str = "") -> Any:
    return _shop_value(info, "description", default)


def get_shop_tagline(shop_name: str) -> str:
    """Generic description used when a shop has none."""
    return f"Explore the products available on {shop_name}."


def get_shop_name(info: Mapping[str, Any], default: str = "") -> Any:
    return _shop_value(info, "name", default)


def get_shop_facebook_link(info: Mapping[str, Any]) -> Any:
    return _shop_value(info, "facebookLink", "")


def get_shop_twitter_link(info: Mapping[str, Any]) -> Any:
    return _shop_value(info, "twitterLink", "")


def get_shop_instagram_link(info: Mapping[str, Any]) -> Any:
    return _shop_value(info, "instagramLink", "")


def _is_link_to(link: Optional[str], prefixes: Tuple[str, ...]) -> bool:
    # No link at all is acceptable in a shop form
    if link is None or link in ("", "#"):
        return True
    return link.startswith(prefixes)


def is_facebook_link(link: Optional[str]) -> bool:
    return _is_link_to(link, FACEBOOK_PREFIXES)


def is_instagram_link(link: Optional[str]) -> bool:
    return _is_link_to(link, INSTAGRAM_PREFIXES)


def is_twitter_link(link: Optional[str]) -> bool:
    return _is_link_to(link, TWITTER_PREFIXES)
