# Helpers module - View helpers for shop front-ends
# HTML fragments are rendered with Jinja2 and returned as Markup

from .sharing import share_link, social_link, whatsapp_contact_button, whatsapp_shop_button
from .pagination import pagination, route_pagination, page_links, PageLink
from .links import cl_transformation_url, item_link, slugify
from .useragent import is_user_agent_mobile
from .shop import (
    required_star, is_empty,
    get_shop_logo, get_shop_banner, get_shop_description, get_shop_tagline,
    get_shop_name, get_shop_facebook_link, get_shop_twitter_link, get_shop_instagram_link,
    is_facebook_link, is_instagram_link, is_twitter_link,
)

__all__ = [
    "share_link", "social_link", "whatsapp_contact_button", "whatsapp_shop_button",
    "pagination", "route_pagination", "page_links", "PageLink",
    "cl_transformation_url", "item_link", "slugify",
    "is_user_agent_mobile",
    "required_star", "is_empty",
    "get_shop_logo", "get_shop_banner", "get_shop_description", "get_shop_tagline",
    "get_shop_name", "get_shop_facebook_link", "get_shop_twitter_link", "get_shop_instagram_link",
    "is_facebook_link", "is_instagram_link", "is_twitter_link",
]
