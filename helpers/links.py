"""
Link Helpers
------------
Cloudinary image transformations and SEO friendly item links.
"""

from typing import Any, Callable, Dict, Iterable, Mapping

UPLOAD_SEGMENT = "upload"
DEFAULT_CATEGORY_SLUG = "category"


def cl_transformation_url(url: str, transformation: str) -> str:
    """
    Insert a Cloudinary transformation (e.g. 'w_128,h_128') after the
    last 'upload' segment of an image URL. URLs without one are returned
    unchanged.
    """
    index = url.rfind(UPLOAD_SEGMENT)
    if index < 0:
        return url
    return url[:index] + UPLOAD_SEGMENT + "/" + transformation + url[index + len(UPLOAD_SEGMENT):]


def slugify(text: str) -> str:
    return text.replace(" ", "-").lower()


def item_link(
    wording: str,
    category_id: str,
    item_id: str,
    categories: Iterable[Mapping[str, Any]],
    route: Callable[[str, Dict[str, Any]], str],
    route_name: str = "Item",
) -> str:
    """
    Link of an item page built from its wording and the description of
    its category.

    Args:
        categories: As returned by RestRequest.get_categories()
        route: Builds a URL from a route name and its parameters
    """
    category = DEFAULT_CATEGORY_SLUG
    for candidate in categories:
        if str(candidate.get("id")) == category_id:
            category = slugify(str(candidate.get("description") or DEFAULT_CATEGORY_SLUG))
            break

    return route(route_name, {
        "wording": slugify(wording),
        "id": item_id,
        "category_name": category,
    })
