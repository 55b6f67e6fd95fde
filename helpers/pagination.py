"""
Pagination Helpers
------------------
Bootstrap pagination bars: First, Previous, page numbers, Next, Last.

Up to 8 pages every number is shown. Beyond that the bar shows
1, 2, ..., the pages around the current one, ..., n-1, n.

Pages are numbered from 1. Invalid input (empty path or route,
negative page count, current page out of range) renders nothing.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional

from markupsafe import Markup

from .templates import compile_template, render

MAX_FULL_PAGES = 8

_PAGINATION = compile_template(
    '<ul class="pagination">'
    "{% for link in links %}"
    "<li{% if link.item_class %} class=\"{{ link.item_class }}\"{% endif %}>"
    "<a{% if link.rel %} rel=\"{{ link.rel }}\"{% endif %}"
    "{% if link.css_class %} class=\"{{ link.css_class }}\"{% endif %}"
    "{% if link.title %} title=\"{{ link.title }}\"{% endif %}"
    "{% if link.href is not none %} href=\"{{ link.href }}\"{% endif %}>"
    "{{ link.label }}</a></li>"
    "{% endfor %}"
    "</ul>"
)


@dataclass(frozen=True)
class PageLink:
    """One <li> of the pagination bar. No href means not clickable."""
    label: str
    href: Optional[str] = None
    title: str = ""
    css_class: str = ""
    rel: str = ""
    item_class: str = ""


def _ellipsis() -> PageLink:
    return PageLink("...", css_class="to-hide", item_class="disabled")


def _number(page: int, href: Callable[[int], str], css_class: str = "to-hide link-loader") -> PageLink:
    return PageLink(str(page), href(page), title=f"go to page {page}", css_class=css_class, rel="nofollow")


def page_links(n_pages: int, current: int, href: Callable[[int], str]) -> List[PageLink]:
    """Entries of the pagination bar, href(page) builds the link of a page."""
    links = [PageLink("First", href(1), title="go to the first page", css_class="to-hide")]

    if current <= 1:
        links.append(PageLink("Previous", item_class="disabled"))
    else:
        links.append(PageLink("Previous", href(current - 1), title="go to the previous page",
                              css_class="link-loader", rel="prev"))

    if n_pages <= MAX_FULL_PAGES:
        links.extend(_number(page, href, css_class="link-loader") for page in range(1, n_pages + 1))
    else:
        links.append(PageLink("1", href(1), title="go to page 1", css_class="to-hide link-loader"))
        links.append(_number(2, href))
        links.append(_ellipsis())

        if 3 < current < n_pages - 1:
            links.append(_number(current - 1, href))
            links.append(PageLink(str(current), title=f"go to page {current}", css_class="to-hide",
                                  rel="nofollow", item_class="active"))
            links.append(_number(current + 1, href))
            links.append(_ellipsis())

        links.append(_number(n_pages - 1, href))
        links.append(_number(n_pages, href))

    if current == n_pages:
        links.append(PageLink("Next", item_class="disabled to-hide"))
    else:
        links.append(PageLink("Next", href(current + 1), title="go to the next page",
                              css_class="link-loader", rel="next"))

    links.append(PageLink("Last", href(n_pages), title="go to the last page",
                          css_class="to-hide link-loader", rel="nofollow"))
    return links


def _valid(n_pages: int, current: int) -> bool:
    return n_pages >= 0 and 0 <= current <= n_pages


def pagination(path: str, n_pages: int, current: int,
               url: Optional[Callable[[str], str]] = None) -> Markup:
    """
    Pagination bar whose links are <url(path)>/<page>.

    Args:
        path: Relative path, e.g. /shops/acme/items
        url: Turns path into an absolute URL (identity by default)
    """
    if not path or not _valid(n_pages, current):
        return Markup("")

    base = (url(path) if url is not None else path).rstrip("/")
    return render(_PAGINATION, links=page_links(n_pages, current, lambda page: f"{base}/{page}"))


def route_pagination(
    route_name: str,
    parameters: Mapping[str, Any],
    pagination_parameter: str,
    n_pages: int,
    current: int,
    route: Callable[[str, Dict[str, Any]], str],
) -> Markup:
    """
    Pagination bar whose links come from a named route.

    Args:
        parameters: Route parameters shared by every page
        pagination_parameter: Name of the route parameter holding the page number
        route: Builds a URL from a route name and its parameters
    """
    if not route_name or not _valid(n_pages, current):
        return Markup("")

    def href(page: int) -> str:
        return route(route_name, {**parameters, pagination_parameter: page})

    return render(_PAGINATION, links=page_links(n_pages, current, href))
