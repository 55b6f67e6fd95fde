"""
Sharing Helpers
---------------
Share links and buttons for social networks, email and WhatsApp.
"""

from dataclasses import dataclass
from typing import Iterable, List, Sequence
from urllib.parse import quote, quote_plus
import warnings

from markupsafe import Markup

from .templates import compile_template, render

SHARE_URLS = {
    "telegram": "https://telegram.me/share/url?url={url}&text={title}",
    "facebook": "https://www.facebook.com/sharer/sharer.php?u={url}",
    "email": "mailto:foo@example.com?subject={title}&body={url}",
    "whatsapp": "whatsapp://send?text={title} {url}",
    "twitter": "https://twitter.com/intent/tweet?url={url}&text={title}&hashtags=opentrade",
}

_SOCIAL_LINK = compile_template(
    '<{{ tag }} class="{{ tag_class }}">'
    "{% for button in buttons %}"
    "<a onclick=\"pop({_token:'{{ csrf_token }}', what:'sharing', platform:'{{ button.platform }}'})\""
    ' target="_blank" href="{{ button.href }}" title="share on {{ button.platform }}"'
    ' class="btn {{ button.button_class }}"><i class="{{ button.icon_class }}"></i></a> <b></b>'
    "{% endfor %}"
    "</{{ tag }}>"
)

_WHATSAPP_CONTACT = compile_template(
    "<a class='btn btn-success border-squared' rel='noopener' href='{{ href }}'"
    " target='_blank' title='Contact the seller on WhatsApp'>"
    "<i class='fab fa-whatsapp'></i></a>"
)

_WHATSAPP_SHOP = compile_template(
    "<a class='btn btn-success border-squared' href='{{ href }}' target='_blank'"
    " title='{{ inner_text }}'>{{ inner_text }}</a>"
)


@dataclass(frozen=True)
class ShareButton:
    platform: str
    href: str
    icon_class: str
    button_class: str


def share_link(platform: str, link: str, title: str) -> str:
    """
    Share URL of link on a platform: telegram, facebook, email, whatsapp
    or twitter. Empty string for any other platform.
    """
    template = SHARE_URLS.get(platform)
    if template is None:
        return ""
    return template.format(url=quote(link, safe=""), title=title)


def social_link(
    link: str,
    text: str,
    platforms: Iterable[Sequence[str]],
    csrf_token: str = "",
    tag: str = "div",
    tag_class: str = "mb-top-1",
) -> Markup:
    """
    Share buttons for link, wrapped in a container tag.

    Args:
        platforms: (platform, icon css class, button css class) triples, e.g.
            [("facebook", "fab fa-facebook", "btn-primary")]
        csrf_token: Sent back by the pop() tracking call of each button
    """
    buttons: List[ShareButton] = [
        ShareButton(platform, share_link(platform, link, text), icon_class, button_class)
        for platform, icon_class, button_class in platforms
    ]
    if not buttons:
        return Markup("")

    return render(_SOCIAL_LINK, buttons=buttons, csrf_token=csrf_token, tag=tag, tag_class=tag_class)


def whatsapp_contact_button(intl_contact: str, text: str) -> Markup:
    """Deprecated: use whatsapp_shop_button()."""
    warnings.warn(
        "whatsapp_contact_button() is deprecated, use whatsapp_shop_button() instead",
        DeprecationWarning,
        stacklevel=2,
    )
    return render(_WHATSAPP_CONTACT, href=f"https://wa.me/{intl_contact}?text={text}")


def whatsapp_shop_button(is_mobile: bool, intl_contact: str, url: str, phrase: str, inner_text: str) -> Markup:
    """
    Button opening a WhatsApp conversation with the seller of an item.

    Mobile visitors get the app link, others WhatsApp Web.
    """
    text = f"{phrase} {quote_plus(url)}"
    if is_mobile:
        href = f"https://wa.me/{intl_contact}?text={text}"
    else:
        href = f"https://web.whatsapp.com/send?phone={intl_contact}&text={text}"
    return render(_WHATSAPP_SHOP, href=href, inner_text=inner_text)
