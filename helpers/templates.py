"""
Template Environment
--------------------
Shared Jinja2 environment for the HTML helpers.

Autoescaping is on: every value passed to a template is HTML-escaped,
so helpers take raw text and never escape by hand.
"""

from typing import Any

from jinja2 import BaseLoader, Environment, Template
from markupsafe import Markup

_env = Environment(loader=BaseLoader(), autoescape=True)


def compile_template(source: str) -> Template:
    """Compile a template string once, at import time of the helper module."""
    return _env.from_string(source)


def render(template: Template, **context: Any) -> Markup:
    """Render to a Markup string that will not be escaped again."""
    return Markup(template.render(**context))
