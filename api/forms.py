"""
Forms
-----
Value objects sent as request bodies.
"""

from dataclasses import dataclass
from typing import Dict

from core.errors import InvalidArgumentError


@dataclass(frozen=True)
class ContactForm:
    """A message from a visitor to a trader, sent by email through the service."""
    subject: str
    message: str
    from_email: str
    from_name: str = ""

    def __post_init__(self):
        for name in ("subject", "message", "from_email"):
            if not (getattr(self, name) or "").strip():
                raise InvalidArgumentError(f"{name} must not be empty", field=name)

    def to_form_params(self) -> Dict[str, str]:
        return {
            "subject": self.subject,
            "message": self.message,
            "from_email": self.from_email,
            "from_name": self.from_name,
        }
