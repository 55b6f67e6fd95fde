# API module - OpenTrade REST client
# One RestRequest per application, token and collections cached per client

from .config import ApiConfig, StaticApiConfig, ManagedApiConfig
from .client import RestClient, ClientSettings, BodyType
from .forms import ContactForm
from .operations import OPERATIONS, MERCHANT_INACTIVE_MESSAGE
from .rest_request import RestRequest

__all__ = [
    "ApiConfig", "StaticApiConfig", "ManagedApiConfig",
    "RestClient", "ClientSettings", "BodyType",
    "ContactForm",
    "OPERATIONS", "MERCHANT_INACTIVE_MESSAGE",
    "RestRequest",
]
