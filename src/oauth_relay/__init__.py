"""oauth-relay - a redirect-back relay for the OAuth2 authorization code flow."""

from importlib.metadata import version
from oauth_relay.settings import Settings

settings = Settings()

from oauth_relay.codec import (
    RedirectState,
    ResponseToken,
    ResponseTokenError,
    decode_payload,
    decode_state,
    encode_state,
)
from oauth_relay.config import ConfigStore
from oauth_relay.server import RedirectRelay, TokenExchanger, create_app

__version__ = version("oauth-relay")
__all__ = [
    "ConfigStore",
    "RedirectRelay",
    "RedirectState",
    "ResponseToken",
    "ResponseTokenError",
    "TokenExchanger",
    "create_app",
    "decode_payload",
    "decode_state",
    "encode_state",
    "settings",
]
