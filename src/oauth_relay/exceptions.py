"""Custom exceptions for oauth-relay.

Every exception carries a human-readable message. Request-level errors are
shown verbatim in 400 responses; exchange errors travel to the client
application inside the encoded error payload.
"""


class RelayError(Exception):
    """Base error for oauth-relay."""


class MalformedRequest(RelayError):
    """The inbound redirect did not carry exactly one code and one state."""

    def __init__(self, message: str = "Bad request, missing code/state"):
        super().__init__(message)


class DecodeError(RelayError):
    """The opaque redirect state could not be decoded."""


class NotBase64(DecodeError):
    """The state is not valid base64."""


class MalformedState(DecodeError):
    """The state decoded from base64 but is not a valid redirect state."""


class AuthError(RelayError):
    """The relay is not permitted to serve this redirect."""


class UnknownClient(AuthError):
    """No client is configured for the (client id, token endpoint) pair."""

    def __init__(self, client_id: str, token_uri: str):
        self.client_id = client_id
        self.token_uri = token_uri
        super().__init__(
            f"Unknown client {client_id!r} for token endpoint {token_uri!r}"
        )


class UnknownHost(AuthError):
    """The redirect-back host is not in the client's allow-list."""

    def __init__(self, host: str):
        self.host = host
        super().__init__(f"Redirect back to host {host!r} is not allowed")


class SslRequired(AuthError):
    """The allow-list entry for the host requires https."""

    def __init__(self, host: str):
        self.host = host
        super().__init__(f"Redirect back to host {host!r} requires https")


class ExchangeError(RelayError):
    """The token exchange with the authorization server failed."""


class NetworkError(ExchangeError):
    """The token endpoint could not be reached."""


class BadResponse(ExchangeError):
    """The token endpoint answered with an error or an unusable body."""


class ExchangeTimeout(ExchangeError):
    """The token endpoint did not answer in time."""


class ConfigError(RelayError):
    """The relay configuration could not be parsed."""
