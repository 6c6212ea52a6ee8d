"""Decides whether the relay may redirect a token to a given URI.

The redirect-back URI comes from the client-supplied state and is therefore
untrusted. It must match an allow-list entry held server-side for the
resolved client before any redirect is issued.
"""

from __future__ import annotations

from urllib.parse import urlsplit

from oauth_relay.config import ConfigIndex, RemoteClientConfig
from oauth_relay.exceptions import SslRequired, UnknownClient, UnknownHost


def resolve(client_id: str, token_uri: str, index: ConfigIndex) -> RemoteClientConfig:
    """Look up the client configuration for an exact (client id, token endpoint) pair."""
    try:
        return index[(client_id, token_uri)]
    except KeyError:
        raise UnknownClient(client_id, token_uri) from None


def authorize(config: RemoteClientConfig, redirect_back_uri: str) -> None:
    """Check `redirect_back_uri` against the client's allow-list.

    Raises:
        UnknownHost: if no allow-list entry has exactly the URI's host
        SslRequired: if the matching entry demands https and the URI is not https
    """
    try:
        parts = urlsplit(redirect_back_uri)
    except ValueError:
        raise UnknownHost(redirect_back_uri) from None
    host = parts.hostname or ""
    scheme = parts.scheme.lower()

    for allowed in config.redirect_back_hosts:
        if allowed.host == host:
            if allowed.ssl and scheme != "https":
                raise SslRequired(host)
            return
    raise UnknownHost(host)
