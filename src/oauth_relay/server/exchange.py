"""Token exchange against an authorization server's token endpoint."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Final

import anyio
import httpx
from authlib.integrations.httpx_client import AsyncOAuth2Client, OAuthError
from pydantic import SecretStr

from oauth_relay.codec import RedirectState, ResponseToken
from oauth_relay.config import RemoteClientConfig
from oauth_relay.exceptions import BadResponse, ExchangeTimeout, NetworkError
from oauth_relay.utilities.logging import get_logger

logger = get_logger(__name__)

# HTTP client timeout
HTTP_TIMEOUT_SECONDS: Final[float] = 30.0

TOKEN_REQUEST_HEADERS: Final[Mapping[str, str]] = {
    "Accept": "application/json",
    "Content-Type": "application/x-www-form-urlencoded;charset=UTF-8",
}


@dataclass(frozen=True)
class TokenRequest:
    """Everything needed to call a token endpoint for one authorization code."""

    url: str
    client_id: str
    client_secret: SecretStr
    code: str
    redirect_uri: str
    scope: tuple[str, ...] = ()
    headers: Mapping[str, str] = field(default_factory=lambda: dict(TOKEN_REQUEST_HEADERS))
    grant_type: str = "authorization_code"


class TokenExchanger:
    """Exchanges authorization codes for access tokens.

    Requests go through authlib's httpx-based OAuth client using
    `client_secret_post`, so the client credentials travel in the form body.
    The OAuth `state` is never sent to the token endpoint.

    Args:
        timeout: Upper bound in seconds on a whole exchange.
        transport: Optional httpx transport, for routing requests somewhere
            other than the network.
    """

    def __init__(
        self,
        timeout: float = HTTP_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._timeout = timeout
        self._transport = transport

    @property
    def timeout(self) -> float:
        return self._timeout

    def build_request(
        self,
        config: RemoteClientConfig,
        redirect_state: RedirectState,
        code: str,
    ) -> TokenRequest:
        # config.token_uri is part of the lookup key, so it always agrees
        # with redirect_state.token_uri
        return TokenRequest(
            url=config.token_uri,
            client_id=config.client_id,
            client_secret=config.client_secret,
            code=code,
            redirect_uri=redirect_state.redirect_uri,
            scope=tuple(redirect_state.scope),
        )

    async def exchange(self, request: TokenRequest) -> ResponseToken:
        """Call the token endpoint and parse its answer.

        The returned token has no `state`; the caller copies it over from the
        redirect state.

        Raises:
            ExchangeTimeout: if the endpoint does not answer within the timeout
            NetworkError: if the endpoint cannot be reached
            BadResponse: if the endpoint answers with an error, a non-2xx
                status or a body that is not a bearer token
        """
        oauth_client = AsyncOAuth2Client(
            client_id=request.client_id,
            client_secret=request.client_secret.get_secret_value(),
            token_endpoint_auth_method="client_secret_post",
            timeout=self._timeout,
            transport=self._transport,
        )
        oauth_client.register_compliance_hook(
            "access_token_response", _reject_unsuccessful
        )

        token_params: dict[str, Any] = {
            "url": request.url,
            "code": request.code,
            "redirect_uri": request.redirect_uri,
            "grant_type": request.grant_type,
            "headers": dict(request.headers),
        }
        if request.scope:
            token_params["scope"] = " ".join(request.scope)

        logger.debug(
            "Exchanging code for client %r at %s", request.client_id, request.url
        )
        try:
            async with oauth_client:
                with anyio.fail_after(self._timeout):
                    data: dict[str, Any] = await oauth_client.fetch_token(  # type: ignore[misc]
                        **token_params
                    )
        except (TimeoutError, httpx.TimeoutException) as e:
            raise ExchangeTimeout(
                f"Token endpoint {request.url} did not answer within {self._timeout:g}s"
            ) from e
        except httpx.TransportError as e:
            raise NetworkError(
                f"Could not reach token endpoint {request.url}: {e}"
            ) from e
        except OAuthError as e:
            description = f": {e.description}" if e.description else ""
            raise BadResponse(f"Token endpoint refused the code: {e.error}{description}") from e
        except (ValueError, TypeError) as e:
            raise BadResponse(f"Token endpoint answered with an unusable body: {e}") from e

        token = parse_token_response(data)
        logger.debug("Code exchanged for client %r", request.client_id)
        return token


def _reject_unsuccessful(resp: httpx.Response) -> httpx.Response:
    # OAuth error bodies are left for authlib to raise as OAuthError
    if resp.is_success:
        return resp
    try:
        body = resp.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and "error" in body:
        return resp
    raise BadResponse(f"Token endpoint answered HTTP {resp.status_code}")


def parse_token_response(data: Mapping[str, Any]) -> ResponseToken:
    """Turn a token endpoint's JSON answer into a `ResponseToken`.

    Only bearer tokens are accepted. A missing `token_type` is taken to mean
    bearer, since several providers leave it out.
    """
    access_token = data.get("access_token")
    if not isinstance(access_token, str) or not access_token:
        raise BadResponse("Token endpoint answer has no access_token")

    token_type = data.get("token_type") or "bearer"
    if str(token_type).lower() != "bearer":
        raise BadResponse(f"Unsupported token type {token_type!r}")

    expires_in = data.get("expires_in")
    if expires_in is not None:
        try:
            expires_in = int(expires_in)
        except (TypeError, ValueError):
            raise BadResponse(f"Invalid expires_in {expires_in!r}") from None

    refresh_token = data.get("refresh_token")
    if refresh_token is not None and not isinstance(refresh_token, str):
        raise BadResponse("Invalid refresh_token")

    scope = data.get("scope")
    if scope is None:
        scopes: list[str] = []
    elif isinstance(scope, str):
        scopes = scope.split()
    elif isinstance(scope, list) and all(isinstance(s, str) for s in scope):
        scopes = scope
    else:
        raise BadResponse(f"Invalid scope {scope!r}")

    return ResponseToken(
        token=access_token,
        expires_in=expires_in,
        refresh_token=refresh_token or None,
        scope=scopes,
    )
