"""The redirect-back relay endpoint.

The authorization server sends the browser here with `code` and `state`.
The relay decodes the state, checks that the client and its redirect-back
host are configured, exchanges the code, and sends the browser on to the
client application with the outcome encoded in the URL fragment.

Each request runs on its own; the only shared state is the configuration
snapshot, which is read once per request and never modified in place.
"""

from __future__ import annotations

from starlette.requests import Request
from starlette.responses import JSONResponse, PlainTextResponse, RedirectResponse, Response
from starlette.routing import Route

from oauth_relay.codec import (
    RedirectState,
    ResponseTokenError,
    decode_state,
    encode_token_error,
    encode_token_success,
)
from oauth_relay.config import ConfigStore
from oauth_relay.exceptions import (
    AuthError,
    DecodeError,
    ExchangeError,
    MalformedRequest,
)
from oauth_relay.server.exchange import TokenExchanger
from oauth_relay.server.policy import authorize, resolve
from oauth_relay.utilities.logging import get_logger

logger = get_logger(__name__)


class RedirectRelay:
    """Serves the relay's callback route.

    Args:
        store: Source of the active client configuration.
        exchanger: Performs the token exchange. Defaults to a `TokenExchanger`
            with the standard timeout.
        callback_path: Route the authorization server redirects to.
    """

    def __init__(
        self,
        store: ConfigStore,
        exchanger: TokenExchanger | None = None,
        *,
        callback_path: str = "/",
    ):
        self.store = store
        self.exchanger = exchanger or TokenExchanger()
        if not callback_path.startswith("/"):
            callback_path = "/" + callback_path
        self.callback_path = callback_path

    def get_routes(self) -> list[Route]:
        return [
            Route(self.callback_path, endpoint=self.handle_redirect, methods=["GET"]),
            Route("/health", endpoint=self.handle_health, methods=["GET"]),
        ]

    async def handle_redirect(self, request: Request) -> Response:
        """Handle the authorization server's redirect back to the relay.

        Malformed requests, undecodable state and authorization failures are
        answered with a plain-text 400. Once the request is authorized the
        browser always gets a redirect, whether or not the exchange succeeds,
        so the client application sees the outcome.
        """
        try:
            code, encoded_state = _code_and_state(request)
            redirect_state = decode_state(encoded_state)

            snapshot = self.store.snapshot()
            config = resolve(
                redirect_state.client_id, redirect_state.token_uri, snapshot.index
            )
            authorize(config, redirect_state.redirect_back_uri)
        except (MalformedRequest, DecodeError, AuthError) as e:
            logger.info("Rejected redirect: %s", e)
            return PlainTextResponse(str(e), status_code=400)

        try:
            token_request = self.exchanger.build_request(config, redirect_state, code)
            token = await self.exchanger.exchange(token_request)
        except ExchangeError as e:
            logger.warning(
                "Token exchange failed for client %r: %s", redirect_state.client_id, e
            )
            payload = encode_token_error(
                ResponseTokenError(err=str(e), state=redirect_state.state)
            )
        else:
            logger.info(
                "Token issued for client %r, redirecting to %s",
                redirect_state.client_id,
                _without_fragment(redirect_state.redirect_back_uri),
            )
            payload = encode_token_success(
                token.model_copy(update={"state": redirect_state.state})
            )

        return RedirectResponse(
            url=redirect_back_url(redirect_state, payload), status_code=302
        )

    async def handle_health(self, request: Request) -> JSONResponse:
        if not self.store.has_snapshot:
            return JSONResponse(
                {"status": "unconfigured", "clients": 0}, status_code=503
            )
        return JSONResponse(
            {"status": "ok", "clients": len(self.store.current_index())}
        )


def _code_and_state(request: Request) -> tuple[str, str]:
    codes = request.query_params.getlist("code")
    states = request.query_params.getlist("state")
    if len(codes) != 1 or len(states) != 1:
        raise MalformedRequest()
    return codes[0], states[0]


def _without_fragment(uri: str) -> str:
    return uri.split("#", 1)[0]


def redirect_back_url(redirect_state: RedirectState, payload: str) -> str:
    """Build the client application URL carrying `payload` as its fragment.

    Any fragment already on the redirect-back URI is replaced.
    """
    return f"{_without_fragment(redirect_state.redirect_back_uri)}#{payload}"
