"""ASGI application and uvicorn runner for the relay."""

from __future__ import annotations

import signal
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import anyio
import uvicorn
from starlette.applications import Starlette

from oauth_relay.config import ConfigStore
from oauth_relay.server.exchange import TokenExchanger
from oauth_relay.server.relay import RedirectRelay
from oauth_relay.server.watcher import ConfigWatcher
from oauth_relay.settings import Settings
from oauth_relay.utilities.logging import get_logger

logger = get_logger(__name__)


def create_app(
    store: ConfigStore,
    *,
    settings: Settings | None = None,
    exchanger: TokenExchanger | None = None,
    watcher: ConfigWatcher | None = None,
    reload_on_sighup: bool = True,
) -> Starlette:
    """Build the relay's Starlette application.

    Args:
        store: Configuration store the relay reads on every request.
        settings: Process settings. Defaults to the global settings.
        exchanger: Token exchanger. Defaults to one bounded by
            `settings.token_exchange_timeout`.
        watcher: If given, runs for the lifetime of the application to keep
            `store` current.
        reload_on_sighup: Whether SIGHUP triggers a reload through `watcher`.
    """
    if settings is None:
        import oauth_relay

        settings = oauth_relay.settings

    if exchanger is None:
        exchanger = TokenExchanger(timeout=settings.token_exchange_timeout)

    relay = RedirectRelay(store, exchanger, callback_path=settings.callback_path)

    @asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        if watcher is None:
            yield
            return
        async with anyio.create_task_group() as tg:
            tg.start_soon(watcher.run)
            if reload_on_sighup and hasattr(signal, "SIGHUP"):
                tg.start_soon(watcher.watch_signal)
            try:
                yield
            finally:
                tg.cancel_scope.cancel()

    app = Starlette(routes=relay.get_routes(), lifespan=lifespan)
    app.state.relay = relay
    return app


async def run_http_async(
    store: ConfigStore,
    watcher: ConfigWatcher,
    *,
    settings: Settings,
    host: str | None = None,
    port: int | None = None,
    log_level: str | None = None,
) -> None:
    """Serve the relay with uvicorn until interrupted.

    The listen port defaults to `httpPort` from the loaded configuration.
    """
    host = host or settings.host
    port = port if port is not None else store.current_local().http_port
    app = create_app(store, settings=settings, watcher=watcher)

    config = uvicorn.Config(
        app,
        host=host,
        port=port,
        log_level=(log_level or settings.log_level).lower(),
        timeout_graceful_shutdown=0,
        lifespan="on",
    )
    server = uvicorn.Server(config)
    logger.info("Starting oauth-relay on http://%s:%d%s", host, port, settings.callback_path)
    await server.serve()
