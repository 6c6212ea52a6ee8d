"""oauth-relay CLI tools using Cyclopts."""

import importlib.metadata
import platform
import sys
from pathlib import Path
from typing import Annotated, Literal

import cyclopts
from rich.console import Console
from rich.table import Table

import oauth_relay
from oauth_relay.codec import (
    RedirectState,
    ResponseToken,
    decode_payload,
    encode_state as encode_redirect_state,
)
from oauth_relay.config import ConfigStore
from oauth_relay.exceptions import ConfigError, DecodeError
from oauth_relay.server import ConfigWatcher, run_http_async
from oauth_relay.utilities.cli import log_server_banner
from oauth_relay.utilities.logging import configure_logging, get_logger

logger = get_logger("cli")
console = Console()

app = cyclopts.App(
    name="oauth-relay",
    help="A redirect-back relay for the OAuth2 authorization code flow.",
    version=oauth_relay.__version__,
)


@app.command
def version():
    """Display version information and platform details."""
    info = {
        "oauth-relay version": oauth_relay.__version__,
        "authlib version": importlib.metadata.version("authlib"),
        "Python version": platform.python_version(),
        "Platform": platform.platform(),
        "oauth-relay root path": Path(oauth_relay.__file__).resolve().parents[1],
    }

    g = Table.grid(padding=(0, 1))
    g.add_column(style="bold", justify="left")
    g.add_column(style="cyan", justify="right")
    for k, v in info.items():
        g.add_row(k + ":", str(v).replace("\n", " "))

    console.print(g)


@app.command
async def run(
    *,
    config: Annotated[
        Path | None,
        cyclopts.Parameter(
            name=["--config", "-c"],
            help="Relay configuration file (default: OAUTH_RELAY_CONFIG_FILE or relay.json)",
        ),
    ] = None,
    host: Annotated[
        str | None,
        cyclopts.Parameter(
            "--host",
            help="Host to bind to (default: 127.0.0.1)",
        ),
    ] = None,
    port: Annotated[
        int | None,
        cyclopts.Parameter(
            name=["--port", "-p"],
            help="Port to bind to (default: httpPort from the configuration file)",
        ),
    ] = None,
    log_level: Annotated[
        Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] | None,
        cyclopts.Parameter(
            name=["--log-level", "-l"],
            help="Log level",
        ),
    ] = None,
    no_banner: Annotated[
        bool,
        cyclopts.Parameter(
            "--no-banner",
            help="Don't show the startup banner",
            negative="",
        ),
    ] = False,
) -> None:
    """Run the relay.

    The configuration file is loaded once before the listener starts and is
    then reloaded every `configSamplePeriod` seconds and on SIGHUP.
    """
    settings = oauth_relay.settings
    if log_level:
        configure_logging(log_level, enable_rich_tracebacks=settings.enable_rich_tracebacks)

    config_path = config or settings.config_file
    store = ConfigStore()
    watcher = ConfigWatcher(store, config_path)
    if not watcher.load_once():
        logger.error(f"Could not load relay configuration from {config_path}")
        sys.exit(1)

    if not no_banner:
        log_server_banner(
            store,
            host=host or settings.host,
            port=port if port is not None else store.current_local().http_port,
            callback_path=settings.callback_path,
            config_file=str(config_path),
        )

    await run_http_async(
        store,
        watcher,
        settings=settings,
        host=host,
        port=port,
        log_level=log_level,
    )


@app.command
def check_config(config: Path) -> None:
    """Validate a relay configuration file and list the clients it defines.

    Args:
        config: Path to the relay configuration file
    """
    try:
        raw_text = config.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.error(f"Could not read {config}: {e}")
        sys.exit(1)

    store = ConfigStore()
    try:
        store.load(raw_text)
    except ConfigError as e:
        logger.error(str(e))
        sys.exit(1)

    local = store.current_local()
    console.print(
        f"[bold]Listener:[/bold] port {local.http_port}, "
        + (
            f"reload every {local.config_sample_period_seconds}s"
            if local.sampling_enabled
            else "periodic reload disabled"
        )
    )

    table = Table(title="Clients")
    table.add_column("Client ID", style="cyan")
    table.add_column("Token endpoint")
    table.add_column("Redirect-back hosts")
    for remote in store.current_index().values():
        hosts = ", ".join(
            f"{h.host} (https)" if h.ssl else h.host for h in remote.redirect_back_hosts
        )
        table.add_row(remote.client_id, remote.token_uri, hosts or "[red]none[/red]")
    console.print(table)


@app.command
def encode_state(
    *,
    client_id: Annotated[str, cyclopts.Parameter("--client-id", help="OAuth client ID")],
    token_uri: Annotated[
        str, cyclopts.Parameter("--token-uri", help="Authorization server token endpoint")
    ],
    redirect_uri: Annotated[
        str,
        cyclopts.Parameter("--redirect-uri", help="The relay's callback URI"),
    ],
    redirect_back_uri: Annotated[
        str,
        cyclopts.Parameter(
            "--redirect-back-uri",
            help="Where the relay sends the browser after the exchange",
        ),
    ],
    scope: Annotated[
        list[str] | None,
        cyclopts.Parameter(
            "--scope",
            help="Scope to request (can be used multiple times)",
            negative="",
        ),
    ] = None,
    state: Annotated[
        str | None,
        cyclopts.Parameter("--state", help="Opaque value handed back to the client"),
    ] = None,
) -> None:
    """Print an encoded redirect state, as a client application would build it."""
    redirect_state = RedirectState(
        client_id=client_id,
        token_uri=token_uri,
        redirect_uri=redirect_uri,
        redirect_back_uri=redirect_back_uri,
        scope=scope or [],
        state=state,
    )
    print(encode_redirect_state(redirect_state))


@app.command
def decode_fragment(fragment: str) -> None:
    """Decode the fragment the relay appended to a redirect-back URI.

    Args:
        fragment: The fragment, with or without a leading '#'
    """
    try:
        payload = decode_payload(fragment.lstrip("#"))
    except DecodeError as e:
        logger.error(str(e))
        sys.exit(1)

    if isinstance(payload, ResponseToken):
        console.print("[green]✓[/green] Token payload")
    else:
        console.print("[red]✗[/red] Error payload")
    console.print_json(payload.to_json())
