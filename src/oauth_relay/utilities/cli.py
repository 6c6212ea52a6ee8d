from __future__ import annotations

from rich.align import Align
from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

import oauth_relay
from oauth_relay.config import ConfigStore


def log_server_banner(
    store: ConfigStore,
    *,
    host: str,
    port: int,
    callback_path: str,
    config_file: str,
) -> None:
    """Creates and logs a formatted banner with relay information.

    Args:
        store: The store holding the configuration the relay starts with
        host: Host address the relay binds to
        port: Port number the relay binds to
        callback_path: Route the authorization server redirects to
        config_file: Path of the relay configuration file
    """

    title_text = Text("oauth-relay", style="bold blue")

    info_table = Table.grid(padding=(0, 1))
    info_table.add_column(style="bold", justify="center")  # Emoji column
    info_table.add_column(style="cyan", justify="left")  # Label column
    info_table.add_column(style="dim", justify="left")  # Value column

    callback_url = f"http://{host}:{port}/{callback_path.lstrip('/')}"
    info_table.add_row("🔗", "Callback URL:", callback_url)
    info_table.add_row("📄", "Config file:", config_file)

    local = store.current_local()
    reload_text = (
        f"every {local.config_sample_period_seconds}s"
        if local.sampling_enabled
        else "on SIGHUP only"
    )
    info_table.add_row("🔁", "Reload:", reload_text)
    info_table.add_row("👥", "Clients:", str(len(store.current_index())))

    info_table.add_row("", "", "")
    info_table.add_row(
        "📦",
        "Version:",
        Text(oauth_relay.__version__, style="dim white", no_wrap=True),
    )

    panel_content = Group(
        Align.center(title_text),
        "",
        Align.center(info_table),
    )

    panel = Panel(
        panel_content,
        border_style="dim",
        padding=(1, 4),
        expand=False,
    )

    console = Console(stderr=True)
    console.print(Group("\n", panel, "\n"))
