from .app import create_app, run_http_async
from .exchange import TokenExchanger, TokenRequest
from .relay import RedirectRelay
from .watcher import ConfigWatcher

__all__ = [
    "ConfigWatcher",
    "RedirectRelay",
    "TokenExchanger",
    "TokenRequest",
    "create_app",
    "run_http_async",
]
