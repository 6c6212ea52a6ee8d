"""Keeps the `ConfigStore` in step with the configuration file on disk."""

from __future__ import annotations

import math
import signal
from pathlib import Path

import anyio
import anyio.to_thread

from oauth_relay.config import ConfigStore
from oauth_relay.exceptions import ConfigError
from oauth_relay.utilities.logging import get_logger

logger = get_logger(__name__)


class ConfigWatcher:
    """Reloads the relay configuration from `path`.

    A reload happens every `configSamplePeriod` seconds (as set in the
    currently active configuration) and whenever `request_reload` is called.
    Unchanged file contents are a no-op. A file that is missing or fails to
    parse never replaces a configuration that loaded successfully before.
    """

    def __init__(self, store: ConfigStore, path: Path | str):
        self.store = store
        self.path = Path(path)
        self._reload_event: anyio.Event | None = None
        self._reload_pending = False

    def load_once(self) -> bool:
        """Read the file and load it into the store.

        Returns:
            True if a new configuration is now active.
        """
        try:
            raw_text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            if self.store.has_snapshot:
                logger.warning(
                    "Relay configuration %s is missing; keeping the previous configuration",
                    self.path,
                )
            else:
                logger.critical(
                    "Relay configuration %s not found and none has ever loaded; "
                    "the relay cannot serve any request",
                    self.path,
                )
            return False
        except OSError as e:
            self._report(f"Could not read relay configuration {self.path}: {e}")
            return False
        except UnicodeDecodeError as e:
            self._report(f"Relay configuration {self.path} is not valid UTF-8: {e}")
            return False

        try:
            return self.store.load(raw_text)
        except ConfigError as e:
            self._report(str(e))
            return False

    def _report(self, message: str) -> None:
        if self.store.has_snapshot:
            logger.error("%s; keeping the previous configuration", message)
        else:
            logger.critical(
                "%s; no configuration has ever loaded, the relay cannot serve any request",
                message,
            )

    def request_reload(self) -> None:
        """Ask the running watcher to reload as soon as possible."""
        self._reload_pending = True
        if self._reload_event is not None:
            self._reload_event.set()

    async def run(self) -> None:
        """Reload on the sample period or on request, until cancelled."""
        while True:
            self._reload_event = anyio.Event()
            if self._reload_pending:
                self._reload_event.set()

            local = self.store.current_local()
            delay = local.config_sample_period_seconds if local.sampling_enabled else math.inf
            with anyio.move_on_after(delay):
                await self._reload_event.wait()

            self._reload_pending = False
            await anyio.to_thread.run_sync(self.load_once)

    async def watch_signal(self, signum: int | None = None) -> None:
        """Turn a process signal into a reload request, until cancelled."""
        if signum is None:
            signum = signal.SIGHUP
        with anyio.open_signal_receiver(signum) as signals:
            async for received in signals:
                logger.info(
                    "Received %s, reloading relay configuration",
                    signal.Signals(received).name,
                )
                self.request_reload()
