"""Relay configuration: the client registry and the local listener settings.

The configuration is a single JSON document::

    {
        "local": {"httpPort": 8000, "configSamplePeriod": 30},
        "remote": [
            {
                "tokenUri": "https://api.example.com/oauth/token",
                "clientId": "foo",
                "clientSecret": "shh",
                "redirectBackHosts": ["https://app.example.com", "localhost"]
            }
        ]
    }

`ConfigStore` keeps the last good parse of that document as an immutable
`ConfigSnapshot`. A reload builds a complete new snapshot and swaps it in with
a single assignment, so a request that has read the snapshot keeps a
consistent view for as long as it runs.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict, Field, SecretStr, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from oauth_relay.exceptions import ConfigError
from oauth_relay.utilities.logging import get_logger

logger = get_logger(__name__)

ClientKey = tuple[str, str]
ConfigIndex = Mapping[ClientKey, "RemoteClientConfig"]


class RedirectBackHost(BaseModel):
    """A host a client application may be redirected back to."""

    model_config = ConfigDict(frozen=True)

    host: str
    ssl: bool = False


def parse_host(value: str) -> RedirectBackHost:
    """Parse an allow-list entry given as a bare host or a URL.

    Only an explicit `https` scheme makes https mandatory; bare hosts and
    `http` URLs do not. Everything but the host name is dropped.

    Examples:
        parse_host("https://example.com") -> host="example.com", ssl=True
        parse_host("example.com") -> host="example.com", ssl=False
    """
    value = value.strip()
    parts = urlsplit(value if "://" in value else f"//{value}")
    if not parts.hostname:
        raise ValueError(f"No host in redirect-back entry {value!r}")
    return RedirectBackHost(host=parts.hostname, ssl=parts.scheme.lower() == "https")


class RemoteClientConfig(BaseModel):
    """A client application the relay exchanges codes for."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )

    token_uri: str
    client_id: str
    client_secret: SecretStr
    redirect_back_hosts: list[RedirectBackHost] = Field(default_factory=list)

    @property
    def key(self) -> ClientKey:
        return (self.client_id, self.token_uri)

    @field_validator("redirect_back_hosts", mode="before")
    @classmethod
    def _parse_hosts(cls, value: Any) -> Any:
        if isinstance(value, list):
            return [parse_host(v) if isinstance(v, str) else v for v in value]
        return value


class LocalServerConfig(BaseModel):
    """Settings for the relay's own listener."""

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    http_port: int = Field(default=8000, alias="httpPort", ge=0, le=65535)
    config_sample_period_seconds: int = Field(
        default=0,
        alias="configSamplePeriod",
        description="Seconds between config file samples; 0 or less disables sampling",
    )

    @property
    def sampling_enabled(self) -> bool:
        return self.config_sample_period_seconds > 0


class RelayConfig(BaseModel):
    """The on-disk shape of the relay configuration."""

    local: LocalServerConfig = Field(default_factory=LocalServerConfig)
    remote: list[RemoteClientConfig] = Field(default_factory=list)


def build_index(remotes: list[RemoteClientConfig]) -> ConfigIndex:
    """Key client configurations by (client id, token endpoint).

    When two entries share a key the later one wins.
    """
    index: dict[ClientKey, RemoteClientConfig] = {}
    for remote in remotes:
        if remote.key in index:
            logger.warning(
                "Duplicate client %r for token endpoint %r; the later entry replaces the earlier one",
                remote.client_id,
                remote.token_uri,
            )
        index[remote.key] = remote
    return MappingProxyType(index)


@dataclass(frozen=True)
class ConfigSnapshot:
    local: LocalServerConfig = field(default_factory=LocalServerConfig)
    index: ConfigIndex = field(default_factory=lambda: MappingProxyType({}))
    raw_text: str | None = None


class ConfigStore:
    """Holds the currently active `ConfigSnapshot`.

    Reads never block and never see a half-applied reload: `reload` builds a
    snapshot off to the side and `commit` publishes it with one assignment.
    """

    def __init__(self, snapshot: ConfigSnapshot | None = None):
        self._snapshot = snapshot
        self._rejected_text: str | None = None

    @property
    def has_snapshot(self) -> bool:
        """Whether any configuration has ever been committed."""
        return self._snapshot is not None

    def snapshot(self) -> ConfigSnapshot:
        return self._snapshot or ConfigSnapshot()

    def current_local(self) -> LocalServerConfig:
        return self.snapshot().local

    def current_index(self) -> ConfigIndex:
        return self.snapshot().index

    def reload(self, raw_text: str) -> ConfigSnapshot | None:
        """Parse `raw_text` into a new snapshot without making it active.

        Returns None if `raw_text` is identical to the text behind the active
        snapshot, or to the text most recently rejected; there is nothing to
        do in either case.

        Raises:
            ConfigError: if `raw_text` is not a valid relay configuration. The
                active snapshot is left untouched.
        """
        if self._snapshot is not None and raw_text == self._snapshot.raw_text:
            logger.debug("Relay configuration unchanged, skipping reload")
            return None
        if raw_text == self._rejected_text:
            logger.debug("Relay configuration unchanged since it was rejected, skipping reload")
            return None

        try:
            config = RelayConfig.model_validate_json(raw_text)
        except ValidationError as e:
            self._rejected_text = raw_text
            raise ConfigError(f"Invalid relay configuration: {e}") from e
        self._rejected_text = None

        if not config.remote:
            logger.warning(
                "Relay configuration has no remote clients; every request will be rejected"
            )

        return ConfigSnapshot(
            local=config.local,
            index=build_index(config.remote),
            raw_text=raw_text,
        )

    def commit(self, snapshot: ConfigSnapshot) -> None:
        previous = self._snapshot
        self._snapshot = snapshot
        if previous is not None and previous.local.http_port != snapshot.local.http_port:
            logger.warning(
                "httpPort changed from %d to %d; restart the relay to listen on the new port",
                previous.local.http_port,
                snapshot.local.http_port,
            )
        logger.info(
            "Relay configuration loaded with %d client(s)", len(snapshot.index)
        )

    def load(self, raw_text: str) -> bool:
        """Reload and commit in one step.

        Returns:
            True if a new snapshot is now active, False if the text was
            unchanged.

        Raises:
            ConfigError: if `raw_text` is not a valid relay configuration
        """
        snapshot = self.reload(raw_text)
        if snapshot is None:
            return False
        self.commit(snapshot)
        return True
