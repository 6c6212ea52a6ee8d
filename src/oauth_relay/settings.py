from __future__ import annotations as _annotations

import inspect
from pathlib import Path
from typing import Annotated, Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing_extensions import Self

LOG_LEVEL = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class Settings(BaseSettings):
    """oauth-relay process settings.

    These cover how the process runs, not which clients it serves. Per-client
    configuration lives in the JSON file named by `config_file` and is
    reloaded while the relay is running.
    """

    model_config = SettingsConfigDict(
        env_prefix="OAUTH_RELAY_",
        env_file=".env",
        extra="ignore",
        env_nested_delimiter="__",
    )

    config_file: Annotated[
        Path,
        Field(
            description=inspect.cleandoc(
                """
                Path to the JSON relay configuration, with a `local` section
                for the listener and a `remote` list of client applications.
                """
            ),
        ),
    ] = Path("relay.json")

    log_level: LOG_LEVEL = "INFO"
    enable_rich_tracebacks: Annotated[
        bool,
        Field(
            description=inspect.cleandoc(
                """
                If True, will use rich tracebacks for logging.
                """
            )
        ),
    ] = True

    # HTTP settings
    host: str = "127.0.0.1"
    callback_path: Annotated[
        str,
        Field(
            description=inspect.cleandoc(
                """
                Route on which the authorization server redirects back to the
                relay. This is the path component of the `redirectUri` that
                client applications register with the authorization server.
                """
            ),
        ),
    ] = "/"

    token_exchange_timeout: Annotated[
        float,
        Field(
            gt=0,
            description=inspect.cleandoc(
                """
                Upper bound, in seconds, on a single call to an authorization
                server's token endpoint. A request whose exchange exceeds it is
                redirected back to the client application with an error.
                """
            ),
        ),
    ] = 30.0

    @field_validator("callback_path")
    @classmethod
    def _normalize_callback_path(cls, value: str) -> str:
        if not value.startswith("/"):
            value = "/" + value
        return value

    @model_validator(mode="after")
    def setup_logging(self) -> Self:
        """Finalize the settings."""
        from oauth_relay.utilities.logging import configure_logging

        configure_logging(
            self.log_level, enable_rich_tracebacks=self.enable_rich_tracebacks
        )

        return self
