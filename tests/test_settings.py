import logging
from pathlib import Path

import pytest
from pydantic import ValidationError

from oauth_relay.settings import Settings


class TestSettings:
    def test_defaults(self, monkeypatch):
        for name in ["CONFIG_FILE", "HOST", "CALLBACK_PATH", "TOKEN_EXCHANGE_TIMEOUT"]:
            monkeypatch.delenv(f"OAUTH_RELAY_{name}", raising=False)

        settings = Settings()
        assert settings.config_file == Path("relay.json")
        assert settings.host == "127.0.0.1"
        assert settings.callback_path == "/"
        assert settings.token_exchange_timeout == 30.0

    def test_environment_prefix(self, monkeypatch):
        monkeypatch.setenv("OAUTH_RELAY_CONFIG_FILE", "/etc/relay/relay.json")
        monkeypatch.setenv("OAUTH_RELAY_TOKEN_EXCHANGE_TIMEOUT", "5")

        settings = Settings()
        assert settings.config_file == Path("/etc/relay/relay.json")
        assert settings.token_exchange_timeout == 5.0

    def test_callback_path_is_normalized(self):
        assert Settings(callback_path="oauth/callback").callback_path == "/oauth/callback"
        assert Settings(callback_path="/cb").callback_path == "/cb"

    def test_timeout_must_be_positive(self):
        with pytest.raises(ValidationError):
            Settings(token_exchange_timeout=0)

    def test_log_level_is_applied(self):
        Settings(log_level="DEBUG")
        assert logging.getLogger("OAuthRelay").level == logging.DEBUG

        Settings(log_level="INFO")
        assert logging.getLogger("OAuthRelay").level == logging.INFO
