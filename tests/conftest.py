import json

import pytest

from oauth_relay.codec import RedirectState
from oauth_relay.config import ConfigStore

TOKEN_URI = "https://api.example.com/oauth/token"


@pytest.fixture
def relay_config() -> dict:
    return {
        "local": {"httpPort": 8080, "configSamplePeriod": 0},
        "remote": [
            {
                "tokenUri": TOKEN_URI,
                "clientId": "foo",
                "clientSecret": "shh",
                "redirectBackHosts": ["https://app.example.com", "localhost"],
            }
        ],
    }


@pytest.fixture
def relay_config_text(relay_config: dict) -> str:
    return json.dumps(relay_config)


@pytest.fixture
def store(relay_config_text: str) -> ConfigStore:
    store = ConfigStore()
    store.load(relay_config_text)
    return store


@pytest.fixture
def redirect_state() -> RedirectState:
    return RedirectState(
        client_id="foo",
        token_uri=TOKEN_URI,
        redirect_uri="https://relay.example.com/cb",
        scope=["read"],
        redirect_back_uri="https://app.example.com",
        state="xyz",
    )
