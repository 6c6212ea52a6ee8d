"""Tests for the redirect state and payload wire formats."""

import base64
import json

import pytest

from oauth_relay.codec import (
    RedirectState,
    ResponseToken,
    ResponseTokenError,
    decode_payload,
    decode_state,
    decode_token_error,
    decode_token_success,
    encode_state,
    encode_token_error,
    encode_token_success,
)
from oauth_relay.exceptions import DecodeError, MalformedState, NotBase64


def _b64json(data) -> str:
    return base64.b64encode(json.dumps(data).encode()).decode()


class TestRedirectState:
    def test_round_trip(self, redirect_state):
        assert decode_state(encode_state(redirect_state)) == redirect_state

    def test_round_trip_without_state(self, redirect_state):
        stateless = redirect_state.model_copy(update={"state": None})
        assert decode_state(encode_state(stateless)) == stateless

    def test_wire_format_uses_camel_case(self, redirect_state):
        data = json.loads(base64.b64decode(encode_state(redirect_state)))
        assert data == {
            "clientId": "foo",
            "tokenUri": "https://api.example.com/oauth/token",
            "redirectUri": "https://relay.example.com/cb",
            "scope": ["read"],
            "redirectBackUri": "https://app.example.com",
            "state": "xyz",
        }

    def test_absent_state_is_omitted(self, redirect_state):
        stateless = redirect_state.model_copy(update={"state": None})
        data = json.loads(base64.b64decode(encode_state(stateless)))
        assert "state" not in data

    def test_decodes_state_built_by_a_client(self):
        encoded = _b64json(
            {
                "clientId": "foo",
                "tokenUri": "https://api.example.com/oauth/token",
                "redirectUri": "https://relay.example.com/cb",
                "scope": [],
                "redirectBackUri": "https://app.example.com",
            }
        )
        decoded = decode_state(encoded)
        assert decoded.client_id == "foo"
        assert decoded.scope == []
        assert decoded.state is None

    def test_invalid_base64_characters(self):
        with pytest.raises(NotBase64):
            decode_state("not base64!")

    def test_invalid_padding(self):
        with pytest.raises(NotBase64):
            decode_state("abc")

    def test_non_ascii_input(self):
        with pytest.raises(NotBase64):
            decode_state("é")

    def test_json_syntax_error(self):
        encoded = base64.b64encode(b"{not json").decode()
        with pytest.raises(MalformedState):
            decode_state(encoded)

    def test_schema_mismatch(self):
        with pytest.raises(MalformedState, match="redirectBackUri"):
            decode_state(_b64json({"clientId": "foo", "tokenUri": "x", "redirectUri": "y"}))

    def test_missing_scope(self, redirect_state):
        data = json.loads(base64.b64decode(encode_state(redirect_state)))
        del data["scope"]
        with pytest.raises(MalformedState, match="scope"):
            decode_state(_b64json(data))

    def test_wrong_field_type(self, redirect_state):
        data = json.loads(base64.b64decode(encode_state(redirect_state)))
        data["scope"] = "read"
        with pytest.raises(MalformedState):
            decode_state(_b64json(data))

    def test_decode_errors_share_a_base(self):
        with pytest.raises(DecodeError):
            decode_state("%%%")


class TestResponsePayloads:
    def test_token_round_trip(self):
        token = ResponseToken(
            token="abc",
            expires_in=60,
            refresh_token="def",
            scope=["read", "write"],
            state="xyz",
        )
        assert decode_token_success(encode_token_success(token)) == token

    def test_error_round_trip(self):
        error = ResponseTokenError(err="boom", state="xyz")
        assert decode_token_error(encode_token_error(error)) == error

    def test_token_omits_absent_optionals(self):
        token = ResponseToken(token="abc")
        data = json.loads(base64.b64decode(encode_token_success(token)))
        assert data == {"token": "abc", "scope": []}

    def test_error_omits_absent_state(self):
        data = json.loads(
            base64.b64decode(encode_token_error(ResponseTokenError(err="boom")))
        )
        assert data == {"err": "boom"}

    def test_compact_encoding(self):
        token = ResponseToken(token="bearer-token", expires_in=3600, state="xyz")
        expected = base64.b64encode(
            b'{"token":"bearer-token","expiresIn":3600,"scope":[],"state":"xyz"}'
        ).decode()
        assert encode_token_success(token) == expected

    def test_decode_payload_token(self):
        payload = decode_payload(encode_token_success(ResponseToken(token="abc")))
        assert isinstance(payload, ResponseToken)
        assert payload.token == "abc"

    def test_decode_payload_error(self):
        payload = decode_payload(
            encode_token_error(ResponseTokenError(err="boom", state="s"))
        )
        assert isinstance(payload, ResponseTokenError)
        assert payload.err == "boom"
        assert payload.state == "s"

    def test_decode_payload_neither(self):
        with pytest.raises(MalformedState, match="neither"):
            decode_payload(_b64json({"state": "xyz"}))

    def test_decode_payload_not_an_object(self):
        with pytest.raises(MalformedState):
            decode_payload(_b64json(["token"]))


def test_redirect_state_accepts_python_names():
    state = RedirectState(
        client_id="a",
        token_uri="b",
        redirect_uri="c",
        scope=[],
        redirect_back_uri="d",
    )
    assert state.scope == []
    assert state.state is None
