"""Wire formats carried through the browser.

The redirect state and the token/error payloads all travel as base64-encoded
JSON objects with camelCase keys. Optional fields that are unset are left out
of the JSON entirely rather than written as null.
"""

from __future__ import annotations

import base64
import binascii
import json

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from oauth_relay.exceptions import MalformedState, NotBase64


class WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)


class RedirectState(WireModel):
    """Request context round-tripped through the authorization server.

    The client application builds this before sending the user to the
    authorization server and passes it, encoded, as the OAuth `state`
    parameter. Nothing in it is trusted until the relay has checked
    `redirect_back_uri` against the server-side allow-list.
    """

    client_id: str
    token_uri: str
    redirect_uri: str = Field(
        description="The relay's own callback URI, as given to the authorization server"
    )
    scope: list[str]
    redirect_back_uri: str = Field(
        description="Where the browser is sent once the exchange is over"
    )
    state: str | None = Field(
        default=None,
        description="Caller-chosen value handed back to the client application unchanged",
    )


class ResponseToken(WireModel):
    """A successful exchange, as delivered to the client application."""

    token: str
    expires_in: int | None = None
    refresh_token: str | None = None
    scope: list[str] = Field(default_factory=list)
    state: str | None = None


class ResponseTokenError(WireModel):
    """A failed exchange, as delivered to the client application."""

    err: str
    state: str | None = None


def _b64encode(text: str) -> str:
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


def _b64decode(value: str) -> bytes:
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as e:
        raise NotBase64(f"State is not valid base64: {e}") from e


def encode_state(state: RedirectState) -> str:
    return _b64encode(state.to_json())


def decode_state(value: str) -> RedirectState:
    """Decode an inbound `state` query parameter.

    Raises:
        NotBase64: if `value` contains characters outside the base64 alphabet
            or is incorrectly padded
        MalformedState: if the decoded bytes are not a JSON redirect state
    """
    raw = _b64decode(value)
    try:
        return RedirectState.model_validate_json(raw)
    except ValidationError as e:
        raise MalformedState(
            f"State is not a valid redirect state: {_summarize(e)}"
        ) from e


def encode_token_success(token: ResponseToken) -> str:
    return _b64encode(token.to_json())


def encode_token_error(error: ResponseTokenError) -> str:
    return _b64encode(error.to_json())


def decode_token_success(value: str) -> ResponseToken:
    try:
        return ResponseToken.model_validate_json(_b64decode(value))
    except ValidationError as e:
        raise MalformedState(f"Not a token payload: {_summarize(e)}") from e


def decode_token_error(value: str) -> ResponseTokenError:
    try:
        return ResponseTokenError.model_validate_json(_b64decode(value))
    except ValidationError as e:
        raise MalformedState(f"Not an error payload: {_summarize(e)}") from e


def decode_payload(value: str) -> ResponseToken | ResponseTokenError:
    """Decode a redirect fragment into whichever payload it carries.

    Client applications tell the two apart by the presence of a `token` or an
    `err` key; this does the same.
    """
    raw = _b64decode(value)
    try:
        data = json.loads(raw)
    except ValueError as e:
        raise MalformedState(f"Payload is not JSON: {e}") from e
    if not isinstance(data, dict):
        raise MalformedState("Payload is not a JSON object")

    try:
        if "token" in data:
            return ResponseToken.model_validate(data)
        if "err" in data:
            return ResponseTokenError.model_validate(data)
    except ValidationError as e:
        raise MalformedState(f"Payload is malformed: {_summarize(e)}") from e
    raise MalformedState("Payload carries neither a token nor an error")


def _summarize(error: ValidationError) -> str:
    parts = []
    for detail in error.errors():
        location = ".".join(str(part) for part in detail["loc"]) or "<root>"
        parts.append(f"{location}: {detail['msg']}")
    return "; ".join(parts)
