"""
Pytest fixtures for the test suite.

Nothing here talks to a real authorization server: ``StubTransport`` stands in
for the HTTP layer, records every request and replays queued responses.
"""
from __future__ import annotations

import json
import time
from typing import Any
from urllib.parse import urlsplit

import jwt
import pytest
from cryptography.hazmat.primitives.asymmetric import rsa
from jwt.algorithms import RSAAlgorithm

from oauth2_relay.config import OAuth2Config
from oauth2_relay.errors import TransportError
from oauth2_relay.transport import HttpRequest, HttpResponse

TOKEN_URL = "https://sso.example.com/realms/corp/protocol/openid-connect/token"
INTROSPECT_URL = "https://sso.example.com/realms/corp/protocol/openid-connect/token/introspect"
REVOKE_URL = "https://sso.example.com/realms/corp/protocol/openid-connect/revoke"
LOGOUT_URL = "https://sso.example.com/realms/corp/protocol/openid-connect/logout"
JWKS_URL = "https://sso.example.com/realms/corp/protocol/openid-connect/certs"
AUTH_URL = "https://sso.example.com/realms/corp/protocol/openid-connect/auth"
ISSUER = "https://sso.example.com/realms/corp"


class StubTransport:
    """Replays queued responses per URL path and records requests."""

    def __init__(self) -> None:
        self.requests: list[tuple[HttpRequest, float | None]] = []
        self._queues: dict[str, list[Any]] = {}

    def add(
        self, url: str, status: int = 200, body: Any = None, raw: bytes | None = None, replace: bool = False
    ) -> None:
        """Queue a response. The last queued response repeats until another is added."""
        if replace:
            self._queues.pop(urlsplit(url).path, None)
        payload = raw if raw is not None else (json.dumps(body).encode() if body is not None else b"")
        self._queues.setdefault(urlsplit(url).path, []).append(HttpResponse(status_code=status, body=payload))

    def fail(self, url: str, reason: str = "timeout") -> None:
        self._queues.setdefault(urlsplit(url).path, []).append(TransportError(reason, url))

    def perform(self, request: HttpRequest, timeout: float | None = None) -> HttpResponse:
        self.requests.append((request, timeout))
        queue = self._queues.get(urlsplit(request.url).path)
        if not queue:
            raise AssertionError(f"unexpected request to {request.url}")
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, Exception):
            raise item
        return item

    @property
    def last(self) -> HttpRequest:
        return self.requests[-1][0]


class Clock:
    def __init__(self, now: float | None = None) -> None:
        self.now = time.time() if now is None else now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def transport() -> StubTransport:
    return StubTransport()


@pytest.fixture
def clock() -> Clock:
    return Clock()


def make_config(**overrides: Any) -> OAuth2Config:
    values: dict[str, Any] = {
        "client_id": "web-app",
        "client_secret": "s3cret",
        "token_endpoint": TOKEN_URL,
        "authorization_endpoint": AUTH_URL,
        "introspection_endpoint": INTROSPECT_URL,
        "revocation_endpoint": REVOKE_URL,
        "jwks_uri": JWKS_URL,
        "issuer": ISSUER,
        "audience": "account",
    }
    values.update(overrides)
    return OAuth2Config(**values)


@pytest.fixture
def config() -> OAuth2Config:
    return make_config()


@pytest.fixture(scope="session")
def rsa_keys():
    """(private_key, public_jwk_dict) with kid ``test-key-1``."""
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    jwk = RSAAlgorithm.to_jwk(private_key.public_key(), as_dict=True)
    jwk["kid"] = "test-key-1"
    jwk["alg"] = "RS256"
    jwk["use"] = "sig"
    return private_key, jwk


@pytest.fixture(scope="session")
def other_private_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


def mint(private_key, kid: str = "test-key-1", **claims: Any) -> str:
    now = int(time.time())
    payload: dict[str, Any] = {
        "sub": "user-1",
        "iss": ISSUER,
        "aud": "account",
        "exp": now + 300,
        "nbf": now - 60,
        "iat": now,
    }
    payload.update(claims)
    for key in [k for k, v in payload.items() if v is None]:
        del payload[key]
    return jwt.encode(payload, private_key, algorithm="RS256", headers={"kid": kid})
