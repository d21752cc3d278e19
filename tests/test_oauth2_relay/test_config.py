"""Tests for OAuth2Config from environment."""

import os

import pytest

from oauth2_relay.config import (
    GRANT_AUTHORIZATION_CODE,
    GRANT_CLIENT_CREDENTIALS,
    GRANT_PASSWORD,
    ClientAuthMethod,
    OAuth2Config,
    ValidationMode,
)
from oauth2_relay.errors import ConfigurationError

BASE = {
    "OAUTH2_CLIENT_ID": "web-app",
    "OAUTH2_TOKEN_ENDPOINT": "https://sso.example.com/token",
}


def test_config_requires_client_and_token_endpoint():
    with pytest.raises(ValueError, match="OAUTH2_CLIENT_ID and OAUTH2_TOKEN_ENDPOINT"):
        with _env({}):
            OAuth2Config.from_environ()


def test_config_from_environ_defaults():
    with _env(BASE):
        cfg = OAuth2Config.from_environ()
    assert cfg.client_id == "web-app"
    assert cfg.client_secret is None
    assert cfg.is_confidential is False
    assert cfg.client_auth_method is ClientAuthMethod.BASIC
    assert cfg.validation_mode is ValidationMode.JWT
    assert cfg.clock_skew_seconds == 0
    assert cfg.jwks_cache_ttl_seconds == 3600
    assert cfg.grant_types == frozenset({GRANT_AUTHORIZATION_CODE, GRANT_CLIENT_CREDENTIALS})
    assert cfg.allows(GRANT_PASSWORD) is False


def test_config_password_opt_in():
    with _env({**BASE, "OAUTH2_PASSWORD_GRANT_ALLOWED": "true"}):
        cfg = OAuth2Config.from_environ()
    assert cfg.allows(GRANT_PASSWORD) is True


def test_config_password_grant_without_opt_in():
    with pytest.raises(ConfigurationError, match="password"):
        with _env({**BASE, "OAUTH2_GRANT_TYPES": "password,client_credentials"}):
            OAuth2Config.from_environ()


def test_config_introspection_mode():
    env = {
        **BASE,
        "OAUTH2_VALIDATION_MODE": "introspection",
        "OAUTH2_INTROSPECTION_ENDPOINT": "https://sso.example.com/introspect",
        "OAUTH2_CLIENT_SECRET": " s3cret ",
        "OAUTH2_SCOPES": "openid email",
        "OAUTH2_CLOCK_SKEW_SECONDS": "30",
    }
    with _env(env):
        cfg = OAuth2Config.from_environ()
    assert cfg.validation_mode is ValidationMode.INTROSPECTION
    assert cfg.client_secret == "s3cret"
    assert cfg.scopes == ("openid", "email")
    assert cfg.clock_skew_seconds == 30


def test_config_unknown_mode():
    with pytest.raises(ConfigurationError):
        with _env({**BASE, "OAUTH2_VALIDATION_MODE": "guess"}):
            OAuth2Config.from_environ()


def test_config_fractional_http_timeout():
    with _env({**BASE, "OAUTH2_HTTP_TIMEOUT_SECONDS": "2.5"}):
        cfg = OAuth2Config.from_environ()
    assert cfg.http_timeout_seconds == 2.5


def test_config_http_timeout_default():
    with _env(BASE):
        cfg = OAuth2Config.from_environ()
    assert cfg.http_timeout_seconds == 10.0


def test_config_algorithms():
    with _env({**BASE, "OAUTH2_ALGORITHMS": "RS256, ES256"}):
        cfg = OAuth2Config.from_environ()
    assert cfg.algorithms == ("RS256", "ES256")


def test_config_algorithms_default():
    with _env(BASE):
        cfg = OAuth2Config.from_environ()
    assert cfg.algorithms == ("RS256",)


def test_config_empty_algorithms():
    with pytest.raises(ConfigurationError, match="algorithm"):
        with _env({**BASE, "OAUTH2_ALGORITHMS": " , "}):
            OAuth2Config.from_environ()


def _env(env: dict):
    class _Env:
        def __enter__(self):
            self._saved = os.environ.copy()
            os.environ.clear()
            os.environ.update(env)
            return self

        def __exit__(self, *args):
            os.environ.clear()
            os.environ.update(self._saved)
            return False

    return _Env()
