"""Client configuration from environment variables. No hardcoded secrets."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum

from .errors import ConfigurationError


class ValidationMode(str, Enum):
    """How the validator decides whether an access token is still good."""

    JWT = "jwt"
    INTROSPECTION = "introspection"


class IntrospectionStyle(str, Enum):
    RFC7662 = "rfc7662"
    TOKENINFO = "tokeninfo"


class ClientAuthMethod(str, Enum):
    BASIC = "client_secret_basic"
    POST = "client_secret_post"


GRANT_AUTHORIZATION_CODE = "authorization_code"
GRANT_PASSWORD = "password"
GRANT_CLIENT_CREDENTIALS = "client_credentials"
GRANT_REFRESH_TOKEN = "refresh_token"

_KNOWN_GRANTS = frozenset({GRANT_AUTHORIZATION_CODE, GRANT_PASSWORD, GRANT_CLIENT_CREDENTIALS})


def _getenv(key: str, default: str | None = None) -> str | None:
    return os.environ.get(key, default)


def _getenv_int(key: str, default: int) -> int:
    raw = os.environ.get(key)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _getenv_float(key: str, default: float) -> float:
    raw = os.environ.get(key)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _getenv_bool(key: str) -> bool:
    return (_getenv(key, "") or "").strip().lower() in ("1", "true", "yes")


@dataclass(frozen=True)
class ClaimConvention:
    """
    Where roles live inside an access token.

    Defaults follow Keycloak::

        {"realm_access": {"roles": [...]},
         "resource_access": {"<client>": {"roles": [...]}}}
    """

    realm_claim: str = "realm_access"
    resource_claim: str = "resource_access"
    roles_key: str = "roles"
    realm_sentinel: str = "realm"


@dataclass(frozen=True)
class OAuth2Config:
    """
    Relay-party client configuration.

    Required:
        OAUTH2_CLIENT_ID: Client id registered at the authorization server.
        OAUTH2_TOKEN_ENDPOINT: Absolute URL of the token endpoint.

    Optional:
        OAUTH2_CLIENT_SECRET: Omit for public clients.
        OAUTH2_CLIENT_AUTH_METHOD: client_secret_basic (default) or client_secret_post.
        OAUTH2_AUTHORIZATION_ENDPOINT, OAUTH2_INTROSPECTION_ENDPOINT,
        OAUTH2_REVOCATION_ENDPOINT, OAUTH2_END_SESSION_ENDPOINT, OAUTH2_JWKS_URI.
        OAUTH2_INTROSPECTION_STYLE: rfc7662 (default) or tokeninfo.
        OAUTH2_ISSUER / OAUTH2_AUDIENCE: Expected iss / aud for local validation.
        OAUTH2_VALIDATION_MODE: jwt (default) or introspection.
        OAUTH2_ALGORITHMS: Comma-separated JWS algorithms accepted locally (default RS256).
        OAUTH2_CLOCK_SKEW_SECONDS: Tolerance for exp/nbf (default 0).
        OAUTH2_JWKS_CACHE_TTL_SECONDS: How long to cache JWKS (default 3600).
        OAUTH2_HTTP_TIMEOUT_SECONDS: Default per-request timeout (default 10).
        OAUTH2_GRANT_TYPES: Comma-separated grants this client may use
            (default authorization_code,client_credentials).
        OAUTH2_PASSWORD_GRANT_ALLOWED: Must be 1/true to use the password grant.
        OAUTH2_SCOPES: Default scopes, space separated.
    """

    client_id: str
    token_endpoint: str
    client_secret: str | None = None
    client_auth_method: ClientAuthMethod = ClientAuthMethod.BASIC
    authorization_endpoint: str | None = None
    introspection_endpoint: str | None = None
    introspection_style: IntrospectionStyle = IntrospectionStyle.RFC7662
    revocation_endpoint: str | None = None
    end_session_endpoint: str | None = None
    jwks_uri: str | None = None
    issuer: str | None = None
    audience: str | None = None
    validation_mode: ValidationMode = ValidationMode.JWT
    algorithms: tuple[str, ...] = ("RS256",)
    clock_skew_seconds: int = 0
    jwks_cache_ttl_seconds: int = 3600
    http_timeout_seconds: float = 10.0
    grant_types: frozenset[str] = frozenset({GRANT_AUTHORIZATION_CODE, GRANT_CLIENT_CREDENTIALS})
    password_grant_allowed: bool = False
    scopes: tuple[str, ...] = ()
    scope_separator: str = " "
    claim_convention: ClaimConvention = field(default_factory=ClaimConvention)

    def __post_init__(self) -> None:
        if not self.client_id:
            raise ConfigurationError("client_id must be set")
        if not self.token_endpoint:
            raise ConfigurationError("token_endpoint must be set")
        unknown = set(self.grant_types) - _KNOWN_GRANTS
        if unknown:
            raise ConfigurationError(f"unknown grant types: {sorted(unknown)}")
        if GRANT_PASSWORD in self.grant_types and not self.password_grant_allowed:
            raise ConfigurationError("password grant listed but password_grant_allowed is not set")
        if self.validation_mode is ValidationMode.INTROSPECTION and not self.introspection_endpoint:
            raise ConfigurationError("introspection validation requires introspection_endpoint")
        if self.clock_skew_seconds < 0:
            raise ConfigurationError("clock_skew_seconds must not be negative")
        if not self.algorithms:
            raise ConfigurationError("at least one signing algorithm is required")

    @property
    def is_confidential(self) -> bool:
        return bool(self.client_secret)

    def allows(self, grant_type: str) -> bool:
        if grant_type == GRANT_PASSWORD:
            return self.password_grant_allowed and grant_type in self.grant_types
        return grant_type in self.grant_types

    @classmethod
    def from_environ(cls) -> OAuth2Config:
        client = _strip_or_none(_getenv("OAUTH2_CLIENT_ID"))
        token_endpoint = _strip_or_none(_getenv("OAUTH2_TOKEN_ENDPOINT"))
        if not client or not token_endpoint:
            raise ConfigurationError("OAUTH2_CLIENT_ID and OAUTH2_TOKEN_ENDPOINT must be set")

        password_allowed = _getenv_bool("OAUTH2_PASSWORD_GRANT_ALLOWED")
        grants_raw = _getenv("OAUTH2_GRANT_TYPES")
        if grants_raw:
            grants = frozenset(g.strip() for g in grants_raw.split(",") if g.strip())
        else:
            grants = frozenset({GRANT_AUTHORIZATION_CODE, GRANT_CLIENT_CREDENTIALS})
            if password_allowed:
                grants = grants | {GRANT_PASSWORD}

        try:
            return cls(
                client_id=client,
                token_endpoint=token_endpoint,
                client_secret=_strip_or_none(_getenv("OAUTH2_CLIENT_SECRET")),
                client_auth_method=ClientAuthMethod(
                    _getenv("OAUTH2_CLIENT_AUTH_METHOD", ClientAuthMethod.BASIC.value)
                ),
                authorization_endpoint=_strip_or_none(_getenv("OAUTH2_AUTHORIZATION_ENDPOINT")),
                introspection_endpoint=_strip_or_none(_getenv("OAUTH2_INTROSPECTION_ENDPOINT")),
                introspection_style=IntrospectionStyle(
                    _getenv("OAUTH2_INTROSPECTION_STYLE", IntrospectionStyle.RFC7662.value)
                ),
                revocation_endpoint=_strip_or_none(_getenv("OAUTH2_REVOCATION_ENDPOINT")),
                end_session_endpoint=_strip_or_none(_getenv("OAUTH2_END_SESSION_ENDPOINT")),
                jwks_uri=_strip_or_none(_getenv("OAUTH2_JWKS_URI")),
                issuer=_strip_or_none(_getenv("OAUTH2_ISSUER")),
                audience=_strip_or_none(_getenv("OAUTH2_AUDIENCE")),
                algorithms=_algorithms_from_env(),
                validation_mode=ValidationMode(_getenv("OAUTH2_VALIDATION_MODE", ValidationMode.JWT.value)),
                clock_skew_seconds=_getenv_int("OAUTH2_CLOCK_SKEW_SECONDS", 0),
                jwks_cache_ttl_seconds=_getenv_int("OAUTH2_JWKS_CACHE_TTL_SECONDS", 3600),
                http_timeout_seconds=_getenv_float("OAUTH2_HTTP_TIMEOUT_SECONDS", 10.0),
                grant_types=grants,
                password_grant_allowed=password_allowed,
                scopes=tuple((_getenv("OAUTH2_SCOPES", "") or "").split()),
            )
        except ValueError as e:
            # Enum lookups raise plain ValueError for unknown values.
            if isinstance(e, ConfigurationError):
                raise
            raise ConfigurationError(str(e)) from e


def _algorithms_from_env() -> tuple[str, ...]:
    raw = _getenv("OAUTH2_ALGORITHMS")
    if not raw:
        return ("RS256",)
    return tuple(a.strip() for a in raw.split(",") if a.strip())


def _strip_or_none(s: str | None) -> str | None:
    if s is None:
        return None
    t = s.strip()
    return t if t else None
