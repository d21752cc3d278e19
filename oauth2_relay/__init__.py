"""
OAuth2 / OpenID Connect relay-party client.

Obtains credentials from an authorization server (authorization-code,
password and client-credentials grants), validates them locally as JWTs or
remotely by introspection, refreshes and revokes them, and answers
Keycloak-style role checks on verified claims.

Use ``OAuth2Client`` (or ``create_client()`` for environment-driven setup).
"""

from .authorization import RealmScoped, ResourceScoped, has_authority, parse_authority
from .claims import UnverifiedClaims, VerifiedClaims
from .client import OAuth2Client, create_client
from .config import OAuth2Config, ValidationMode
from .errors import (
    ConfigurationError,
    GrantNotAllowed,
    InvalidRequest,
    OAuth2ClientError,
    OAuth2Error,
    ProtocolError,
    RefreshDenied,
    TransportError,
)
from .token import Credential
from .validator import Expired, Invalid, TransportFailure, Valid, ValidationOutcome

__all__ = [
    "ConfigurationError",
    "Credential",
    "Expired",
    "GrantNotAllowed",
    "Invalid",
    "InvalidRequest",
    "OAuth2Client",
    "OAuth2ClientError",
    "OAuth2Config",
    "OAuth2Error",
    "ProtocolError",
    "RealmScoped",
    "RefreshDenied",
    "ResourceScoped",
    "TransportError",
    "TransportFailure",
    "UnverifiedClaims",
    "Valid",
    "ValidationMode",
    "ValidationOutcome",
    "VerifiedClaims",
    "create_client",
    "has_authority",
    "parse_authority",
]
