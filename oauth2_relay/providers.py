"""
Provider presets as data.

A preset only knows endpoint URLs, scope defaults and where roles live in
tokens. Loading the same shape from YAML lets deployments describe providers
without code::

    providers:
      corp-keycloak:
        token_endpoint: https://sso.example.com/realms/corp/protocol/openid-connect/token
        introspection_endpoint: https://sso.example.com/realms/corp/protocol/openid-connect/token/introspect
        jwks_uri: https://sso.example.com/realms/corp/protocol/openid-connect/certs
        issuer: https://sso.example.com/realms/corp
        claims:
          realm_claim: realm_access
          resource_claim: resource_access
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError

from .config import ClaimConvention, IntrospectionStyle, OAuth2Config
from .errors import ConfigurationError


class ClaimConventionModel(BaseModel):
    realm_claim: str = "realm_access"
    resource_claim: str = "resource_access"
    roles_key: str = "roles"
    realm_sentinel: str = "realm"

    def to_convention(self) -> ClaimConvention:
        return ClaimConvention(**self.model_dump())


class ProviderPreset(BaseModel):
    name: str = ""
    token_endpoint: str
    authorization_endpoint: str | None = None
    introspection_endpoint: str | None = None
    introspection_style: IntrospectionStyle = IntrospectionStyle.RFC7662
    revocation_endpoint: str | None = None
    end_session_endpoint: str | None = None
    jwks_uri: str | None = None
    issuer: str | None = None
    scopes: list[str] = Field(default_factory=list)
    scope_separator: str = " "
    claims: ClaimConventionModel = Field(default_factory=ClaimConventionModel)

    def to_config(self, client_id: str, client_secret: str | None = None, **overrides: Any) -> OAuth2Config:
        """Combine the preset with client credentials into an ``OAuth2Config``."""
        values: dict[str, Any] = {
            "client_id": client_id,
            "client_secret": client_secret,
            "token_endpoint": self.token_endpoint,
            "authorization_endpoint": self.authorization_endpoint,
            "introspection_endpoint": self.introspection_endpoint,
            "introspection_style": self.introspection_style,
            "revocation_endpoint": self.revocation_endpoint,
            "end_session_endpoint": self.end_session_endpoint,
            "jwks_uri": self.jwks_uri,
            "issuer": self.issuer,
            "scopes": tuple(self.scopes),
            "scope_separator": self.scope_separator,
            "claim_convention": self.claims.to_convention(),
        }
        values.update(overrides)
        return OAuth2Config(**values)


def keycloak(site: str, realm: str) -> ProviderPreset:
    base = f"{site.rstrip('/')}/realms/{realm}"
    oidc = f"{base}/protocol/openid-connect"
    return ProviderPreset(
        name="keycloak",
        token_endpoint=f"{oidc}/token",
        authorization_endpoint=f"{oidc}/auth",
        introspection_endpoint=f"{oidc}/token/introspect",
        revocation_endpoint=f"{oidc}/revoke",
        end_session_endpoint=f"{oidc}/logout",
        jwks_uri=f"{oidc}/certs",
        issuer=base,
        scopes=["openid"],
    )


def google() -> ProviderPreset:
    return ProviderPreset(
        name="google",
        token_endpoint="https://oauth2.googleapis.com/token",
        authorization_endpoint="https://accounts.google.com/o/oauth2/v2/auth",
        introspection_endpoint="https://oauth2.googleapis.com/tokeninfo",
        introspection_style=IntrospectionStyle.TOKENINFO,
        revocation_endpoint="https://oauth2.googleapis.com/revoke",
        jwks_uri="https://www.googleapis.com/oauth2/v3/certs",
        issuer="https://accounts.google.com",
        scopes=["openid", "email", "profile"],
    )


def load_provider_presets(path: Path) -> dict[str, ProviderPreset]:
    raw_text = path.read_text(encoding="utf-8")
    raw: dict[str, Any] = yaml.safe_load(raw_text) or {}

    if "providers" not in raw:
        raise ConfigurationError(f"Missing top-level 'providers' key in config: {path}")
    providers_raw = raw["providers"] or {}
    if not isinstance(providers_raw, dict):
        raise ConfigurationError("providers must be a mapping")

    presets: dict[str, ProviderPreset] = {}
    for name, body in providers_raw.items():
        if not isinstance(body, dict):
            raise ConfigurationError(f"provider {name!r} must be a mapping")
        try:
            presets[name] = ProviderPreset.model_validate({"name": name, **body})
        except ValidationError as e:
            raise ConfigurationError(f"provider {name!r} is invalid: {e.error_count()} error(s)") from e
    return presets
