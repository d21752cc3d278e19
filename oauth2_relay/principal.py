"""Serializable view of the user behind a validated token."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .claims import VerifiedClaims
from .config import ClaimConvention


@dataclass(frozen=True)
class Principal:
    """
    Small, serializable context for use by the rest of the application.

    Built only from ``VerifiedClaims``.
    """

    subject: str
    """The ``sub`` claim."""

    realm_roles: tuple[str, ...]
    resource_roles: dict[str, tuple[str, ...]] = field(default_factory=dict)
    scopes: tuple[str, ...] = ()
    preferred_username: str | None = None
    """Display only; do not use for authorization."""

    email: str | None = None
    client_id: str | None = None

    def to_dict(self) -> dict[str, object]:
        """Return a JSON-serializable dict."""
        return {
            "subject": self.subject,
            "realm_roles": list(self.realm_roles),
            "resource_roles": {k: list(v) for k, v in self.resource_roles.items()},
            "scopes": list(self.scopes),
            "preferred_username": self.preferred_username,
            "email": self.email,
            "client_id": self.client_id,
        }


def _str_list(raw: Any) -> tuple[str, ...]:
    if isinstance(raw, list):
        return tuple(str(r) for r in raw)
    if isinstance(raw, str):
        return (raw,)
    return ()


def _optional_str(raw: Any) -> str | None:
    return str(raw) if raw is not None else None


def principal_from_claims(claims: VerifiedClaims, convention: ClaimConvention | None = None) -> Principal:
    """
    Build a ``Principal`` from verified claims.

    Claim mapping notes (Keycloak-style access tokens):

    * **sub**: subject, stable per realm.
    * **realm_access.roles**: realm-wide roles.
    * **resource_access.<client>.roles**: roles scoped to one client.
    * **scope**: space-separated granted scopes (``scp`` list on some issuers).
    * **azp** / **client_id**: the client the token was issued to.
    """
    if not isinstance(claims, VerifiedClaims):
        raise TypeError("principal_from_claims requires VerifiedClaims")
    convention = convention or ClaimConvention()

    realm = claims.get(convention.realm_claim)
    realm_roles = _str_list(realm.get(convention.roles_key)) if isinstance(realm, dict) else ()

    resource_roles: dict[str, tuple[str, ...]] = {}
    resources = claims.get(convention.resource_claim)
    if isinstance(resources, dict):
        for name, bucket in resources.items():
            if isinstance(bucket, dict):
                resource_roles[str(name)] = _str_list(bucket.get(convention.roles_key))

    scope = claims.get("scope", claims.get("scp"))
    if isinstance(scope, str):
        scopes = tuple(s for s in scope.split() if s)
    else:
        scopes = _str_list(scope)

    sub = claims.get("sub")
    return Principal(
        subject=str(sub) if sub is not None else "",
        realm_roles=realm_roles,
        resource_roles=resource_roles,
        scopes=scopes,
        preferred_username=_optional_str(claims.get("preferred_username")),
        email=_optional_str(claims.get("email")),
        client_id=_optional_str(claims.get("azp") or claims.get("client_id")),
    )
