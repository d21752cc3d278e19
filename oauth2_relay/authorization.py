"""
Role checks against verified token claims.

Authorities are written ``"<role>:<permission>"`` or just ``"<permission>"``.
With the default (Keycloak) convention they resolve like this:

* ``"add-user"``            -> ``realm_access.roles`` contains ``add-user``
* ``"realm:add-user"``      -> same, explicitly
* ``"finance:year-report"`` -> ``resource_access.finance.roles`` contains ``year-report``

A missing bucket means "not authorized", never an error.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Union

from .claims import VerifiedClaims
from .config import ClaimConvention

logger = logging.getLogger(__name__)

_DEFAULT_CONVENTION = ClaimConvention()


@dataclass(frozen=True)
class RealmScoped:
    permission: str


@dataclass(frozen=True)
class ResourceScoped:
    resource: str
    permission: str


AuthorityQuery = Union[RealmScoped, ResourceScoped]


def parse_authority(authority: str, convention: ClaimConvention = _DEFAULT_CONVENTION) -> AuthorityQuery:
    """Split on the first ``:``. No role, or the realm sentinel, means realm scope."""
    role, sep, permission = authority.partition(":")
    if not sep:
        return RealmScoped(authority)
    if not role or role == convention.realm_sentinel:
        return RealmScoped(permission)
    return ResourceScoped(role, permission)


def _roles_in(bucket: Any, roles_key: str) -> frozenset[str]:
    if not isinstance(bucket, dict):
        return frozenset()
    roles = bucket.get(roles_key)
    if not isinstance(roles, list):
        return frozenset()
    return frozenset(str(r) for r in roles)


def resolve_bucket(
    claims: VerifiedClaims,
    query: AuthorityQuery,
    convention: ClaimConvention = _DEFAULT_CONVENTION,
) -> frozenset[str]:
    """Roles held in the bucket the query points at; empty when the bucket is absent."""
    if isinstance(query, RealmScoped):
        return _roles_in(claims.get(convention.realm_claim), convention.roles_key)
    resources = claims.get(convention.resource_claim)
    if not isinstance(resources, dict):
        return frozenset()
    return _roles_in(resources.get(query.resource), convention.roles_key)


def has_authority(
    claims: VerifiedClaims,
    authority: str | AuthorityQuery,
    convention: ClaimConvention = _DEFAULT_CONVENTION,
) -> bool:
    if not isinstance(claims, VerifiedClaims):
        raise TypeError("authorization requires VerifiedClaims; validate the token first")
    query = parse_authority(authority, convention) if isinstance(authority, str) else authority
    granted = query.permission in resolve_bucket(claims, query, convention)
    logger.debug("Authority check query=%s granted=%s", query, granted)
    return granted


def has_any_authority(
    claims: VerifiedClaims,
    authorities: Iterable[str | AuthorityQuery],
    convention: ClaimConvention = _DEFAULT_CONVENTION,
) -> bool:
    return any(has_authority(claims, a, convention) for a in authorities)


class AuthorizationChecker:
    """``has_authority`` bound to one provider's claim convention."""

    def __init__(self, convention: ClaimConvention = _DEFAULT_CONVENTION) -> None:
        self._convention = convention

    def parse(self, authority: str) -> AuthorityQuery:
        return parse_authority(authority, self._convention)

    def is_authorized(self, claims: VerifiedClaims, authority: str | AuthorityQuery) -> bool:
        return has_authority(claims, authority, self._convention)

    def is_authorized_any(self, claims: VerifiedClaims, authorities: Iterable[str | AuthorityQuery]) -> bool:
        return has_any_authority(claims, authorities, self._convention)
