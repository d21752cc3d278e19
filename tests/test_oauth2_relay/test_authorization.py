"""Tests for authority parsing, role checks and Principal."""

import pytest

from oauth2_relay.authorization import (
    AuthorizationChecker,
    RealmScoped,
    ResourceScoped,
    has_any_authority,
    has_authority,
    parse_authority,
)
from oauth2_relay.claims import UnverifiedClaims, VerifiedClaims
from oauth2_relay.config import ClaimConvention
from oauth2_relay.principal import principal_from_claims

CLAIMS = VerifiedClaims(
    {
        "sub": "user-1",
        "preferred_username": "alice",
        "scope": "openid email",
        "azp": "web-app",
        "realm_access": {"roles": ["admin", "add-user"]},
        "resource_access": {
            "finance": {"roles": ["year-report"]},
            "web-app": {"roles": ["print"]},
        },
    }
)


@pytest.mark.parametrize(
    "authority,expected",
    [
        ("admin", RealmScoped("admin")),
        ("realm:add-user", RealmScoped("add-user")),
        (":add-user", RealmScoped("add-user")),
        ("finance:year-report", ResourceScoped("finance", "year-report")),
        ("finance:reports:2024", ResourceScoped("finance", "reports:2024")),
    ],
)
def test_parse_authority(authority, expected):
    assert parse_authority(authority) == expected


@pytest.mark.parametrize(
    "authority,granted",
    [
        ("admin", True),
        ("realm:add-user", True),
        ("finance:year-report", True),
        ("finance:quarterly-report", False),
        ("missing-resource:x", False),
        ("web-app:print", True),
        ("print", False),
    ],
)
def test_has_authority(authority, granted):
    assert has_authority(CLAIMS, authority) is granted


def test_missing_buckets_are_not_errors():
    empty = VerifiedClaims({"sub": "x", "resource_access": "garbage"})
    assert has_authority(empty, "admin") is False
    assert has_authority(empty, "finance:year-report") is False


def test_accepts_parsed_query():
    assert has_authority(CLAIMS, ResourceScoped("finance", "year-report")) is True


def test_rejects_unverified_claims():
    unverified = UnverifiedClaims(CLAIMS.as_dict())
    with pytest.raises(TypeError):
        has_authority(unverified, "admin")


def test_has_any_authority():
    assert has_any_authority(CLAIMS, ["finance:quarterly-report", "admin"]) is True
    assert has_any_authority(CLAIMS, ["nope"]) is False


def test_custom_convention():
    convention = ClaimConvention(realm_claim="org", resource_claim="apps", roles_key="grants", realm_sentinel="org")
    claims = VerifiedClaims({"org": {"grants": ["owner"]}, "apps": {"crm": {"grants": ["edit"]}}})
    checker = AuthorizationChecker(convention)
    assert checker.parse("org:owner") == RealmScoped("owner")
    assert checker.is_authorized(claims, "owner") is True
    assert checker.is_authorized(claims, "crm:edit") is True
    assert checker.is_authorized_any(claims, ["crm:delete"]) is False


def test_principal_from_claims():
    principal = principal_from_claims(CLAIMS)
    assert principal.subject == "user-1"
    assert principal.realm_roles == ("admin", "add-user")
    assert principal.resource_roles == {"finance": ("year-report",), "web-app": ("print",)}
    assert principal.scopes == ("openid", "email")
    assert principal.client_id == "web-app"
    d = principal.to_dict()
    assert d["preferred_username"] == "alice"
    assert d["resource_roles"]["finance"] == ["year-report"]
    assert d["email"] is None
