"""Tests for provider presets and the YAML loader."""

import pytest

from oauth2_relay.config import IntrospectionStyle
from oauth2_relay.errors import ConfigurationError
from oauth2_relay.providers import google, keycloak, load_provider_presets


def test_keycloak_preset():
    preset = keycloak("https://sso.example.com/", "corp")
    assert preset.token_endpoint == "https://sso.example.com/realms/corp/protocol/openid-connect/token"
    assert preset.issuer == "https://sso.example.com/realms/corp"
    cfg = preset.to_config("web-app", "s3cret")
    assert cfg.jwks_uri.endswith("/protocol/openid-connect/certs")
    assert cfg.claim_convention.realm_claim == "realm_access"
    assert cfg.scopes == ("openid",)


def test_google_preset_uses_tokeninfo():
    cfg = google().to_config("client.apps.googleusercontent.com")
    assert cfg.introspection_style is IntrospectionStyle.TOKENINFO


def test_to_config_overrides():
    cfg = keycloak("https://sso.example.com", "corp").to_config("c", "s", clock_skew_seconds=30)
    assert cfg.clock_skew_seconds == 30


def test_load_presets_from_yaml(tmp_path):
    path = tmp_path / "providers.yaml"
    path.write_text(
        """
providers:
  corp:
    token_endpoint: https://sso.example.com/token
    introspection_endpoint: https://sso.example.com/introspect
    scopes: [openid]
    claims:
      realm_claim: org_access
""",
        encoding="utf-8",
    )
    presets = load_provider_presets(path)
    assert presets["corp"].name == "corp"
    assert presets["corp"].claims.to_convention().realm_claim == "org_access"
    assert presets["corp"].claims.to_convention().resource_claim == "resource_access"


def test_load_presets_requires_top_level_key(tmp_path):
    path = tmp_path / "providers.yaml"
    path.write_text("corp: {}\n", encoding="utf-8")
    with pytest.raises(ConfigurationError, match="providers"):
        load_provider_presets(path)


def test_load_presets_invalid_entry(tmp_path):
    path = tmp_path / "providers.yaml"
    path.write_text("providers:\n  corp:\n    scopes: [openid]\n", encoding="utf-8")
    with pytest.raises(ConfigurationError, match="corp"):
        load_provider_presets(path)
