"""One object wiring flows, validation, lifecycle and authorization together."""

from __future__ import annotations

import logging
import os
import time
from typing import Any, Callable, Iterable

from .authorization import AuthorityQuery, AuthorizationChecker
from .claims import VerifiedClaims
from .config import OAuth2Config
from .errors import ConfigurationError
from .flows import FlowEngine
from .keys import KeyResolver
from .lifecycle import LifecycleManager
from .logging_config import configure_logging
from .principal import Principal, principal_from_claims
from .providers import load_provider_presets
from .settings import Settings, get_settings
from .token import Credential
from .transport import HttpTransport, RequestsTransport
from .validator import SignatureVerifier, TokenValidator, ValidationOutcome

logger = logging.getLogger(__name__)


class OAuth2Client:
    """
    Relay-party client for one authorization server.

    Usage:
        client = OAuth2Client(config)
        credential = client.client_credentials(["api.read"])
        outcome = client.validate(credential)
    """

    def __init__(
        self,
        config: OAuth2Config,
        transport: HttpTransport | None = None,
        keys: KeyResolver | None = None,
        verifier: SignatureVerifier | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._config = config
        self._transport = transport or RequestsTransport(default_timeout=config.http_timeout_seconds)
        self.flows = FlowEngine(config, self._transport)
        self.lifecycle = LifecycleManager(config, self._transport)
        self.validator = TokenValidator(config, self._transport, keys=keys, verifier=verifier, clock=clock)
        self.authorization = AuthorizationChecker(config.claim_convention)

    @property
    def config(self) -> OAuth2Config:
        return self._config

    # ---- Flows --------------------------------------------------------------------

    def authorize_url(self, redirect_uri: str, scopes: Iterable[str] | None = None, state: str | None = None, **extra: str) -> str:
        return self.flows.authorize_url(redirect_uri, scopes, state, **extra)

    def authorization_code(self, code: str, redirect_uri: str, **kwargs: Any) -> Credential:
        return self.flows.authorization_code(code, redirect_uri, **kwargs)

    def password(self, username: str, password: str, scopes: Iterable[str] | None = None, **kwargs: Any) -> Credential:
        return self.flows.password(username, password, scopes, **kwargs)

    def client_credentials(self, scopes: Iterable[str] | None = None, **kwargs: Any) -> Credential:
        return self.flows.client_credentials(scopes, **kwargs)

    # ---- Validation ---------------------------------------------------------------

    def validate(self, credential: Credential, *, timeout: float | None = None) -> ValidationOutcome:
        return self.validator.validate_credential(credential, timeout=timeout)

    def validate_token(
        self,
        token: str,
        token_type_hint: str = "access_token",
        *,
        timeout: float | None = None,
    ) -> ValidationOutcome:
        return self.validator.validate_token(token, token_type_hint, timeout=timeout)

    # ---- Lifecycle ----------------------------------------------------------------

    def refresh(self, credential: Credential, **kwargs: Any) -> Credential:
        return self.lifecycle.refresh(credential, **kwargs)

    def revoke(self, credential: Credential, token_type: str, **kwargs: Any) -> None:
        self.lifecycle.revoke(credential, token_type, **kwargs)

    def logout(self, credential: Credential, **kwargs: Any) -> None:
        self.lifecycle.logout(credential, **kwargs)

    # ---- Authorization ------------------------------------------------------------

    def is_authorized(self, claims: VerifiedClaims, authority: str | AuthorityQuery) -> bool:
        return self.authorization.is_authorized(claims, authority)

    def principal(self, claims: VerifiedClaims) -> Principal:
        return principal_from_claims(claims, self._config.claim_convention)


def create_client(settings: Settings | None = None, transport: HttpTransport | None = None) -> OAuth2Client:
    """
    Build a client from settings and the environment.

    When ``OAUTH2_RELAY_PROVIDER_CONFIG_PATH`` and ``OAUTH2_RELAY_PROVIDER`` are
    set, endpoints come from that preset and only ``OAUTH2_CLIENT_ID`` /
    ``OAUTH2_CLIENT_SECRET`` are read from the environment. Otherwise the
    whole config comes from ``OAuth2Config.from_environ``.
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    path = settings.resolved_provider_config_path()
    if path is not None and settings.provider:
        presets = load_provider_presets(path)
        preset = presets.get(settings.provider)
        if preset is None:
            raise ConfigurationError(f"provider {settings.provider!r} not found in {path}")
        client_id = (os.environ.get("OAUTH2_CLIENT_ID") or "").strip()
        if not client_id:
            raise ConfigurationError("OAUTH2_CLIENT_ID must be set")
        config = preset.to_config(client_id, (os.environ.get("OAUTH2_CLIENT_SECRET") or "").strip() or None)
        logger.info("Loaded provider preset %s from %s", settings.provider, path)
    else:
        config = OAuth2Config.from_environ()

    return OAuth2Client(config, transport=transport)
