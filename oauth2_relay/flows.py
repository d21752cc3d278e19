"""
The three grant exchanges.

Each method is one POST to the token endpoint and returns a new
``Credential``. Nothing is retried: an authorization code is single use and a
second attempt would fail anyway (or worse, be flagged as replay).
"""

from __future__ import annotations

import logging
from typing import Any, Iterable
from urllib.parse import urlencode

from .config import (
    GRANT_AUTHORIZATION_CODE,
    GRANT_CLIENT_CREDENTIALS,
    GRANT_PASSWORD,
    OAuth2Config,
)
from .endpoint import EndpointClient
from .errors import ConfigurationError, GrantNotAllowed, InvalidRequest
from .token import Credential
from .transport import HttpTransport

logger = logging.getLogger(__name__)

_RESERVED_PARAMS = frozenset({"grant_type", "code", "redirect_uri", "username", "password", "scope", "refresh_token"})


class FlowEngine:
    """Runs authorization-code, password and client-credentials grants."""

    def __init__(self, config: OAuth2Config, transport: HttpTransport) -> None:
        self._config = config
        self._endpoint = EndpointClient(config, transport)

    def _scopes(self, scopes: Iterable[str] | None) -> tuple[str, ...]:
        return tuple(scopes) if scopes is not None else self._config.scopes

    def _ensure_allowed(self, grant_type: str) -> None:
        if not self._config.allows(grant_type):
            logger.warning("Refusing grant not enabled for client grant_type=%s", grant_type)
            raise GrantNotAllowed(grant_type)

    def _exchange(
        self,
        grant_type: str,
        params: dict[str, Any],
        scopes: tuple[str, ...],
        extra: dict[str, Any],
        timeout: float | None,
    ) -> Credential:
        clash = _RESERVED_PARAMS.intersection(extra)
        if clash:
            raise InvalidRequest(f"extra parameters may not override {sorted(clash)}")
        form: dict[str, Any] = {**extra, "grant_type": grant_type, **params}
        if scopes:
            form["scope"] = self._config.scope_separator.join(scopes)
        body = self._endpoint.request_token(form, timeout=timeout)
        credential = Credential.from_token_response(
            body,
            grant_type=grant_type,
            requested_scopes=scopes,
            scope_separator=self._config.scope_separator,
        )
        logger.info(
            "Obtained credential grant_type=%s expires_at=%s refreshable=%s",
            grant_type,
            credential.expires_at,
            credential.can_refresh,
        )
        return credential

    def authorize_url(
        self,
        redirect_uri: str,
        scopes: Iterable[str] | None = None,
        state: str | None = None,
        **extra: str,
    ) -> str:
        """URL to send the user agent to; the first half of the authorization-code flow."""
        if not self._config.authorization_endpoint:
            raise ConfigurationError("authorization_endpoint is not configured")
        params: dict[str, str] = {
            "response_type": "code",
            "client_id": self._config.client_id,
            "redirect_uri": redirect_uri,
        }
        resolved = self._scopes(scopes)
        if resolved:
            params["scope"] = self._config.scope_separator.join(resolved)
        if state:
            params["state"] = state
        params.update(extra)
        sep = "&" if "?" in self._config.authorization_endpoint else "?"
        return f"{self._config.authorization_endpoint}{sep}{urlencode(params)}"

    def authorization_code(
        self,
        code: str,
        redirect_uri: str,
        *,
        timeout: float | None = None,
        **extra: Any,
    ) -> Credential:
        """Exchange an authorization code (RFC6749 4.1.3)."""
        self._ensure_allowed(GRANT_AUTHORIZATION_CODE)
        if not code:
            raise InvalidRequest("authorization code is required")
        if not redirect_uri:
            raise InvalidRequest("redirect_uri is required")
        if not self._config.client_id:
            raise InvalidRequest("client authentication is required")
        return self._exchange(
            GRANT_AUTHORIZATION_CODE,
            {"code": code, "redirect_uri": redirect_uri},
            (),
            extra,
            timeout,
        )

    def password(
        self,
        username: str,
        password: str,
        scopes: Iterable[str] | None = None,
        *,
        timeout: float | None = None,
        **extra: Any,
    ) -> Credential:
        """Resource owner password grant (RFC6749 4.3.2). Opt-in only."""
        self._ensure_allowed(GRANT_PASSWORD)
        if not username or not password:
            raise InvalidRequest("username and password are required")
        return self._exchange(
            GRANT_PASSWORD,
            {"username": username, "password": password},
            self._scopes(scopes),
            extra,
            timeout,
        )

    def client_credentials(
        self,
        scopes: Iterable[str] | None = None,
        *,
        timeout: float | None = None,
        **extra: Any,
    ) -> Credential:
        """Client credentials grant (RFC6749 4.4.2)."""
        self._ensure_allowed(GRANT_CLIENT_CREDENTIALS)
        if not self._config.is_confidential:
            raise InvalidRequest("client credentials grant requires a client secret")
        return self._exchange(GRANT_CLIENT_CREDENTIALS, {}, self._scopes(scopes), extra, timeout)
