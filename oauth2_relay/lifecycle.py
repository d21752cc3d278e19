"""
Refresh, revoke and log out.

Refresh mutates the caller's ``Credential`` in place, and only after a
complete, parsed response is in hand. A transport failure, a timeout or a
rejected refresh leaves the credential exactly as it was.

Concurrent refreshes of one credential must be serialized by the caller
(a per-session lock is enough). Without one, readers still never see a torn
state, only one of the competing results.
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import urlencode

from .config import GRANT_REFRESH_TOKEN, OAuth2Config
from .endpoint import EndpointClient, raise_for_oauth2_error
from .errors import ConfigurationError, InvalidRequest, OAuth2Error, RefreshDenied
from .token import Credential
from .transport import HttpTransport
from .validator import HINT_ACCESS_TOKEN, HINT_REFRESH_TOKEN

logger = logging.getLogger(__name__)

# Error codes meaning the refresh token itself is no longer usable.
_REFRESH_DENIED_CODES = frozenset({"invalid_grant", "invalid_token"})

_REVOCABLE = (HINT_ACCESS_TOKEN, HINT_REFRESH_TOKEN)


class LifecycleManager:
    def __init__(self, config: OAuth2Config, transport: HttpTransport) -> None:
        self._config = config
        self._endpoint = EndpointClient(config, transport)

    def refresh(self, credential: Credential, *, timeout: float | None = None, **extra: Any) -> Credential:
        """
        Exchange the refresh token for new tokens and install them.

        Raises RefreshDenied when the server no longer honours the refresh
        token; the user has to authenticate again.
        """
        state = credential.snapshot()
        if state.refresh_token is None:
            raise InvalidRequest("credential has no refresh token")

        form: dict[str, Any] = {**extra, "grant_type": GRANT_REFRESH_TOKEN, "refresh_token": state.refresh_token}
        try:
            body = self._endpoint.request_token(form, timeout=timeout)
        except OAuth2Error as e:
            if e.code in _REFRESH_DENIED_CODES:
                logger.info("Refresh denied error=%s; re-authentication required", e.code)
                raise RefreshDenied(e.code, e.description, e.status_code) from e
            raise

        credential.apply_token_response(body, scope_separator=self._config.scope_separator)
        logger.info(
            "Credential refreshed grant_type=%s expires_at=%s rotated_refresh=%s",
            credential.grant_type,
            credential.expires_at,
            "refresh_token" in body,
        )
        return credential

    def revoke(self, credential: Credential, token_type: str, *, timeout: float | None = None) -> None:
        """
        Revoke one of the credential's tokens (RFC7009).

        ``token_type`` is ``access_token`` or ``refresh_token``. Only that
        token is revoked; whether the server also kills related tokens is up
        to the server. Revoking an already revoked token succeeds.
        """
        if token_type not in _REVOCABLE:
            raise InvalidRequest(f"token_type must be one of {_REVOCABLE}")
        state = credential.snapshot()
        token = state.access_token if token_type == HINT_ACCESS_TOKEN else state.refresh_token
        if token is None:
            raise InvalidRequest(f"credential has no {token_type}")
        self.revoke_token(token, token_type, timeout=timeout)

    def revoke_token(self, token: str, token_type_hint: str, *, timeout: float | None = None) -> None:
        if not self._config.revocation_endpoint:
            raise ConfigurationError("revocation_endpoint is not configured")
        if not token:
            raise InvalidRequest("token is required")
        resp = self._endpoint.post_form(
            self._config.revocation_endpoint,
            {"token": token, "token_type_hint": token_type_hint},
            timeout=timeout,
        )
        raise_for_oauth2_error(resp)
        logger.info("Token revoked token_type_hint=%s", token_type_hint)

    def logout(self, credential: Credential, *, timeout: float | None = None) -> None:
        """
        End the session at the provider.

        With an end-session endpoint configured this is a back-channel POST
        carrying the refresh token (Keycloak style). Otherwise the refresh
        token and then the access token are revoked.
        """
        state = credential.snapshot()
        if self._config.end_session_endpoint:
            form: dict[str, Any] = {}
            if state.refresh_token is not None:
                form["refresh_token"] = state.refresh_token
            if state.id_token is not None:
                form["id_token_hint"] = state.id_token
            resp = self._endpoint.post_form(self._config.end_session_endpoint, form, timeout=timeout)
            raise_for_oauth2_error(resp)
            logger.info("Session ended at provider")
            return

        if not self._config.revocation_endpoint:
            raise ConfigurationError("logout requires end_session_endpoint or revocation_endpoint")
        if state.refresh_token is not None:
            self.revoke_token(state.refresh_token, HINT_REFRESH_TOKEN, timeout=timeout)
        self.revoke_token(state.access_token, HINT_ACCESS_TOKEN, timeout=timeout)

    def end_session_url(
        self,
        credential: Credential | None = None,
        post_logout_redirect_uri: str | None = None,
        state: str | None = None,
    ) -> str:
        """Front-channel logout URL (OpenID Connect RP-initiated logout)."""
        if not self._config.end_session_endpoint:
            raise ConfigurationError("end_session_endpoint is not configured")
        params: dict[str, str] = {"client_id": self._config.client_id}
        if credential is not None and credential.id_token:
            params["id_token_hint"] = credential.id_token
        if post_logout_redirect_uri:
            params["post_logout_redirect_uri"] = post_logout_redirect_uri
        if state:
            params["state"] = state
        sep = "&" if "?" in self._config.end_session_endpoint else "?"
        return f"{self._config.end_session_endpoint}{sep}{urlencode(params)}"
