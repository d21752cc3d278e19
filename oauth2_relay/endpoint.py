"""Shared plumbing for the token, introspection, revocation and logout endpoints."""

from __future__ import annotations

import base64
import logging
from typing import Any, Mapping
from urllib.parse import quote

from pydantic import BaseModel, ConfigDict, ValidationError

from .config import ClientAuthMethod, OAuth2Config
from .errors import OAuth2Error, ProtocolError
from .transport import HttpRequest, HttpResponse, HttpTransport

logger = logging.getLogger(__name__)


class TokenResponse(BaseModel):
    """Successful token endpoint body (RFC6749 section 5.1)."""

    model_config = ConfigDict(extra="allow")

    access_token: str
    token_type: str = "Bearer"
    expires_in: float | None = None
    refresh_token: str | None = None
    id_token: str | None = None
    scope: str | list[str] | None = None


class ErrorResponse(BaseModel):
    """Error body (RFC6749 section 5.2)."""

    model_config = ConfigDict(extra="allow")

    error: str
    error_description: str | None = None


def _basic_auth(client_id: str, client_secret: str) -> str:
    # RFC6749 2.3.1: form-urlencode each part before base64.
    raw = f"{quote(client_id, safe='')}:{quote(client_secret, safe='')}"
    return "Basic " + base64.b64encode(raw.encode("utf-8")).decode("ascii")


class EndpointClient:
    """Posts authenticated forms to the authorization server."""

    def __init__(self, config: OAuth2Config, transport: HttpTransport) -> None:
        self._config = config
        self._transport = transport

    @property
    def config(self) -> OAuth2Config:
        return self._config

    def _authenticate(self, form: dict[str, str], headers: dict[str, str]) -> None:
        cfg = self._config
        if not cfg.client_secret:
            form.setdefault("client_id", cfg.client_id)
        elif cfg.client_auth_method is ClientAuthMethod.POST:
            form["client_id"] = cfg.client_id
            form["client_secret"] = cfg.client_secret
        else:
            headers["Authorization"] = _basic_auth(cfg.client_id, cfg.client_secret)

    def post_form(self, url: str, form: Mapping[str, Any], timeout: float | None = None) -> HttpResponse:
        body = {k: str(v) for k, v in form.items() if v is not None}
        headers: dict[str, str] = {}
        self._authenticate(body, headers)
        return self._transport.perform(
            HttpRequest(method="POST", url=url, form=body, headers=headers),
            timeout=timeout if timeout is not None else self._config.http_timeout_seconds,
        )

    def request_token(self, form: Mapping[str, Any], timeout: float | None = None) -> dict[str, Any]:
        """
        POST a grant to the token endpoint and return the validated body.

        Raises OAuth2Error for RFC6749 error bodies, ProtocolError for
        anything unparsable, TransportError when the server is unreachable.
        """
        resp = self.post_form(self._config.token_endpoint, form, timeout=timeout)
        raise_for_oauth2_error(resp)
        body = resp.json()
        if not isinstance(body, dict):
            raise ProtocolError("token response is not a JSON object", resp.status_code)
        if "error" in body:
            # Some providers answer 200 with an error body.
            raise _to_oauth2_error(body, resp.status_code)
        try:
            parsed = TokenResponse.model_validate(body)
        except ValidationError as e:
            raise ProtocolError(f"malformed token response: {e.error_count()} error(s)", resp.status_code) from e
        return parsed.model_dump(exclude_none=True)


def _to_oauth2_error(body: Mapping[str, Any], status_code: int) -> OAuth2Error:
    try:
        err = ErrorResponse.model_validate(body)
    except ValidationError as e:
        raise ProtocolError("malformed error response", status_code) from e
    return OAuth2Error(err.error, err.error_description, status_code)


def raise_for_oauth2_error(resp: HttpResponse) -> None:
    """Raise for non-2xx responses: OAuth2Error when the body says why, else ProtocolError."""
    if resp.ok:
        return
    try:
        body = resp.json()
    except ProtocolError:
        body = None
    if isinstance(body, dict) and "error" in body:
        err = _to_oauth2_error(body, resp.status_code)
        logger.info("Authorization server rejected request status=%s error=%s", resp.status_code, err.code)
        raise err
    raise ProtocolError(f"unexpected HTTP status {resp.status_code}", resp.status_code)
