"""
Exception taxonomy for the relay-party client.

Callers usually want different recovery for each branch:

* ``TransportError``: the authorization server could not be reached. Nothing
  is retried here; backoff policy belongs to the caller.
* ``OAuth2Error``: the server answered with an RFC6749 error body. Terminal
  for the attempted operation.
* ``RefreshDenied``: an ``OAuth2Error`` raised by refresh. The session is over
  and the user must authenticate again.
* ``ProtocolError``: the server answered with something we cannot parse. This
  usually points at a configuration mismatch, not at the credential.

Validation results (valid / expired / invalid) are NOT exceptions; see
``oauth2_relay.validator``.
"""

from __future__ import annotations


class OAuth2ClientError(Exception):
    """Base class for every error raised by this package. Do not log tokens."""


class ConfigurationError(OAuth2ClientError, ValueError):
    """Missing or inconsistent configuration."""


class InvalidRequest(OAuth2ClientError, ValueError):
    """A required argument is missing; nothing was sent to the server."""


class GrantNotAllowed(OAuth2ClientError):
    """The grant type is not enabled for this client."""

    def __init__(self, grant_type: str) -> None:
        self.grant_type = grant_type
        super().__init__(f"grant type {grant_type!r} is not allowed by configuration")


class TransportError(OAuth2ClientError):
    """Network, DNS, TLS or timeout failure talking to the server."""

    def __init__(self, reason: str, url: str | None = None) -> None:
        self.reason = reason
        self.url = url
        super().__init__(f"{reason} ({url})" if url else reason)


class ProtocolError(OAuth2ClientError):
    """The server response is not a well-formed OAuth2 response."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class OAuth2Error(OAuth2ClientError):
    """Structured rejection from the authorization server."""

    def __init__(self, code: str, description: str | None = None, status_code: int | None = None) -> None:
        self.code = code
        self.description = description
        self.status_code = status_code
        super().__init__(f"{code}: {description}" if description else code)


class RefreshDenied(OAuth2Error):
    """Refresh was rejected; re-authenticate from scratch instead of retrying."""
