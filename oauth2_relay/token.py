"""
The credential held for one logical session.

A ``Credential`` has a fixed identity (when it was first issued and by which
grant) and a replaceable ``TokenState``. The state is a frozen record and is
swapped with a single attribute assignment, so a reader sees either the old
state or the new one, never a mix. Use ``snapshot()`` when reading more than
one field.

``is_expired_locally`` only compares timestamps. It cannot know that the
server revoked the token or that the user logged out elsewhere, so it may say
"not expired" for a token the server already rejects. Use introspection when
that matters.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field, replace
from typing import Any, Iterable, Mapping

from .claims import UnverifiedClaims, decode_unverified

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenState:
    """Everything that changes on refresh, installed as one unit."""

    access_token: str
    refresh_token: str | None
    id_token: str | None
    token_type: str
    expires_at: float | None
    """Absolute epoch seconds; None means the server gave no expiry."""

    scopes: frozenset[str]
    refreshed_at: float


def _parse_scopes(raw: Any, separator: str) -> frozenset[str] | None:
    if raw is None:
        return None
    if isinstance(raw, str):
        return frozenset(s for s in raw.split(separator) if s)
    if isinstance(raw, (list, tuple)):
        return frozenset(str(s) for s in raw)
    return None


def _derive_expiry(expires_in: Any, access_token: str, now: float) -> float | None:
    """``expires_in`` wins; otherwise fall back to the access token's ``exp``."""
    if expires_in is not None:
        try:
            return now + float(expires_in)
        except (TypeError, ValueError):
            logger.debug("Ignoring non-numeric expires_in")
    claims = decode_unverified(access_token)
    if claims is not None:
        exp = claims.peek("exp")
        if isinstance(exp, (int, float)):
            return float(exp)
    return None


@dataclass(eq=False)
class Credential:
    """
    One session's tokens.

    Build with ``Credential.from_token_response``; do not construct directly.
    """

    grant_type: str
    issued_at: float
    _state: TokenState = field(repr=False)

    @classmethod
    def from_token_response(
        cls,
        response: Mapping[str, Any],
        *,
        grant_type: str,
        requested_scopes: Iterable[str] = (),
        scope_separator: str = " ",
        now: float | None = None,
    ) -> Credential:
        now = time.time() if now is None else now
        access_token = str(response["access_token"])
        scopes = _parse_scopes(response.get("scope"), scope_separator)
        state = TokenState(
            access_token=access_token,
            refresh_token=response.get("refresh_token"),
            id_token=response.get("id_token"),
            token_type=str(response.get("token_type") or "Bearer"),
            expires_at=_derive_expiry(response.get("expires_in"), access_token, now),
            scopes=scopes if scopes is not None else frozenset(requested_scopes),
            refreshed_at=now,
        )
        return cls(grant_type=grant_type, issued_at=now, _state=state)

    def snapshot(self) -> TokenState:
        """Current state; all fields belong to the same issuance."""
        return self._state

    @property
    def access_token(self) -> str:
        return self._state.access_token

    @property
    def refresh_token(self) -> str | None:
        return self._state.refresh_token

    @property
    def id_token(self) -> str | None:
        return self._state.id_token

    @property
    def token_type(self) -> str:
        return self._state.token_type

    @property
    def expires_at(self) -> float | None:
        return self._state.expires_at

    @property
    def scopes(self) -> frozenset[str]:
        return self._state.scopes

    @property
    def can_refresh(self) -> bool:
        return self._state.refresh_token is not None

    @property
    def access_token_claims(self) -> UnverifiedClaims | None:
        """Decoded access token payload (not verified). None for opaque tokens."""
        return decode_unverified(self._state.access_token)

    @property
    def id_token_claims(self) -> UnverifiedClaims | None:
        """Decoded id token payload (not verified)."""
        return decode_unverified(self._state.id_token)

    def is_expired_locally(self, clock_skew_tolerance: float = 0, now: float | None = None) -> bool:
        """
        Offline expiry check. Returns False when no expiry was ever recorded.

        A False result does not mean the server still accepts the token.
        """
        expires_at = self._state.expires_at
        if expires_at is None:
            return False
        now = time.time() if now is None else now
        return now >= expires_at + clock_skew_tolerance

    def with_refreshed_tokens(
        self,
        new_access: str,
        new_refresh: str | None = None,
        new_expiry: float | None = None,
        *,
        id_token: str | None = None,
        scopes: frozenset[str] | None = None,
        token_type: str | None = None,
        now: float | None = None,
    ) -> Credential:
        """
        Install refreshed tokens in one swap and return this same credential.

        A missing ``new_refresh`` keeps the previous refresh token; many
        servers only send one when they rotate it.
        """
        current = self._state
        self._state = replace(
            current,
            access_token=new_access,
            refresh_token=new_refresh if new_refresh is not None else current.refresh_token,
            id_token=id_token if id_token is not None else current.id_token,
            token_type=token_type or current.token_type,
            expires_at=new_expiry,
            scopes=scopes if scopes is not None else current.scopes,
            refreshed_at=time.time() if now is None else now,
        )
        return self

    def apply_token_response(
        self,
        response: Mapping[str, Any],
        *,
        scope_separator: str = " ",
        now: float | None = None,
    ) -> Credential:
        """Apply a refresh-grant response via ``with_refreshed_tokens``."""
        now = time.time() if now is None else now
        access_token = str(response["access_token"])
        return self.with_refreshed_tokens(
            access_token,
            response.get("refresh_token"),
            _derive_expiry(response.get("expires_in"), access_token, now),
            id_token=response.get("id_token"),
            scopes=_parse_scopes(response.get("scope"), scope_separator),
            token_type=response.get("token_type"),
            now=now,
        )

    def authorization_header(self) -> str:
        state = self._state
        return f"{state.token_type} {state.access_token}"
