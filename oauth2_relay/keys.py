"""
Key material for local JWT validation.

Background:
    The authorization server signs JWT access tokens with a private key and
    publishes the matching public keys as a JWKS document. The token header
    carries a ``kid`` (key id) naming the key that was used. We cache the
    JWKS and pick the key by ``kid``.

    Servers rotate keys. When a ``kid`` is not in the cached set, the cache
    is refreshed once before giving up.

``StaticKeyResolver`` covers deployments that pin a single PEM or shared
secret instead of fetching a JWKS.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Protocol, runtime_checkable

from jwt import InvalidKeyError, PyJWK, PyJWKError

from .errors import ProtocolError
from .transport import HttpRequest, HttpTransport

logger = logging.getLogger(__name__)


@runtime_checkable
class KeyResolver(Protocol):
    def resolve(self, kid: str | None, timeout: float | None = None) -> Any | None:
        """Return key material usable by the signature verifier, or None."""
        ...


class StaticKeyResolver:
    """Always returns the same key, whatever the ``kid``."""

    def __init__(self, key: Any) -> None:
        self._key = key

    def resolve(self, kid: str | None, timeout: float | None = None) -> Any | None:
        return self._key


class JWKSCache:
    """
    In-memory cache of a JWKS (JSON Web Key Set) with TTL.

    Fetches from ``jwks_uri`` and caches for ``ttl_seconds``. On cache miss
    (unknown ``kid``), the cache is refreshed once to handle key rotation
    before returning None.
    """

    def __init__(
        self,
        jwks_uri: str,
        ttl_seconds: int,
        transport: HttpTransport,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._uri = jwks_uri
        self._ttl = ttl_seconds
        self._transport = transport
        self._clock = clock
        self._data: dict[str, Any] | None = None
        self._fetched_at: float = 0.0

    def _fetch(self, timeout: float | None = None) -> dict[str, Any]:
        resp = self._transport.perform(HttpRequest(method="GET", url=self._uri), timeout=timeout)
        if not resp.ok:
            raise ProtocolError(f"JWKS fetch returned HTTP {resp.status_code}", resp.status_code)
        body = resp.json()
        if not isinstance(body, dict):
            raise ProtocolError("JWKS document is not a JSON object", resp.status_code)
        return body

    def _refresh(self, timeout: float | None = None) -> dict[str, Any]:
        """Force-refresh the cache regardless of TTL."""
        self._data = self._fetch(timeout)
        self._fetched_at = self._clock()
        logger.debug("JWKS cache refreshed uri=%s", self._uri)
        return self._data

    def _ensure_fresh(self, timeout: float | None = None) -> dict[str, Any]:
        now = self._clock()
        if self._data is None or (now - self._fetched_at) >= self._ttl:
            return self._refresh(timeout)
        return self._data

    def _find_key(self, kid: str | None, data: dict[str, Any]) -> PyJWK | None:
        keys = [k for k in data.get("keys") or [] if isinstance(k, dict)]
        if kid is None:
            # Without a kid we can only pick a key when there is exactly one.
            candidates = keys if len(keys) == 1 else []
        else:
            candidates = [k for k in keys if k.get("kid") == kid]
        for key_dict in candidates:
            try:
                return PyJWK.from_dict(key_dict)
            except (PyJWKError, InvalidKeyError):
                logger.warning("Skipping unusable JWK kid=%s", key_dict.get("kid"))
        return None

    def resolve(self, kid: str | None, timeout: float | None = None) -> Any | None:
        data = self._ensure_fresh(timeout)
        key = self._find_key(kid, data)
        if key is not None:
            return key.key

        logger.info("kid not in cached JWKS; refreshing for possible key rotation")
        data = self._refresh(timeout)
        key = self._find_key(kid, data)
        return key.key if key is not None else None
