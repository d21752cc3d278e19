"""
JWT claim containers.

There are two, on purpose, and they do not share an interface:

* ``UnverifiedClaims``: what the token *says*. Produced by plain base64url
  decoding. Fine for reading ``exp`` to pre-compute expiry or ``kid`` to pick
  a key. Never good enough to authorize anything.
* ``VerifiedClaims``: produced by the validator after the signature and the
  standard claims have been checked. The authorization helpers only accept
  this type.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Iterator, Mapping

import jwt

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UnverifiedClaims:
    """Decoded but untrusted JWT payload."""

    _data: Mapping[str, Any]

    def peek(self, name: str, default: Any = None) -> Any:
        return self._data.get(name, default)

    def as_dict(self) -> dict[str, Any]:
        return dict(self._data)


@dataclass(frozen=True)
class VerifiedClaims:
    """JWT payload whose signature and standard claims passed validation."""

    _data: Mapping[str, Any]

    def __post_init__(self) -> None:
        object.__setattr__(self, "_data", MappingProxyType(dict(self._data)))

    def __getitem__(self, name: str) -> Any:
        return self._data[name]

    def __contains__(self, name: object) -> bool:
        return name in self._data

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def get(self, name: str, default: Any = None) -> Any:
        return self._data.get(name, default)

    def as_dict(self) -> dict[str, Any]:
        return dict(self._data)


def decode_unverified(token: str | None) -> UnverifiedClaims | None:
    """
    Decode a JWT payload **without** checking anything.

    Returns None for opaque (non-JWT) tokens.
    """
    if not token or token.count(".") != 2:
        return None
    try:
        payload = jwt.decode(token, options={"verify_signature": False})
    except jwt.PyJWTError:
        logger.debug("Token is not a decodable JWT; treating as opaque")
        return None
    if not isinstance(payload, dict):
        return None
    return UnverifiedClaims(MappingProxyType(payload))


def unverified_header(token: str) -> dict[str, Any] | None:
    """Read the JOSE header (``kid``, ``alg``) without validating the token."""
    try:
        header = jwt.get_unverified_header(token)
    except jwt.PyJWTError:
        return None
    return header if isinstance(header, dict) else None
