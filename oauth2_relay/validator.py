"""
Decide whether an access token is still usable.

Background:
    There are two ways to answer "is this token still good?" and the client
    is configured for exactly one of them (``OAuth2Config.validation_mode``);
    we never guess from the token's shape.

    1. **Local JWT validation** (``jwt``). Verify the signature with the
       server's published key, then check the standard claims in a fixed
       order: ``exp``, ``nbf``, ``iss``, ``aud``. The first failure is
       reported. No network call is made for the token itself, so this is
       fast, but it cannot see that the server revoked the token or that the
       user logged out.

    2. **Introspection** (``introspection``). Ask the server (RFC7662, or a
       provider's legacy "tokeninfo" endpoint). Always a round trip, always
       current, including revocation.

Results are ``ValidationOutcome`` values, not exceptions. They refuse to be
used as booleans; branch on the type or read ``is_valid`` explicitly.
Nothing here refreshes a token on failure; that decision is the caller's.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Protocol, runtime_checkable

import jwt

from .claims import VerifiedClaims, decode_unverified, unverified_header
from .config import IntrospectionStyle, OAuth2Config, ValidationMode
from .endpoint import EndpointClient
from .errors import ConfigurationError, OAuth2Error, ProtocolError, TransportError
from .keys import JWKSCache, KeyResolver
from .token import Credential
from .transport import HttpTransport

logger = logging.getLogger(__name__)

HINT_ACCESS_TOKEN = "access_token"
HINT_REFRESH_TOKEN = "refresh_token"


# ---- Outcomes ------------------------------------------------------------------------


class ValidationOutcome:
    """Base for the four outcomes. Not usable in a boolean context."""

    is_valid = False

    def __bool__(self) -> bool:
        raise TypeError(
            f"{type(self).__name__} is not a boolean; check isinstance(outcome, Valid) or outcome.is_valid"
        )


@dataclass(frozen=True)
class Valid(ValidationOutcome):
    claims: VerifiedClaims
    is_valid = True


@dataclass(frozen=True)
class Expired(ValidationOutcome):
    reason: str = "exp"


@dataclass(frozen=True)
class Invalid(ValidationOutcome):
    reason: str
    """Short code of the first failing check, e.g. ``signature`` or ``aud``."""

    detail: str | None = None


@dataclass(frozen=True)
class TransportFailure(ValidationOutcome):
    reason: str


# ---- Signature verification ----------------------------------------------------------


@runtime_checkable
class SignatureVerifier(Protocol):
    def verify(self, token: str, key: Any) -> bool:
        ...


class PyJWTSignatureVerifier:
    """Checks only the JWS signature; claims are checked by the validator."""

    def __init__(self, algorithms: tuple[str, ...] = ("RS256",)) -> None:
        self._algorithms = list(algorithms)
        self._jws = jwt.PyJWS()

    def verify(self, token: str, key: Any) -> bool:
        try:
            self._jws.decode_complete(token, key, algorithms=self._algorithms)
        except jwt.PyJWTError as e:
            logger.debug("Signature check failed: %s", type(e).__name__)
            return False
        return True


# ---- Strategies ----------------------------------------------------------------------


class LocalJWTValidator:
    """
    Validates JWT access tokens without contacting the authorization server.

    Check order is fixed: signature, exp, nbf, iss, aud.
    """

    def __init__(
        self,
        config: OAuth2Config,
        keys: KeyResolver,
        verifier: SignatureVerifier | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._config = config
        self._keys = keys
        self._verifier = verifier or PyJWTSignatureVerifier(config.algorithms)
        self._clock = clock

    def validate_token(
        self,
        token: str,
        token_type_hint: str = HINT_ACCESS_TOKEN,
        *,
        timeout: float | None = None,
    ) -> ValidationOutcome:
        header = unverified_header(token)
        unverified = decode_unverified(token)
        if header is None or unverified is None:
            return Invalid("malformed", "not a JWT")
        kid = header.get("kid")
        if kid is not None and not isinstance(kid, str):
            return Invalid("malformed", "kid is not a string")

        try:
            key = self._keys.resolve(kid, timeout=timeout)
        except TransportError as e:
            logger.warning("Key resolution failed: %s", e.reason)
            return TransportFailure(e.reason)
        if key is None:
            logger.info("Token rejected: unknown signing key")
            return Invalid("signature", "unknown signing key")
        if not self._verifier.verify(token, key):
            logger.info("Token rejected: signature")
            return Invalid("signature")

        payload = unverified.as_dict()
        leeway = self._config.clock_skew_seconds
        now = self._clock()

        exp = payload.get("exp")
        if exp is not None:
            if not isinstance(exp, (int, float)):
                return Invalid("exp", "exp is not numeric")
            if now >= exp + leeway:
                logger.info("Token expired")
                return Expired()

        nbf = payload.get("nbf")
        if nbf is not None:
            if not isinstance(nbf, (int, float)):
                return Invalid("nbf", "nbf is not numeric")
            if now < nbf - leeway:
                logger.info("Token rejected: not yet valid")
                return Invalid("nbf")

        if self._config.issuer and payload.get("iss") != self._config.issuer:
            logger.info("Token rejected: issuer")
            return Invalid("iss")

        if self._config.audience and not _audience_matches(payload.get("aud"), self._config.audience):
            logger.info("Token rejected: audience")
            return Invalid("aud")

        return Valid(VerifiedClaims(payload))


def _audience_matches(aud: Any, expected: str) -> bool:
    if isinstance(aud, str):
        return aud == expected
    if isinstance(aud, (list, tuple)):
        return expected in aud
    return False


class IntrospectionValidator:
    """Validates tokens by asking the authorization server."""

    def __init__(
        self,
        config: OAuth2Config,
        transport: HttpTransport,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not config.introspection_endpoint:
            raise ConfigurationError("introspection_endpoint is not configured")
        self._config = config
        self._endpoint = EndpointClient(config, transport)
        self._clock = clock

    def validate_token(
        self,
        token: str,
        token_type_hint: str = HINT_ACCESS_TOKEN,
        *,
        timeout: float | None = None,
    ) -> ValidationOutcome:
        style = self._config.introspection_style
        if style is IntrospectionStyle.TOKENINFO:
            form = {"access_token": token}
        else:
            form = {"token": token, "token_type_hint": token_type_hint}

        try:
            resp = self._endpoint.post_form(self._config.introspection_endpoint, form, timeout=timeout)
        except TransportError as e:
            return TransportFailure(e.reason)

        body = resp.json() if resp.body else None
        if not resp.ok:
            if isinstance(body, dict) and "error" in body:
                # tokeninfo endpoints answer 400 {"error": "invalid_token"} for dead tokens.
                if style is IntrospectionStyle.TOKENINFO:
                    return Invalid(str(body["error"]), body.get("error_description"))
                raise OAuth2Error(str(body["error"]), body.get("error_description"), resp.status_code)
            raise ProtocolError(f"unexpected HTTP status {resp.status_code}", resp.status_code)
        if not isinstance(body, dict):
            raise ProtocolError("introspection response is not a JSON object", resp.status_code)

        if style is IntrospectionStyle.TOKENINFO:
            return self._interpret_tokeninfo(body)
        return self._interpret_rfc7662(body, resp.status_code)

    def _interpret_rfc7662(self, body: dict[str, Any], status_code: int) -> ValidationOutcome:
        active = body.get("active")
        if not isinstance(active, bool):
            raise ProtocolError("introspection response has no boolean 'active'", status_code)
        if not active:
            logger.info("Introspection reports token inactive")
            return Invalid("inactive")
        return Valid(VerifiedClaims(body))

    def _interpret_tokeninfo(self, body: dict[str, Any]) -> ValidationOutcome:
        if "error" in body:
            return Invalid(str(body["error"]), body.get("error_description"))
        now = self._clock()
        exp = body.get("exp")
        expires_in = body.get("expires_in")
        try:
            if exp is not None and now >= float(exp):
                return Expired()
            if expires_in is not None and float(expires_in) <= 0:
                return Expired()
        except (TypeError, ValueError) as e:
            raise ProtocolError("tokeninfo expiry is not numeric") from e
        if self._config.audience and "aud" in body and not _audience_matches(body["aud"], self._config.audience):
            return Invalid("aud")
        return Valid(VerifiedClaims(body))


# ---- Facade --------------------------------------------------------------------------


class TokenValidator:
    """
    Validates credentials or bare token strings using the configured mode.

    Usage:
        validator = TokenValidator(config, transport)
        outcome = validator.validate_credential(credential)
        if isinstance(outcome, Valid):
            ...
    """

    def __init__(
        self,
        config: OAuth2Config,
        transport: HttpTransport,
        keys: KeyResolver | None = None,
        verifier: SignatureVerifier | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._config = config
        self._strategy: LocalJWTValidator | IntrospectionValidator
        if config.validation_mode is ValidationMode.INTROSPECTION:
            self._strategy = IntrospectionValidator(config, transport, clock=clock)
        else:
            if keys is None:
                if not config.jwks_uri:
                    raise ConfigurationError("jwt validation requires jwks_uri or an explicit key resolver")
                keys = JWKSCache(config.jwks_uri, config.jwks_cache_ttl_seconds, transport)
            self._strategy = LocalJWTValidator(config, keys, verifier=verifier, clock=clock)

    @property
    def mode(self) -> ValidationMode:
        return self._config.validation_mode

    def validate_token(
        self,
        token: str,
        token_type_hint: str = HINT_ACCESS_TOKEN,
        *,
        timeout: float | None = None,
    ) -> ValidationOutcome:
        """Token-level check, e.g. for a token received from another party."""
        if not token:
            return Invalid("malformed", "empty token")
        return self._strategy.validate_token(token, token_type_hint, timeout=timeout)

    def validate_credential(self, credential: Credential, *, timeout: float | None = None) -> ValidationOutcome:
        """Session-level check of the credential's current access token."""
        return self.validate_token(credential.snapshot().access_token, HINT_ACCESS_TOKEN, timeout=timeout)
