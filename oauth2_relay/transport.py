"""
HTTP transport used for every call to the authorization server.

The rest of the package only depends on the ``HttpTransport`` protocol, so
tests (or an application with its own HTTP stack) can plug in anything that
implements ``perform``. ``RequestsTransport`` is the default and is the only
place that knows about ``requests``.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Protocol, runtime_checkable

import requests

from .errors import ProtocolError, TransportError

logger = logging.getLogger(__name__)

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


@dataclass(frozen=True)
class HttpRequest:
    method: str
    url: str
    form: Mapping[str, str] = field(default_factory=dict)
    headers: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class HttpResponse:
    status_code: int
    body: bytes = b""
    headers: Mapping[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def json(self) -> Any:
        """Parse the body as JSON; raise ProtocolError when it is not JSON."""
        try:
            return json.loads(self.body.decode("utf-8") or "null")
        except (UnicodeDecodeError, ValueError) as e:
            raise ProtocolError("response body is not valid JSON", self.status_code) from e


@runtime_checkable
class HttpTransport(Protocol):
    def perform(self, request: HttpRequest, timeout: float | None = None) -> HttpResponse:
        """Send the request. Raise ``TransportError`` when no response was received."""
        ...


class RequestsTransport:
    """``HttpTransport`` backed by a ``requests.Session``."""

    def __init__(self, session: requests.Session | None = None, default_timeout: float = 10.0) -> None:
        self._session = session or requests.Session()
        self._default_timeout = default_timeout

    def perform(self, request: HttpRequest, timeout: float | None = None) -> HttpResponse:
        headers = {"Accept": "application/json", **request.headers}
        if request.form:
            headers.setdefault("Content-Type", FORM_CONTENT_TYPE)
        try:
            resp = self._session.request(
                request.method,
                request.url,
                data=dict(request.form) if request.form else None,
                headers=headers,
                timeout=timeout if timeout is not None else self._default_timeout,
            )
        except requests.Timeout as e:
            logger.warning("HTTP %s timed out url=%s", request.method, request.url)
            raise TransportError("timeout", request.url) from e
        except requests.RequestException as e:
            logger.warning("HTTP %s failed url=%s error=%s", request.method, request.url, type(e).__name__)
            raise TransportError(type(e).__name__, request.url) from e

        logger.debug("HTTP %s url=%s status=%s", request.method, request.url, resp.status_code)
        return HttpResponse(
            status_code=resp.status_code,
            body=resp.content or b"",
            headers=dict(resp.headers),
        )

    def close(self) -> None:
        self._session.close()
