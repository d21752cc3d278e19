"""Tests for the requests-backed transport (mocked session)."""

from unittest.mock import MagicMock

import pytest
import requests

from oauth2_relay.errors import ProtocolError, TransportError
from oauth2_relay.transport import HttpRequest, HttpResponse, RequestsTransport


def _session(status: int = 200, content: bytes = b'{"ok": true}') -> MagicMock:
    session = MagicMock(spec=requests.Session)
    session.request.return_value.status_code = status
    session.request.return_value.content = content
    session.request.return_value.headers = {"Content-Type": "application/json"}
    return session


def test_perform_posts_form():
    session = _session()
    transport = RequestsTransport(session, default_timeout=7)
    resp = transport.perform(HttpRequest("POST", "https://sso/token", form={"grant_type": "client_credentials"}))

    args, kwargs = session.request.call_args
    assert args == ("POST", "https://sso/token")
    assert kwargs["data"] == {"grant_type": "client_credentials"}
    assert kwargs["timeout"] == 7
    assert kwargs["headers"]["Content-Type"] == "application/x-www-form-urlencoded"
    assert resp.ok is True
    assert resp.json() == {"ok": True}


def test_perform_timeout_override():
    session = _session()
    RequestsTransport(session).perform(HttpRequest("GET", "https://sso/certs"), timeout=1.5)
    assert session.request.call_args.kwargs["timeout"] == 1.5
    assert session.request.call_args.kwargs["data"] is None


def test_timeout_becomes_transport_error():
    session = _session()
    session.request.side_effect = requests.Timeout("slow")
    with pytest.raises(TransportError) as exc:
        RequestsTransport(session).perform(HttpRequest("GET", "https://sso/certs"))
    assert exc.value.reason == "timeout"
    assert exc.value.url == "https://sso/certs"


def test_connection_error_becomes_transport_error():
    session = _session()
    session.request.side_effect = requests.ConnectionError("dns")
    with pytest.raises(TransportError) as exc:
        RequestsTransport(session).perform(HttpRequest("GET", "https://sso/certs"))
    assert exc.value.reason == "ConnectionError"


def test_response_json_rejects_garbage():
    with pytest.raises(ProtocolError):
        HttpResponse(status_code=200, body=b"<html>").json()
