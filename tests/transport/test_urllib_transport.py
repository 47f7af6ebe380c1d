from __future__ import annotations

import io
import json
import urllib.error
import urllib.request

import pytest

from promptloop.errors import AuthError, NetworkError
from promptloop.transport import UrllibTransport


class _Response(io.BytesIO):
    status = 200
    headers: dict = {"Content-Type": "application/json"}


def _http_error(code: int, body: bytes) -> urllib.error.HTTPError:
    return urllib.error.HTTPError(
        "https://hub.example.com/x",
        code,
        "error",
        hdrs=None,
        fp=io.BytesIO(body),
    )


def test_post_sends_json_with_bearer_token(monkeypatch: pytest.MonkeyPatch):
    seen = {}

    def fake_urlopen(req, timeout=None):
        seen["req"] = req
        seen["timeout"] = timeout
        return _Response(b'{"data": {}}')

    monkeypatch.setattr(urllib.request, "urlopen", fake_urlopen)
    transport = UrllibTransport(api_token="pat_abc", timeout_s=7.0, user_agent="ua/1")

    text = transport.post("https://hub.example.com/x", {"prompt_key": "héllo"})

    req = seen["req"]
    assert text == '{"data": {}}'
    assert seen["timeout"] == 7.0
    assert req.get_method() == "POST"
    assert req.get_header("Authorization") == "Bearer pat_abc"
    assert req.get_header("User-agent") == "ua/1"
    assert json.loads(req.data.decode("utf-8")) == {"prompt_key": "héllo"}


def test_post_without_token_sends_no_authorization(monkeypatch: pytest.MonkeyPatch):
    seen = {}

    def fake_urlopen(req, timeout=None):
        seen["req"] = req
        return _Response(b"{}")

    monkeypatch.setattr(urllib.request, "urlopen", fake_urlopen)
    UrllibTransport().post("https://hub.example.com/x", {})

    assert seen["req"].get_header("Authorization") is None


@pytest.mark.parametrize(
    ("status", "error_type"),
    [(401, AuthError), (403, AuthError), (500, NetworkError), (404, NetworkError)],
)
def test_http_errors_are_mapped(monkeypatch: pytest.MonkeyPatch, status, error_type):
    def fake_urlopen(req, timeout=None):
        raise _http_error(status, b'{"msg": "nope"}')

    monkeypatch.setattr(urllib.request, "urlopen", fake_urlopen)

    with pytest.raises(error_type) as exc_info:
        UrllibTransport().post("https://hub.example.com/x", {})
    assert exc_info.value.status_code == status
    assert exc_info.value.body == '{"msg": "nope"}'


def test_stream_errors_surface_before_decoding(monkeypatch: pytest.MonkeyPatch):
    def fake_urlopen(req, timeout=None):
        raise _http_error(502, b"bad gateway")

    monkeypatch.setattr(urllib.request, "urlopen", fake_urlopen)

    with pytest.raises(NetworkError):
        UrllibTransport().post_stream("https://hub.example.com/x", {})


def test_connection_failures_become_network_errors(monkeypatch: pytest.MonkeyPatch):
    def fake_urlopen(req, timeout=None):
        raise urllib.error.URLError("connection refused")

    monkeypatch.setattr(urllib.request, "urlopen", fake_urlopen)

    with pytest.raises(NetworkError, match="connection refused"):
        UrllibTransport().post("https://hub.example.com/x", {})


def test_post_stream_returns_open_response(monkeypatch: pytest.MonkeyPatch):
    response = _Response(b"data: hi\n\n")
    seen = {}

    def fake_urlopen(req, timeout=None):
        seen["req"] = req
        seen["timeout"] = timeout
        return response

    monkeypatch.setattr(urllib.request, "urlopen", fake_urlopen)
    transport = UrllibTransport(stream_timeout_s=None)

    assert transport.post_stream("https://hub.example.com/x", {}) is response
    assert seen["req"].get_header("Accept") == "text/event-stream"
    assert seen["timeout"] is None
    assert not response.closed
