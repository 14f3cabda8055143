import httpx
import pytest

from deepseek_client.domain.exceptions import NetworkError, RateLimitError, UpstreamRejected
from deepseek_client.providers.base import HttpRequest
from deepseek_client.providers.transport import HttpxTransport, raise_for_status


class SettingsStub:
    http_timeout = 1.0


REQUEST = HttpRequest(
    url="https://api.deepseek.com/chat/completions",
    body=b'{"stream": false}',
    headers={"Authorization": "Bearer k"},
)


def test_execute_returns_status_and_body(monkeypatch):
    captured = {}

    class Resp:
        status_code = 200
        content = b'{"ok": true}'

    class Client:
        def __init__(self, *a, **kw):
            captured["client_kwargs"] = kw

        def __enter__(self):
            return self

        def __exit__(self, *a):
            return False

        def post(self, url, content=None, headers=None):
            captured["url"] = url
            captured["content"] = content
            captured["headers"] = headers
            return Resp()

    monkeypatch.setattr("httpx.Client", Client)
    status, body = HttpxTransport(SettingsStub()).execute(REQUEST)
    assert status == 200
    assert body == b'{"ok": true}'
    assert captured["url"] == REQUEST.url
    assert captured["content"] == REQUEST.body
    assert captured["headers"]["Authorization"] == "Bearer k"
    assert captured["client_kwargs"]["trust_env"] is False


def test_execute_wraps_request_error(monkeypatch):
    class Client:
        def __init__(self, *a, **kw):
            pass

        def __enter__(self):
            return self

        def __exit__(self, *a):
            return False

        def post(self, *a, **kw):
            raise httpx.ConnectError("connection refused")

    monkeypatch.setattr("httpx.Client", Client)
    with pytest.raises(NetworkError) as ei:
        HttpxTransport(SettingsStub()).execute(REQUEST)
    assert ei.value.code == "NETWORK_ERROR"


def _stream_client(response, events):
    class StreamContext:
        def __enter__(self):
            events.append("open")
            return response

        def __exit__(self, *args):
            events.append("close")
            return False

    class Client:
        def __init__(self, *a, **kw):
            pass

        def __enter__(self):
            return self

        def __exit__(self, *a):
            return False

        def post(self, *a, **kw):
            raise AssertionError("post should not be called in stream test")

        def stream(self, method, url, content=None, headers=None):
            assert method == "POST"
            return StreamContext()

    return Client


def test_open_stream_yields_status_and_bytes(monkeypatch):
    events = []

    class FakeResponse:
        status_code = 200

        def iter_bytes(self):
            yield b"data: a\n"
            yield b""
            yield b"data: b\n"

    monkeypatch.setattr("httpx.Client", _stream_client(FakeResponse(), events))
    with HttpxTransport(SettingsStub()).open_stream(REQUEST) as (status, chunks):
        assert status == 200
        assert list(chunks) == [b"data: a\n", b"data: b\n"]
    assert events == ["open", "close"]


def test_open_stream_wraps_read_error(monkeypatch):
    events = []

    class FakeResponse:
        status_code = 200

        def iter_bytes(self):
            yield b"data: a\n"
            raise httpx.ReadTimeout("slow upstream")

    monkeypatch.setattr("httpx.Client", _stream_client(FakeResponse(), events))
    with pytest.raises(NetworkError):
        with HttpxTransport(SettingsStub()).open_stream(REQUEST) as (_, chunks):
            list(chunks)
    assert events == ["open", "close"]


def test_raise_for_status():
    raise_for_status(200, b"")
    with pytest.raises(UpstreamRejected) as ei:
        raise_for_status(401, b'{"error": "bad key"}')
    assert ei.value.status == 401
    assert "bad key" in ei.value.body
    with pytest.raises(RateLimitError) as rl:
        raise_for_status(429, b"slow down")
    assert isinstance(rl.value, UpstreamRejected)
    assert rl.value.status == 429
