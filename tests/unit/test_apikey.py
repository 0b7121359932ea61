import socket
import ssl
import threading
from typing import Any
from urllib import error

import pytest

from syslogconf.core.apikey import ApiKeyError, RemoteKeyAuthenticator, api_key_format_ok, normalize_base_url


class _FakeResponse:
    def __init__(self, status: int = 200) -> None:
        self.status = status

    def __enter__(self) -> "_FakeResponse":
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> bool:
        return False


class _FakeUrlopen:
    def __init__(self, status: int = 200, exc: BaseException | None = None) -> None:
        self.status = status
        self.exc = exc
        self.calls: list[dict[str, Any]] = []

    def __call__(self, req: Any, timeout: float = 0.0, context: Any = None) -> _FakeResponse:
        self.calls.append({"request": req, "timeout": timeout, "context": context})
        if self.exc is not None:
            raise self.exc
        return _FakeResponse(self.status)


def _http_error(code: int) -> error.HTTPError:
    return error.HTTPError("http://logs.example.com/api/", code, "status", hdrs=None, fp=None)


def test_api_key_format() -> None:
    assert api_key_format_ok("a" * 48)
    assert api_key_format_ok("A1-" * 18)
    assert not api_key_format_ok("a" * 47)
    assert not api_key_format_ok("a" * 55)
    assert not api_key_format_ok("a" * 47 + "!")
    assert not api_key_format_ok("")


def test_normalize_base_url_adds_scheme_from_tls_flag() -> None:
    assert normalize_base_url("logs.example.com", False) == "http://logs.example.com"
    assert normalize_base_url("logs.example.com/", True) == "https://logs.example.com"
    assert normalize_base_url("http://logs.example.com:8080", True) == "http://logs.example.com:8080"


def test_authenticate_sends_token_header(monkeypatch: pytest.MonkeyPatch, api_key: str) -> None:
    fake = _FakeUrlopen(200)
    monkeypatch.setattr("syslogconf.core.apikey.request.urlopen", fake)
    authenticator = RemoteKeyAuthenticator(timeout_seconds=4.0)

    assert authenticator.authenticate("logs.example.com", api_key, use_tls=False) is None

    call = fake.calls[0]
    req = call["request"]
    assert req.full_url == "http://logs.example.com/api/"
    assert req.get_method() == "GET"
    assert req.get_header("Authorization") == f"token {api_key}"
    assert req.get_header("Accept") == "application/json"
    assert call["timeout"] == 4.0
    assert call["context"] is None
    assert authenticator.last_status == 200


def test_authenticate_disables_certificate_verification_for_https(
    monkeypatch: pytest.MonkeyPatch, api_key: str
) -> None:
    fake = _FakeUrlopen(200)
    monkeypatch.setattr("syslogconf.core.apikey.request.urlopen", fake)

    assert RemoteKeyAuthenticator().authenticate("logs.example.com", api_key, use_tls=True) is None

    context = fake.calls[0]["context"]
    assert fake.calls[0]["request"].full_url == "https://logs.example.com/api/"
    assert context is not None
    assert context.verify_mode == ssl.CERT_NONE
    assert context.check_hostname is False


@pytest.mark.parametrize(
    ("code", "expected"),
    [
        (401, ApiKeyError.UNAUTHORIZED),
        (403, ApiKeyError.FORBIDDEN),
        (404, ApiKeyError.NOT_FOUND),
        (500, ApiKeyError.OTHER),
    ],
)
def test_authenticate_maps_http_errors(
    monkeypatch: pytest.MonkeyPatch, api_key: str, code: int, expected: ApiKeyError
) -> None:
    monkeypatch.setattr("syslogconf.core.apikey.request.urlopen", _FakeUrlopen(exc=_http_error(code)))
    authenticator = RemoteKeyAuthenticator()

    assert authenticator.authenticate("logs.example.com", api_key, use_tls=False) is expected
    assert authenticator.last_status == code


def test_authenticate_unexpected_success_status_is_other(monkeypatch: pytest.MonkeyPatch, api_key: str) -> None:
    monkeypatch.setattr("syslogconf.core.apikey.request.urlopen", _FakeUrlopen(204))

    assert RemoteKeyAuthenticator().authenticate("logs.example.com", api_key, use_tls=False) is ApiKeyError.OTHER


def test_authenticate_without_response(monkeypatch: pytest.MonkeyPatch, api_key: str) -> None:
    fake = _FakeUrlopen(exc=error.URLError("connection refused"))
    monkeypatch.setattr("syslogconf.core.apikey.request.urlopen", fake)

    result = RemoteKeyAuthenticator().authenticate("logs.example.com", api_key, use_tls=False)

    assert result is ApiKeyError.NO_RESPONSE
    assert result.message == "No response from log server"


def test_authenticate_treats_non_http_reply_as_no_response(monkeypatch: pytest.MonkeyPatch, api_key: str) -> None:
    monkeypatch.setenv("no_proxy", "*")
    monkeypatch.setenv("NO_PROXY", "*")
    listener = socket.create_server(("127.0.0.1", 0))
    port = listener.getsockname()[1]

    def _serve_banner() -> None:
        conn, _ = listener.accept()
        with conn:
            conn.recv(4096)
            conn.sendall(b"<13>syslog banner\r\n")

    thread = threading.Thread(target=_serve_banner, daemon=True)
    thread.start()
    try:
        authenticator = RemoteKeyAuthenticator(timeout_seconds=5.0)
        result = authenticator.authenticate(f"127.0.0.1:{port}", api_key, use_tls=False)
    finally:
        thread.join(timeout=5)
        listener.close()

    assert result is ApiKeyError.NO_RESPONSE
    assert authenticator.last_status is None


def test_authenticate_rejects_malformed_key_without_request(monkeypatch: pytest.MonkeyPatch) -> None:
    fake = _FakeUrlopen(200)
    monkeypatch.setattr("syslogconf.core.apikey.request.urlopen", fake)

    result = RemoteKeyAuthenticator().authenticate("logs.example.com", "short-key", use_tls=False)

    assert result is ApiKeyError.WRONG_KEY
    assert result.message == "API key validation failed: wrong key"
    assert fake.calls == []


def test_error_messages() -> None:
    assert ApiKeyError.UNAUTHORIZED.message == "API key validation failed: Unauthorized"
    assert ApiKeyError.FORBIDDEN.message == "API key validation failed: Forbidden"
    assert ApiKeyError.NOT_FOUND.message == "Log server not found"
