"""Remote API key authentication against the log server's HTTP API."""

from __future__ import annotations

from enum import Enum
from http import client
import re
import ssl
from urllib import error, request

from syslogconf.config.schema import DEFAULT_API_PATH
from syslogconf.core.logging import get_logger


API_KEY_RE = re.compile(r"^[A-Za-z0-9-]{48,54}$")


class ApiKeyError(str, Enum):
    UNAUTHORIZED = "unauthorized"
    WRONG_KEY = "wrong_key"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    NO_RESPONSE = "no_response"
    OTHER = "other"

    @property
    def message(self) -> str:
        return _MESSAGES[self]


_MESSAGES = {
    ApiKeyError.UNAUTHORIZED: "API key validation failed: Unauthorized",
    ApiKeyError.WRONG_KEY: "API key validation failed: wrong key",
    ApiKeyError.FORBIDDEN: "API key validation failed: Forbidden",
    ApiKeyError.NOT_FOUND: "Log server not found",
    ApiKeyError.NO_RESPONSE: "No response from log server",
    ApiKeyError.OTHER: "API key validation failed: unexpected server response",
}

_STATUS_ERRORS = {
    401: ApiKeyError.UNAUTHORIZED,
    403: ApiKeyError.FORBIDDEN,
    404: ApiKeyError.NOT_FOUND,
}


def api_key_format_ok(api_key: str) -> bool:
    return bool(api_key and api_key.strip() and API_KEY_RE.match(api_key.strip()))


def normalize_base_url(host: str, use_tls: bool) -> str:
    url = host.strip()
    if "://" not in url:
        url = ("https://" if use_tls else "http://") + url
    return url.rstrip("/")


class RemoteKeyAuthenticator:
    def __init__(self, *, timeout_seconds: float = 30.0, api_path: str = DEFAULT_API_PATH) -> None:
        self.timeout_seconds = timeout_seconds
        self.api_path = api_path if api_path.startswith("/") else f"/{api_path}"
        self._logger = get_logger("syslogconf.apikey")
        self.last_status: int | None = None
        self.last_detail = ""

    def authenticate(self, host: str, api_key: str, *, use_tls: bool) -> ApiKeyError | None:
        if not api_key_format_ok(api_key):
            self._record(None, "api key format rejected")
            return ApiKeyError.WRONG_KEY

        endpoint = normalize_base_url(host, use_tls) + self.api_path
        req = request.Request(
            endpoint,
            headers={
                "Accept": "application/json",
                "Authorization": f"token {api_key.strip()}",
            },
            method="GET",
        )
        context = None
        if endpoint.lower().startswith("https://"):
            context = ssl.create_default_context()
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
        try:
            with request.urlopen(req, timeout=self.timeout_seconds, context=context) as response:
                status_code = int(getattr(response, "status", 200))
        except error.HTTPError as exc:
            status_code = int(exc.code)
        except (error.URLError, client.HTTPException, OSError, ValueError) as exc:
            self._record(None, f"no response from {endpoint}: {exc}")
            return ApiKeyError.NO_RESPONSE

        if status_code == 200:
            self._record(status_code, f"api key accepted by {endpoint}")
            return None
        kind = _STATUS_ERRORS.get(status_code, ApiKeyError.OTHER)
        self._record(status_code, f"{endpoint} returned status {status_code}")
        return kind

    def _record(self, status_code: int | None, detail: str) -> None:
        self.last_status = status_code
        self.last_detail = detail
        self._logger.info(
            detail,
            extra={
                "event_action": "api_key_check",
                "event_outcome": "success" if status_code == 200 else "failure",
                "payload": {"status": status_code},
            },
        )
