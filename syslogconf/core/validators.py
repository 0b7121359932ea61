"""Format checks for agent settings fields."""

from __future__ import annotations

from dataclasses import dataclass
import json
import re
from urllib.parse import urlsplit


IPV4_HOST_RE = re.compile(
    r"^(([0-9]|[1-9][0-9]|1[0-9]{2}|2[0-4][0-9]|25[0-5])\.){3}"
    r"([0-9]|[1-9][0-9]|1[0-9]{2}|2[0-4][0-9]|25[0-5])(:\d{1,5})?$"
)
HOSTNAME_RE = re.compile(
    r"^(([a-zA-Z0-9]|[a-zA-Z0-9][a-zA-Z0-9\-]*[a-zA-Z0-9])\.)*"
    r"([A-Za-z0-9]|[A-Za-z0-9][A-Za-z0-9\-]*[A-Za-z0-9])(:\d{1,5})?$"
)
EVENT_IDS_RE = re.compile(r"^([0-9]{1,5},)*([0-9]{1,5})?$")
BARE_FILENAME_RE = re.compile(r"^[\w\-. ]+$")
ABSOLUTE_FILENAME_RE = re.compile(r"^[a-zA-Z]:\\[\\\w\-. ]+$")

MAX_BATCH_SIZE_RANGE = (1, 100000)
MAX_BATCH_AGE_RANGE = (0, 86400000)


def strip_scheme(host: str) -> str:
    text = host.strip()
    for prefix in ("https://", "http://"):
        if text.lower().startswith(prefix):
            return text[len(prefix):]
    return text


def is_valid_host(host: str, *, required: bool = True) -> bool:
    text = strip_scheme(host)
    if not text:
        return not required
    return bool(IPV4_HOST_RE.match(text) or HOSTNAME_RE.match(text))


@dataclass(slots=True)
class Endpoint:
    scheme: str
    host: str
    port: int


def parse_endpoint(address: str) -> Endpoint:
    """Split a host field into scheme, host and port; ``http`` is assumed without a scheme."""
    text = address.strip()
    if "://" not in text:
        text = f"http://{text}"
    parsed = urlsplit(text)
    scheme = parsed.scheme.lower()
    host = parsed.hostname or ""
    # .port raises ValueError for a port outside 0..65535
    port = parsed.port
    if port is None:
        port = 443 if scheme == "https" else 80
    return Endpoint(scheme=scheme, host=host, port=port)


def check_endpoint_scheme(endpoint: Endpoint, use_tls: bool) -> str | None:
    if endpoint.port == 0:
        return "port 0 is not a valid destination port"
    if endpoint.scheme == "https":
        if not use_tls:
            return "https address requires TLS to be enabled"
        return None
    if endpoint.scheme == "http":
        if use_tls:
            return "TLS is enabled but the address uses http"
        return None
    return f"unsupported scheme '{endpoint.scheme}'"


def is_valid_event_ids(text: str) -> bool:
    return bool(EVENT_IDS_RE.fullmatch(text))


def parse_event_ids(text: str) -> list[int]:
    return [int(item) for item in text.strip().split(",") if item]


def is_valid_filename(name: str) -> bool:
    text = name.strip()
    if not text:
        return True
    if "\\" in text or "/" in text:
        return bool(ABSOLUTE_FILENAME_RE.match(text))
    return bool(BARE_FILENAME_RE.match(text))


def is_valid_tail_program(tail_filename: str, program_name: str) -> bool:
    if not tail_filename.strip():
        return True
    return bool(program_name.strip())


def parse_int(text: str) -> int | None:
    value = str(text).strip()
    if not re.fullmatch(r"[+-]?\d+", value):
        return None
    return int(value)


def is_in_range(text: str, minimum: int, maximum: int) -> bool:
    value = parse_int(text)
    return value is not None and minimum <= value <= maximum


def is_positive_int(text: str) -> bool:
    value = parse_int(text)
    return value is not None and value > 0


def check_json_suffix(suffix: str) -> str | None:
    """``None`` when ``{suffix}`` is a JSON object body, else the decoder's complaint."""
    text = suffix.strip()
    if not text:
        return None
    try:
        value = json.loads("{" + text + "}")
    except json.JSONDecodeError as exc:
        return exc.msg
    if not isinstance(value, dict):
        return "not a JSON object"
    return None
