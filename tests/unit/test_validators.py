import pytest

from syslogconf.core import validators


@pytest.mark.parametrize(
    "host",
    [
        "logs.example.com",
        "logs",
        "10.1.2.3",
        "10.1.2.3:515",
        "logs.example.com:1999",
        "https://logs.example.com",
        "http://10.0.0.1:80",
    ],
)
def test_valid_hosts(host: str) -> None:
    assert validators.is_valid_host(host) is True


@pytest.mark.parametrize(
    "host",
    ["bad host", "-leading.example.com", "logs.example.com:123456", "logs_example.com", "logs..example.com"],
)
def test_invalid_hosts(host: str) -> None:
    assert validators.is_valid_host(host) is False


def test_empty_host_depends_on_required_flag() -> None:
    assert validators.is_valid_host("", required=True) is False
    assert validators.is_valid_host("  ", required=False) is True
    assert validators.is_valid_host("bad host", required=False) is False


def test_parse_endpoint_defaults() -> None:
    assert validators.parse_endpoint("logs.example.com") == validators.Endpoint("http", "logs.example.com", 80)
    assert validators.parse_endpoint("https://logs.example.com") == validators.Endpoint(
        "https", "logs.example.com", 443
    )
    assert validators.parse_endpoint("http://logs.example.com:8080").port == 8080


def test_parse_endpoint_rejects_port_out_of_range() -> None:
    with pytest.raises(ValueError):
        validators.parse_endpoint("logs.example.com:99999")


def test_endpoint_scheme_must_agree_with_tls_flag() -> None:
    https = validators.parse_endpoint("https://logs.example.com")
    http = validators.parse_endpoint("logs.example.com")

    assert validators.check_endpoint_scheme(https, True) is None
    assert validators.check_endpoint_scheme(http, False) is None
    assert validators.check_endpoint_scheme(https, False) is not None
    assert validators.check_endpoint_scheme(http, True) is not None
    assert validators.check_endpoint_scheme(validators.parse_endpoint("ftp://logs.example.com"), False) is not None
    assert validators.check_endpoint_scheme(validators.parse_endpoint("logs.example.com:0"), False) is not None


@pytest.mark.parametrize(("text", "expected"), [("", True), ("4624", True), ("4624,4625", True), ("4624,", True), ("123456", False), ("1,,2", False), ("a", False), (" 4624", False), ("4624\n", False)])
def test_event_ids(text: str, expected: bool) -> None:
    assert validators.is_valid_event_ids(text) is expected


def test_parse_event_ids() -> None:
    assert validators.parse_event_ids("4624,4625,") == [4624, 4625]


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("", True),
        ("syslogagent.log", True),
        ("agent log-1.txt", True),
        ("C:\\logs\\agent.log", True),
        ("logs/agent.log", False),
        ("C:/logs/agent.log", False),
        ("bad|name.log", False),
    ],
)
def test_filenames(name: str, expected: bool) -> None:
    assert validators.is_valid_filename(name) is expected


def test_tail_program_name_required_only_with_tail_file() -> None:
    assert validators.is_valid_tail_program("", "") is True
    assert validators.is_valid_tail_program("app.log", "") is False
    assert validators.is_valid_tail_program("app.log", "myapp") is True


@pytest.mark.parametrize(("text", "expected"), [("100001", False), ("1", True), ("100000", True), ("0", False), ("abc", False), (" 50 ", True)])
def test_numeric_range_for_batch_size(text: str, expected: bool) -> None:
    assert validators.is_in_range(text, *validators.MAX_BATCH_SIZE_RANGE) is expected


def test_positive_interval() -> None:
    assert validators.is_positive_int("1000") is True
    assert validators.is_positive_int("0") is False
    assert validators.is_positive_int("-5") is False
    assert validators.is_positive_int("1.5") is False


def test_json_suffix() -> None:
    assert validators.check_json_suffix("") is None
    assert validators.check_json_suffix('"site": "hq", "rack": 4') is None
    assert validators.check_json_suffix('"site":') is not None
    assert validators.check_json_suffix("site") is not None
