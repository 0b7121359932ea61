"""Dataclasses for top-level application config."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


DEFAULT_CERT_DIRECTORY = "."
DEFAULT_PRIMARY_CERT_FILENAME = "primary.cert"
DEFAULT_SECONDARY_CERT_FILENAME = "secondary.cert"
DEFAULT_API_PATH = "/api/"
MAX_VALIDATION_ORDINAL = 15


@dataclass(slots=True)
class LoggingConfig:
    level: str = "INFO"
    fmt: str = "ecs_json"
    sink: str = "stdout"
    file_path: str | None = None
    service_name: str = "syslogconf"


@dataclass(slots=True)
class NetworkConfig:
    connect_timeout_seconds: float = 10.0
    tls_timeout_seconds: float = 10.0
    http_timeout_seconds: float = 30.0
    api_path: str = DEFAULT_API_PATH


@dataclass(slots=True)
class CertificateConfig:
    directory: str = DEFAULT_CERT_DIRECTORY
    primary_filename: str = DEFAULT_PRIMARY_CERT_FILENAME
    secondary_filename: str = DEFAULT_SECONDARY_CERT_FILENAME
    password: str = ""


@dataclass(slots=True)
class AgentStoreConfig:
    settings_path: str = "agent/settings.yml"
    channels_path: str = "agent/channels.txt"


@dataclass(slots=True)
class ValidationConfig:
    skip: list[int] = field(default_factory=list)


@dataclass(slots=True)
class APIConfig:
    host: str = "127.0.0.1"
    port: int = 8099
    docs_enabled: bool = False


@dataclass(slots=True)
class AppConfig:
    environment: str
    logging: LoggingConfig
    network: NetworkConfig
    certificates: CertificateConfig
    agent: AgentStoreConfig
    validation: ValidationConfig
    api: APIConfig


VALID_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}
VALID_LOG_FORMATS = {"json", "ecs_json"}
VALID_LOG_SINKS = {"stdout", "file"}


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    raw = data.get(name, {})
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ValueError(f"'{name}' must be an object")
    return raw


def _parse_bool_value(raw: Any, *, field_name: str, default: bool) -> bool:
    if raw is None:
        return default
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, str):
        normalized = raw.strip().lower()
        if normalized in {"1", "true", "yes", "on"}:
            return True
        if normalized in {"0", "false", "no", "off"}:
            return False
    raise ValueError(f"'{field_name}' must be a boolean")


def _parse_timeout(raw: Any, *, field_name: str, default: float) -> float:
    value = float(default if raw is None else raw)
    if value <= 0 or value > 120:
        raise ValueError(f"{field_name} must be between 0 and 120 seconds")
    return value


def _parse_skip_list(raw: Any, *, field_name: str) -> list[int]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ValueError(f"'{field_name}' must be a list")
    values: list[int] = []
    for item in raw:
        try:
            ordinal = int(item)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"'{field_name}' entries must be integers") from exc
        if ordinal < 1 or ordinal > MAX_VALIDATION_ORDINAL:
            raise ValueError(f"'{field_name}' entries must be between 1 and {MAX_VALIDATION_ORDINAL}")
        if ordinal not in values:
            values.append(ordinal)
    return sorted(values)


def _non_empty(raw: Any, *, field_name: str, default: str) -> str:
    value = str(default if raw is None else raw).strip()
    if not value:
        raise ValueError(f"'{field_name}' must not be empty")
    return value


def parse_config(data: dict[str, Any]) -> AppConfig:
    environment = str(data.get("environment", "development"))

    logging_raw = _section(data, "logging")
    level = str(logging_raw.get("level", "INFO")).upper()
    if level not in VALID_LOG_LEVELS:
        raise ValueError(f"invalid logging level '{level}'")
    fmt = str(logging_raw.get("fmt", "ecs_json"))
    if fmt not in VALID_LOG_FORMATS:
        raise ValueError(f"invalid logging format '{fmt}'")
    sink = str(logging_raw.get("sink", "stdout"))
    if sink not in VALID_LOG_SINKS:
        raise ValueError(f"invalid logging sink '{sink}'")
    file_path_raw = logging_raw.get("file_path")
    logging_config = LoggingConfig(
        level=level,
        fmt=fmt,
        sink=sink,
        file_path=str(file_path_raw) if file_path_raw else None,
        service_name=str(logging_raw.get("service_name", "syslogconf")).strip() or "syslogconf",
    )

    network_raw = _section(data, "network")
    api_path = str(network_raw.get("api_path", DEFAULT_API_PATH)).strip() or DEFAULT_API_PATH
    if not api_path.startswith("/"):
        api_path = f"/{api_path}"
    network_config = NetworkConfig(
        connect_timeout_seconds=_parse_timeout(
            network_raw.get("connect_timeout_seconds"),
            field_name="network.connect_timeout_seconds",
            default=10.0,
        ),
        tls_timeout_seconds=_parse_timeout(
            network_raw.get("tls_timeout_seconds"),
            field_name="network.tls_timeout_seconds",
            default=10.0,
        ),
        http_timeout_seconds=_parse_timeout(
            network_raw.get("http_timeout_seconds"),
            field_name="network.http_timeout_seconds",
            default=30.0,
        ),
        api_path=api_path,
    )

    certificates_raw = _section(data, "certificates")
    certificate_config = CertificateConfig(
        directory=_non_empty(
            certificates_raw.get("directory"),
            field_name="certificates.directory",
            default=DEFAULT_CERT_DIRECTORY,
        ),
        primary_filename=_non_empty(
            certificates_raw.get("primary_filename"),
            field_name="certificates.primary_filename",
            default=DEFAULT_PRIMARY_CERT_FILENAME,
        ),
        secondary_filename=_non_empty(
            certificates_raw.get("secondary_filename"),
            field_name="certificates.secondary_filename",
            default=DEFAULT_SECONDARY_CERT_FILENAME,
        ),
        password=str(certificates_raw.get("password", "") or ""),
    )

    agent_raw = _section(data, "agent")
    agent_config = AgentStoreConfig(
        settings_path=_non_empty(
            agent_raw.get("settings_path"),
            field_name="agent.settings_path",
            default="agent/settings.yml",
        ),
        channels_path=_non_empty(
            agent_raw.get("channels_path"),
            field_name="agent.channels_path",
            default="agent/channels.txt",
        ),
    )

    validation_raw = _section(data, "validation")
    validation_config = ValidationConfig(
        skip=_parse_skip_list(validation_raw.get("skip"), field_name="validation.skip"),
    )

    api_raw = _section(data, "api")
    api_port = int(api_raw.get("port", 8099))
    if api_port < 1 or api_port > 65535:
        raise ValueError("api port must be between 1 and 65535")
    api_config = APIConfig(
        host=str(api_raw.get("host", "127.0.0.1")).strip() or "127.0.0.1",
        port=api_port,
        docs_enabled=_parse_bool_value(
            api_raw.get("docs_enabled"),
            field_name="api.docs_enabled",
            default=False,
        ),
    )

    return AppConfig(
        environment=environment,
        logging=logging_config,
        network=network_config,
        certificates=certificate_config,
        agent=agent_config,
        validation=validation_config,
        api=api_config,
    )
