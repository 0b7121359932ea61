"""Persisted agent settings and the per-run configuration snapshot."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from typing import Any


DEFAULT_PRIMARY_PORT = 515
DEFAULT_PRIMARY_TLS_PORT = 1999
DEFAULT_FACILITY = 20
DEFAULT_SEVERITY = 8
DEFAULT_EVENT_POLL_INTERVAL = 10
DEFAULT_DEBUG_LOG_FILENAME = "syslogagent.log"

VALIDATED_FIELDS = (
    "primary_host",
    "secondary_host",
    "event_id_filter",
    "debug_log_filename",
    "tail_filename",
    "tail_program_name",
    "max_batch_size",
    "max_batch_age",
    "batch_interval",
    "suffix",
)



class SettingsConversionError(ValueError):
    def __init__(self, field_name: str, value: object) -> None:
        super().__init__(f"'{field_name}' must be an integer, got '{value}'")
        self.field_name = field_name


@dataclass(slots=True)
class AgentSettings:
    primary_host: str = ""
    primary_use_tls: bool = False
    primary_api_key: str = ""
    send_to_secondary: bool = False
    secondary_host: str = ""
    secondary_use_tls: bool = False
    secondary_api_key: str = ""
    event_id_filter: str = ""
    include_event_ids: bool = False
    only_while_running: bool = False
    look_up_accounts: bool = True
    facility: int = DEFAULT_FACILITY
    severity: int = DEFAULT_SEVERITY
    suffix: str = ""
    event_poll_interval: int = DEFAULT_EVENT_POLL_INTERVAL
    batch_interval: int = 1000
    max_batch_size: int = 1000
    max_batch_age: int = 10000
    debug_level: int = 0
    debug_log_filename: str = DEFAULT_DEBUG_LOG_FILENAME
    tail_filename: str = ""
    tail_program_name: str = ""
    selected_channels: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


_INT_FIELDS = {item.name for item in fields(AgentSettings) if item.type in ("int", int)}
_BOOL_FIELDS = {item.name for item in fields(AgentSettings) if item.type in ("bool", bool)}
_STR_FIELDS = {item.name for item in fields(AgentSettings) if item.type in ("str", str)}


def parse_settings(data: dict[str, Any]) -> AgentSettings:
    """Build settings from a mapping, keeping defaults for missing keys."""
    settings = AgentSettings()
    for key, value in data.items():
        if value is None:
            continue
        if key in _INT_FIELDS:
            try:
                setattr(settings, key, int(value))
            except (TypeError, ValueError) as exc:
                raise ValueError(f"'{key}' must be an integer") from exc
        elif key in _BOOL_FIELDS:
            if not isinstance(value, bool):
                raise ValueError(f"'{key}' must be a boolean")
            setattr(settings, key, value)
        elif key in _STR_FIELDS:
            setattr(settings, key, str(value))
        elif key == "selected_channels":
            if not isinstance(value, list):
                raise ValueError("'selected_channels' must be a list")
            settings.selected_channels = [str(item) for item in value if str(item).strip()]
    return settings


@dataclass(slots=True)
class ConfigurationSnapshot:
    """Field contents as an operator would enter them, plus per-field validity.

    Numeric fields stay strings until a run has parsed and range-checked
    them; ``validity`` is written by the format-checking steps and read back
    by whatever renders the fields.
    """

    primary_host: str = ""
    primary_use_tls: bool = False
    primary_api_key: str = ""
    send_to_secondary: bool = False
    secondary_host: str = ""
    secondary_use_tls: bool = False
    secondary_api_key: str = ""
    event_id_filter: str = ""
    include_event_ids: bool = False
    only_while_running: bool = False
    look_up_accounts: bool = True
    facility: int = DEFAULT_FACILITY
    severity: int = DEFAULT_SEVERITY
    suffix: str = ""
    event_poll_interval: int = DEFAULT_EVENT_POLL_INTERVAL
    batch_interval: str = "1000"
    max_batch_size: str = "1000"
    max_batch_age: str = "10000"
    debug_level: int = 0
    debug_log_filename: str = DEFAULT_DEBUG_LOG_FILENAME
    tail_filename: str = ""
    tail_program_name: str = ""
    selected_channels: list[str] = field(default_factory=list)
    validity: dict[str, bool] = field(default_factory=lambda: {name: True for name in VALIDATED_FIELDS})

    @classmethod
    def from_settings(cls, settings: AgentSettings, selected_channels: list[str] | None = None) -> ConfigurationSnapshot:
        values = settings.to_dict()
        for name in _TEXT_NUMERIC_FIELDS:
            values[name] = str(values[name])
        if selected_channels is not None:
            values["selected_channels"] = list(selected_channels)
        return cls(**values)

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload.pop("validity")
        return payload

    def mark(self, name: str, is_valid: bool) -> bool:
        self.validity[name] = is_valid
        return is_valid

    def is_valid(self, name: str) -> bool:
        return self.validity.get(name, True)

    def field_states(self) -> dict[str, dict[str, Any]]:
        return {name: {"value": getattr(self, name), "is_valid": self.is_valid(name)} for name in VALIDATED_FIELDS}

    def to_settings(self) -> AgentSettings:
        """Typed settings; only meaningful after a successful validation run."""
        values: dict[str, Any] = {}
        for item in fields(AgentSettings):
            values[item.name] = getattr(self, item.name)
        for name in _TEXT_NUMERIC_FIELDS:
            try:
                values[name] = int(str(values[name]).strip())
            except ValueError as exc:
                raise SettingsConversionError(name, values[name]) from exc
        values["selected_channels"] = list(self.selected_channels)
        return AgentSettings(**values)

    def update(self, changes: dict[str, Any]) -> None:
        for key in changes:
            if key not in _EDITABLE_FIELDS:
                raise ValueError(f"unknown settings field '{key}'")
        for key, value in changes.items():
            if key in _BOOL_FIELDS:
                if not isinstance(value, bool):
                    raise ValueError(f"'{key}' must be a boolean")
            elif key in _INT_FIELDS and key not in _TEXT_NUMERIC_FIELDS:
                try:
                    value = int(value)
                except (TypeError, ValueError) as exc:
                    raise ValueError(f"'{key}' must be an integer") from exc
            elif key == "selected_channels":
                if not isinstance(value, list):
                    raise ValueError("'selected_channels' must be a list")
                value = [str(item) for item in value]
            else:
                value = "" if value is None else str(value)
            setattr(self, key, value)


_TEXT_NUMERIC_FIELDS = ("max_batch_size", "max_batch_age", "batch_interval")
_EDITABLE_FIELDS = {item.name for item in fields(ConfigurationSnapshot)} - {"validity"}
