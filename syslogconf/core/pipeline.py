"""Ordered, skippable, fail-fast validation of a configuration snapshot."""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import partial
from pathlib import Path
from typing import Any, Callable, Iterable, Sequence

from syslogconf.config.schema import AppConfig
from syslogconf.core.apikey import RemoteKeyAuthenticator, api_key_format_ok
from syslogconf.core.certificates import CertificateMatcher
from syslogconf.core.logging import get_logger, log_scope
from syslogconf.core.probe import HostProbe
from syslogconf.core.snapshot import ConfigurationSnapshot
from syslogconf.core import validators


StepCheck = Callable[[ConfigurationSnapshot], str | None]

# range steps whose field text is converted to an integer on save
NUMERIC_FIELD_STEPS = {"max_batch_size": 12, "max_batch_age": 13, "batch_interval": 14}

MatcherFactory = Callable[[Path], CertificateMatcher]


@dataclass(slots=True, frozen=True)
class ValidationStep:
    ordinal: int
    name: str
    check: StepCheck


@dataclass(slots=True)
class ValidationResult:
    ok: bool
    ordinal: int | None = None
    name: str | None = None
    message: str | None = None
    skipped: list[int] = field(default_factory=list)
    passed: list[int] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": self.ok,
            "failure": (
                None
                if self.ok
                else {"ordinal": self.ordinal, "name": self.name, "message": self.message}
            ),
            "skipped": list(self.skipped),
            "passed": list(self.passed),
        }


class ValidationPipeline:
    def __init__(self, steps: Iterable[ValidationStep]) -> None:
        ordered = sorted(steps, key=lambda item: item.ordinal)
        seen: set[int] = set()
        for step in ordered:
            if step.ordinal in seen:
                raise ValueError(f"duplicate validation ordinal {step.ordinal}")
            seen.add(step.ordinal)
        self.steps: tuple[ValidationStep, ...] = tuple(ordered)
        self._logger = get_logger("syslogconf.pipeline")

    def step_names(self) -> list[dict[str, Any]]:
        return [{"ordinal": step.ordinal, "name": step.name} for step in self.steps]

    def step(self, ordinal: int) -> ValidationStep | None:
        for item in self.steps:
            if item.ordinal == ordinal:
                return item
        return None

    def run(self, snapshot: ConfigurationSnapshot, skip: Iterable[int] = ()) -> ValidationResult:
        skip_set = {int(item) for item in skip}
        result = ValidationResult(ok=True)
        with log_scope(self._logger, "Validation"):
            for step in self.steps:
                step_extra = {"step": {"ordinal": step.ordinal, "name": step.name}}
                if step.ordinal in skip_set:
                    self._logger.info(
                        f"Skipping validation {step.ordinal}: {step.name}",
                        extra={"event_action": "validation_skip", **step_extra},
                    )
                    result.skipped.append(step.ordinal)
                    continue

                try:
                    message = step.check(snapshot)
                except Exception as exc:
                    self._logger.error(
                        f"exception during validation {step.ordinal} of {step.name}",
                        exc_info=True,
                        extra={"event_action": "validation_step", "event_outcome": "failure", **step_extra},
                    )
                    message = f"Error validating {step.name}: {exc}"

                if message is not None:
                    self._logger.warning(
                        f"Validation {step.ordinal} failed for {step.name}: {message}",
                        extra={"event_action": "validation_step", "event_outcome": "failure", **step_extra},
                    )
                    result.ok = False
                    result.ordinal = step.ordinal
                    result.name = step.name
                    result.message = message
                    return result

                result.passed.append(step.ordinal)
                self._logger.debug(
                    f"Validation {step.ordinal} passed: {step.name}",
                    extra={"event_action": "validation_step", "event_outcome": "success", **step_extra},
                )

            self._logger.info(
                "all non-skipped validations passed",
                extra={"event_action": "validation_run", "event_outcome": "success"},
            )
        return result


def _host_format(field_name: str, required: Callable[[ConfigurationSnapshot], bool], failure: str) -> StepCheck:
    def check(snapshot: ConfigurationSnapshot) -> str | None:
        text = getattr(snapshot, field_name)
        is_valid = validators.is_valid_host(text, required=required(snapshot))
        snapshot.mark(field_name, is_valid)
        return None if is_valid else failure

    return check


def _host_connectivity(
    probe: HostProbe,
    host_field: str,
    tls_field: str,
    required: Callable[[ConfigurationSnapshot], bool],
    label: str,
) -> StepCheck:
    def check(snapshot: ConfigurationSnapshot) -> str | None:
        if not required(snapshot):
            return None
        try:
            endpoint = validators.parse_endpoint(getattr(snapshot, host_field))
        except ValueError as exc:
            return f"{label}: {exc}"
        problem = validators.check_endpoint_scheme(endpoint, getattr(snapshot, tls_field))
        if problem is not None:
            return f"{label}: {problem}"
        reason = probe.probe(endpoint.host, endpoint.port)
        return None if reason is None else f"{label} {reason}"

    return check


def _tls_certificate(
    matcher_factory: MatcherFactory,
    cert_path: Path,
    host_field: str,
    tls_field: str,
    required: Callable[[ConfigurationSnapshot], bool],
    failure: str,
) -> StepCheck:
    def check(snapshot: ConfigurationSnapshot) -> str | None:
        if not getattr(snapshot, tls_field) or not required(snapshot):
            return None
        host = getattr(snapshot, host_field).strip()
        url = host if host.lower().startswith("https://") else f"https://{host}"
        matcher = matcher_factory(cert_path)
        return None if matcher.matches(url) else failure

    return check


def _api_key(
    authenticator: RemoteKeyAuthenticator,
    host_field: str,
    tls_field: str,
    key_field: str,
    required: Callable[[ConfigurationSnapshot], bool],
    failure: str,
) -> StepCheck:
    def check(snapshot: ConfigurationSnapshot) -> str | None:
        if not required(snapshot):
            return None
        api_key = getattr(snapshot, key_field)
        if not api_key_format_ok(api_key):
            return failure
        error = authenticator.authenticate(
            getattr(snapshot, host_field),
            api_key,
            use_tls=getattr(snapshot, tls_field),
        )
        return None if error is None else error.message

    return check


def _event_ids(snapshot: ConfigurationSnapshot) -> str | None:
    is_valid = snapshot.mark("event_id_filter", validators.is_valid_event_ids(snapshot.event_id_filter))
    return None if is_valid else "Invalid event ID filter"


def _filenames(snapshot: ConfigurationSnapshot) -> str | None:
    debug_ok = snapshot.mark("debug_log_filename", validators.is_valid_filename(snapshot.debug_log_filename))
    tail_ok = snapshot.mark("tail_filename", validators.is_valid_filename(snapshot.tail_filename))
    if not debug_ok:
        return "Invalid debug log filename"
    if not tail_ok:
        return "Invalid tail filename"
    return None


def _tail_program_name(snapshot: ConfigurationSnapshot) -> str | None:
    is_valid = snapshot.mark(
        "tail_program_name",
        validators.is_valid_tail_program(snapshot.tail_filename, snapshot.tail_program_name),
    )
    return None if is_valid else "Set a short program name for the tail log messages"


def _numeric_range(field_name: str, bounds: tuple[int, int], failure: str) -> StepCheck:
    minimum, maximum = bounds

    def check(snapshot: ConfigurationSnapshot) -> str | None:
        is_valid = validators.is_in_range(getattr(snapshot, field_name), minimum, maximum)
        snapshot.mark(field_name, is_valid)
        return None if is_valid else failure

    return check


def _batch_interval(snapshot: ConfigurationSnapshot) -> str | None:
    is_valid = snapshot.mark("batch_interval", validators.is_positive_int(snapshot.batch_interval))
    return None if is_valid else "Invalid batch interval"


def _json_suffix(snapshot: ConfigurationSnapshot) -> str | None:
    problem = validators.check_json_suffix(snapshot.suffix)
    snapshot.mark("suffix", problem is None)
    return None if problem is None else f"Invalid JSON body: {problem}"


def _always(_snapshot: ConfigurationSnapshot) -> bool:
    return True


def _sends_to_secondary(snapshot: ConfigurationSnapshot) -> bool:
    return snapshot.send_to_secondary


def build_default_pipeline(
    config: AppConfig,
    *,
    probe: HostProbe | None = None,
    matcher_factory: MatcherFactory | None = None,
    authenticator: RemoteKeyAuthenticator | None = None,
) -> ValidationPipeline:
    probe = probe or HostProbe(timeout_seconds=config.network.connect_timeout_seconds)
    authenticator = authenticator or RemoteKeyAuthenticator(
        timeout_seconds=config.network.http_timeout_seconds,
        api_path=config.network.api_path,
    )
    if matcher_factory is None:
        matcher_factory = partial(
            CertificateMatcher,
            password=config.certificates.password,
            timeout_seconds=config.network.tls_timeout_seconds,
        )

    cert_dir = Path(config.certificates.directory)
    primary_cert = cert_dir / config.certificates.primary_filename
    secondary_cert = cert_dir / config.certificates.secondary_filename

    steps: Sequence[ValidationStep] = (
        ValidationStep(1, "Primary Host", _host_format("primary_host", _always, "Invalid primary host")),
        ValidationStep(
            2,
            "Primary Host Connectivity",
            _host_connectivity(probe, "primary_host", "primary_use_tls", _always, "Primary host"),
        ),
        ValidationStep(
            3,
            "Primary TLS Certificate",
            _tls_certificate(
                matcher_factory,
                primary_cert,
                "primary_host",
                "primary_use_tls",
                _always,
                "Primary host certificate does not match the .pfx file",
            ),
        ),
        ValidationStep(
            4,
            "Primary API Key",
            _api_key(
                authenticator,
                "primary_host",
                "primary_use_tls",
                "primary_api_key",
                _always,
                "Invalid primary API key",
            ),
        ),
        ValidationStep(
            5,
            "Secondary Host",
            _host_format("secondary_host", _sends_to_secondary, "Invalid secondary host"),
        ),
        ValidationStep(
            6,
            "Secondary Host Connectivity",
            _host_connectivity(probe, "secondary_host", "secondary_use_tls", _sends_to_secondary, "Secondary host"),
        ),
        ValidationStep(
            7,
            "Secondary TLS Certificate",
            _tls_certificate(
                matcher_factory,
                secondary_cert,
                "secondary_host",
                "secondary_use_tls",
                _sends_to_secondary,
                "Secondary host certificate does not match the .pfx file",
            ),
        ),
        ValidationStep(
            8,
            "Secondary API Key",
            _api_key(
                authenticator,
                "secondary_host",
                "secondary_use_tls",
                "secondary_api_key",
                _sends_to_secondary,
                "Invalid secondary API key",
            ),
        ),
        ValidationStep(9, "Event IDs", _event_ids),
        ValidationStep(10, "Filenames", _filenames),
        ValidationStep(11, "Tail Program Name", _tail_program_name),
        ValidationStep(
            12,
            "Max Batch Size",
            _numeric_range(
                "max_batch_size",
                validators.MAX_BATCH_SIZE_RANGE,
                "Max Batch Size must be between 1 and 100000",
            ),
        ),
        ValidationStep(
            13,
            "Max Batch Age",
            _numeric_range(
                "max_batch_age",
                validators.MAX_BATCH_AGE_RANGE,
                "Max Batch Age must be between 0 and 86400000 milliseconds (24 hours)",
            ),
        ),
        ValidationStep(14, "Batch Interval", _batch_interval),
        ValidationStep(15, "JSON Suffix", _json_suffix),
    )
    return ValidationPipeline(steps)
