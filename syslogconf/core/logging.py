"""Structured ECS logging for configuration sessions."""

from __future__ import annotations

from contextlib import contextmanager
from datetime import UTC, datetime
import json
import logging
from pathlib import Path
import time
from typing import Iterator

from syslogconf.config.schema import LoggingConfig


def _strip_empty(value: object) -> object | None:
    if isinstance(value, dict):
        cleaned = {key: _strip_empty(item) for key, item in value.items()}
        return {key: item for key, item in cleaned.items() if item is not None} or None
    if isinstance(value, list):
        cleaned_list = [_strip_empty(item) for item in value]
        return [item for item in cleaned_list if item is not None] or None
    if value in ("", None):
        return None
    return value


class ECSJsonFormatter(logging.Formatter):
    def __init__(self, service_name: str = "syslogconf") -> None:
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created, UTC).isoformat(timespec="microseconds")
        payload: dict[str, object] = {
            "@timestamp": timestamp,
            "message": record.getMessage(),
            "log": {
                "level": record.levelname.lower(),
                "logger": record.name,
            },
            "service": {
                "name": getattr(record, "service_name", self.service_name),
            },
            "event": {
                "kind": "event",
                "category": getattr(record, "event_category", "configuration"),
                "action": getattr(record, "event_action", None),
                "outcome": getattr(record, "event_outcome", None),
                "duration": getattr(record, "event_duration", None),
            },
            "error": {
                "message": str(record.exc_info[1]) if record.exc_info and record.exc_info[1] else None,
                "type": record.exc_info[0].__name__ if record.exc_info and record.exc_info[0] else None,
            },
            "syslogconf": {
                "step": getattr(record, "step", None),
                "payload": getattr(record, "payload", None),
            },
        }
        cleaned = _strip_empty(payload) or {}
        return json.dumps(cleaned, separators=(",", ":"), default=str)


class _PlainFormatter(logging.Formatter):
    def __init__(self) -> None:
        super().__init__("%(asctime)s %(levelname)s %(name)s: %(message)s")


def _sink_handler(config: LoggingConfig, formatter: logging.Formatter) -> logging.Handler:
    if config.sink == "file":
        file_path = config.file_path or "logs/syslogconf.log"
        log_file = Path(file_path)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = logging.FileHandler(log_file, encoding="utf-8")
    else:
        handler = logging.StreamHandler()
    handler.setFormatter(formatter)
    return handler


def configure_logging(config: LoggingConfig, force: bool = False) -> None:
    root = logging.getLogger("syslogconf")
    if getattr(root, "_syslogconf_configured", False) and not force:
        return

    formatter: logging.Formatter
    if config.fmt == "ecs_json":
        formatter = ECSJsonFormatter(service_name=config.service_name)
    else:
        formatter = _PlainFormatter()
    root.setLevel(config.level)
    for existing in list(root.handlers):
        existing.close()
    root.handlers.clear()
    root.addHandler(_sink_handler(config, formatter))

    root.propagate = False
    setattr(root, "_syslogconf_configured", True)


def get_logger(name: str, level: str | None = None) -> logging.Logger:
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    if name.startswith("syslogconf"):
        parent = logging.getLogger("syslogconf")
        if parent.handlers:
            # unpinned children follow the level set by configure_logging
            logger.setLevel(level or logging.NOTSET)
            logger.propagate = True
            return logger

    handler = logging.StreamHandler()
    handler.setFormatter(ECSJsonFormatter())
    logger.addHandler(handler)
    logger.setLevel(level or "INFO")
    logger.propagate = False
    return logger


@contextmanager
def log_scope(logger: logging.Logger, name: str) -> Iterator[None]:
    """Log the begin and end of a named operation with its duration in milliseconds."""
    action = name.strip().lower().replace(" ", "_") or "scope"
    logger.debug(f"begin {name}", extra={"event_action": action, "event_outcome": "unknown"})
    started = time.perf_counter()
    outcome = "success"
    try:
        yield
    except Exception:
        outcome = "failure"
        raise
    finally:
        elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
        logger.debug(
            f"end {name} ({elapsed_ms:.2f}ms)",
            extra={
                "event_action": action,
                "event_outcome": outcome,
                "event_duration": int(elapsed_ms * 1_000_000),
            },
        )
