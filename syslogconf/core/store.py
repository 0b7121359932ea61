"""File-backed persisted settings and the candidate channel catalog."""

from __future__ import annotations

import os
from pathlib import Path
import tempfile
from typing import Any

import yaml

from syslogconf.core.logging import get_logger
from syslogconf.core.snapshot import AgentSettings, parse_settings


class SettingsStoreError(RuntimeError):
    pass


class SettingsStore:
    """Agent settings persisted as one YAML document; writes replace the file atomically."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._logger = get_logger("syslogconf.store")

    def exists(self) -> bool:
        return self.path.exists()

    def read(self) -> AgentSettings:
        if not self.path.exists():
            self._logger.info(
                f"settings file {self.path} not found; using defaults",
                extra={"event_action": "settings_read", "event_outcome": "unknown"},
            )
            return AgentSettings()
        try:
            raw = yaml.safe_load(self.path.read_text(encoding="utf-8")) or {}
        except (OSError, yaml.YAMLError) as exc:
            raise SettingsStoreError(f"failed to read settings from {self.path}: {exc}") from exc
        if not isinstance(raw, dict):
            raise SettingsStoreError(f"settings file {self.path} must contain a mapping")
        try:
            return parse_settings(raw)
        except ValueError as exc:
            raise SettingsStoreError(f"invalid settings in {self.path}: {exc}") from exc

    def write(self, settings: AgentSettings) -> None:
        payload: dict[str, Any] = settings.to_dict()
        rendered = yaml.safe_dump(payload, sort_keys=False)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            handle, temp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", dir=self.path.parent)
            try:
                with os.fdopen(handle, "w", encoding="utf-8") as stream:
                    stream.write(rendered)
                os.replace(temp_name, self.path)
            except BaseException:
                Path(temp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise SettingsStoreError(f"failed to write settings to {self.path}: {exc}") from exc
        self._logger.info(
            f"settings written to {self.path}",
            extra={
                "event_action": "settings_write",
                "event_outcome": "success",
                "payload": {"selected_channels": len(settings.selected_channels)},
            },
        )


class FileChannelCatalog:
    """Candidate channel paths read from a text file, one path per line.

    Blank lines and lines starting with ``#`` are ignored.  The selected set
    comes from the settings store.
    """

    def __init__(self, channels_path: Path, store: SettingsStore) -> None:
        self.channels_path = Path(channels_path)
        self.store = store

    def all_channel_paths(self) -> list[str]:
        try:
            lines = self.channels_path.read_text(encoding="utf-8").splitlines()
        except OSError as exc:
            raise SettingsStoreError(f"failed to read channel catalog {self.channels_path}: {exc}") from exc
        paths: list[str] = []
        for line in lines:
            text = line.strip()
            if not text or text.startswith("#"):
                continue
            paths.append(text)
        return paths

    def selected_channel_paths(self) -> list[str]:
        return list(self.store.read().selected_channels)
