"""Configuration session: the editable state behind one configurator instance."""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path
import threading
from typing import Any, Iterable

from syslogconf.config.schema import AppConfig
from syslogconf.core.logging import configure_logging, get_logger, log_scope
from syslogconf.core.pipeline import (
    NUMERIC_FIELD_STEPS,
    ValidationPipeline,
    ValidationResult,
    build_default_pipeline,
)
from syslogconf.core.snapshot import ConfigurationSnapshot, SettingsConversionError
from syslogconf.core.store import FileChannelCatalog, SettingsStore
from syslogconf.core.tree import PathTree


class ConfigurationSession:
    def __init__(
        self,
        config: AppConfig,
        *,
        store: SettingsStore | None = None,
        catalog: FileChannelCatalog | None = None,
        pipeline: ValidationPipeline | None = None,
    ) -> None:
        self.config = config
        configure_logging(config.logging)
        self.store = store or SettingsStore(Path(config.agent.settings_path))
        self.catalog = catalog or FileChannelCatalog(Path(config.agent.channels_path), self.store)
        self.pipeline = pipeline or build_default_pipeline(config)
        self._lock = threading.RLock()
        self._logger = get_logger("syslogconf.session")
        self._tree: PathTree | None = None
        self._draft: ConfigurationSnapshot | None = None
        self._last_result: ValidationResult | None = None

    def load(self) -> None:
        """Read persisted settings and rebuild the channel tree from the catalog."""
        with self._lock, log_scope(self._logger, "Load"):
            settings = self.store.read()
            tree = PathTree.build(self.catalog.all_channel_paths())
            tree.reset(False)
            tree.apply_selection(settings.selected_channels)
            self._tree = tree
            self._draft = ConfigurationSnapshot.from_settings(settings)
            self._last_result = None
            self._logger.info(
                "configuration loaded",
                extra={
                    "event_action": "session_load",
                    "event_outcome": "success",
                    "payload": {
                        "channels": sum(1 for _ in tree.leaf_paths()),
                        "selected": len(settings.selected_channels),
                        "collisions": len(tree.collisions),
                    },
                },
            )

    @property
    def tree(self) -> PathTree:
        with self._lock:
            self._ensure_loaded()
            assert self._tree is not None
            return self._tree

    @property
    def last_result(self) -> ValidationResult | None:
        return self._last_result

    def selected_channels(self) -> list[str]:
        with self._lock:
            return list(self.tree.selected_leaf_paths())

    def select_all(self) -> None:
        with self._lock:
            self.tree.set_all_checked(True)

    def select_none(self) -> None:
        with self._lock:
            self.tree.set_all_checked(False)

    def toggle(self, path: str, checked: bool) -> bool:
        with self._lock:
            return self.tree.toggle_path(path, checked)

    def apply_selection(self, paths: Iterable[str], *, exact: bool = True) -> list[str]:
        with self._lock:
            if exact:
                self.tree.reset(False)
            self.tree.apply_selection(paths)
            return list(self.tree.selected_leaf_paths())

    def settings_view(self) -> dict[str, Any]:
        with self._lock:
            draft = self._require_draft()
            values = draft.to_dict()
            values.pop("selected_channels")
            return {"settings": values, "fields": draft.field_states()}

    def update_settings(self, changes: dict[str, Any]) -> dict[str, Any]:
        if "selected_channels" in changes:
            raise ValueError("channel selection is edited through the channel tree")
        with self._lock:
            self._require_draft().update(changes)
            return self.settings_view()

    def snapshot(self) -> ConfigurationSnapshot:
        """A fresh snapshot of the current field contents and tree selection."""
        with self._lock:
            draft = self._require_draft()
            return replace(
                draft,
                selected_channels=list(self.tree.selected_leaf_paths()),
                validity=ConfigurationSnapshot().validity,
            )

    def effective_skip(self, skip: Iterable[int] = ()) -> set[int]:
        return set(self.config.validation.skip) | {int(item) for item in skip}

    def validate(self, skip: Iterable[int] = ()) -> ValidationResult:
        with self._lock:
            snapshot = self.snapshot()
            result = self.pipeline.run(snapshot, self.effective_skip(skip))
            self._require_draft().validity = dict(snapshot.validity)
            self._last_result = result
            return result

    def save(self, skip: Iterable[int] = ()) -> ValidationResult:
        """Validate, then persist only if every non-skipped step passed."""
        with self._lock, log_scope(self._logger, "Save"):
            snapshot = self.snapshot()
            result = self.pipeline.run(snapshot, self.effective_skip(skip))
            self._require_draft().validity = dict(snapshot.validity)
            self._last_result = result
            if not result.ok:
                self._logger.info(
                    f"save aborted: {result.message}",
                    extra={"event_action": "session_save", "event_outcome": "failure"},
                )
                return result
            try:
                settings = snapshot.to_settings()
            except SettingsConversionError as exc:
                # a skipped numeric step can leave unparsable text behind
                draft = self._require_draft()
                draft.mark(exc.field_name, False)
                step = self.pipeline.step(NUMERIC_FIELD_STEPS.get(exc.field_name, 0))
                result.ok = False
                result.ordinal = step.ordinal if step else None
                result.name = step.name if step else None
                result.message = f"Cannot save settings: {exc}"
                self._logger.info(
                    f"save aborted: {result.message}",
                    extra={"event_action": "session_save", "event_outcome": "failure"},
                )
                return result
            self.store.write(settings)
            self._logger.info(
                "configuration saved",
                extra={"event_action": "session_save", "event_outcome": "success"},
            )
            return result

    def _ensure_loaded(self) -> None:
        if self._tree is None or self._draft is None:
            self.load()

    def _require_draft(self) -> ConfigurationSnapshot:
        self._ensure_loaded()
        assert self._draft is not None
        return self._draft
