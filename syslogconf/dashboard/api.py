"""FastAPI backend exposing a configuration session to a front end."""

from __future__ import annotations

import json
from typing import Any

try:
    from fastapi import FastAPI, HTTPException, Query, Request
except Exception:  # pragma: no cover - optional dependency
    FastAPI = None  # type: ignore[assignment]
    HTTPException = RuntimeError  # type: ignore[assignment]
    Query = None  # type: ignore[assignment]
    Request = Any  # type: ignore[assignment]

from syslogconf.core.session import ConfigurationSession
from syslogconf.core.store import SettingsStoreError


def create_app(session: ConfigurationSession) -> Any:
    if FastAPI is None or Query is None:
        raise RuntimeError("FastAPI is not installed. Install with: pip install 'syslogconf[api]'")

    docs_enabled = bool(session.config.api.docs_enabled)
    app = FastAPI(
        title="syslogconf API",
        version="0.1.0",
        docs_url="/docs" if docs_enabled else None,
        redoc_url="/redoc" if docs_enabled else None,
        openapi_url="/openapi.json" if docs_enabled else None,
    )

    async def _read_object(request: Request) -> dict[str, Any]:
        raw = await request.body()
        if not raw:
            return {}
        try:
            payload = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise HTTPException(status_code=400, detail="request body must be JSON") from exc
        if not isinstance(payload, dict):
            raise HTTPException(status_code=400, detail="request body must be an object")
        return payload

    def _tree_payload() -> dict[str, Any]:
        tree = session.tree
        return {
            "tree": tree.to_dict(),
            "collisions": [
                {"key_parts": list(item.key_parts), "previous_path": item.previous_path, "path": item.path}
                for item in tree.collisions
            ],
        }

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/channels")
    def channels() -> dict[str, Any]:
        try:
            return _tree_payload()
        except SettingsStoreError as exc:
            raise HTTPException(status_code=500, detail=str(exc)) from exc

    @app.get("/channels/selected")
    def channels_selected() -> dict[str, Any]:
        return {"selected": session.selected_channels()}

    @app.put("/channels/selection")
    async def channels_selection(request: Request) -> dict[str, Any]:
        payload = await _read_object(request)
        paths = payload.get("paths", [])
        if not isinstance(paths, list) or not all(isinstance(item, str) for item in paths):
            raise HTTPException(status_code=400, detail="'paths' must be a list of strings")
        exact = payload.get("exact", True)
        if not isinstance(exact, bool):
            raise HTTPException(status_code=400, detail="'exact' must be a boolean")
        return {"selected": session.apply_selection(paths, exact=exact)}

    @app.post("/channels/toggle")
    async def channels_toggle(request: Request) -> dict[str, Any]:
        payload = await _read_object(request)
        path = str(payload.get("path", "")).strip()
        checked = payload.get("checked", True)
        if not path:
            raise HTTPException(status_code=400, detail="'path' is required")
        if not isinstance(checked, bool):
            raise HTTPException(status_code=400, detail="'checked' must be a boolean")
        if not session.toggle(path, checked):
            raise HTTPException(status_code=404, detail=f"unknown channel '{path}'")
        return {"selected": session.selected_channels()}

    @app.post("/channels/select-all")
    def channels_select_all() -> dict[str, Any]:
        session.select_all()
        return {"selected": session.selected_channels()}

    @app.post("/channels/select-none")
    def channels_select_none() -> dict[str, Any]:
        session.select_none()
        return {"selected": session.selected_channels()}

    @app.get("/settings")
    def settings() -> dict[str, Any]:
        return session.settings_view()

    @app.patch("/settings")
    async def settings_update(request: Request) -> dict[str, Any]:
        payload = await _read_object(request)
        try:
            return session.update_settings(payload)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

    @app.get("/validation/steps")
    def validation_steps() -> dict[str, Any]:
        return {"steps": session.pipeline.step_names(), "configured_skip": sorted(session.config.validation.skip)}

    @app.post("/validate")
    def validate(skip: list[int] = Query(default=[])) -> dict[str, Any]:
        result = session.validate(skip)
        return {**result.to_dict(), "fields": session.settings_view()["fields"]}

    @app.post("/save")
    def save(skip: list[int] = Query(default=[])) -> dict[str, Any]:
        try:
            result = session.save(skip)
        except SettingsStoreError as exc:
            raise HTTPException(status_code=500, detail=str(exc)) from exc
        return {**result.to_dict(), "saved": result.ok, "fields": session.settings_view()["fields"]}

    return app
