from pathlib import Path

import pytest
import yaml

from syslogconf.core.session import ConfigurationSession
from syslogconf.dashboard.api import create_app


def _client(make_config):
    testclient = pytest.importorskip("fastapi.testclient")
    session = ConfigurationSession(make_config())
    return testclient.TestClient(create_app(session))


def test_create_app_requires_fastapi_if_missing(monkeypatch: pytest.MonkeyPatch, make_config) -> None:
    monkeypatch.setattr("syslogconf.dashboard.api.FastAPI", None)
    monkeypatch.setattr("syslogconf.dashboard.api.Query", None)
    session = ConfigurationSession(make_config())
    with pytest.raises(RuntimeError):
        create_app(session)


def test_health_route(make_config) -> None:
    response = _client(make_config).get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_docs_disabled_by_default(make_config) -> None:
    assert _client(make_config).get("/docs").status_code == 404


def test_channel_tree_and_selection_routes(make_config) -> None:
    client = _client(make_config)

    tree = client.get("/channels").json()
    assert [child["name"] for child in tree["tree"]["children"]] == ["Application", "Security", "Microsoft"]

    response = client.put("/channels/selection", json={"paths": ["Security", "Unknown/Channel"]})
    assert response.status_code == 200
    assert response.json()["selected"] == ["Security"]

    response = client.put("/channels/selection", json={"paths": ["Application"], "exact": False})
    assert response.json()["selected"] == ["Application", "Security"]

    assert client.get("/channels/selected").json()["selected"] == ["Application", "Security"]


def test_selection_route_validates_body(make_config) -> None:
    client = _client(make_config)

    assert client.put("/channels/selection", json={"paths": "Security"}).status_code == 400
    assert client.put("/channels/selection", json=["Security"]).status_code == 400
    assert client.put("/channels/selection", content=b"{not json", headers={"content-type": "application/json"}).status_code == 400


def test_toggle_and_bulk_routes(make_config) -> None:
    client = _client(make_config)

    assert len(client.post("/channels/select-all").json()["selected"]) == 5
    assert client.post("/channels/select-none").json()["selected"] == []
    response = client.post("/channels/toggle", json={"path": "Microsoft-Windows-Sysmon/Operational", "checked": True})
    assert response.json()["selected"] == ["Microsoft-Windows-Sysmon/Operational"]
    assert client.post("/channels/toggle", json={"path": "Nope/Nothing"}).status_code == 404
    assert client.post("/channels/toggle", json={}).status_code == 400


def test_settings_routes(make_config) -> None:
    client = _client(make_config)

    view = client.get("/settings").json()
    assert view["settings"]["facility"] == 20
    assert view["fields"]["primary_host"] == {"value": "", "is_valid": True}

    response = client.patch("/settings", json={"primary_host": "logs.example.com", "max_batch_size": 200})
    assert response.status_code == 200
    assert response.json()["settings"]["max_batch_size"] == "200"

    assert client.patch("/settings", json={"bogus": 1}).status_code == 400


def test_validation_steps_route(make_config) -> None:
    payload = _client(make_config).get("/validation/steps").json()

    assert payload["steps"][0] == {"ordinal": 1, "name": "Primary Host"}
    assert payload["configured_skip"] == []


def test_validate_and_save_routes(make_config, agent_dir: Path) -> None:
    client = _client(make_config)
    client.put("/channels/selection", json={"paths": ["Security"]})

    failed = client.post("/validate").json()
    assert failed["ok"] is False
    assert failed["failure"]["ordinal"] == 1
    assert failed["fields"]["primary_host"]["is_valid"] is False

    offline = [("skip", 1), ("skip", 2), ("skip", 3), ("skip", 4)]
    saved = client.post("/save", params=offline).json()
    assert saved["ok"] is True
    assert saved["saved"] is True
    assert saved["skipped"] == [1, 2, 3, 4]
    stored = yaml.safe_load((agent_dir / "settings.yml").read_text(encoding="utf-8"))
    assert stored["selected_channels"] == ["Security"]
