from __future__ import annotations

import datetime as dt
import logging
import os
from pathlib import Path
from typing import Any, Callable

from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID
import pytest

from syslogconf.config.schema import AppConfig, parse_config


# Keep default-config test runs deterministic regardless of the caller's shell.
for _name in ("SYSLOGCONF_CERT_DIR", "SYSLOGCONF_SETTINGS", "SYSLOGCONF_CHANNELS"):
    os.environ.pop(_name, None)

VALID_API_KEY = "a1b2c3d4-e5f6-a7b8-c9d0-e1f2a3b4c5d6e7f8a9b0c1d2e3"

CHANNELS = [
    "Application",
    "Security",
    "Microsoft-Windows-PowerShell/Operational",
    "Microsoft-Windows-PowerShell/Admin",
    "Microsoft-Windows-Sysmon/Operational",
]


@pytest.fixture(autouse=True)
def _reset_syslogconf_loggers() -> Any:
    yield
    for name in list(logging.Logger.manager.loggerDict):
        if name != "syslogconf" and not name.startswith("syslogconf."):
            continue
        logger = logging.getLogger(name)
        for handler in list(logger.handlers):
            handler.close()
        logger.handlers.clear()
        if hasattr(logger, "_syslogconf_configured"):
            delattr(logger, "_syslogconf_configured")


@pytest.fixture()
def agent_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "agent"
    directory.mkdir()
    (directory / "channels.txt").write_text(
        "# exported channel list\n" + "\n".join(CHANNELS) + "\n\n",
        encoding="utf-8",
    )
    return directory


@pytest.fixture()
def make_config(tmp_path: Path, agent_dir: Path) -> Callable[..., AppConfig]:
    def _make(**overrides: Any) -> AppConfig:
        data: dict[str, Any] = {
            "logging": {"sink": "file", "file_path": str(tmp_path / "logs" / "syslogconf.log"), "level": "DEBUG"},
            "certificates": {"directory": str(tmp_path / "certs")},
            "agent": {
                "settings_path": str(agent_dir / "settings.yml"),
                "channels_path": str(agent_dir / "channels.txt"),
            },
        }
        data.update(overrides)
        return parse_config(data)

    return _make


@pytest.fixture()
def config_file(tmp_path: Path, agent_dir: Path) -> Path:
    path = tmp_path / "syslogconf.yml"
    path.write_text(
        "\n".join(
            [
                "environment: test",
                "logging:",
                "  sink: file",
                f"  file_path: {tmp_path / 'logs' / 'syslogconf.log'}",
                "certificates:",
                f"  directory: {tmp_path / 'certs'}",
                "agent:",
                f"  settings_path: {agent_dir / 'settings.yml'}",
                f"  channels_path: {agent_dir / 'channels.txt'}",
                "",
            ]
        ),
        encoding="utf-8",
    )
    return path


def make_certificate(
    common_name: str = "logs.example.com",
    key: rsa.RSAPrivateKey | None = None,
) -> tuple[x509.Certificate, rsa.RSAPrivateKey]:
    key = key or rsa.generate_private_key(public_exponent=65537, key_size=2048)
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
    now = dt.datetime.now(dt.timezone.utc)
    certificate = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - dt.timedelta(days=1))
        .not_valid_after(now + dt.timedelta(days=30))
        .sign(key, hashes.SHA256())
    )
    return certificate, key


@pytest.fixture()
def certificate_factory() -> Callable[..., tuple[x509.Certificate, rsa.RSAPrivateKey]]:
    return make_certificate


@pytest.fixture()
def api_key() -> str:
    return VALID_API_KEY
