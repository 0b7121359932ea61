"""CLI entry point for syslogconf."""

from __future__ import annotations

import argparse
import ipaddress
import json
from pathlib import Path
from typing import Any, Sequence

from syslogconf.config.loader import initialize_config, load_config
from syslogconf.config.schema import MAX_VALIDATION_ORDINAL
from syslogconf.core.session import ConfigurationSession
from syslogconf.core.store import SettingsStoreError


DEFAULT_CONFIG = Path(__file__).parent / "config" / "defaults.yml"


def _host_is_loopback(host: str) -> bool:
    normalized = host.strip().lower()
    if normalized == "localhost":
        return True
    try:
        parsed = ipaddress.ip_address(normalized)
    except ValueError:
        return False
    return parsed.is_loopback


def _skip_ordinal(value: str) -> int:
    try:
        ordinal = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid validation ordinal: {value}") from exc
    if ordinal < 1 or ordinal > MAX_VALIDATION_ORDINAL:
        raise argparse.ArgumentTypeError(f"validation ordinal must be between 1 and {MAX_VALIDATION_ORDINAL}")
    return ordinal


def _add_skip_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--skip",
        "-s",
        dest="skip",
        type=_skip_ordinal,
        action="append",
        default=[],
        metavar="N",
        help="Bypass validation step N (repeatable)",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="syslogconf")
    subparsers = parser.add_subparsers(dest="command", required=True)

    init_parser = subparsers.add_parser("init", help="Create starter config")
    init_parser.add_argument("--config", type=Path, default=Path("./config/syslogconf.yml"))
    init_parser.add_argument("--force", action="store_true")

    channels_parser = subparsers.add_parser("channels", help="Show the channel selection tree")
    channels_parser.add_argument("--config", type=Path, default=DEFAULT_CONFIG)
    channels_parser.add_argument(
        "--selected",
        action="store_true",
        help="List only the persisted selected channel paths",
    )

    select_parser = subparsers.add_parser("select", help="Change the channel selection and save it")
    select_parser.add_argument("--config", type=Path, default=DEFAULT_CONFIG)
    selection_group = select_parser.add_mutually_exclusive_group(required=True)
    selection_group.add_argument("--channel", dest="channels", action="append", default=None, metavar="PATH")
    selection_group.add_argument("--all", dest="select_all", action="store_true")
    selection_group.add_argument("--none", dest="select_none", action="store_true")
    select_parser.add_argument(
        "--add",
        action="store_true",
        help="Add --channel paths to the current selection instead of replacing it",
    )
    _add_skip_argument(select_parser)

    validate_parser = subparsers.add_parser("validate", help="Run the validation pipeline against saved settings")
    validate_parser.add_argument("--config", type=Path, default=DEFAULT_CONFIG)
    _add_skip_argument(validate_parser)

    save_parser = subparsers.add_parser("save", help="Apply setting overrides, validate, and persist")
    save_parser.add_argument("--config", type=Path, default=DEFAULT_CONFIG)
    save_parser.add_argument(
        "--set",
        dest="assignments",
        action="append",
        default=[],
        metavar="FIELD=VALUE",
        help="Override one settings field before validating (repeatable)",
    )
    _add_skip_argument(save_parser)

    steps_parser = subparsers.add_parser("steps", help="List validation steps and their ordinals")
    steps_parser.add_argument("--config", type=Path, default=DEFAULT_CONFIG)

    api_parser = subparsers.add_parser("api", help="Serve the configuration API")
    api_parser.add_argument("--config", type=Path, default=DEFAULT_CONFIG)
    api_parser.add_argument("--host", type=str, default=None)
    api_parser.add_argument("--port", type=int, default=None)

    return parser


def _parse_assignments(assignments: Sequence[str]) -> dict[str, Any]:
    changes: dict[str, Any] = {}
    for item in assignments:
        key, sep, raw_value = item.partition("=")
        key = key.strip()
        if not sep or not key:
            raise ValueError(f"expected FIELD=VALUE, got '{item}'")
        lowered = raw_value.strip().lower()
        if lowered in {"true", "false"}:
            changes[key] = lowered == "true"
        else:
            changes[key] = raw_value
    return changes


def _open_session(config_path: Path) -> ConfigurationSession:
    config = load_config(config_path)
    session = ConfigurationSession(config)
    session.load()
    return session


def cmd_init(config_path: Path, force: bool) -> int:
    initialize_config(config_path, force=force)
    print(f"wrote config: {config_path}")
    return 0


def cmd_channels(config_path: Path, *, selected: bool) -> int:
    session = _open_session(config_path)
    if selected:
        print(json.dumps({"selected": session.selected_channels()}, indent=2))
        return 0
    tree = session.tree
    payload = {
        "tree": tree.to_dict(),
        "selected": session.selected_channels(),
        "collisions": [
            {"key_parts": list(item.key_parts), "previous_path": item.previous_path, "path": item.path}
            for item in tree.collisions
        ],
    }
    print(json.dumps(payload, indent=2))
    return 0


def cmd_select(
    config_path: Path,
    *,
    channels: Sequence[str] | None,
    select_all: bool,
    select_none: bool,
    add: bool,
    skip: Sequence[int],
) -> int:
    session = _open_session(config_path)
    if select_all:
        session.select_all()
    elif select_none:
        session.select_none()
    else:
        session.apply_selection(channels or [], exact=not add)
    result = session.save(skip)
    payload = {**result.to_dict(), "saved": result.ok, "selected": session.selected_channels()}
    print(json.dumps(payload, indent=2))
    return 0 if result.ok else 1


def cmd_validate(config_path: Path, *, skip: Sequence[int]) -> int:
    session = _open_session(config_path)
    result = session.validate(skip)
    print(json.dumps(result.to_dict(), indent=2))
    return 0 if result.ok else 1


def cmd_save(config_path: Path, *, assignments: Sequence[str], skip: Sequence[int]) -> int:
    session = _open_session(config_path)
    if assignments:
        session.update_settings(_parse_assignments(assignments))
    result = session.save(skip)
    payload = {**result.to_dict(), "saved": result.ok, "fields": session.settings_view()["fields"]}
    print(json.dumps(payload, indent=2))
    return 0 if result.ok else 1


def cmd_steps(config_path: Path) -> int:
    config = load_config(config_path)
    session = ConfigurationSession(config)
    payload = {"steps": session.pipeline.step_names(), "configured_skip": sorted(config.validation.skip)}
    print(json.dumps(payload, indent=2))
    return 0


def cmd_api(config_path: Path, *, host: str | None, port: int | None) -> int:
    config = load_config(config_path)
    bind_host = host or config.api.host
    bind_port = int(port if port is not None else config.api.port)
    if not _host_is_loopback(bind_host):
        raise RuntimeError("refusing to bind the configuration API to a non-loopback host")
    session = ConfigurationSession(config)
    try:
        from syslogconf.dashboard.api import create_app
        import uvicorn
    except Exception as exc:
        raise RuntimeError("configuration api dependencies are missing; install with 'syslogconf[api]'") from exc

    app = create_app(session)
    uvicorn.run(app, host=bind_host, port=bind_port, log_level=config.logging.level.lower())
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        if args.command == "init":
            return cmd_init(args.config, args.force)
        if args.command == "channels":
            return cmd_channels(args.config, selected=args.selected)
        if args.command == "select":
            return cmd_select(
                args.config,
                channels=args.channels,
                select_all=args.select_all,
                select_none=args.select_none,
                add=args.add,
                skip=args.skip,
            )
        if args.command == "validate":
            return cmd_validate(args.config, skip=args.skip)
        if args.command == "save":
            return cmd_save(args.config, assignments=args.assignments, skip=args.skip)
        if args.command == "steps":
            return cmd_steps(args.config)
        if args.command == "api":
            return cmd_api(args.config, host=args.host, port=args.port)
    except (ValueError, SettingsStoreError) as exc:
        print(json.dumps({"ok": False, "error": str(exc)}, indent=2))
        return 1

    parser.error(f"unknown command: {args.command}")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
