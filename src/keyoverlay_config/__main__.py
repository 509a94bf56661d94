"""
keyoverlay-config: configuration editor for the keyoverlay daemon.

Usage:
    keyoverlay-config                          # Edit ./keyoverlay.json (or settings' configFile)
    keyoverlay-config --config-file PATH       # Edit a specific config file
    keyoverlay-config --demo                   # Simulate daemon status events
    keyoverlay-config --reset-config           # Delete the config and recreate the default
    keyoverlay-config --print-default          # Print the default config and exit
    keyoverlay-config --log-tail 20            # Show the last 20 editor log entries
"""

from __future__ import annotations

import argparse
import os
import sys
from typing import Optional, Sequence

from .errors import ExitCode, IoFailure, KeyOverlayConfigError
from .events import EventBridge
from .logging import EDITOR_LOG, get_logger, log_context, parse_log_line, read_log_tail
from .producer import DemoProducer
from .session import EditorSession
from .settings import EditorSettings
from .store import DEFAULT_CONFIG_TEXT
from .tui import ConfiguratorApp

_log = get_logger("keyoverlay-config.main")


def _print_log_tail(lines: int) -> None:
    for line in read_log_tail(EDITOR_LOG, lines):
        entry = parse_log_line(line)
        if entry is None:
            print(line)
            continue
        print(f"[{entry.get('timestamp', '')}] {entry.get('level', '')} "
              f"{entry.get('logger', '')}: {entry.get('message', '')}")


def _report_startup_failure(error: KeyOverlayConfigError) -> int:
    """Log and print a startup error. Returns the process exit code."""
    _log.error(
        "Startup failed: %s", error.message,
        extra={"context": log_context(**error.to_dict())},
    )
    print("An error occurred while starting keyoverlay-config:\n", file=sys.stderr)
    print(f"  {error.message}", file=sys.stderr)
    return int(error.exit_code)


def _reset_config(path: str) -> None:
    """Delete *path* so the next open recreates the default. Raises IoFailure."""
    try:
        os.unlink(path)
    except FileNotFoundError:
        return
    except OSError as e:
        raise IoFailure(f"Failed to delete {path}: {e}", path=path) from e
    print(f"  Config: deleted {path}", flush=True)
    _log.info("Config deleted by --reset-config", extra={"context": log_context(path=path)})


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="keyoverlay-config",
        description="Edit the keyoverlay daemon's JSON configuration",
    )
    parser.add_argument("--config-file", default=None, metavar="PATH",
                        help="Daemon config file to edit (default: settings' configFile)")
    parser.add_argument("--settings-file", default=None, metavar="PATH",
                        help="Editor settings YAML (default: ~/.config/keyoverlay-config/config.yml)")
    parser.add_argument("--demo", action="store_true",
                        help="Simulate connected-client updates from a daemon")
    parser.add_argument("--demo-interval", type=float, default=2.0, metavar="SECONDS",
                        help="Mean seconds between simulated updates (default: 2.0)")
    parser.add_argument("--reset-config", action="store_true",
                        help="Delete the config file and recreate it with defaults")
    parser.add_argument("--print-default", action="store_true",
                        help="Print the default config and exit")
    parser.add_argument("--log-tail", type=int, default=None, metavar="N",
                        help="Print the last N editor log entries and exit")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    if args.print_default:
        print(DEFAULT_CONFIG_TEXT)
        return ExitCode.SUCCESS

    if args.log_tail is not None:
        _print_log_tail(args.log_tail)
        return ExitCode.SUCCESS

    settings = EditorSettings.load(args.settings_file)
    config_path = args.config_file or settings.config_file

    bridge = EventBridge(settings.bridge_capacity)
    try:
        if args.reset_config:
            _reset_config(config_path)
        session = EditorSession.open(config_path, bridge)
    except KeyOverlayConfigError as e:
        return _report_startup_failure(e)

    producer = DemoProducer(bridge, interval=args.demo_interval) if args.demo else None
    if producer:
        producer.start()

    try:
        ConfiguratorApp(session, settings=settings).run()
    finally:
        if producer:
            producer.stop()
    return ExitCode.SUCCESS


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
