"""Entrypoint.

Usage:
  python -m candle_signals.app.main run < input.json
  python -m candle_signals.app.main run --input input.json --config config/default.yaml
  python -m candle_signals.app.main run --input input.json --dispatch   # log notification requests
  python -m candle_signals.app.main strategies                          # list strategies and defaults
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

from pydantic import TypeAdapter

from candle_signals.app.pipeline import run
from candle_signals.infrastructure.logging.logging import configure_logging, get_logger, invocation_context
from candle_signals.infrastructure.utils.config import load_settings
from candle_signals.models.signal_models import NotificationRequest
from candle_signals.services.notify.dispatcher import LoggingDispatcher
from candle_signals.services.strategy.strategies import STRATEGIES


def _read_input(path: Optional[str]) -> str:
    if path is None or path == "-":
        return sys.stdin.read()
    return Path(path).read_text(encoding="utf-8")


_NOTIFICATION_ADAPTER = TypeAdapter(NotificationRequest)


def _dispatch(output: str) -> None:
    request = json.loads(output).get("notification")
    if request:
        LoggingDispatcher().dispatch(_NOTIFICATION_ADAPTER.validate_python(request))


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser("candle-signals")
    parser.add_argument("command", choices=["run", "strategies"], help="What to run")
    parser.add_argument("--input", default=None, help="Input JSON file (default: stdin)")
    parser.add_argument("--config", default=None, help="Settings YAML (default: config/default.yaml if present)")
    parser.add_argument("--dispatch", action="store_true", help="Hand notification requests to the dry-run dispatcher")
    args = parser.parse_args(argv)

    settings = load_settings(Path(args.config) if args.config else None)
    configure_logging(settings.log_level)
    log = get_logger("main")

    if args.command == "strategies":
        for name, strategy in STRATEGIES.items():
            print(json.dumps({"strategy": name, "defaults": dict(strategy.defaults)}, sort_keys=True))
        return 0

    with invocation_context(command=args.command, source=args.input or "stdin"):
        output = run(_read_input(args.input), settings)
        sys.stdout.write(output + "\n")

        status = json.loads(output).get("status")
        if status == "ok" and args.dispatch:
            if settings.notifications.dry_run:
                _dispatch(output)
            else:
                log.warning("dispatch_skipped", reason="only dry-run dispatch is bundled")
    return 0 if status == "ok" else 1


if __name__ == "__main__":
    sys.exit(main())
