"""
Startup failures dashboard CLI.

Usage
-----
failure-dashboard build
failure-dashboard build --data-dir Data --out js/data.js --json-out build/data.json
python -m failure_dashboard build --log-level DEBUG
"""

from __future__ import annotations

import argparse
import logging

from .config import Settings, ValidationError, get_settings
from .logging_config import setup_logging
from .pipeline import run_build

logger = logging.getLogger(__name__)


def cmd_build(args: argparse.Namespace, settings: Settings) -> int:
    try:
        settings = settings.with_overrides(
            data_dir=args.data_dir,
            out_path=args.out,
            json_out_path=args.json_out,
            top_funded_limit=args.top_funded,
        )
    except ValidationError as exc:
        logger.error("Invalid build options: %s", exc)
        return 2

    try:
        run_build(settings.build)
    except OSError as exc:
        logger.error("Build failed: %s", exc)
        return 1
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="failure-dashboard", description="Startup failures dashboard data build")
    p.add_argument("--log-level", default=None, help="DEBUG|INFO|WARNING|ERROR (or FAILBOARD_LOG_LEVEL).")
    p.add_argument("--json-logs", action="store_true", default=None, help="Emit JSON log lines.")
    sub = p.add_subparsers(dest="cmd", required=True)

    sp = sub.add_parser("build", help="Read the sector CSVs and write the dashboard data module.")
    sp.add_argument("--data-dir", default=None, help="Directory holding the sector CSVs. Default: ./Data")
    sp.add_argument("--out", default=None, help="JavaScript data module path. Default: ./js/data.js")
    sp.add_argument("--json-out", default=None, help="Also write the dataset as plain JSON here.")
    sp.add_argument("--top-funded", type=int, default=None, help="How many startups to keep in topFunded. Default: 30")
    sp.set_defaults(func=cmd_build)

    return p


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = get_settings(reload=True)
    except ValidationError as exc:
        parser.exit(2, f"Invalid configuration: {exc}\n")

    setup_logging(level=args.log_level, json_logs=args.json_logs)
    return args.func(args, settings)


if __name__ == "__main__":
    raise SystemExit(main())
