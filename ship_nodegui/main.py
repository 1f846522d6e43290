from __future__ import annotations

import argparse
import logging
from typing import Optional

from . import __version__
from .config import DEFAULT_CONFIG_PATH, load_config
from .errors import ConfigurationError
from .logging_utils import Reporter, configure_logging
from .pipeline import Pipeline

logger = logging.getLogger(__name__)

ACTION_CHECK = "check"
ACTION_PACKAGE = "package"

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIG_ERROR = 2


def run(*, config_path: str, action: str = ACTION_PACKAGE, report: Optional[Reporter] = None) -> int:
    """Load the configuration and run the selected action. Returns an exit status."""

    report = report or Reporter()
    try:
        config = load_config(config_path)
        pipeline = Pipeline(config, report=report)
    except ConfigurationError as e:
        report.error(str(e))
        return EXIT_CONFIG_ERROR

    if action == ACTION_CHECK:
        ok = pipeline.preflight_check()
    else:
        ok = pipeline.execute()
    return EXIT_OK if ok else EXIT_FAILED


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="ship-nodegui", description="Tool to package NodeGui applications")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    p.add_argument("--config", default=DEFAULT_CONFIG_PATH, help=f"Path to config file (default: {DEFAULT_CONFIG_PATH})")
    p.add_argument("--log", default=None, help="Also write the full log to this file")
    p.add_argument("-v", "--verbose", action="store_true", help="Show commands and their output on the console")

    sub = p.add_subparsers(dest="action")
    sub.add_parser(ACTION_CHECK, help="Check the configuration and required tools; change nothing")
    sub.add_parser(ACTION_PACKAGE, help="Build the packages (default)")
    return p


def main(argv: Optional[list[str]] = None) -> int:
    p = build_parser()
    args = p.parse_args(argv)

    configure_logging(log_path=args.log, level=logging.DEBUG if args.verbose else logging.INFO)

    try:
        return run(config_path=args.config, action=args.action or ACTION_PACKAGE)
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
