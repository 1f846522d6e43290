from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

REPORT_LOGGER_NAME = "ship_nodegui.report"
FALLBACK_LOG_NAME = "ship-nodegui.log"


def configure_logging(
    log_path: Optional[str] = None,
    level: int = logging.INFO,
    also_console: bool = True,
) -> Optional[str]:
    """Configure logging.

    Console output carries the human readable progress report. When log_path
    is given every record is also written there; if that file cannot be
    opened we fall back to ./ship-nodegui.log.

    Returns the actual file path being used, or None for console only.
    """

    logger = logging.getLogger()
    logger.setLevel(level)

    # Avoid duplicate handlers if configure_logging() is called multiple times.
    if getattr(logger, "_ship_nodegui_configured", False):
        return getattr(logger, "_ship_nodegui_log_path", log_path)

    chosen_path: Optional[str] = None
    handlers: list[logging.Handler] = []

    file_fmt = logging.Formatter(
        fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S%z",
    )

    if log_path:
        try:
            Path(os.path.dirname(log_path) or ".").mkdir(parents=True, exist_ok=True)
            file_handler: logging.Handler = logging.FileHandler(log_path)
            chosen_path = log_path
        except OSError:
            fallback = str(Path.cwd() / FALLBACK_LOG_NAME)
            file_handler = logging.FileHandler(fallback)
            chosen_path = fallback
        file_handler.setFormatter(file_fmt)
        handlers.append(file_handler)

    if also_console:
        console = logging.StreamHandler()
        console.setFormatter(logging.Formatter("%(message)s"))
        # Library diagnostics stay in the log file unless running verbose.
        console.addFilter(_ConsoleFilter(level))
        handlers.append(console)

    for h in handlers:
        logger.addHandler(h)

    setattr(logger, "_ship_nodegui_configured", True)
    setattr(logger, "_ship_nodegui_log_path", chosen_path)

    logging.getLogger(__name__).debug("Logging initialized (requested=%s, actual=%s)", log_path, chosen_path)
    return chosen_path


class _ConsoleFilter(logging.Filter):
    def __init__(self, level: int) -> None:
        super().__init__()
        self._verbose = level <= logging.DEBUG

    def filter(self, record: logging.LogRecord) -> bool:
        if self._verbose or record.levelno >= logging.WARNING:
            return True
        return record.name == REPORT_LOGGER_NAME


class Reporter:
    """Structured progress report shown to the person running the tool."""

    def __init__(self, name: str = REPORT_LOGGER_NAME) -> None:
        self._logger = logging.getLogger(name)

    def section(self, title: str) -> None:
        self._logger.info("")
        self._logger.info("=== %s ===", title)

    def subsection(self, title: str) -> None:
        self._logger.info("--- %s ---", title)

    def info(self, msg: str) -> None:
        self._logger.info("%s", msg)

    def error(self, msg: str) -> None:
        self._logger.error("%s", msg)

    def check_ok(self, msg: str) -> None:
        self._logger.info("  [ok] %s", msg)

    def check_error(self, msg: str) -> None:
        self._logger.error("  [error] %s", msg)
