# src/service_workflow/logging_setup.py

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

# Console thresholds per logger prefix; the longest matching prefix wins.
# The poller refreshes every few seconds and every refresh is several HTTP
# requests, so both only reach the console when something goes wrong.
CONSOLE_THRESHOLDS: dict[str, int] = {
    "service_workflow": logging.DEBUG,
    "service_workflow.workflow.scheduler": logging.WARNING,
    "service_workflow.clients": logging.WARNING,
    "httpx": logging.WARNING,
    "httpcore": logging.ERROR,
    "asyncio": logging.WARNING,
    "py.warnings": logging.ERROR,
}
_DEFAULT_THRESHOLD = logging.ERROR


def console_threshold(name: str) -> int:
    best_len = -1
    level = _DEFAULT_THRESHOLD
    for prefix, lvl in CONSOLE_THRESHOLDS.items():
        if (name == prefix or name.startswith(prefix + ".")) and len(prefix) > best_len:
            best_len = len(prefix)
            level = lvl
    return level


class _ConsoleNoiseFilter(logging.Filter):
    """Keep the interactive prompt readable while the background sync runs."""

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= console_threshold(record.name)


def setup_logging(
    *,
    log_dir: str | Path = ".local/workflow",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
    max_bytes: int = 2_000_000,
    backup_count: int = 3,
) -> Path:
    """
    Console handler: filtered per logger (see CONSOLE_THRESHOLDS).
    File handler: everything at file_level, rotated since polling never stops.

    Call once, before the board starts. Returns the log file path.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "workflow.log"

    root = logging.getLogger()
    root.setLevel(min(console_level, file_level))
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(fmt)
    console.addFilter(_ConsoleNoiseFilter())
    root.addHandler(console)

    file_handler = RotatingFileHandler(
        str(log_file),
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    file_handler.setLevel(file_level)
    file_handler.setFormatter(fmt)
    root.addHandler(file_handler)

    logging.captureWarnings(True)
    return log_file
