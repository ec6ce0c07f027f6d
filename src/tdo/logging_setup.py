# src/tdo/logging_setup.py

"""
Diagnostics for tdo.

Command results go to stdout as plain lines; logs never do. The console handler
writes to stderr and stays at WARNING unless TDO_LOG_LEVEL says otherwise, the
optional file handler keeps everything in `<data_dir>/tdo.log`.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

APP_LOGGER = "tdo"
LOG_FILENAME = "tdo.log"

_FORMAT = logging.Formatter(
    fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%S",
)


class _AppOnlyFilter(logging.Filter):
    """Pass tdo records at the handler level; anything else only when it is an error."""

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name == APP_LOGGER or record.name.startswith(APP_LOGGER + "."):
            return True
        return record.levelno >= logging.ERROR


def _console_handler(level: int) -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(_FORMAT)
    handler.addFilter(_AppOnlyFilter())
    return handler


def _file_handler(log_dir: Path, level: int) -> logging.Handler:
    # The data dir holds the task files too; keep it private like bootstrap does.
    log_dir.mkdir(mode=0o700, parents=True, exist_ok=True)
    handler = logging.FileHandler(str(log_dir / LOG_FILENAME), encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(_FORMAT)
    return handler


def setup_logging(
    *,
    log_dir: str | Path | None = None,
    console_level: int = logging.WARNING,
    file_level: int = logging.DEBUG,
) -> None:
    """
    Replace the root handlers with tdo's: stderr always, `tdo.log` when `log_dir` is set.

    Raises OSError if the log directory or file cannot be opened; the console
    handler is already installed at that point.
    """
    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        root.removeHandler(h)

    root.addHandler(_console_handler(console_level))
    if log_dir is not None:
        root.addHandler(_file_handler(Path(log_dir), file_level))

    logging.captureWarnings(True)
