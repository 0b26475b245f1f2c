"""Logging configuration: rich console output plus a plain, daily rotated log file."""

from __future__ import annotations

import logging
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

from .config import (
    CONSOLE_DATE_FORMAT,
    CONSOLE_LOG_FORMAT,
    LOG_DATE_FORMAT,
    LOG_FILE_FORMAT,
    LOGGER_NAME,
)

_HANDLER_MARKER = "_mirrorsync_handler"


def _mark(handler: logging.Handler) -> logging.Handler:
    setattr(handler, _HANDLER_MARKER, True)
    return handler


def reset_logging() -> None:
    root = logging.getLogger(LOGGER_NAME)
    for handler in list(root.handlers):
        if getattr(handler, _HANDLER_MARKER, False):
            root.removeHandler(handler)
            handler.close()
    root.setLevel(logging.NOTSET)


def configure_logging(
    log_file: Path | None,
    *,
    console: Console | None = None,
    level: int = logging.INFO,
    verbose: bool = False,
) -> logging.Logger:
    """Attach console and file handlers to the package logger, replacing earlier ones.

    ``verbose`` forces DEBUG regardless of ``level``.
    """
    if verbose:
        level = logging.DEBUG
    reset_logging()

    root = logging.getLogger(LOGGER_NAME)
    root.setLevel(level)

    ch = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=verbose,
        markup=False,
        log_time_format=CONSOLE_DATE_FORMAT,
    )
    ch.setLevel(level)
    ch.setFormatter(logging.Formatter(CONSOLE_LOG_FORMAT))
    root.addHandler(_mark(ch))

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        fh = TimedRotatingFileHandler(log_file, when="midnight", encoding="utf-8")
        fh.setLevel(level)
        fh.setFormatter(logging.Formatter(LOG_FILE_FORMAT, datefmt=LOG_DATE_FORMAT))
        root.addHandler(_mark(fh))
        root.info("Logging initialized -> %s", log_file)

    return root
