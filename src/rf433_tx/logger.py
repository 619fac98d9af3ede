#!/usr/bin/env python3
"""RF433 - a shared-radio signal layer for 433MHz remotes and sockets.

This module wraps logger to provide a frame log: every raw frame received, from every
signature, to a (rotating) file and/or the console.
"""

from __future__ import annotations

import logging
import shutil
import sys
from datetime import datetime as dt
from logging.handlers import RotatingFileHandler, TimedRotatingFileHandler

import colorlog

from .version import VERSION

DEFAULT_FMT = "%(asctime)s.%(msecs)03d %(message)s"
DEFAULT_DATEFMT = "%H:%M:%S"

CONSOLE_COLS = int(shutil.get_terminal_size(fallback=(int(2e3), 24)).columns - 1)

# asctime is YYYY-MM-DDTHH:MM:SS.sss (23 chars)
CONSOLE_FMT = f"%(asctime)s %(signature)-12s %(message).{CONSOLE_COLS - 37}s"
FRAME_LOG_FMT = "%(asctime)s %(signature)-12s %(message)s"

LOG_COLOURS = {
    "DEBUG": "white",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "bold_red",
    "CRITICAL": "bold_red",
}

FRAME_LOGGER = logging.getLogger(f"{__package__}.frames")


class _Formatter:  # asctime to the millisecond, via datetime
    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        dtm = dt.fromtimestamp(record.created)
        if datefmt:
            return dtm.strftime(datefmt)
        return dtm.isoformat(timespec="milliseconds")


class ColoredFormatter(_Formatter, colorlog.ColoredFormatter):  # type: ignore[misc]
    pass


class Formatter(_Formatter, logging.Formatter):  # type: ignore[misc]
    pass


class _LevelFilter(logging.Filter):
    """Pass records with levelno in [min_level, max_level), with a signature.

    A record logged without extra={"signature": ...} is given a blank one.
    """

    min_level = logging.NOTSET
    max_level = logging.CRITICAL + 1

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "signature"):
            record.signature = ""
        return self.min_level <= record.levelno < self.max_level


class FrameLogFilter(_LevelFilter):  # .INFO (frames) & .WARNING (e.g. the header)
    min_level = logging.INFO
    max_level = logging.ERROR


class StdErrFilter(_LevelFilter):  # .WARNING and up
    min_level = logging.WARNING


class StdOutFilter(_LevelFilter):  # below .WARNING
    max_level = logging.WARNING


def _file_handler(
    file_name: str, rotate_backups: int = 0, rotate_bytes: int | None = None
) -> logging.Handler:
    """Return a handler that rotates by size, else at midnight, else never."""

    handler: logging.Handler
    if rotate_bytes:
        handler = RotatingFileHandler(
            file_name, maxBytes=rotate_bytes, backupCount=rotate_backups or 2
        )
    elif rotate_backups:
        handler = TimedRotatingFileHandler(
            file_name, when="midnight", backupCount=rotate_backups
        )
    else:
        handler = logging.FileHandler(file_name)

    handler.setFormatter(Formatter(fmt=FRAME_LOG_FMT))
    handler.setLevel(logging.INFO)
    handler.addFilter(FrameLogFilter())
    return handler


def _console_handlers() -> list[logging.Handler]:
    """Return a pair of coloured handlers, for stderr (>= .WARNING) & stdout."""

    fmt = ColoredFormatter(
        fmt=f"%(log_color)s{CONSOLE_FMT}", reset=True, log_colors=LOG_COLOURS
    )

    handlers: list[logging.Handler] = []
    for stream, level_filter in (
        (sys.stderr, StdErrFilter()),
        (sys.stdout, StdOutFilter()),
    ):
        handler = logging.StreamHandler(stream=stream)
        handler.setFormatter(fmt)
        handler.addFilter(level_filter)
        handlers.append(handler)
    return handlers


def set_logging(
    logger: logging.Logger = FRAME_LOGGER,
    cc_console: bool = False,
    file_name: str | None = None,
    rotate_backups: int = 0,
    rotate_bytes: int | None = None,
) -> None:
    """(Re)configure the frame log, silencing it if there is nowhere to log to.

    Parameters:
    - cc_console:     also log to stdout/stderr
    - rotate_backups: keep this many copies, and rotate at midnight unless:
    - rotate_bytes:   rotate log files when log > rotate_bytes
    """

    logger.propagate = False  # the frame log is not the app/debug log

    for handler in list(logger.handlers):  # this may be a re-configuration
        logger.removeHandler(handler)
        handler.close()

    handlers: list[logging.Handler] = []
    if file_name:
        handlers.append(_file_handler(file_name, rotate_backups, rotate_bytes))
    if cc_console:
        handlers.extend(_console_handlers())

    if not handlers:
        logger.setLevel(logging.CRITICAL)
        return

    logger.setLevel(logging.DEBUG)
    for handler in handlers:
        logger.addHandler(handler)

    logger.warning(f"rf433_tx {VERSION}", extra={"signature": "-"})  # header line
