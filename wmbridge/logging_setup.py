"""Logging setup.

`init_logger` builds the handlers once: a screen handler, colored by level
when the terminal allows it, and an optional file handler for `--debug
FILE`. Every component then asks `get_logger` for its own named logger,
all of them sharing those handlers.

Debug mode comes from the DEBUG environment variable or `--debug`.
"""

import logging
import os

from .ansi import LEVEL_STYLES, RESET, sgr, use_colors

__all__ = [
    "get_logger",
    "init_logger",
    "is_debug",
    "set_debug",
]

FILE_FORMAT = r"%(asctime)s [%(levelname)s] %(name)s :: %(message)s :: %(filename)s:%(lineno)d"
SCREEN_FORMAT = r"[%(name)s] %(message)s"
DEBUG_SCREEN_FORMAT = r"%(name)12s - %(message)s // %(filename)s:%(lineno)d"


class _LogState:
    """Shared logging state, filled by init_logger."""

    debug: bool = bool(os.environ.get("DEBUG"))
    handlers: list[logging.Handler] = []


def is_debug() -> bool:
    """Return the current debug state."""
    return _LogState.debug


def set_debug(value: bool) -> None:
    """Set the debug state."""
    _LogState.debug = value


class ScreenFormatter(logging.Formatter):
    """Short records for the terminal, warnings and errors colored."""

    def __init__(self, colors: bool) -> None:
        super().__init__(DEBUG_SCREEN_FORMAT if is_debug() else SCREEN_FORMAT)
        self.colors = colors

    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        codes = LEVEL_STYLES.get(record.levelno) if self.colors else None
        if not codes:
            return text
        return f"{sgr(*codes)}{text}{RESET}"


def init_logger(filename: str | None = None, force_debug: bool = False) -> None:
    """Initialize the logging system.

    Loggers returned by `get_logger` afterwards use the new handlers.

    Args:
        filename: Optional file receiving every record, with timestamps
        force_debug: If True, force debug level
    """
    if force_debug:
        set_debug(True)

    handlers: list[logging.Handler] = []
    if filename:
        file_handler = logging.FileHandler(filename)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        handlers.append(file_handler)
    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(ScreenFormatter(colors=use_colors(stream_handler.stream)))
    handlers.append(stream_handler)
    _LogState.handlers = handlers


def get_logger(name: str = "wmbridge", level: int | None = None) -> logging.Logger:
    """Return a named logger.

    Args:
        name (str): logger's name
        level (int): logger's level (auto if not set)

    Returns:
        The logger instance
    """
    logger = logging.getLogger(name)
    if level is None:
        level = logging.DEBUG if is_debug() else logging.INFO
    logger.setLevel(level)
    logger.propagate = False
    logger.handlers[:] = _LogState.handlers
    return logger
