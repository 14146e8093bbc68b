"""ANSI colors for the terminal log output.

NO_COLOR disables colors, FORCE_COLOR enables them even when the output
is not a terminal.
"""

import logging
import os
import sys
from typing import TextIO

__all__ = ["ACTION_STYLES", "LEVEL_STYLES", "RESET", "colorize", "sgr", "use_colors"]

RESET = "\x1b[0m"

BOLD = "1"
DIM = "2"

RED = "31"
GREEN = "32"
YELLOW = "33"
BLUE = "34"
MAGENTA = "35"

LEVEL_STYLES: dict[int, tuple[str, ...]] = {
    logging.WARNING: (YELLOW, DIM),
    logging.ERROR: (RED, DIM),
    logging.CRITICAL: (RED, BOLD),
}

# by action kind
ACTION_STYLES: dict[str, tuple[str, ...]] = {
    "shell": (GREEN, BOLD),
    "window": (BLUE, BOLD),
    "bridge": (MAGENTA, BOLD),
}


def use_colors(stream: TextIO | None = None) -> bool:
    """Tell whether `stream` (stderr by default) should get ANSI colors."""
    if os.environ.get("NO_COLOR"):
        return False
    if os.environ.get("FORCE_COLOR"):
        return True
    if stream is None:
        stream = sys.stderr
    if os.environ.get("TERM") == "dumb":
        return False
    return hasattr(stream, "isatty") and stream.isatty()


def sgr(*codes: str) -> str:
    """Return the escape sequence selecting the `codes` attributes."""
    if not codes:
        return ""
    return f"\x1b[{';'.join(codes)}m"


def colorize(text: str, *codes: str) -> str:
    """Return `text` styled with `codes`, unchanged when colors are off."""
    if not codes or not use_colors():
        return text
    return f"{sgr(*codes)}{text}{RESET}"
