"""Window-system adapters.

This package provides the WindowBackend abstraction (X11, Hyprland, log-only)
and the WindowSystemAdapter serializing every window operation.
"""

import os
from logging import Logger

from ..constants import DEFAULT_STEP_PX
from ..models import ConfigError
from .adapter import WindowSystemAdapter
from .backend import WindowBackend
from .hyprland import HyprlandBackend
from .logonly import LogOnlyBackend
from .xorg import XorgBackend

__all__ = [
    "BACKENDS",
    "HyprlandBackend",
    "LogOnlyBackend",
    "WindowBackend",
    "WindowSystemAdapter",
    "XorgBackend",
    "select_backend",
]

BACKENDS: dict[str, type[WindowBackend]] = {
    backend.name: backend for backend in (XorgBackend, HyprlandBackend, LogOnlyBackend)
}


def detect_backend_name() -> str | None:
    """Return the backend matching the current session, None if no window system is found."""
    if os.environ.get("HYPRLAND_INSTANCE_SIGNATURE"):
        return HyprlandBackend.name
    if os.environ.get("DISPLAY"):
        return XorgBackend.name
    return None


def select_backend(name: str, log: Logger, step: int = DEFAULT_STEP_PX) -> WindowBackend:
    """Instantiate the backend called `name`.

    Args:
        name: "auto" or one of BACKENDS
        log: Logger instance
        step: Default pixels for move/resize operations

    Raises:
        ConfigError: unknown backend name
    """
    if name == "auto":
        detected = detect_backend_name()
        if detected is None:
            log.warning("No window system detected (neither HYPRLAND_INSTANCE_SIGNATURE nor DISPLAY set), window operations will only be logged")
            detected = LogOnlyBackend.name
        name = detected
    try:
        backend_class = BACKENDS[name]
    except KeyError:
        msg = f"Unknown backend {name!r}, expected one of: auto, {', '.join(BACKENDS)}"
        raise ConfigError(msg) from None
    log.info("Window backend: %s", name)
    return backend_class(step=step)
