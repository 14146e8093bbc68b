"""Shared constants for wmbridge."""

import os
from pathlib import Path

__all__ = [
    "CONFIG_ENV",
    "CONFIG_FILE",
    "DEFAULT_BACKEND",
    "DEFAULT_DRAIN_TIMEOUT",
    "DEFAULT_MAX_PAYLOAD",
    "DEFAULT_READ_TIMEOUT",
    "DEFAULT_SOCKET",
    "DEFAULT_STEP_PX",
    "DEFAULT_WINDOW_OP_TIMEOUT",
    "READ_CHUNK_SIZE",
    "SOCKET_ENV",
    "SOCKET_MODE",
]

# Environment overrides (flags still win)
SOCKET_ENV = "WMBRIDGE_SOCKET"
CONFIG_ENV = "WMBRIDGE_CONFIG"

_runtime_dir = os.environ.get("XDG_RUNTIME_DIR") or "/tmp"  # noqa: S108
DEFAULT_SOCKET = Path(_runtime_dir) / "wmbridge.sock"

_xdg_config_home = Path(os.environ.get("XDG_CONFIG_HOME") or Path.home() / ".config")
CONFIG_FILE = _xdg_config_home / "wmbridge" / "config.toml"

SOCKET_MODE = 0o600

# Per-connection limits
DEFAULT_MAX_PAYLOAD = 4096  # bytes
DEFAULT_READ_TIMEOUT = 3.0  # seconds
READ_CHUNK_SIZE = 1024

# Execution limits
DEFAULT_WINDOW_OP_TIMEOUT = 5.0
DEFAULT_DRAIN_TIMEOUT = 5.0

DEFAULT_BACKEND = "auto"

# Pixels used by move/resize operations when the action gives no amount
DEFAULT_STEP_PX = 40
