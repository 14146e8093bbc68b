"""Schemas of the configuration file sections."""

from .constants import (
    DEFAULT_BACKEND,
    DEFAULT_DRAIN_TIMEOUT,
    DEFAULT_MAX_PAYLOAD,
    DEFAULT_READ_TIMEOUT,
    DEFAULT_STEP_PX,
    DEFAULT_WINDOW_OP_TIMEOUT,
)
from .models import BridgeOpKind, Direction, WindowOpKind
from .validation import ConfigField, ConfigItems

__all__ = [
    "ACTION_SCHEMAS",
    "BACKEND_NAMES",
    "BRIDGE_OP_SCHEMA",
    "BRIDGE_SCHEMA",
    "SHELL_SCHEMA",
    "TOP_LEVEL_SECTIONS",
    "WINDOW_SCHEMA",
]

# sun_path is 108 bytes on Linux, including the trailing NUL
MAX_SOCKET_PATH_LEN = 107

BACKEND_NAMES = ["auto", "xorg", "hyprland", "log"]

TOP_LEVEL_SECTIONS = ["bridge", "commands"]


def _positive(value: float) -> list[str]:
    return [] if value > 0 else [f"must be positive, got {value}"]


def _socket_path(value: str) -> list[str]:
    if len(value.encode()) > MAX_SOCKET_PATH_LEN:
        return [f"path is too long for a unix socket ({len(value.encode())} > {MAX_SOCKET_PATH_LEN} bytes)"]
    return []


BRIDGE_SCHEMA = ConfigItems(
    ConfigField("socket", str, description="Path of the listening socket", validator=_socket_path),
    ConfigField("backend", str, default=DEFAULT_BACKEND, choices=BACKEND_NAMES, description="Window system backend"),
    ConfigField("read_timeout", float, default=DEFAULT_READ_TIMEOUT, validator=_positive, description="Seconds a client may take to send"),
    ConfigField("max_payload", int, default=DEFAULT_MAX_PAYLOAD, validator=_positive, description="Maximum message size in bytes"),
    ConfigField("drain_timeout", float, default=DEFAULT_DRAIN_TIMEOUT, validator=_positive, description="Grace period on shutdown"),
    ConfigField("window_op_timeout", float, default=DEFAULT_WINDOW_OP_TIMEOUT, validator=_positive, description="Timeout of one window operation"),
    ConfigField("step", int, default=DEFAULT_STEP_PX, validator=_positive, description="Default pixels for move/resize"),
    ConfigField("include", list, item_type=str, description="Extra configuration files or directories"),
)

SHELL_SCHEMA = ConfigItems(
    ConfigField("kind", str, required=True, choices=["shell"]),
    ConfigField("program", str, description="Executable to launch"),
    ConfigField("args", list, item_type=str, description="Arguments passed to the program"),
    ConfigField("command", str, description="Full command line, split like a shell would (no shell is used)"),
)

WINDOW_SCHEMA = ConfigItems(
    ConfigField("kind", str, required=True, choices=["window"]),
    ConfigField("op", str, required=True, choices=[op.value for op in WindowOpKind]),
    ConfigField("direction", str, choices=[d.value for d in Direction]),
    ConfigField("target", str, description="Window selector, the focused window if omitted"),
    ConfigField("amount", int, validator=_positive, description="Pixels for move/resize"),
)

BRIDGE_OP_SCHEMA = ConfigItems(
    ConfigField("kind", str, required=True, choices=["bridge"]),
    ConfigField("op", str, required=True, choices=[op.value for op in BridgeOpKind]),
)

ACTION_SCHEMAS = {
    "shell": SHELL_SCHEMA,
    "window": WINDOW_SCHEMA,
    "bridge": BRIDGE_OP_SCHEMA,
}
