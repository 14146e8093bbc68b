"""Socket and configuration path resolution.

Precedence, highest first:
    socket: --socket flag, $WMBRIDGE_SOCKET, [bridge].socket, default
    config: --config flag, $WMBRIDGE_CONFIG, default
"""

import os
from pathlib import Path

from .config_loader import expand_path
from .constants import CONFIG_ENV, CONFIG_FILE, DEFAULT_SOCKET, SOCKET_ENV

__all__ = ["resolve_config_path", "resolve_socket_path"]


def resolve_socket_path(flag: str | None = None, configured: str = "") -> Path:
    """Return the socket path to listen on (or connect to).

    Args:
        flag: Value of the --socket option
        configured: Value of [bridge].socket
    """
    for candidate in (flag, os.environ.get(SOCKET_ENV), configured):
        if candidate:
            return expand_path(candidate)
    return DEFAULT_SOCKET


def resolve_config_path(flag: str | None = None) -> Path:
    """Return the configuration file (or directory) to load.

    Args:
        flag: Value of the --config option
    """
    for candidate in (flag, os.environ.get(CONFIG_ENV)):
        if candidate:
            return expand_path(candidate)
    return CONFIG_FILE
