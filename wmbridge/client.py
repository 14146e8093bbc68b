"""Client side: send one command to a running bridge."""

import asyncio
import json
import logging
import os
from pathlib import Path

from .config_loader import ConfigLoader
from .constants import SOCKET_ENV
from .logging_setup import get_logger
from .models import CommandId, ConfigError, ExitCode
from .paths import resolve_socket_path

__all__ = ["build_message", "find_socket", "run_client", "send_command"]

# configuration problems are reported by the bridge and `wmbridge validate`, not by the client
_silent_logger = logging.getLogger("wmbridge.client.config")
_silent_logger.addHandler(logging.NullHandler())
_silent_logger.propagate = False


def build_message(name: str, target: str | None = None) -> bytes:
    """Encode a command message.

    A bare JSON string when there is no target, an object otherwise.
    """
    if target:
        return json.dumps({"cmd": name, "target": target}).encode()
    return json.dumps(name).encode()


async def find_socket(socket_flag: str | None, config_path: Path) -> Path:
    """Return the bridge socket, reading [bridge].socket from the configuration when needed."""
    if socket_flag or os.environ.get(SOCKET_ENV):
        return resolve_socket_path(socket_flag)

    configured = ""
    try:
        config = await ConfigLoader(_silent_logger).load(config_path)
    except ConfigError:
        pass
    else:
        value = config.get("bridge", {}).get("socket") if isinstance(config.get("bridge"), dict) else None
        if isinstance(value, str):
            configured = value
    return resolve_socket_path(None, configured)


async def send_command(socket_path: Path, name: str, target: str | None = None) -> None:
    """Send one command and close the connection. No answer is expected.

    Raises:
        OSError: the bridge can't be reached
    """
    _, writer = await asyncio.open_unix_connection(str(socket_path))
    try:
        writer.write(build_message(name, target))
        writer.write_eof()
        await writer.drain()
    finally:
        writer.close()
        await writer.wait_closed()


async def run_client(name: str, target: str | None, socket_flag: str | None, config_path: Path) -> ExitCode:
    """Run the client (CLI).

    Returns:
        The process exit code
    """
    log = get_logger("client")
    if name not in CommandId.__members__:
        log.error("Unknown command %r, expected one of: %s", name, ", ".join(CommandId))
        return ExitCode.USAGE_ERROR

    socket_path = await find_socket(socket_flag, config_path)
    try:
        await send_command(socket_path, name, target)
    except OSError as e:
        log.critical("Cannot connect to the bridge at %s (%s).\nIs it running? Start it with: wmbridge (no arguments)", socket_path, e.strerror or e)
        return ExitCode.CONNECTION_ERROR
    log.debug("Sent %s to %s", name, socket_path)
    return ExitCode.SUCCESS
