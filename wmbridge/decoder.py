"""Decode one client message into a Command.

Accepted messages (UTF-8 JSON, one per connection):

    "SpawnTerminal"
    {"cmd": "KillWindow", "target": "0x3a00007"}

Decoding is pure: it never looks at the configuration nor performs any
side effect.
"""

import json
from typing import Any

from .models import Command, CommandId, DecodeError, UnknownCommand

__all__ = ["decode_command"]

OBJECT_FIELDS = frozenset({"cmd", "target"})


def _command_id(name: str) -> CommandId:
    try:
        return CommandId(name)
    except ValueError:
        msg = f"Unknown command {name!r}"
        raise UnknownCommand(msg) from None


def _decode_object(obj: dict[str, Any]) -> Command:
    unknown = sorted(set(obj) - OBJECT_FIELDS)
    if unknown:
        msg = f"Unexpected field(s): {', '.join(unknown)}"
        raise DecodeError(msg)
    name = obj.get("cmd")
    if not isinstance(name, str):
        msg = "Object messages need a string 'cmd' field"
        raise DecodeError(msg)
    target = obj.get("target")
    if target is not None and not isinstance(target, str):
        msg = f"'target' must be a string, got {type(target).__name__}"
        raise DecodeError(msg)
    return Command(_command_id(name), target or None)


def decode_command(payload: bytes) -> Command:
    """Decode a raw message.

    Args:
        payload: The bytes received on one connection

    Returns:
        The decoded command

    Raises:
        DecodeError: the payload is not a valid message
        UnknownCommand: the named command doesn't exist
    """
    try:
        text = payload.decode("utf-8")
    except UnicodeDecodeError as e:
        msg = f"Invalid UTF-8: {e}"
        raise DecodeError(msg) from e
    if not text.strip():
        msg = "Empty message"
        raise DecodeError(msg)
    try:
        value = json.loads(text)
    except json.JSONDecodeError as e:
        msg = f"Invalid JSON: {e}"
        raise DecodeError(msg) from e
    except RecursionError:
        msg = "Invalid JSON: nesting too deep"
        raise DecodeError(msg) from None

    if isinstance(value, str):
        return Command(_command_id(value))
    if isinstance(value, dict):
        return _decode_object(value)
    msg = f"Expected a string or an object, got {type(value).__name__}"
    raise DecodeError(msg)
