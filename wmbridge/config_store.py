"""Config store: builds validated snapshots and swaps them atomically.

A snapshot is built completely (every section validated, every action
parsed) before it replaces the current one, so a handler reading
`ConfigStore.snapshot` always sees one consistent mapping.
"""

from __future__ import annotations

import shlex
from pathlib import Path
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from .config import Configuration
from .config_loader import ConfigLoader
from .models import (
    Action,
    BridgeOp,
    BridgeOpKind,
    BridgeSettings,
    CommandId,
    ConfigError,
    ConfigSnapshot,
    Direction,
    ShellCommand,
    WindowOp,
    WindowOpKind,
)
from .schema import ACTION_SCHEMAS, BRIDGE_SCHEMA, TOP_LEVEL_SECTIONS
from .validation import ConfigValidator, find_similar_key, format_config_error

if TYPE_CHECKING:
    import logging

__all__ = ["ConfigStore", "build_snapshot", "parse_action"]

# Settings read once at startup
RESTART_ONLY_SETTINGS = ("socket", "backend")


def _build_settings(raw: dict[str, Any], log: logging.Logger) -> BridgeSettings:
    """Build the settings of an already validated [bridge] section."""
    conf = Configuration(raw, logger=log, schema=BRIDGE_SCHEMA)
    return BridgeSettings(
        socket=conf.get_str("socket"),
        backend=conf.get_str("backend"),
        read_timeout=conf.get_float("read_timeout"),
        max_payload=conf.get_int("max_payload"),
        drain_timeout=conf.get_float("drain_timeout"),
        window_op_timeout=conf.get_float("window_op_timeout"),
        step=conf.get_int("step"),
        include=tuple(conf.get_list("include")),
    )


def parse_action(section: str, entry: dict[str, Any], log: logging.Logger) -> tuple[Action | None, list[str]]:
    """Parse one [commands] entry.

    Args:
        section: Section path for error messages (eg. "commands.FocusLeft")
        entry: The action table
        log: Logger instance

    Returns:
        (action, errors) - action is None whenever errors is not empty
    """
    kind = entry.get("kind")
    schema = ACTION_SCHEMAS.get(kind) if isinstance(kind, str) else None
    if schema is None:
        choices = ", ".join(repr(k) for k in ACTION_SCHEMAS)
        return None, [format_config_error(section, "kind", f"Invalid or missing action kind {kind!r}", f"Valid options: {choices}")]

    errors = ConfigValidator(entry, section, log).validate(schema)
    if errors:
        return None, errors

    if kind == "shell":
        return _parse_shell(section, entry)
    if kind == "window":
        return _parse_window(section, entry)
    return BridgeOp(op=BridgeOpKind(entry["op"])), []


def _parse_shell(section: str, entry: dict[str, Any]) -> tuple[Action | None, list[str]]:
    if "command" in entry:
        if "program" in entry or "args" in entry:
            return None, [format_config_error(section, "command", "Cannot be combined with 'program' / 'args'")]
        try:
            argv = shlex.split(entry["command"])
        except ValueError as e:
            return None, [format_config_error(section, "command", f"Cannot be parsed: {e}")]
        if not argv:
            return None, [format_config_error(section, "command", "Empty command")]
        return ShellCommand(program=argv[0], args=tuple(argv[1:])), []

    program = entry.get("program", "")
    if not program.strip():
        return None, [format_config_error(section, "program", "Missing program", 'Add program = "xterm" or command = "xterm -e top"')]
    return ShellCommand(program=program, args=tuple(entry.get("args", []))), []


def _parse_window(section: str, entry: dict[str, Any]) -> tuple[Action | None, list[str]]:
    op = WindowOpKind(entry["op"])
    direction = Direction(entry["direction"]) if "direction" in entry else None
    if op.directional and direction is None:
        return None, [format_config_error(section, "direction", f"Operation '{op}' needs a direction", 'Add direction = "left"')]
    if not op.directional and direction is not None:
        return None, [format_config_error(section, "direction", f"Operation '{op}' takes no direction")]
    if "amount" in entry and op not in {WindowOpKind.MOVE, WindowOpKind.RESIZE}:
        return None, [format_config_error(section, "amount", f"Operation '{op}' takes no amount")]
    return WindowOp(op=op, direction=direction, target=entry.get("target") or None, amount=entry.get("amount")), []


def build_snapshot(raw: dict[str, Any], log: logging.Logger, sources: tuple[Path, ...] = ()) -> ConfigSnapshot:
    """Validate a raw configuration and build a snapshot.

    Raises:
        ConfigError: with the list of every problem found
    """
    errors: list[str] = []

    for section in raw:
        if section not in TOP_LEVEL_SECTIONS:
            similar = find_similar_key(section, TOP_LEVEL_SECTIONS)
            hint = f"did you mean [{similar}]?" if similar else f"valid sections: {', '.join(TOP_LEVEL_SECTIONS)}"
            errors.append(format_config_error("", section, "Unknown section", hint))

    bridge_raw = raw.get("bridge", {})
    commands_raw = raw.get("commands")
    if not isinstance(bridge_raw, dict):
        errors.append(format_config_error("", "bridge", "Expected a section"))
        bridge_raw = {}
    else:
        errors.extend(ConfigValidator(bridge_raw, "bridge", log).validate(BRIDGE_SCHEMA))
    if commands_raw is None:
        errors.append(format_config_error("", "commands", "Missing section", "Add a [commands] section"))
        commands_raw = {}
    elif not isinstance(commands_raw, dict):
        errors.append(format_config_error("", "commands", "Expected a section"))
        commands_raw = {}

    actions: dict[CommandId, Action] = {}
    defined_as: dict[CommandId, str] = {}
    for key, entry in commands_raw.items():
        section = f"commands.{key}"
        command_id = CommandId.from_config_key(key)
        if command_id is None:
            similar = find_similar_key(key, list(CommandId.__members__))
            errors.append(format_config_error("commands", key, "Unknown command", f"did you mean '{similar}'?" if similar else ""))
            continue
        if command_id in defined_as:
            errors.append(format_config_error("commands", key, f"Duplicate of '{defined_as[command_id]}'"))
            continue
        defined_as[command_id] = key
        if not isinstance(entry, dict):
            errors.append(format_config_error("commands", key, f"Expected a table, got {type(entry).__name__}", '{ kind = "shell", program = "xterm" }'))
            continue
        action, action_errors = parse_action(section, entry, log)
        errors.extend(action_errors)
        if action is not None:
            actions[command_id] = action

    if errors:
        raise ConfigError(f"{len(errors)} configuration error(s)", errors)

    return ConfigSnapshot(
        settings=_build_settings(bridge_raw, log),
        actions=MappingProxyType(actions),
        sources=sources,
    )


class ConfigStore:
    """Owns the current configuration snapshot."""

    def __init__(self, path: str | Path, log: logging.Logger) -> None:
        """Initialize the store.

        Args:
            path: Configuration file or directory
            log: Logger instance
        """
        self.path = Path(path)
        self.log = log
        self._snapshot: ConfigSnapshot | None = None

    @property
    def snapshot(self) -> ConfigSnapshot:
        """Return the current snapshot."""
        if self._snapshot is None:
            msg = "Configuration not loaded"
            raise RuntimeError(msg)
        return self._snapshot

    async def _read(self) -> ConfigSnapshot:
        loader = ConfigLoader(self.log)
        raw = await loader.load(self.path)
        return build_snapshot(raw, self.log, tuple(loader.sources))

    async def load(self) -> ConfigSnapshot:
        """Load the configuration at startup.

        Raises:
            ConfigError: the bridge must not start
        """
        self._snapshot = await self._read()
        self.log.info("Loaded %d command(s) from %s", len(self._snapshot.actions), ", ".join(map(str, self._snapshot.sources)))
        return self._snapshot

    async def reload(self) -> bool:
        """Re-read the configuration, keeping the current one if the new one is invalid.

        Returns:
            True if the new configuration is now in effect
        """
        try:
            new_snapshot = await self._read()
        except ConfigError as e:
            self.log.error("Reload failed, keeping the previous configuration: %s", e)  # noqa: TRY400
            return False

        previous = self._snapshot
        self._snapshot = new_snapshot
        if previous is not None:
            for name in RESTART_ONLY_SETTINGS:
                if getattr(previous.settings, name) != getattr(new_snapshot.settings, name):
                    self.log.warning("Changing '%s' requires a restart, still using %r", name, getattr(previous.settings, name))
        self.log.info("Configuration reloaded: %d command(s)", len(new_snapshot.actions))
        return True
