"""Command vocabulary, actions, states and errors."""

import re
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from enum import IntEnum, StrEnum
from pathlib import Path
from typing import ClassVar

__all__ = [
    "Action",
    "ActionMapping",
    "BindError",
    "BridgeError",
    "BridgeOp",
    "BridgeOpKind",
    "BridgeSettings",
    "BridgeState",
    "Command",
    "CommandError",
    "CommandId",
    "ConfigError",
    "ConfigSnapshot",
    "DecodeError",
    "Direction",
    "ExitCode",
    "PayloadTooLarge",
    "ReadTimeout",
    "ShellCommand",
    "SpawnError",
    "UnknownCommand",
    "Unmapped",
    "WindowOp",
    "WindowOpError",
    "WindowOpKind",
]


class CommandId(StrEnum):
    """The closed set of commands a client may send."""

    FocusLeft = "FocusLeft"
    FocusRight = "FocusRight"
    FocusDown = "FocusDown"
    FocusUp = "FocusUp"
    FocusNext = "FocusNext"
    ShuffleLeft = "ShuffleLeft"
    ShuffleRight = "ShuffleRight"
    ShuffleDown = "ShuffleDown"
    ShuffleUp = "ShuffleUp"
    GrowLeft = "GrowLeft"
    GrowRight = "GrowRight"
    GrowDown = "GrowDown"
    GrowUp = "GrowUp"
    Normalize = "Normalize"
    ToggleSplit = "ToggleSplit"
    NextLayout = "NextLayout"
    KillWindow = "KillWindow"
    ToggleFullscreen = "ToggleFullscreen"
    ToggleFloating = "ToggleFloating"
    SpawnTerminal = "SpawnTerminal"
    SpawnRofi = "SpawnRofi"
    SpawnWindow = "SpawnWindow"
    SpawnStatusBar = "SpawnStatusBar"
    ReloadConfig = "ReloadConfig"
    Shutdown = "Shutdown"

    @property
    def alias(self) -> str:
        """snake_case spelling (`FocusLeft` -> `focus_left`), accepted in config files."""
        return re.sub(r"(?<!^)(?=[A-Z])", "_", self.value).lower()

    @classmethod
    def from_config_key(cls, key: str) -> "CommandId | None":
        """Return the command named `key` (by name or alias), None if unknown."""
        if key in cls.__members__:
            return cls(key)
        for member in cls:
            if member.alias == key:
                return member
        return None


class Direction(StrEnum):
    """Directions of directional window operations."""

    LEFT = "left"
    RIGHT = "right"
    UP = "up"
    DOWN = "down"


class WindowOpKind(StrEnum):
    """Window operations a backend may perform."""

    FOCUS = "focus"
    FOCUS_NEXT = "focus_next"
    MOVE = "move"
    RESIZE = "resize"
    NORMALIZE = "normalize"
    TOGGLE_SPLIT = "toggle_split"
    NEXT_LAYOUT = "next_layout"
    KILL = "kill"
    TOGGLE_FULLSCREEN = "toggle_fullscreen"
    TOGGLE_FLOATING = "toggle_floating"

    @property
    def directional(self) -> bool:
        """True when the operation needs a direction."""
        return self in {WindowOpKind.FOCUS, WindowOpKind.MOVE, WindowOpKind.RESIZE}


class BridgeOpKind(StrEnum):
    """Operations on the bridge itself."""

    RELOAD = "reload"
    SHUTDOWN = "shutdown"


@dataclass(frozen=True)
class Command:
    """A decoded client command."""

    id: CommandId
    target: str | None = None


@dataclass(frozen=True)
class ShellCommand:
    """Launch `program` with `args` as a detached process."""

    kind: ClassVar[str] = "shell"

    program: str
    args: tuple[str, ...] = ()

    def __str__(self) -> str:
        return " ".join((self.program, *self.args))


@dataclass(frozen=True)
class WindowOp:
    """An operation for the window-system adapter."""

    kind: ClassVar[str] = "window"

    op: WindowOpKind
    direction: Direction | None = None
    target: str | None = None  # window selector, None = focused window
    amount: int | None = None  # pixels, for move/resize

    def with_target(self, target: str) -> "WindowOp":
        """Return a copy aimed at `target`."""
        return replace(self, target=target)

    def __str__(self) -> str:
        txt = self.op.value
        if self.direction:
            txt += f"({self.direction.value})"
        if self.target:
            txt += f" @{self.target}"
        return txt


@dataclass(frozen=True)
class BridgeOp:
    """An operation on the bridge itself (reload, shutdown)."""

    kind: ClassVar[str] = "bridge"

    op: BridgeOpKind

    def __str__(self) -> str:
        return self.op.value


Action = ShellCommand | WindowOp | BridgeOp
ActionMapping = Mapping[CommandId, Action]


@dataclass(frozen=True)
class BridgeSettings:  # pylint: disable=too-many-instance-attributes
    """Values of the [bridge] section."""

    socket: str = ""
    backend: str = "auto"
    read_timeout: float = 3.0
    max_payload: int = 4096
    drain_timeout: float = 5.0
    window_op_timeout: float = 5.0
    step: int = 40
    include: tuple[str, ...] = ()


@dataclass(frozen=True)
class ConfigSnapshot:
    """A complete, validated configuration. Replaced as a whole on reload."""

    settings: BridgeSettings
    actions: ActionMapping
    sources: tuple[Path, ...] = field(default_factory=tuple)


class BridgeState(StrEnum):
    """Lifecycle of the bridge process."""

    STARTING = "starting"
    LISTENING = "listening"
    DRAINING = "draining"
    STOPPED = "stopped"


class ExitCode(IntEnum):
    """Process exit codes."""

    SUCCESS = 0
    USAGE_ERROR = 1  # bad arguments
    CONFIG_ERROR = 2  # missing or invalid configuration
    BIND_ERROR = 3  # socket path unusable
    CONNECTION_ERROR = 4  # client cannot reach the bridge


# Errors {{{


class BridgeError(Exception):
    """Base class for wmbridge errors."""

    kind = "BridgeError"


class ConfigError(BridgeError):
    """The configuration cannot be used. Fatal at startup."""

    kind = "ConfigError"

    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        self.errors = errors or []
        if self.errors:
            message = "\n".join([message, *(f"  - {e}" for e in self.errors)])
        super().__init__(message)


class BindError(BridgeError):
    """The socket path cannot be bound. Fatal at startup."""

    kind = "BindError"


class CommandError(BridgeError):
    """A failure confined to one connection."""


class PayloadTooLarge(CommandError):
    """The client sent more bytes than allowed."""

    kind = "PayloadTooLarge"


class ReadTimeout(CommandError):
    """The client did not finish sending in time."""

    kind = "ReadTimeout"


class DecodeError(CommandError):
    """The payload is not a valid command message."""

    kind = "DecodeError"


class UnknownCommand(CommandError):
    """The payload names a command outside the vocabulary."""

    kind = "UnknownCommand"


class Unmapped(CommandError):
    """The command has no configured action."""

    kind = "Unmapped"


class SpawnError(CommandError):
    """A process could not be started."""

    kind = "SpawnError"


class WindowOpError(CommandError):
    """A window operation failed."""

    kind = "WindowOpError"


# }}}
