"""Window backend interface."""

import asyncio
from abc import ABC, abstractmethod
from logging import Logger
from typing import ClassVar

from ..constants import DEFAULT_STEP_PX
from ..models import Direction, WindowOp, WindowOpError

__all__ = ["WindowBackend"]

# (dx, dy) unit vectors, screen coordinates (y grows downwards)
DIRECTION_VECTORS: dict[Direction, tuple[int, int]] = {
    Direction.LEFT: (-1, 0),
    Direction.RIGHT: (1, 0),
    Direction.UP: (0, -1),
    Direction.DOWN: (0, 1),
}


class WindowBackend(ABC):
    """Abstract base class for window-system backends (X11, Hyprland, ...).

    A backend performs one operation at a time: the WindowSystemAdapter
    guarantees it is never called concurrently.

    All methods that perform logging require a `log` parameter to be passed,
    so that operations are logged under the caller's logger.
    """

    name: ClassVar[str] = "abstract"

    def __init__(self, step: int = DEFAULT_STEP_PX) -> None:
        """Initialize the backend.

        Args:
            step: Pixels used by move/resize operations without an amount
        """
        self.step = step

    @classmethod
    @abstractmethod
    async def is_available(cls) -> bool:
        """Check if this backend's window system can be reached.

        Returns:
            True if the backend can be used
        """

    @abstractmethod
    async def perform(self, op: WindowOp, *, log: Logger) -> None:
        """Perform a window operation.

        Args:
            op: The operation
            log: Logger to use for this operation

        Raises:
            WindowOpError: the operation is unsupported or failed
        """

    def offset(self, op: WindowOp) -> tuple[int, int]:
        """Return the (dx, dy) pixel offset of a directional move/resize."""
        assert op.direction is not None
        amount = self.step if op.amount is None else op.amount
        dx, dy = DIRECTION_VECTORS[op.direction]
        return dx * amount, dy * amount

    def unsupported(self, op: WindowOp) -> WindowOpError:
        """Return the error for an operation this backend can't do."""
        return WindowOpError(f"'{op.op}' is not supported by the {self.name} backend")

    @classmethod
    async def _check_command(cls, command: str) -> bool:
        """Check if a command is available and works.

        Args:
            command: The command to test

        Returns:
            True if command executed successfully
        """
        try:
            proc = await asyncio.create_subprocess_shell(
                command,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
            return await proc.wait() == 0
        except OSError:
            return False

    async def _run(self, *argv: str, log: Logger) -> str:
        """Run a helper program and return its standard output.

        Raises:
            WindowOpError: the program is missing or returned an error
        """
        log.debug("%s", " ".join(argv))
        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            stdout, stderr = await proc.communicate()
        except OSError as e:
            msg = f"{argv[0]} failed: {e.strerror or e}"
            raise WindowOpError(msg) from e

        if proc.returncode != 0:
            msg = f"{argv[0]} exited with code {proc.returncode}: {stderr.decode(errors='replace').strip()}"
            raise WindowOpError(msg)
        return stdout.decode(errors="replace")
