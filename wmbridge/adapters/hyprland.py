"""Hyprland backend, talking to the hyprctl socket."""

import asyncio
import os
from logging import Logger
from pathlib import Path

from ..models import Direction, WindowOp, WindowOpError, WindowOpKind
from .backend import WindowBackend

__all__ = ["HyprlandBackend", "hyprctl_socket_path"]

DISPATCH_DIRECTIONS = {
    Direction.LEFT: "l",
    Direction.RIGHT: "r",
    Direction.UP: "u",
    Direction.DOWN: "d",
}

# Operations without a direction, as plain dispatchers
SIMPLE_DISPATCHERS = {
    WindowOpKind.FOCUS_NEXT: "cyclenext",
    WindowOpKind.NORMALIZE: "splitratio exact 1",
    WindowOpKind.TOGGLE_SPLIT: "togglesplit",
    WindowOpKind.TOGGLE_FULLSCREEN: "fullscreen 0",
}


def hyprctl_socket_path() -> Path | None:
    """Return the hyprctl socket of the running Hyprland instance, None outside of Hyprland."""
    signature = os.environ.get("HYPRLAND_INSTANCE_SIGNATURE")
    if not signature:
        return None
    runtime_dir = os.environ.get("XDG_RUNTIME_DIR", "")
    folder = Path(f"{runtime_dir}/hypr/{signature}")
    if not runtime_dir or not folder.exists():
        folder = Path(f"/tmp/hypr/{signature}")  # noqa: S108
    return folder / ".socket.sock"


class HyprlandBackend(WindowBackend):
    """Hyprland backend, sending `dispatch` requests.

    Targets are Hyprland window selectors (eg. "address:0x55d1c0a0",
    "class:firefox") and are accepted by kill, toggle_floating, move and
    resize.
    """

    name = "hyprland"

    @classmethod
    async def is_available(cls) -> bool:
        """Check if the hyprctl socket exists.

        Returns:
            True inside of a Hyprland session
        """
        path = hyprctl_socket_path()
        return path is not None and path.exists()

    def dispatch_commands(self, op: WindowOp) -> list[str]:
        """Return the dispatchers (with their arguments) performing `op`, in order.

        Raises:
            WindowOpError: the operation (or its target) is not supported
        """
        if op.op == WindowOpKind.FOCUS:
            assert op.direction is not None
            self._refuse_target(op)
            return [f"movefocus {DISPATCH_DIRECTIONS[op.direction]}"]
        if op.op == WindowOpKind.MOVE:
            assert op.direction is not None
            if op.amount is None and not op.target:
                return [f"movewindow {DISPATCH_DIRECTIONS[op.direction]}"]
            dx, dy = self.offset(op)
            return [self._with_target(f"movewindowpixel {dx} {dy}", op)]
        if op.op == WindowOpKind.RESIZE:
            return self._grow(op)
        if op.op == WindowOpKind.KILL:
            return [f"closewindow {op.target}" if op.target else "killactive"]
        if op.op == WindowOpKind.TOGGLE_FLOATING:
            return [f"togglefloating {op.target}" if op.target else "togglefloating"]
        if op.op in SIMPLE_DISPATCHERS:
            self._refuse_target(op)
            return [SIMPLE_DISPATCHERS[op.op]]
        raise self.unsupported(op)

    def _grow(self, op: WindowOp) -> list[str]:
        """Grow the window towards the direction.

        Hyprland resizes from the top left corner: growing left or up also
        shifts the window by the same amount.
        """
        dx, dy = self.offset(op)
        if op.target:
            commands = [f"resizewindowpixel {abs(dx)} {abs(dy)},{op.target}"]
        else:
            commands = [f"resizeactive {abs(dx)} {abs(dy)}"]
        if dx < 0 or dy < 0:
            shift_x, shift_y = min(dx, 0), min(dy, 0)
            if op.target:
                commands.append(f"movewindowpixel {shift_x} {shift_y},{op.target}")
            else:
                commands.append(f"moveactive {shift_x} {shift_y}")
        return commands

    @staticmethod
    def _with_target(command: str, op: WindowOp) -> str:
        return f"{command},{op.target}" if op.target else command

    def _refuse_target(self, op: WindowOp) -> None:
        if op.target:
            msg = f"'{op.op}' can't be aimed at a window with the {self.name} backend"
            raise WindowOpError(msg)

    async def perform(self, op: WindowOp, *, log: Logger) -> None:
        """Perform a window operation.

        Args:
            op: The operation
            log: Logger to use for this operation
        """
        for command in self.dispatch_commands(op):
            await self.dispatch(command, log=log)

    async def dispatch(self, command: str, *, log: Logger) -> None:
        """Send one `dispatch` request.

        Raises:
            WindowOpError: Hyprland can't be reached or refused the command
        """
        path = hyprctl_socket_path()
        if path is None:
            msg = "HYPRLAND_INSTANCE_SIGNATURE is not set, is Hyprland running?"
            raise WindowOpError(msg)
        log.debug("dispatch %s", command)
        try:
            ctl_reader, ctl_writer = await asyncio.open_unix_connection(str(path))
        except OSError as e:
            log.critical("hyprctl socket not found! is it running ?")
            msg = f"Cannot connect to {path}: {e}"
            raise WindowOpError(msg) from e

        try:
            ctl_writer.write(f"/dispatch {command}".encode())
            await ctl_writer.drain()
            resp = await ctl_reader.read(100)
        finally:
            ctl_writer.close()
            await ctl_writer.wait_closed()
        # remove "\n" from the response
        resp = b"".join(resp.split(b"\n"))
        if resp != b"ok":
            msg = f"dispatch {command} failed: {resp.decode(errors='replace')}"
            raise WindowOpError(msg)
