"""X11/Xorg backend using xdotool and wmctrl (EWMH)."""

from dataclasses import dataclass
from logging import Logger

from ..models import Direction, WindowOp, WindowOpError, WindowOpKind
from .backend import DIRECTION_VECTORS, WindowBackend

__all__ = ["WindowGeometry", "XorgBackend", "parse_wmctrl_output", "pick_neighbour"]

# Windows on this desktop are shown on every desktop
STICKY_DESKTOP = -1


@dataclass(frozen=True)
class WindowGeometry:
    """A managed window, as listed by `wmctrl -lG`."""

    wid: int
    desktop: int
    x: int
    y: int
    width: int
    height: int

    @property
    def center(self) -> tuple[float, float]:
        """Center of the window."""
        return self.x + self.width / 2, self.y + self.height / 2


def parse_wmctrl_output(output: str, log: Logger) -> list[WindowGeometry]:
    """Parse `wmctrl -lG` output.

    Each line looks like:
        0x03a00007  0 1920 0    960  1080 host Window title

    Args:
        output: Raw command output
        log: Logger instance

    Returns:
        The windows, in client list order
    """
    windows = []
    for line in output.splitlines():
        fields = line.split(None, 6)
        if len(fields) < 6:  # noqa: PLR2004
            continue
        try:
            wid, desktop, x, y, width, height = int(fields[0], 16), *map(int, fields[1:6])
        except ValueError:
            log.debug("Skipping unexpected wmctrl line: %r", line)
            continue
        windows.append(WindowGeometry(wid, desktop, x, y, width, height))
    return windows


def pick_neighbour(current: WindowGeometry, candidates: list[WindowGeometry], direction: Direction) -> WindowGeometry | None:
    """Return the window closest to `current` in `direction`.

    Only windows whose center lies beyond the current center in that
    direction are considered. Distance across the direction counts double,
    so a window in line is preferred over a closer diagonal one.
    """
    cx, cy = current.center
    dx, dy = DIRECTION_VECTORS[direction]
    best: WindowGeometry | None = None
    best_score = 0.0
    for win in candidates:
        if win.wid == current.wid:
            continue
        wx, wy = win.center
        along = (wx - cx) * dx + (wy - cy) * dy
        if along <= 0:
            continue
        across = abs((wx - cx) * dy) + abs((wy - cy) * dx)
        score = along + 2 * across
        if best is None or score < best_score:
            best, best_score = win, score
    return best


def _parse_window_id(target: str) -> int:
    try:
        return int(target, 0)
    except ValueError:
        msg = f"Invalid X11 window id {target!r} (expected eg. 0x3a00007)"
        raise WindowOpError(msg) from None


class XorgBackend(WindowBackend):
    """X11 backend for EWMH compliant window managers.

    Tiling-only operations (normalize, toggle_split, next_layout,
    toggle_floating) have no EWMH equivalent and raise WindowOpError.
    """

    name = "xorg"

    @classmethod
    async def is_available(cls) -> bool:
        """Check if xdotool and wmctrl are available.

        Returns:
            True if both commands work
        """
        return await cls._check_command("xdotool version") and await cls._check_command("wmctrl -m")

    async def perform(self, op: WindowOp, *, log: Logger) -> None:
        """Perform a window operation.

        Args:
            op: The operation
            log: Logger to use for this operation
        """
        if op.op == WindowOpKind.FOCUS:
            await self._focus_direction(op, log=log)
        elif op.op == WindowOpKind.FOCUS_NEXT:
            await self._focus_next(log=log)
        elif op.op == WindowOpKind.MOVE:
            wid = await self._window(op, log=log)
            dx, dy = self.offset(op)
            await self._run("xdotool", "windowmove", "--relative", str(wid), str(dx), str(dy), log=log)
        elif op.op == WindowOpKind.RESIZE:
            await self._resize(op, log=log)
        elif op.op == WindowOpKind.KILL:
            wid = await self._window(op, log=log)
            await self._run("wmctrl", "-ic", f"0x{wid:08x}", log=log)
        elif op.op == WindowOpKind.TOGGLE_FULLSCREEN:
            wid = await self._window(op, log=log)
            await self._run("wmctrl", "-ir", f"0x{wid:08x}", "-b", "toggle,fullscreen", log=log)
        else:
            raise self.unsupported(op)

    async def _active_window(self, *, log: Logger) -> int:
        output = await self._run("xdotool", "getactivewindow", log=log)
        try:
            return int(output.strip())
        except ValueError:
            msg = f"Unexpected xdotool output: {output!r}"
            raise WindowOpError(msg) from None

    async def _window(self, op: WindowOp, *, log: Logger) -> int:
        """Return the id of the window `op` applies to."""
        if op.target:
            return _parse_window_id(op.target)
        return await self._active_window(log=log)

    async def _list_windows(self, *, log: Logger) -> list[WindowGeometry]:
        return parse_wmctrl_output(await self._run("wmctrl", "-lG", log=log), log)

    async def _focus(self, wid: int, *, log: Logger) -> None:
        await self._run("wmctrl", "-ia", f"0x{wid:08x}", log=log)

    async def _focus_direction(self, op: WindowOp, *, log: Logger) -> None:
        assert op.direction is not None
        wid = await self._window(op, log=log)
        windows = await self._list_windows(log=log)
        current = next((w for w in windows if w.wid == wid), None)
        if current is None:
            msg = f"Window 0x{wid:08x} is not managed by the window manager"
            raise WindowOpError(msg)
        candidates = [w for w in windows if w.desktop in {current.desktop, STICKY_DESKTOP}]
        neighbour = pick_neighbour(current, candidates, op.direction)
        if neighbour is None:
            log.debug("No window %s of 0x%08x", op.direction, wid)
            return
        await self._focus(neighbour.wid, log=log)

    async def _focus_next(self, *, log: Logger) -> None:
        windows = await self._list_windows(log=log)
        try:
            active: int | None = await self._active_window(log=log)
        except WindowOpError:
            active = None
        current = next((w for w in windows if w.wid == active), None)
        if current is not None:
            windows = [w for w in windows if w.desktop in {current.desktop, STICKY_DESKTOP}]
        if not windows:
            log.debug("No window to focus")
            return
        if current is None:
            await self._focus(windows[0].wid, log=log)
            return
        index = windows.index(current)
        await self._focus(windows[(index + 1) % len(windows)].wid, log=log)

    async def _resize(self, op: WindowOp, *, log: Logger) -> None:
        """Grow the window towards the direction."""
        assert op.direction is not None
        wid = await self._window(op, log=log)
        output = await self._run("xdotool", "getwindowgeometry", "--shell", str(wid), log=log)
        geometry = dict(line.split("=", 1) for line in output.splitlines() if "=" in line)
        try:
            x, y = int(geometry["X"]), int(geometry["Y"])
            width, height = int(geometry["WIDTH"]), int(geometry["HEIGHT"])
        except (KeyError, ValueError):
            msg = f"Unexpected xdotool output: {output!r}"
            raise WindowOpError(msg) from None

        amount = self.step if op.amount is None else op.amount
        if op.direction in {Direction.LEFT, Direction.RIGHT}:
            width += amount
        else:
            height += amount
        if op.direction == Direction.LEFT:
            x -= amount
        elif op.direction == Direction.UP:
            y -= amount

        await self._run("xdotool", "windowsize", str(wid), str(max(width, 1)), str(max(height, 1)), log=log)
        if op.direction in {Direction.LEFT, Direction.UP}:
            await self._run("xdotool", "windowmove", str(wid), str(x), str(y), log=log)
