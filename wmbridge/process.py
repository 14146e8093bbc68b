"""Fire-and-forget subprocess launching.

ProcessSpawner:
    Starts detached children and reaps them from background tasks, so the
    caller never waits on a child and no zombie is left behind.
"""

__all__ = ["ProcessSpawner"]

import asyncio
import contextlib
from logging import Logger

from .models import SpawnError


class ProcessSpawner:
    """Launches detached processes and reaps them asynchronously.

    Each child:
    1. runs in its own session (a signal sent to the bridge doesn't reach it)
    2. has stdin/stdout/stderr on /dev/null
    3. is owned by a reaper task which awaits its exit

    Usage:
        spawner = ProcessSpawner(log)
        pid = await spawner.spawn("xterm", ())
        ...
        await spawner.close()  # children keep running
    """

    def __init__(self, log: Logger) -> None:
        """Initialize.

        Args:
            log: Logger used to report spawns and exit codes
        """
        self.log = log
        self._reapers: set[asyncio.Task[None]] = set()

    @property
    def pending(self) -> int:
        """Return the number of children not reaped yet."""
        return len(self._reapers)

    async def spawn(self, program: str, args: tuple[str, ...] | list[str] = ()) -> int:
        """Start `program` with `args` without waiting for it.

        Args:
            program: Executable name or path
            args: Arguments

        Returns:
            The PID of the child

        Raises:
            SpawnError: the process could not be started
        """
        try:
            proc = await asyncio.create_subprocess_exec(
                program,
                *args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
                start_new_session=True,
            )
        except OSError as e:
            msg = f"Cannot start {program}: {e.strerror or e}"
            raise SpawnError(msg) from e

        reaper = asyncio.create_task(self._reap(proc, program), name=f"reap-{proc.pid}")
        self._reapers.add(reaper)
        reaper.add_done_callback(self._reapers.discard)
        self.log.debug("Started %s (pid %d)", program, proc.pid)
        return proc.pid

    async def _reap(self, proc: asyncio.subprocess.Process, program: str) -> None:
        """Wait for `proc` to exit and log its return code."""
        returncode = await proc.wait()
        if returncode:
            self.log.warning("%s (pid %d) exited with code %d", program, proc.pid, returncode)
        else:
            self.log.debug("%s (pid %d) exited", program, proc.pid)

    async def close(self) -> None:
        """Stop reaping. Running children are left alone."""
        for reaper in list(self._reapers):
            reaper.cancel()
        for reaper in list(self._reapers):
            with contextlib.suppress(asyncio.CancelledError):
                await reaper
        self._reapers.clear()
