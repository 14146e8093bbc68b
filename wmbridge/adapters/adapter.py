"""Serialized access to the window backend.

Every window operation goes through one asyncio.Queue consumed by a single
worker task: operations run in submission order, one at a time, and a
failing operation only fails its own submitter.
"""

import asyncio
import contextlib
from logging import Logger

from ..constants import DEFAULT_WINDOW_OP_TIMEOUT
from ..models import WindowOp, WindowOpError
from .backend import WindowBackend

__all__ = ["WindowSystemAdapter"]

QueueItem = tuple[WindowOp, asyncio.Future[None]]


class WindowSystemAdapter:
    """Runs window operations on a backend, in FIFO order.

    Usage:
        adapter = WindowSystemAdapter(backend, log)
        adapter.start()
        await adapter.submit(WindowOp(WindowOpKind.KILL))
        await adapter.stop()
    """

    def __init__(self, backend: WindowBackend, log: Logger, op_timeout: float = DEFAULT_WINDOW_OP_TIMEOUT) -> None:
        """Initialize.

        Args:
            backend: The backend performing the operations
            log: Logger passed to the backend
            op_timeout: Maximum duration of one operation, in seconds
        """
        self.backend = backend
        self.log = log
        self.op_timeout = op_timeout
        self._queue: asyncio.Queue[QueueItem] = asyncio.Queue()
        self._worker: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        """True while the worker accepts operations."""
        return self._worker is not None and not self._worker.done()

    def start(self) -> None:
        """Start the worker task."""
        if self.running:
            return
        self._worker = asyncio.create_task(self._run(), name="window-ops")
        self.log.debug("Using the %s backend", self.backend.name)

    async def submit(self, op: WindowOp) -> None:
        """Queue `op` and wait until it was performed.

        Raises:
            WindowOpError: the operation failed or the adapter is stopped
        """
        if not self.running:
            msg = f"Cannot perform {op}: window adapter stopped"
            raise WindowOpError(msg)
        future: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        await self._queue.put((op, future))
        await future

    async def _run(self) -> None:
        """Consume the queue indefinitely."""
        while True:
            op, future = await self._queue.get()
            try:
                if future.done():  # submitter gave up waiting
                    self.log.debug("Skipping %s: cancelled", op)
                    continue
                try:
                    error = await self._perform(op)
                except asyncio.CancelledError:
                    if not future.done():
                        future.set_exception(WindowOpError(f"{op} interrupted: window adapter stopped"))
                    raise
                if not future.done():
                    if error is None:
                        future.set_result(None)
                    else:
                        future.set_exception(error)
            finally:
                self._queue.task_done()

    async def _perform(self, op: WindowOp) -> WindowOpError | None:
        """Run one operation, returning the error instead of raising it."""
        try:
            await asyncio.wait_for(self.backend.perform(op, log=self.log), timeout=self.op_timeout)
        except TimeoutError:
            return WindowOpError(f"{op} timed out after {self.op_timeout}s")
        except WindowOpError as e:
            return e
        except Exception as e:  # pylint: disable=W0718
            self.log.exception("Unexpected error performing %s", op)
            error = WindowOpError(f"{op} failed: {e}")
            error.__cause__ = e
            return error
        return None

    async def stop(self) -> None:
        """Stop the worker. Operations still queued fail with WindowOpError."""
        if self._worker is not None:
            self._worker.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._worker
            self._worker = None
        while not self._queue.empty():
            op, future = self._queue.get_nowait()
            if not future.done():
                future.set_exception(WindowOpError(f"Cannot perform {op}: window adapter stopped"))
            self._queue.task_done()
