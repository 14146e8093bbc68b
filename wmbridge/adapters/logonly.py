"""Backend that only logs the operations it receives."""

from collections import deque
from logging import Logger

from ..constants import DEFAULT_STEP_PX
from ..models import WindowOp
from .backend import WindowBackend

__all__ = ["LogOnlyBackend"]

HISTORY_SIZE = 100


class LogOnlyBackend(WindowBackend):
    """Dry-run backend, for headless sessions and tests.

    Every operation succeeds and is logged. `performed` keeps the latest ones.
    """

    name = "log"

    def __init__(self, step: int = DEFAULT_STEP_PX) -> None:
        super().__init__(step)
        self.performed: deque[WindowOp] = deque(maxlen=HISTORY_SIZE)

    @classmethod
    async def is_available(cls) -> bool:
        """Always available."""
        return True

    async def perform(self, op: WindowOp, *, log: Logger) -> None:
        """Log `op`."""
        self.performed.append(op)
        log.info("Window operation (not performed): %s", op)
