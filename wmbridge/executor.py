"""Action execution: one resolved action, one side effect."""

import asyncio
from collections.abc import Awaitable, Callable, Mapping
from logging import Logger
from typing import Any

from .adapters import WindowSystemAdapter
from .ansi import ACTION_STYLES, colorize
from .constants import DEFAULT_WINDOW_OP_TIMEOUT
from .models import Action, BridgeOp, BridgeOpKind, ShellCommand, WindowOp, WindowOpError
from .process import ProcessSpawner

__all__ = ["ActionExecutor", "BridgeHook"]

BridgeHook = Callable[[], Awaitable[Any]]


class ActionExecutor:
    """Dispatches actions to the spawner, the window adapter or the bridge itself."""

    def __init__(
        self,
        spawner: ProcessSpawner,
        adapter: WindowSystemAdapter,
        log: Logger,
        bridge_hooks: Mapping[BridgeOpKind, BridgeHook] | None = None,
        window_op_timeout: float = DEFAULT_WINDOW_OP_TIMEOUT,
    ) -> None:
        """Initialize the executor.

        Args:
            spawner: Launches shell commands
            adapter: Performs window operations
            log: Logger instance
            bridge_hooks: Coroutine functions called for bridge operations
            window_op_timeout: Maximum wait for a window operation, queueing included
        """
        self.spawner = spawner
        self.adapter = adapter
        self.log = log
        self.bridge_hooks = dict(bridge_hooks or {})
        self.window_op_timeout = window_op_timeout

    def _announce(self, action: Action) -> None:
        self.log.info("%s %s", colorize(action.kind, *ACTION_STYLES[action.kind]), action)

    async def execute(self, action: Action) -> None:
        """Perform `action`.

        Raises:
            SpawnError: a shell command could not be started
            WindowOpError: a window operation failed or timed out
        """
        if isinstance(action, ShellCommand):
            self._announce(action)
            await self.spawner.spawn(action.program, action.args)
        elif isinstance(action, WindowOp):
            self._announce(action)
            try:
                await asyncio.wait_for(self.adapter.submit(action), timeout=self.window_op_timeout)
            except TimeoutError:
                msg = f"{action} not performed within {self.window_op_timeout}s"
                raise WindowOpError(msg) from None
        elif isinstance(action, BridgeOp):
            self._announce(action)
            hook = self.bridge_hooks.get(action.op)
            if hook is None:
                self.log.warning("No handler registered for bridge operation %s", action)
                return
            await hook()
        else:
            msg = f"Unsupported action type: {type(action).__name__}"
            raise TypeError(msg)
