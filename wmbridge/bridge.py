"""The command bridge daemon.

Lifecycle: starting -> listening -> draining -> stopped

Each connection carries one command: the payload is read, decoded,
resolved against the current configuration snapshot and executed. Nothing
is written back to the client, failures are only logged.
"""

import asyncio
import contextlib
import signal
from pathlib import Path

from .adapters import WindowSystemAdapter, select_backend
from .config_store import ConfigStore
from .decoder import decode_command
from .executor import ActionExecutor
from .listener import SocketListener, read_payload
from .logging_setup import get_logger
from .models import BridgeOpKind, BridgeSettings, BridgeState, CommandError, SpawnError, WindowOpError
from .paths import resolve_socket_path
from .process import ProcessSpawner
from .resolver import resolve

__all__ = ["CommandBridge", "run_bridge"]


class CommandBridge:  # pylint: disable=too-many-instance-attributes
    """Main app object."""

    adapter: WindowSystemAdapter
    executor: ActionExecutor
    listener: SocketListener
    socket_path: Path

    def __init__(self, config_path: Path, socket_flag: str | None = None) -> None:
        """Initialize.

        Args:
            config_path: Configuration file or directory
            socket_flag: Socket path given on the command line, if any
        """
        self.log = get_logger()
        self.state = BridgeState.STARTING
        self.config = ConfigStore(config_path, get_logger("config"))
        self.spawner = ProcessSpawner(get_logger("process"))
        self.socket_flag = socket_flag
        self._shutdown_requested = asyncio.Event()
        self._handlers: set[asyncio.Task] = set()
        self._background: set[asyncio.Task] = set()
        self._signals: list[signal.Signals] = []

    async def start(self) -> None:
        """Load the configuration, start the window adapter and bind the socket.

        Raises:
            ConfigError: the configuration is missing or invalid
            BindError: the socket can't be bound
        """
        snapshot = await self.config.load()
        settings = snapshot.settings

        adapter_log = get_logger("adapter")
        backend = select_backend(settings.backend, adapter_log, step=settings.step)
        if not await backend.is_available():
            adapter_log.warning("The %s backend doesn't look usable, window operations will probably fail", backend.name)
        self.adapter = WindowSystemAdapter(backend, adapter_log, op_timeout=settings.window_op_timeout)
        self.executor = ActionExecutor(
            self.spawner,
            self.adapter,
            get_logger("executor"),
            bridge_hooks={
                BridgeOpKind.RELOAD: self.reload_config,
                BridgeOpKind.SHUTDOWN: self._shutdown_command,
            },
            window_op_timeout=settings.window_op_timeout,
        )
        self.adapter.start()

        self.socket_path = resolve_socket_path(self.socket_flag, settings.socket)
        self.listener = SocketListener(self.socket_path, get_logger("listener"))
        try:
            await self.listener.start(self.handle_connection)
        except Exception:
            await self.adapter.stop()
            raise

        self._install_signal_handlers()
        self.state = BridgeState.LISTENING
        self.log.info("Listening on %s", self.socket_path)

    def _install_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, self.request_shutdown)
            self._signals.append(sig)
        loop.add_signal_handler(signal.SIGHUP, self._reload_in_background)
        self._signals.append(signal.SIGHUP)

    def _remove_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in self._signals:
            loop.remove_signal_handler(sig)
        self._signals.clear()

    def _reload_in_background(self) -> None:
        task = asyncio.create_task(self.reload_config(), name="reload")
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    def _apply_settings(self, settings: BridgeSettings) -> None:
        """Apply the settings which don't need a restart."""
        self.adapter.op_timeout = settings.window_op_timeout
        self.adapter.backend.step = settings.step
        self.executor.window_op_timeout = settings.window_op_timeout

    async def reload_config(self) -> bool:
        """Reload the configuration. The current one stays in effect on failure.

        Returns:
            True if the new configuration is in effect
        """
        if not await self.config.reload():
            return False
        self._apply_settings(self.config.snapshot.settings)
        return True

    def request_shutdown(self) -> None:
        """Ask serve_forever() to stop."""
        if not self._shutdown_requested.is_set():
            self.log.info("Shutdown requested")
            self._shutdown_requested.set()

    async def _shutdown_command(self) -> None:
        self.request_shutdown()

    async def handle_connection(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        """Process the single command sent on a connection."""
        if self.state != BridgeState.LISTENING:
            self.log.debug("Dropping connection: bridge is %s", self.state)
            writer.close()
            return
        task = asyncio.current_task()
        assert task is not None
        self._handlers.add(task)
        try:
            snapshot = self.config.snapshot
            payload = await read_payload(reader, snapshot.settings.max_payload, snapshot.settings.read_timeout)
            command = decode_command(payload)
            self.log.debug("Received %s", command.id)
            action = resolve(command, snapshot.actions, self.log)
            await self.executor.execute(action)
        except (SpawnError, WindowOpError) as e:
            self.log.error("%s: %s", e.kind, e)  # noqa: TRY400
        except CommandError as e:
            self.log.warning("%s: %s", e.kind, e)
        except Exception:  # pylint: disable=W0718
            self.log.exception("Unhandled error processing a command")
        finally:
            self._handlers.discard(task)
            writer.close()
            with contextlib.suppress(OSError):
                await writer.wait_closed()

    @property
    def in_flight(self) -> int:
        """Number of connections being processed."""
        return len(self._handlers)

    async def serve_forever(self) -> None:
        """Serve until a shutdown is requested, then drain and stop."""
        await self._shutdown_requested.wait()
        await self.drain()

    async def drain(self) -> None:
        """Stop accepting, let running handlers finish and release every resource."""
        self.state = BridgeState.DRAINING
        self._remove_signal_handlers()
        self.listener.stop_accepting()

        drain_timeout = self.config.snapshot.settings.drain_timeout
        current = asyncio.current_task()
        pending = {t for t in self._handlers if t is not current}
        if pending:
            self.log.info("Waiting for %d command(s) to complete", len(pending))
            _, pending = await asyncio.wait(pending, timeout=drain_timeout)
            if pending:
                self.log.warning("Cancelling %d command(s) still running after %ss", len(pending), drain_timeout)
                for task in pending:
                    task.cancel()
                await asyncio.gather(*pending, return_exceptions=True)
        for task in self._background:
            task.cancel()
        await asyncio.gather(*self._background, return_exceptions=True)

        await self.adapter.stop()
        await self.spawner.close()
        self.listener.unlink()
        self.state = BridgeState.STOPPED
        self.log.info("Stopped")


async def run_bridge(config_path: Path, socket_flag: str | None = None) -> None:
    """Run the bridge until it's asked to stop.

    Raises:
        ConfigError: the configuration is missing or invalid
        BindError: the socket can't be bound
    """
    bridge = CommandBridge(config_path, socket_flag)
    await bridge.start()
    await bridge.serve_forever()
