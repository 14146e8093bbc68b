"""Unix socket listener.

Binds the command socket, hands every accepted connection to a handler
running in its own task, and reads client payloads with size and time
limits. The listener never looks at what it reads.
"""

import asyncio
import contextlib
import os
from collections.abc import Awaitable, Callable
from logging import Logger
from pathlib import Path

from .constants import READ_CHUNK_SIZE, SOCKET_MODE
from .models import BindError, PayloadTooLarge, ReadTimeout
from .schema import MAX_SOCKET_PATH_LEN

__all__ = ["ConnectionHandler", "SocketListener", "prepare_socket_path", "read_payload"]

ConnectionHandler = Callable[[asyncio.StreamReader, asyncio.StreamWriter], Awaitable[None]]


async def prepare_socket_path(path: Path, log: Logger) -> None:
    """Make `path` bindable.

    A leftover socket of a dead bridge is removed. A socket with a live
    server behind it, or any other kind of file, is left alone.

    Raises:
        BindError: the path is in use or unusable
    """
    if len(str(path).encode()) > MAX_SOCKET_PATH_LEN:
        msg = f"Socket path is too long ({len(str(path).encode())} > {MAX_SOCKET_PATH_LEN} bytes): {path}"
        raise BindError(msg)

    if path.exists() or path.is_symlink():
        if not path.is_socket():
            msg = f"{path} exists and is not a socket"
            raise BindError(msg)
        try:
            _, writer = await asyncio.open_unix_connection(str(path))
        except ConnectionRefusedError:
            log.warning("Removing stale socket %s", path)
            with contextlib.suppress(FileNotFoundError):
                path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            msg = f"Cannot check {path}: {e}"
            raise BindError(msg) from e
        else:
            writer.close()
            with contextlib.suppress(OSError):
                await writer.wait_closed()
            msg = f"{path} is in use, is another bridge running?"
            raise BindError(msg)

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        msg = f"Cannot create {path.parent}: {e}"
        raise BindError(msg) from e


async def read_payload(reader: asyncio.StreamReader, max_size: int, timeout: float) -> bytes:
    """Read everything the client sends, up to EOF.

    Args:
        reader: The connection's stream reader
        max_size: Maximum number of bytes accepted
        timeout: Seconds the client has to send everything

    Raises:
        PayloadTooLarge: more than `max_size` bytes were sent
        ReadTimeout: EOF wasn't reached within `timeout`
    """

    async def _read() -> bytes:
        data = bytearray()
        while True:
            chunk = await reader.read(READ_CHUNK_SIZE)
            if not chunk:
                break
            data += chunk
            if len(data) > max_size:
                msg = f"Message exceeds {max_size} bytes"
                raise PayloadTooLarge(msg)
        return bytes(data)

    try:
        return await asyncio.wait_for(_read(), timeout=timeout)
    except TimeoutError:
        msg = f"No complete message within {timeout}s"
        raise ReadTimeout(msg) from None


class SocketListener:
    """Owns the listening socket."""

    server: asyncio.Server | None = None

    def __init__(self, path: Path, log: Logger) -> None:
        """Initialize.

        Args:
            path: Socket path
            log: Logger instance
        """
        self.path = path
        self.log = log
        self._inode: int | None = None

    async def start(self, handler: ConnectionHandler) -> None:
        """Bind the socket and start accepting connections.

        Every connection runs `handler` in its own task.

        Raises:
            BindError: the socket can't be bound
        """
        await prepare_socket_path(self.path, self.log)
        try:
            self.server = await asyncio.start_unix_server(handler, path=str(self.path))
            os.chmod(self.path, SOCKET_MODE)
            self._inode = self.path.stat().st_ino
        except OSError as e:
            if self.server is not None:
                self.server.close()
                self.server = None
            msg = f"Cannot listen on {self.path}: {e}"
            raise BindError(msg) from e
        self.log.debug("Bound %s", self.path)

    def stop_accepting(self) -> None:
        """Close the listening socket. Running handlers are not affected."""
        if self.server is not None:
            self.server.close()

    def unlink(self) -> None:
        """Remove the socket file if it's still ours."""
        if self._inode is None:
            return
        try:
            if self.path.stat().st_ino == self._inode:
                self.path.unlink()
                self.log.debug("Removed %s", self.path)
        except FileNotFoundError:
            pass
        self._inode = None
