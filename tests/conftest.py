" generic fixtures "
import asyncio
import shutil
import tempfile
from pathlib import Path

import pytest
from pytest_asyncio import fixture

from wmbridge.adapters import WindowBackend
from wmbridge.bridge import CommandBridge
from wmbridge.models import BridgeState, WindowOpError


def pytest_configure():
    "Runs once before all"
    from wmbridge.logging_setup import init_logger

    init_logger("/dev/null", force_debug=True)


@pytest.fixture
def test_logger():
    from wmbridge.logging_setup import get_logger

    return get_logger("tests")


@pytest.fixture
def short_tmp():
    "A temporary folder with a path short enough to hold unix sockets"
    path = Path(tempfile.mkdtemp(prefix="wmb"))
    yield path
    shutil.rmtree(path, ignore_errors=True)


def make_config(socket="", commands="", **settings):
    "Return the text of a configuration file"
    lines = ["[bridge]", 'backend = "log"']
    if socket:
        lines.append(f'socket = "{socket}"')
    for key, value in settings.items():
        lines.append(f"{key} = {value!r}" if not isinstance(value, str) else f'{key} = "{value}"')
    lines += ["", "[commands]", commands]
    return "\n".join(lines) + "\n"


@pytest.fixture
def write_config(short_tmp):
    "Write a configuration file, returns its path"

    def _write(text, name="config.toml"):
        path = short_tmp / name
        path.write_text(text)
        return path

    return _write


# Mocks


class RecordingBackend(WindowBackend):
    "A backend recording the operations, optionally slow or failing"

    name = "recording"

    def __init__(self, delay=0.0, fail_on=()):
        super().__init__()
        self.delay = delay
        self.fail_on = set(fail_on)
        self.events = []
        self.performed = []

    @classmethod
    async def is_available(cls):
        return True

    async def perform(self, op, *, log):
        self.events.append(("start", op))
        if self.delay:
            await asyncio.sleep(self.delay)
        self.events.append(("end", op))
        if op.op in self.fail_on:
            raise WindowOpError(f"{op} failed")
        self.performed.append(op)


@pytest.fixture
def recording_backend():
    return RecordingBackend()


@fixture
async def start_bridge(write_config, short_tmp):
    "Start a bridge from a configuration text, stopped at teardown"
    bridges = []

    async def _start(commands="", **settings):
        socket = short_tmp / "bridge.sock"
        config = write_config(make_config(str(socket), commands, **settings))
        bridge = CommandBridge(config)
        await bridge.start()
        bridges.append(bridge)
        return bridge

    yield _start

    for bridge in bridges:
        if bridge.state == BridgeState.LISTENING:
            bridge.request_shutdown()
            await bridge.drain()
