"""End to end tests: a real socket, a real bridge, the log-only backend."""

import asyncio
import os
import signal

import pytest

from wmbridge.bridge import CommandBridge
from wmbridge.client import send_command
from wmbridge.models import BindError, BridgeState, ConfigError, Direction, WindowOp, WindowOpKind

from .conftest import RecordingBackend, make_config
from .testtools import MockReader, MockWriter, logged_kinds, send_raw, wait_called, wait_until

COMMANDS = """
FocusLeft = { kind = "window", op = "focus", direction = "left" }
KillWindow = { kind = "window", op = "kill" }
SpawnTerminal = { kind = "shell", program = "xterm", args = [] }
SpawnRofi = { kind = "shell", program = "/nonexistent/rofi" }
ReloadConfig = { kind = "bridge", op = "reload" }
Shutdown = { kind = "bridge", op = "shutdown" }
"""


@pytest.mark.asyncio
async def test_start_and_stop(start_bridge):
    bridge = await start_bridge(COMMANDS)
    assert bridge.state == BridgeState.LISTENING
    assert bridge.socket_path.is_socket()
    bridge.request_shutdown()
    await bridge.serve_forever()
    assert bridge.state == BridgeState.STOPPED
    assert not bridge.socket_path.exists()


@pytest.mark.asyncio
async def test_window_command(start_bridge):
    bridge = await start_bridge(COMMANDS)
    backend = bridge.adapter.backend
    await send_command(bridge.socket_path, "FocusLeft")
    await wait_until(lambda: len(backend.performed) == 1)
    await asyncio.sleep(0.05)
    assert list(backend.performed) == [WindowOp(WindowOpKind.FOCUS, Direction.LEFT)]


@pytest.mark.asyncio
async def test_target_reaches_the_backend(start_bridge):
    bridge = await start_bridge(COMMANDS)
    backend = bridge.adapter.backend
    await send_command(bridge.socket_path, "KillWindow", "0x3a00007")
    await wait_until(lambda: len(backend.performed) == 1)
    assert backend.performed[0] == WindowOp(WindowOpKind.KILL, target="0x3a00007")


@pytest.mark.asyncio
async def test_shell_command(start_bridge, mocker):
    bridge = await start_bridge(COMMANDS)
    spawn = mocker.patch.object(bridge.spawner, "spawn", return_value=1234)
    await send_command(bridge.socket_path, "SpawnTerminal")
    await wait_called(spawn)
    await asyncio.sleep(0.05)
    spawn.assert_called_once_with("xterm", ())
    assert len(bridge.adapter.backend.performed) == 0


@pytest.mark.asyncio
async def test_spawn_failure_is_isolated(start_bridge, mocker):
    bridge = await start_bridge(COMMANDS)
    error = mocker.spy(bridge.log, "error")
    await send_command(bridge.socket_path, "SpawnRofi")
    await wait_called(error)
    assert logged_kinds(error) == ["SpawnError"]
    # still serving
    await send_command(bridge.socket_path, "KillWindow")
    await wait_until(lambda: len(bridge.adapter.backend.performed) == 1)
    assert bridge.state == BridgeState.LISTENING


@pytest.mark.asyncio
async def test_unmapped_command(start_bridge, mocker):
    bridge = await start_bridge(COMMANDS)
    warning = mocker.spy(bridge.log, "warning")
    spawn = mocker.patch.object(bridge.spawner, "spawn")
    await send_command(bridge.socket_path, "NextLayout")
    await wait_called(warning)
    assert logged_kinds(warning) == ["Unmapped"]
    spawn.assert_not_called()
    assert len(bridge.adapter.backend.performed) == 0


@pytest.mark.asyncio
async def test_unknown_command(start_bridge, mocker):
    bridge = await start_bridge(COMMANDS)
    warning = mocker.spy(bridge.log, "warning")
    resolve = mocker.patch("wmbridge.bridge.resolve")
    writer = await send_raw(bridge.socket_path, b'"NotARealCommand"')
    writer.close()
    await wait_called(warning)
    assert logged_kinds(warning) == ["UnknownCommand"]
    resolve.assert_not_called()


@pytest.mark.asyncio
async def test_deeply_nested_payload(start_bridge, mocker):
    bridge = await start_bridge(COMMANDS)
    warning = mocker.spy(bridge.log, "warning")
    exception = mocker.spy(bridge.log, "exception")
    writer = await send_raw(bridge.socket_path, b"[" * 2048)
    writer.close()
    await wait_called(warning)
    assert logged_kinds(warning) == ["DecodeError"]
    exception.assert_not_called()


@pytest.mark.asyncio
async def test_connection_refused_while_draining(start_bridge, mocker):
    bridge = await start_bridge(COMMANDS)
    debug = mocker.spy(bridge.log, "debug")
    bridge.state = BridgeState.DRAINING
    writer = MockWriter()
    await bridge.handle_connection(MockReader(b'"KillWindow"', b""), writer)
    bridge.state = BridgeState.LISTENING
    writer.close.assert_called_once()
    debug.assert_called_once_with("Dropping connection: bridge is %s", BridgeState.DRAINING)
    assert len(bridge.adapter.backend.performed) == 0


@pytest.mark.asyncio
async def test_payload_too_large(start_bridge, mocker):
    bridge = await start_bridge(COMMANDS, max_payload=16)
    warning = mocker.spy(bridge.log, "warning")
    decode = mocker.patch("wmbridge.bridge.decode_command")
    writer = await send_raw(bridge.socket_path, b'"KillWindow"' + b" " * 100)
    await wait_called(warning)
    assert logged_kinds(warning) == ["PayloadTooLarge"]
    decode.assert_not_called()
    writer.close()


@pytest.mark.asyncio
async def test_read_timeout(start_bridge, mocker):
    bridge = await start_bridge(COMMANDS, read_timeout=0.2)
    warning = mocker.spy(bridge.log, "warning")
    idle = await send_raw(bridge.socket_path, b"", eof=False)
    # another client is served meanwhile
    await send_command(bridge.socket_path, "KillWindow")
    await wait_until(lambda: len(bridge.adapter.backend.performed) == 1)
    await wait_called(warning, timeout=2)
    assert logged_kinds(warning) == ["ReadTimeout"]
    assert len(bridge.adapter.backend.performed) == 1
    idle.close()


@pytest.mark.asyncio
async def test_concurrent_window_ops_are_fifo(start_bridge):
    bridge = await start_bridge(COMMANDS)
    backend = RecordingBackend(delay=0.02)
    bridge.adapter.backend = backend
    await send_command(bridge.socket_path, "FocusLeft")
    await wait_until(lambda: backend.events)
    await send_command(bridge.socket_path, "KillWindow")
    await wait_until(lambda: len(backend.performed) == 2)
    assert [e[0] for e in backend.events] == ["start", "end", "start", "end"]
    assert [op.op for op in backend.performed] == [WindowOpKind.FOCUS, WindowOpKind.KILL]


@pytest.mark.asyncio
async def test_reload_command(start_bridge, mocker):
    bridge = await start_bridge(COMMANDS)
    config_path = bridge.config.path
    config_path.write_text(make_config(str(bridge.socket_path), 'NextLayout = { kind = "window", op = "next_layout" }\nReloadConfig = { kind = "bridge", op = "reload" }', step=7))
    await send_command(bridge.socket_path, "ReloadConfig")
    await wait_until(lambda: "NextLayout" in bridge.config.snapshot.actions)
    assert bridge.adapter.backend.step == 7
    await send_command(bridge.socket_path, "NextLayout")
    await wait_until(lambda: len(bridge.adapter.backend.performed) == 1)


@pytest.mark.asyncio
async def test_failed_reload_keeps_serving(start_bridge):
    bridge = await start_bridge(COMMANDS)
    previous = bridge.config.snapshot
    bridge.config.path.write_text("[commands\n")
    assert await bridge.reload_config() is False
    assert bridge.config.snapshot is previous
    await send_command(bridge.socket_path, "KillWindow")
    await wait_until(lambda: len(bridge.adapter.backend.performed) == 1)


@pytest.mark.asyncio
async def test_sighup_reloads(start_bridge, mocker):
    bridge = await start_bridge(COMMANDS)
    reload = mocker.patch.object(bridge.config, "reload", return_value=True)
    os.kill(os.getpid(), signal.SIGHUP)
    await wait_called(reload)


@pytest.mark.asyncio
async def test_shutdown_command(start_bridge):
    bridge = await start_bridge(COMMANDS)
    await send_command(bridge.socket_path, "Shutdown")
    await asyncio.wait_for(bridge.serve_forever(), timeout=2)
    assert bridge.state == BridgeState.STOPPED
    assert not bridge.socket_path.exists()


@pytest.mark.asyncio
async def test_sigterm_drains(start_bridge):
    bridge = await start_bridge(COMMANDS)
    backend = RecordingBackend(delay=0.2)
    bridge.adapter.backend = backend
    await send_command(bridge.socket_path, "KillWindow")
    await wait_until(lambda: bridge.in_flight == 1)
    os.kill(os.getpid(), signal.SIGTERM)
    await asyncio.wait_for(bridge.serve_forever(), timeout=2)
    # the running command was allowed to finish
    assert len(backend.performed) == 1
    assert bridge.state == BridgeState.STOPPED


@pytest.mark.asyncio
async def test_drain_timeout_cancels(start_bridge):
    bridge = await start_bridge(COMMANDS, drain_timeout=0.1, window_op_timeout=10.0)
    backend = RecordingBackend(delay=5)
    bridge.adapter.backend = backend
    await send_command(bridge.socket_path, "KillWindow")
    await wait_until(lambda: bridge.in_flight == 1)
    bridge.request_shutdown()
    await asyncio.wait_for(bridge.serve_forever(), timeout=2)
    assert bridge.in_flight == 0
    assert backend.performed == []
    assert bridge.state == BridgeState.STOPPED


@pytest.mark.asyncio
async def test_invalid_config_prevents_listening(write_config, short_tmp):
    socket_path = short_tmp / "bridge.sock"
    bridge = CommandBridge(write_config(make_config(str(socket_path), "FocusLeft = 12")))
    with pytest.raises(ConfigError):
        await bridge.start()
    assert bridge.state == BridgeState.STARTING
    assert not socket_path.exists()


@pytest.mark.asyncio
async def test_missing_config(short_tmp):
    bridge = CommandBridge(short_tmp / "missing.toml")
    with pytest.raises(ConfigError):
        await bridge.start()


@pytest.mark.asyncio
async def test_second_bridge_cannot_bind(start_bridge, write_config):
    first = await start_bridge(COMMANDS)
    second = CommandBridge(write_config(make_config(str(first.socket_path), COMMANDS), "second.toml"))
    with pytest.raises(BindError):
        await second.start()
    assert not second.adapter.running
    assert first.socket_path.is_socket()


@pytest.mark.asyncio
async def test_socket_flag_wins(write_config, short_tmp, monkeypatch):
    monkeypatch.setenv("WMBRIDGE_SOCKET", str(short_tmp / "env.sock"))
    bridge = CommandBridge(write_config(make_config(str(short_tmp / "conf.sock"), COMMANDS)), str(short_tmp / "flag.sock"))
    await bridge.start()
    try:
        assert bridge.socket_path == short_tmp / "flag.sock"
    finally:
        bridge.request_shutdown()
        await bridge.serve_forever()
