"""Tests for the command line client."""

import asyncio
import json
import logging

import pytest
from pytest_asyncio import fixture

from wmbridge.client import build_message, find_socket, run_client, send_command
from wmbridge.models import ExitCode

from .conftest import make_config
from .testtools import wait_until


def test_build_message():
    assert json.loads(build_message("FocusLeft")) == "FocusLeft"
    assert json.loads(build_message("KillWindow", "0x1")) == {"cmd": "KillWindow", "target": "0x1"}


@fixture
async def echo_server(short_tmp):
    "A server recording what each connection sent"
    path = short_tmp / "s.sock"
    received = []

    async def handler(reader, writer):
        received.append(await reader.read())
        writer.close()

    server = await asyncio.start_unix_server(handler, path=str(path))
    yield path, received
    server.close()
    await server.wait_closed()


@pytest.mark.asyncio
async def test_send_command(echo_server):
    path, received = echo_server
    await send_command(path, "KillWindow", "0x1")
    await wait_until(lambda: received)
    assert json.loads(received[0]) == {"cmd": "KillWindow", "target": "0x1"}


@pytest.mark.asyncio
async def test_run_client(echo_server, short_tmp):
    path, received = echo_server
    code = await run_client("SpawnTerminal", None, str(path), short_tmp / "missing.toml")
    assert code == ExitCode.SUCCESS
    await wait_until(lambda: received)
    assert received == [b'"SpawnTerminal"']


@pytest.mark.asyncio
async def test_run_client_no_bridge(short_tmp):
    code = await run_client("SpawnTerminal", None, str(short_tmp / "nobody.sock"), short_tmp / "missing.toml")
    assert code == ExitCode.CONNECTION_ERROR


@pytest.mark.asyncio
async def test_run_client_unknown_command(short_tmp, mocker):
    send = mocker.patch("wmbridge.client.send_command")
    code = await run_client("focus_left", None, str(short_tmp / "s.sock"), short_tmp / "missing.toml")
    assert code == ExitCode.USAGE_ERROR
    send.assert_not_called()


@pytest.mark.asyncio
async def test_find_socket(write_config, short_tmp, monkeypatch):
    monkeypatch.delenv("WMBRIDGE_SOCKET", raising=False)
    config = write_config(make_config(str(short_tmp / "conf.sock")))
    assert await find_socket(None, config) == short_tmp / "conf.sock"
    monkeypatch.setenv("WMBRIDGE_SOCKET", str(short_tmp / "env.sock"))
    assert await find_socket(None, config) == short_tmp / "env.sock"
    assert await find_socket(str(short_tmp / "flag.sock"), config) == short_tmp / "flag.sock"


@pytest.mark.asyncio
async def test_find_socket_default(short_tmp, monkeypatch):
    from wmbridge.constants import DEFAULT_SOCKET

    monkeypatch.delenv("WMBRIDGE_SOCKET", raising=False)
    assert await find_socket(None, short_tmp / "missing.toml") == DEFAULT_SOCKET
    broken = short_tmp / "broken.toml"
    broken.write_text("[bridge\n")
    assert await find_socket(None, broken) == DEFAULT_SOCKET


@pytest.mark.asyncio
async def test_find_socket_keeps_one_handler(write_config, short_tmp, monkeypatch):
    monkeypatch.delenv("WMBRIDGE_SOCKET", raising=False)
    config = write_config(make_config(str(short_tmp / "conf.sock")))
    silent = logging.getLogger("wmbridge.client.config")
    await find_socket(None, config)
    await find_socket(None, config)
    assert len(silent.handlers) == 1
    assert not silent.propagate
