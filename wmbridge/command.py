"""wmbridge - a command bridge between a socket and the window system (daemon & cli client)."""

import asyncio
import sys
from pathlib import Path

from .bridge import run_bridge
from .client import run_client
from .logging_setup import get_logger, init_logger
from .models import BindError, ConfigError, ExitCode
from .paths import resolve_config_path
from .validate_cli import run_validate

__all__ = ["main"]

USAGE = """Syntax: wmbridge [options] [command]

If the command is omitted, runs the bridge daemon.

Commands:
 send <Command> [--target T]   Send a command to the running bridge
 validate                      Check the configuration file
 help                          Show this help

Options:
 --config PATH                 Configuration file or directory
 --socket PATH                 Socket path
 --debug LOGFILE               Enable debug logs, also written to LOGFILE
"""


def use_param(txt: str) -> str:
    """Check if parameter `txt` is in sys.argv.

    if found, removes it from sys.argv & returns the argument value

    Raises:
        ValueError: the parameter has no value
    """
    v = ""
    if txt in sys.argv:
        i = sys.argv.index(txt)
        if i + 1 >= len(sys.argv):
            msg = f"{txt} needs a value"
            raise ValueError(msg)
        v = sys.argv[i + 1]
        del sys.argv[i : i + 2]
    return v


def run_daemon(config_path: Path, socket_flag: str | None) -> ExitCode:
    """Run the bridge until it stops.

    Returns:
        SUCCESS on clean shutdown, CONFIG_ERROR or BIND_ERROR if it can't start
    """
    log = get_logger("startup")
    try:
        asyncio.run(run_bridge(config_path, socket_flag))
    except ConfigError as e:
        log.critical("Invalid configuration: %s", e)
        return ExitCode.CONFIG_ERROR
    except BindError as e:
        log.critical("Cannot bind the socket: %s", e)
        return ExitCode.BIND_ERROR
    except KeyboardInterrupt:
        pass
    return ExitCode.SUCCESS


def main() -> None:
    """Run the command."""
    try:
        debug_flag = use_param("--debug")
        config_flag = use_param("--config")
        socket_flag = use_param("--socket")
        target = use_param("--target")
    except ValueError as e:
        print(f"Error: {e}\n\n{USAGE}", file=sys.stderr)
        sys.exit(ExitCode.USAGE_ERROR)

    if debug_flag:
        init_logger(filename=debug_flag, force_debug=True)
    else:
        init_logger()
    log = get_logger("startup")

    config_path = resolve_config_path(config_flag or None)
    args = sys.argv[1:]

    if target and (not args or args[0] != "send"):
        log.error("--target is only valid with the send command")
        sys.exit(ExitCode.USAGE_ERROR)

    if not args:
        exit_code = run_daemon(config_path, socket_flag or None)
    elif args[0] == "send" and len(args) == 2:  # noqa: PLR2004
        exit_code = asyncio.run(run_client(args[1], target or None, socket_flag or None, config_path))
    elif args == ["validate"]:
        exit_code = asyncio.run(run_validate(config_path))
    elif args[0] in {"help", "--help", "-h"}:
        print(USAGE)
        exit_code = ExitCode.SUCCESS
    else:
        print(USAGE, file=sys.stderr)
        exit_code = ExitCode.USAGE_ERROR
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
