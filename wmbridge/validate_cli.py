"""CLI validation entry point for the wmbridge configuration."""

from pathlib import Path

from .adapters import detect_backend_name
from .config_loader import ConfigLoader
from .config_store import build_snapshot
from .logging_setup import get_logger
from .models import CommandId, ConfigError, ExitCode

__all__ = ["run_validate"]


def _print_errors(error: ConfigError) -> None:
    for message in error.errors or [str(error)]:
        print(f"  ERROR: {message}")
    print()
    print(f"Found {len(error.errors) or 1} error(s)")


async def run_validate(config_path: Path) -> ExitCode:
    """Validate the configuration without starting the bridge.

    Returns:
        SUCCESS, or CONFIG_ERROR when the bridge would refuse to start
    """
    log = get_logger("validate")
    loader = ConfigLoader(log)
    print(f"Validating {config_path}...\n")
    try:
        raw = await loader.load(config_path)
        snapshot = build_snapshot(raw, log, tuple(loader.sources))
    except ConfigError as e:
        _print_errors(e)
        return ExitCode.CONFIG_ERROR

    for command_id, action in snapshot.actions.items():
        print(f"✅ {command_id:18s} {action.kind}: {action}")
    unmapped = [c.value for c in CommandId if c not in snapshot.actions]
    if unmapped:
        print(f"∅  unmapped: {', '.join(unmapped)}")

    backend = snapshot.settings.backend
    if backend == "auto":
        backend = f"auto ({detect_backend_name() or 'log'} in this session)"
    print()
    print(f"Backend: {backend}")
    print("Configuration is valid!")
    return ExitCode.SUCCESS
