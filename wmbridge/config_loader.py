"""Configuration file loading.

Reads TOML files (a single file, or every *.toml of a directory in sorted
order), follows `[bridge].include` entries and merges the result. A key
defined by more than one file is a configuration error.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import TYPE_CHECKING, Any

import aiofiles

from .models import ConfigError

if TYPE_CHECKING:
    import logging

__all__ = ["ConfigLoader", "expand_path"]


def expand_path(path: str | Path) -> Path:
    """Expand environment variables and `~` in `path`."""
    return Path(os.path.expandvars(str(path))).expanduser()


class ConfigLoader:
    """Loads and merges configuration files.

    Supports:
    - a single TOML file
    - a directory (every .toml file, sorted by name)
    - `include` entries in the [bridge] section, relative to the including file
    """

    def __init__(self, log: logging.Logger) -> None:
        """Initialize the config loader.

        Args:
            log: Logger instance for status and error messages
        """
        self.log = log
        self.sources: list[Path] = []

    async def load(self, path: str | Path) -> dict[str, Any]:
        """Load the configuration rooted at `path`.

        Returns:
            The merged configuration dictionary, without `include` keys.

        Raises:
            ConfigError: file missing, unreadable, invalid TOML or duplicated keys
        """
        self.sources = []
        config: dict[str, Any] = {}
        await self._load_into(config, expand_path(path), origin={})
        return config

    async def _load_into(self, config: dict[str, Any], path: Path, origin: dict[tuple[str, str], Path]) -> None:
        """Merge the content of `path` (file or directory) into `config`."""
        if path.is_dir():
            for toml_file in sorted(path.iterdir()):
                if toml_file.suffix == ".toml":
                    await self._load_into(config, toml_file, origin)
            return

        resolved = path.resolve()
        if resolved in self.sources:
            self.log.warning("Skipping %s: already loaded", path)
            return
        self.sources.append(resolved)

        data = await self._load_file(path)
        includes = data["bridge"].pop("include", []) if isinstance(data.get("bridge"), dict) else []
        if not isinstance(includes, list) or not all(isinstance(i, str) for i in includes):
            raise ConfigError(f"{path}: [bridge] include must be a list of paths")
        self._merge(config, data, path, origin)
        if includes:
            config.setdefault("bridge", {}).setdefault("include", []).extend(includes)

        for extra in includes:
            extra_path = expand_path(extra)
            if not extra_path.is_absolute():
                extra_path = path.parent / extra_path
            await self._load_into(config, extra_path, origin)

    async def _load_file(self, path: Path) -> dict[str, Any]:
        """Read and parse one TOML file."""
        if not path.exists():
            self.log.critical("Config file not found! Please create %s", path)
            raise ConfigError(f"Config file not found: {path}")
        self.log.info("Loading %s", path)
        try:
            async with aiofiles.open(path, encoding="utf-8") as f:
                content = await f.read()
            return tomllib.loads(content)
        except tomllib.TOMLDecodeError as e:
            self.log.critical("Problem reading %s: %s", path, e)
            raise ConfigError(f"Invalid TOML in {path}: {e}") from e
        except (OSError, UnicodeDecodeError) as e:
            self.log.critical("Cannot read %s: %s", path, e)
            raise ConfigError(f"Cannot read {path}: {e}") from e

    @staticmethod
    def _merge(config: dict[str, Any], data: dict[str, Any], path: Path, origin: dict[tuple[str, str], Path]) -> None:
        """Merge top-level sections of `data` into `config`, refusing duplicated keys."""
        for section, table in data.items():
            if not isinstance(table, dict):
                if section in config:
                    raise ConfigError(f"{path}: '{section}' already defined in {origin.get((section, ''), 'another file')}")
                config[section] = table
                origin[(section, "")] = path
                continue
            merged = config.setdefault(section, {})
            if not isinstance(merged, dict):
                raise ConfigError(f"{path}: [{section}] conflicts with a plain value defined earlier")
            for key, value in table.items():
                if key in merged:
                    raise ConfigError(f"{path}: duplicate key '{key}' in [{section}], already defined in {origin[(section, key)]}")
                merged[key] = value
                origin[(section, key)] = path
