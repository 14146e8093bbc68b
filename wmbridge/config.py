"""Typed access to a configuration table, with schema defaults."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, TypeVar

if TYPE_CHECKING:
    import logging
    from collections.abc import Callable

    from .validation import ConfigItems

__all__ = ["Configuration"]

ConfigValueType = float | bool | str | list | dict

T = TypeVar("T")


class Configuration(dict):
    """A configuration table with typed accessors.

    Missing keys fall back to the default declared in the schema, then to
    the default given by the caller. Values which can't be converted are
    logged and replaced by the caller's default.
    """

    def __init__(
        self,
        *args: Any,  # noqa: ANN401
        logger: logging.Logger,
        schema: ConfigItems | None = None,
        **kwargs: Any,  # noqa: ANN401
    ):
        """Initialize the configuration object.

        Args:
            *args: Arguments for dict
            logger: Logger instance to use for warnings
            schema: Optional list of ConfigField definitions for automatic defaults
            **kwargs: Keyword arguments for dict
        """
        super().__init__(*args, **kwargs)
        self.log = logger
        self.defaults: dict[str, ConfigValueType] = {}
        if schema:
            self.defaults = {f.name: f.default for f in schema if f.default is not None}

    def get(self, name: str, default: ConfigValueType | None = None) -> ConfigValueType | None:  # type: ignore[override]
        """Get a value, falling back to the schema default, then to `default`."""
        if name in self:
            return self[name]
        return self.defaults.get(name, default)

    def _converted(self, name: str, convert: Callable[[Any], T], default: T) -> T:
        value = self.get(name)
        if value is None:
            return default
        try:
            return convert(value)
        except (ValueError, TypeError):
            self.log.warning("Invalid %s value for %s: %r", convert.__name__, name, value)
            return default

    def get_int(self, name: str, default: int = 0) -> int:
        """Get an integer value, `default` if missing or invalid."""
        return self._converted(name, int, default)

    def get_float(self, name: str, default: float = 0.0) -> float:
        """Get a float value, `default` if missing or invalid."""
        return self._converted(name, float, default)

    def get_str(self, name: str, default: str = "") -> str:
        """Get a string value."""
        return self._converted(name, str, default)

    def get_list(self, name: str) -> list[str]:
        """Get a list of strings (empty if missing). A single value becomes a one item list."""
        value = self.get(name)
        if not value:
            return []
        if not isinstance(value, list):
            value = [value]
        return [str(v) for v in value]
