"""Configuration validation against declarative schemas.

A schema is a `ConfigItems` list of `ConfigField` definitions. Checking a
table against it reports, per key, the first problem found: a missing
required key, a wrong type, a bad list item, a value outside of `choices` or
whatever the field's own validator returns. Keys absent from the schema are
reported too, with a "did you mean" hint for typos.

Every message names its section and key, and usually carries a hint written
as a TOML line the user can paste:

    [commands.FocusLeft] 'op': Missing required key -> Add op = "focus"
"""

import difflib
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

__all__ = [
    "ConfigField",
    "ConfigItems",
    "ConfigValidator",
    "find_similar_key",
    "format_config_error",
]

# placeholder values used in hints when a field has no default
_SAMPLES: dict[type, Any] = {str: "value", int: 1, float: 1.0, bool: True, list: ["item"]}


def _toml_literal(value: Any) -> str:  # noqa: ANN401
    """Render `value` the way it's written in a TOML file."""
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, str):
        return f'"{value}"'
    if isinstance(value, list):
        return "[" + ", ".join(_toml_literal(item) for item in value) + "]"
    return str(value)


def _is_instance(value: Any, types: tuple[type, ...]) -> bool:  # noqa: ANN401
    """Like isinstance(), but booleans aren't numbers and integers are floats."""
    if isinstance(value, bool):
        return bool in types
    if isinstance(value, int) and float in types:
        return True
    return isinstance(value, types)


@dataclass
class ConfigField:
    """Describes an expected configuration key.

    Attributes:
        name: The configuration key name
        field_type: Expected type, or a tuple of accepted types
        required: Whether the key must be present
        default: Value used when the key is missing
        description: Human-readable description
        choices: Valid values for enum-like keys
        item_type: For lists, the expected type of every item
        validator: Custom check returning a list of error messages
    """

    name: str
    field_type: type | tuple[type, ...] = str
    required: bool = False
    default: Any = None
    description: str = ""
    choices: list | None = None
    item_type: type | None = None
    validator: Callable[[Any], list[str]] | None = None

    @property
    def types(self) -> tuple[type, ...]:
        """Accepted types, always as a tuple."""
        if isinstance(self.field_type, tuple):
            return self.field_type
        return (self.field_type,)

    @property
    def type_name(self) -> str:
        """Human-readable type (eg. 'float', 'list[str]', 'int or str')."""
        if self.field_type is list and self.item_type:
            return f"list[{self.item_type.__name__}]"
        return " or ".join(typ.__name__ for typ in self.types)

    @property
    def example(self) -> str:
        """A valid value for this field, as a TOML literal."""
        if self.choices:
            return _toml_literal(self.choices[0])
        if self.default is not None:
            return _toml_literal(self.default)
        return _toml_literal(_SAMPLES.get(self.types[0], "..."))


class ConfigItems(list):
    """The fields of a schema, in declaration order, with lookup by name."""

    def __init__(self, *fields: ConfigField) -> None:
        super().__init__(fields)
        self._by_name = {f.name: f for f in fields}

    def get(self, name: str) -> ConfigField | None:
        """Get a ConfigField by name, None if not in the schema."""
        return self._by_name.get(name)

    @property
    def names(self) -> list[str]:
        """Names of all the fields."""
        return list(self._by_name)


def find_similar_key(unknown_key: str, known_keys: list[str]) -> str | None:
    """Return the known key closest to `unknown_key`, None if nothing is close."""
    matches = difflib.get_close_matches(unknown_key, known_keys, n=1)
    return matches[0] if matches else None


def format_config_error(section: str, field: str, message: str, suggestion: str = "") -> str:
    """Format a configuration error message.

    Args:
        section: Section path (eg. "bridge" or "commands.FocusLeft")
        field: Key that has the error
        message: Error description
        suggestion: Optional hint for fixing the error
    """
    msg = f"[{section}] '{field}': {message}"
    if suggestion:
        msg += f" -> {suggestion}"
    return msg


class ConfigValidator:
    """Validates one configuration table against a schema."""

    def __init__(self, config: dict, section: str, logger: logging.Logger | None = None) -> None:
        """Initialize the validator.

        Args:
            config: The table to validate
            section: Section path used in the messages
            logger: Logger instance
        """
        self.config = config
        self.section = section
        self.log = logger

    def error(self, key: str, message: str, hint: str = "") -> str:
        """Return an error message about `key` of this section."""
        return format_config_error(self.section, key, message, hint)

    def validate(self, schema: ConfigItems, allow_extra: bool = False) -> list[str]:
        """Validate the table against `schema`.

        Args:
            schema: List of ConfigField definitions
            allow_extra: If False, keys absent from the schema are errors

        Returns:
            List of error messages (empty if validation passed)
        """
        errors = []
        for field_def in schema:
            errors.extend(self.check(field_def))
        if not allow_extra:
            errors.extend(self.unknown_keys(schema))
        if errors and self.log:
            self.log.debug("[%s]: %d error(s)", self.section, len(errors))
        return errors

    def check(self, field_def: ConfigField) -> list[str]:
        """Return the errors of one field, stopping at the first problem."""
        name = field_def.name
        value = self.config.get(name)

        if value is None:
            if field_def.required:
                return [self.error(name, "Missing required key", f"Add {name} = {field_def.example}")]
            return []

        if not _is_instance(value, field_def.types):
            return [self.error(name, f"Expected {field_def.type_name}, got {type(value).__name__}", f"Use {name} = {field_def.example}")]

        if field_def.item_type:
            for index, item in enumerate(value):
                if not _is_instance(item, (field_def.item_type,)):
                    return [self.error(name, f"Item {index} should be {field_def.item_type.__name__}, got {type(item).__name__}")]

        if field_def.choices is not None and value not in field_def.choices:
            options = ", ".join(repr(c) for c in field_def.choices)
            return [self.error(name, f"Invalid value {value!r}", f"Valid options: {options}")]

        if field_def.validator:
            return [self.error(name, message) for message in field_def.validator(value)]
        return []

    def unknown_keys(self, schema: ConfigItems) -> list[str]:
        """Return one message per key absent from the schema."""
        known_keys = schema.names
        messages = []
        for key in self.config:
            if key in known_keys:
                continue
            similar = find_similar_key(key, known_keys)
            hint = f"did you mean '{similar}'?" if similar else f"valid keys: {', '.join(known_keys)}"
            messages.append(self.error(key, "Unknown key", hint))
        return messages
