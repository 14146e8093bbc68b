import pytest

from wmbridge.config import Configuration
from wmbridge.schema import BRIDGE_SCHEMA, WINDOW_SCHEMA
from wmbridge.validation import ConfigField, ConfigItems, ConfigValidator, find_similar_key, format_config_error


def validate(config, schema=BRIDGE_SCHEMA, section="bridge", logger=None):
    return ConfigValidator(config, section, logger).validate(schema)


def test_valid_bridge_section():
    assert validate({"backend": "xorg", "read_timeout": 1, "max_payload": 100, "include": ["a.toml"]}) == []


def test_empty_section_is_valid():
    assert validate({}) == []


def test_wrong_types():
    errors = validate({"read_timeout": "3", "max_payload": 1.5, "include": "a.toml"})
    assert len(errors) == 3
    assert any("'read_timeout': Expected float, got str" in e for e in errors)
    assert any("'max_payload': Expected int, got float" in e for e in errors)
    assert any("'include': Expected list[str], got str" in e for e in errors)


def test_bool_is_not_a_number():
    errors = validate({"max_payload": True})
    assert errors == [format_config_error("bridge", "max_payload", "Expected int, got bool", "Use max_payload = 4096")]


def test_list_items_are_checked():
    errors = validate({"include": ["a.toml", 3]})
    assert errors == ["[bridge] 'include': Item 1 should be str, got int"]


def test_choices():
    errors = validate({"backend": "wayland"})
    assert len(errors) == 1
    assert "Invalid value 'wayland'" in errors[0]
    assert "'hyprland'" in errors[0]


def test_custom_validators():
    errors = validate({"read_timeout": 0, "socket": "/tmp/" + "x" * 200})
    assert len(errors) == 2
    assert any("must be positive" in e for e in errors)
    assert any("too long for a unix socket" in e for e in errors)


def test_unknown_key_with_suggestion():
    errors = validate({"read_timout": 2.0})
    assert errors == ["[bridge] 'read_timout': Unknown key -> did you mean 'read_timeout'?"]


def test_unknown_key_without_suggestion():
    errors = validate({"zzz": 1})
    assert len(errors) == 1
    assert "valid keys:" in errors[0]


def test_allow_extra():
    assert ConfigValidator({"zzz": 1}, "bridge", None).validate(BRIDGE_SCHEMA, allow_extra=True) == []


def test_required_keys():
    errors = validate({"kind": "window"}, WINDOW_SCHEMA, "commands.FocusLeft")
    assert errors == ["[commands.FocusLeft] 'op': Missing required key -> Add op = \"focus\""]


def test_union_types():
    schema = ConfigItems(ConfigField("value", (int, str)))
    assert validate({"value": 1}, schema) == []
    assert validate({"value": "a"}, schema) == []
    errors = validate({"value": [1]}, schema)
    assert errors == ["[bridge] 'value': Expected int or str, got list -> Use value = 1"]


def test_find_similar_key():
    assert find_similar_key("comands", ["bridge", "commands"]) == "commands"
    assert find_similar_key("xyz", ["bridge", "commands"]) is None


def test_schema_lookup():
    assert BRIDGE_SCHEMA.get("step").default == 40
    assert BRIDGE_SCHEMA.get("nope") is None
    assert "include" in BRIDGE_SCHEMA.names


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ({}, 3.0),
        ({"read_timeout": 0.5}, 0.5),
        ({"read_timeout": 2}, 2.0),
    ],
)
def test_configuration_defaults(raw, expected, test_logger):
    conf = Configuration(raw, logger=test_logger, schema=BRIDGE_SCHEMA)
    assert conf.get_float("read_timeout") == expected
    assert conf.get_int("max_payload") == 4096
    assert conf.get_str("backend") == "auto"
    assert conf.get_str("socket") == ""
    assert conf.get_list("include") == []


def test_configuration_invalid_values(test_logger):
    conf = Configuration({"step": "big"}, logger=test_logger)
    assert conf.get_int("step", 7) == 7
    assert conf.get_float("step", 1.5) == 1.5
    assert conf.get("missing", "x") == "x"


@pytest.mark.parametrize(
    ("field_def", "expected"),
    [
        (ConfigField("op", str, choices=["focus", "move"]), '"focus"'),
        (ConfigField("step", int, default=40), "40"),
        (ConfigField("include", list, item_type=str), '["item"]'),
        (ConfigField("socket", str), '"value"'),
        (ConfigField("enabled", bool), "true"),
    ],
)
def test_field_examples(field_def, expected):
    assert field_def.example == expected
