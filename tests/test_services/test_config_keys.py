import pytest

from src.core.exceptions import InvalidConfigKeyError, InvalidConfigValueError
from src.services.config_keys import (
    CONFIG_KEYS,
    coerce_value,
    get_key_spec,
    parse_value,
    serialize_value,
)


def test_fee_module_defaults_to_enabled():
    assert CONFIG_KEYS["fees.enabled"].default is True
    assert CONFIG_KEYS["limits.maxStudents"].default == 1000


def test_unknown_key_is_rejected():
    with pytest.raises(InvalidConfigKeyError) as excinfo:
        get_key_spec("fees.bogus")
    assert excinfo.value.code == "CONFIG_INVALID_KEY"


@pytest.mark.parametrize(
    "raw, value_type, expected",
    [
        ("true", "boolean", True),
        ("false", "boolean", False),
        ("yes", "boolean", False),
        ("50", "number", 50),
        ("2.5", "number", 2.5),
        ("garbage", "number", 0),
        ("Asia/Kolkata", "string", "Asia/Kolkata"),
    ],
)
def test_parse_value_by_declared_type(raw, value_type, expected):
    assert parse_value(raw, value_type) == expected


def test_parsed_integral_numbers_are_ints():
    assert isinstance(parse_value("300", "number"), int)


def test_coerce_accepts_boolean_strings_and_numeric_text():
    assert coerce_value("fees.enabled", "TRUE") is True
    assert coerce_value("limits.maxStudents", "75") == 75


@pytest.mark.parametrize(
    "key, value",
    [
        ("fees.enabled", 1),
        ("limits.maxStudents", True),
        ("limits.maxStudents", "many"),
        ("system.timezone", 5),
        ("files.storageProvider", "ftp"),
    ],
)
def test_coerce_rejects_mismatched_types(key, value):
    with pytest.raises(InvalidConfigValueError) as excinfo:
        coerce_value(key, value)
    assert excinfo.value.code == "CONFIG_INVALID_VALUE_TYPE"


def test_serialize_uses_lowercase_booleans():
    assert serialize_value(True) == "true"
    assert serialize_value(False) == "false"
    assert serialize_value(300) == "300"
