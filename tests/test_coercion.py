"""Tests for the field coercion library and the column alias table."""
import numpy as np
import pytest

from coercion import (
    COLUMN_ALIASES,
    is_blank,
    is_parse_error,
    resolve_column,
    to_integer,
    to_integer_list,
    to_json_object,
    to_phase_list,
    to_required_string,
    to_string,
    to_string_list,
)


def test_alias_table_tries_exact_name_first() -> None:
    for field, aliases in COLUMN_ALIASES.items():
        assert aliases[0] == field
        assert field.lower() in aliases


def test_resolve_column_uses_alias_priority() -> None:
    row = {"clientid": "low", "Client ID": "spaced"}
    assert resolve_column(row, "ClientID") == "spaced"


def test_resolve_column_skips_blank_candidates() -> None:
    row = {"ClientID": "", "Client ID": float("nan"), "clientid": "C9"}
    assert resolve_column(row, "ClientID") == "C9"


def test_resolve_column_missing() -> None:
    assert resolve_column({"Other": "x"}, "ClientID") is None


def test_is_blank() -> None:
    assert is_blank(None)
    assert is_blank("   ")
    assert is_blank(float("nan"))
    assert is_blank([])
    assert not is_blank(0)
    assert not is_blank("0")


def test_to_required_string_fallback_and_trim() -> None:
    assert to_required_string({"ClientID": "  C1 "}, "ClientID", "C5") == "C1"
    assert to_required_string({"ClientName": "x"}, "ClientID", "C5") == "C5"
    assert to_required_string({"ClientID": "   "}, "ClientID", "C5") == "C5"


def test_to_string_renders_integral_floats() -> None:
    assert to_string(101.0) == "101"
    assert to_string(2.5) == "2.5"
    assert to_string(None) == ""


@pytest.mark.parametrize("raw, expected", [
    ("3", 3),
    (" 4 ", 4),
    (2.0, 2),
    ("4.7", 4),
    (np.int64(7), 7),
    ("abc", 1),
    ("", 1),
    (None, 1),
    (float("nan"), 1),
    (True, 1),
])
def test_to_integer(raw, expected) -> None:
    assert to_integer(raw, 1) == expected


def test_to_integer_keeps_out_of_range_values() -> None:
    assert to_integer("7", 1) == 7
    assert to_integer("-2", 1) == -2


def test_to_string_list() -> None:
    assert to_string_list("a, b,,c ") == ["a", "b", "c"]
    assert to_string_list(["x", "y"]) == ["x", "y"]
    assert to_string_list("") == []
    assert to_string_list(None) == []


def test_to_integer_list_strips_brackets() -> None:
    assert to_integer_list("[1,2,3]") == [1, 2, 3]
    assert to_integer_list("1,2,3") == [1, 2, 3]
    assert to_integer_list("[ 1, 2 ]") == [1, 2]


def test_to_integer_list_drops_bad_tokens() -> None:
    assert to_integer_list("1, abc, 3") == [1, 3]
    assert to_integer_list(["1", 2, "x"]) == [1, 2]
    assert to_integer_list(5) == [5]
    assert to_integer_list("") == []


def test_to_phase_list_range() -> None:
    assert to_phase_list("1-3") == [1, 2, 3]
    assert to_phase_list("2 - 4") == [2, 3, 4]
    assert to_phase_list("[1-3]") == [1, 2, 3]


def test_to_phase_list_enumerated() -> None:
    assert to_phase_list("1,3,5") == [1, 3, 5]
    assert to_phase_list("[2,4]") == [2, 4]
    assert to_phase_list("") == []
    assert to_phase_list(None) == []


def test_to_phase_list_keeps_non_numeric_tokens() -> None:
    assert to_phase_list("1, Phase A") == [1, "Phase A"]
    assert to_phase_list([1, "2", "late"]) == [1, 2, "late"]


def test_to_phase_list_reversed_range_kept_literally() -> None:
    assert to_phase_list("5-3") == ["5-3"]


def test_to_phase_list_negative_number_is_not_a_range() -> None:
    assert to_phase_list("-1") == [-1]


def test_to_json_object() -> None:
    assert to_json_object('{"a":1}') == {"a": 1}
    assert to_json_object('not json') == {"_parseError": True, "value": "not json"}
    assert to_json_object('') == {}
    assert to_json_object(None) == {}


def test_to_json_object_passes_dicts_through() -> None:
    value = {"already": "parsed"}
    assert to_json_object(value) is value


def test_to_json_object_rejects_non_object_json() -> None:
    result = to_json_object("[1, 2]")
    assert is_parse_error(result)
    assert result["value"] == "[1, 2]"


def test_is_parse_error() -> None:
    assert is_parse_error({"_parseError": True, "value": "x"})
    assert not is_parse_error({"value": "x"})
    assert not is_parse_error("x")


def test_to_integer_rejects_infinity() -> None:
    assert to_integer(float("inf"), 0) == 0


@pytest.mark.parametrize("text", ['{"a": NaN}', '{"a": Infinity}', '{"a": -Infinity}'])
def test_to_json_object_rejects_non_standard_constants(text) -> None:
    result = to_json_object(text)
    assert is_parse_error(result)
    assert result["value"] == text


def test_to_string_list_stringifies_list_elements() -> None:
    assert to_string_list([["python"], " sql ", "", None, 3.0]) == ["['python']", "sql", "3"]
