import pytest
from pydantic import ValidationError

from filters import FilterCondition, apply_filters, matches
from normalizer import normalize_rows


@pytest.fixture
def tasks(task_rows):
    return normalize_rows(task_rows, "tasks")


def _cond(field, operator, value):
    return FilterCondition(field=field, operator=operator, value=value)


def test_numeric_comparisons(tasks) -> None:
    assert [t["TaskID"] for t in apply_filters(tasks, [_cond("Duration", ">", 1)])] == ["T1"]
    assert [t["TaskID"] for t in apply_filters(tasks, [_cond("Duration", "<=", "1")])] == ["T2"]
    assert [t["TaskID"] for t in apply_filters(tasks, [_cond("Duration", "=", 2)])] == ["T1"]


def test_string_equality(tasks) -> None:
    assert [t["TaskID"] for t in apply_filters(tasks, [_cond("Category", "=", "Design")])] == ["T2"]


def test_contains_on_lists(tasks) -> None:
    assert [t["TaskID"] for t in apply_filters(tasks, [_cond("PreferredPhases", "contains", 4)])] == ["T2"]
    assert [t["TaskID"] for t in apply_filters(tasks, [_cond("RequiredSkills", "not contains", "python")])] == ["T2"]


def test_contains_on_text(tasks) -> None:
    assert [t["TaskID"] for t in apply_filters(tasks, [_cond("TaskName", "contains", "API")])] == ["T1"]


def test_filters_are_anded(tasks) -> None:
    filters = [_cond("Duration", ">=", 1), _cond("Category", "=", "Engineering")]
    assert [t["TaskID"] for t in apply_filters(tasks, filters)] == ["T1"]


def test_no_filters_returns_copy(tasks) -> None:
    result = apply_filters(tasks, [])
    assert result == tasks
    assert result is not tasks


def test_missing_field_never_matches(tasks) -> None:
    assert apply_filters(tasks, [_cond("Nope", "=", 1)]) == []


def test_list_field_with_comparison_operator() -> None:
    assert not matches({"Skills": ["a"]}, _cond("Skills", "=", "a"))


def test_unknown_operator_rejected() -> None:
    with pytest.raises(ValidationError):
        FilterCondition(field="Duration", operator="between", value=1)
