from typing import List, Dict, Any, Literal, Union

from pydantic import BaseModel

Operator = Literal["=", ">", "<", ">=", "<=", "contains", "not contains"]


class FilterCondition(BaseModel):
    field: str
    operator: Operator
    value: Union[int, float, str]


def _as_number(value: Any):
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    try:
        return float(str(value).strip())
    except ValueError:
        return None


def _operands(item_value: Any, filter_value: Any):
    """Compare numerically when both sides are numbers, as text otherwise."""
    left, right = _as_number(item_value), _as_number(filter_value)
    if isinstance(item_value, (int, float)) and not isinstance(item_value, bool) and right is not None:
        return left, right
    return str(item_value), str(filter_value)


def matches(record: Dict[str, Any], condition: FilterCondition) -> bool:
    if condition.field not in record:
        return False
    item_value = record[condition.field]
    op = condition.operator

    if op in ("contains", "not contains"):
        if isinstance(item_value, list):
            found = str(condition.value) in [str(v) for v in item_value]
        else:
            found = str(condition.value) in str(item_value)
        return found if op == "contains" else not found

    if isinstance(item_value, (list, dict)):
        return False
    left, right = _operands(item_value, condition.value)
    if op == "=":
        return left == right
    if op == ">":
        return left > right
    if op == "<":
        return left < right
    if op == ">=":
        return left >= right
    if op == "<=":
        return left <= right
    raise ValueError(f"Unknown operator: {op}")


def apply_filters(records: List[Dict[str, Any]], filters: List[FilterCondition]) -> List[Dict[str, Any]]:
    """Keep the records that satisfy every condition."""
    if not filters:
        return list(records)
    return [record for record in records if all(matches(record, f) for f in filters)]
