import math
import uuid
from typing import List, Dict, Any, Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator
from pydantic.alias_generators import to_camel

DEFAULT_PRIORITIZATION_WEIGHTS: Dict[str, float] = {
    "priorityLevel": 1.0,
    "requestedTaskFulfillment": 1.0,
    "fairness": 0.5,
}


# --------- Business rules ---------

class BaseRule(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    description: str = ""


class CoRunRule(BaseRule):
    type: Literal["coRun"] = "coRun"
    tasks: List[str]

    @field_validator("tasks")
    @classmethod
    def _at_least_two_tasks(cls, tasks: List[str]) -> List[str]:
        tasks = [task.strip() for task in tasks if task.strip()]
        if len(tasks) < 2:
            raise ValueError("a co-run rule needs at least two tasks")
        return tasks


class LoadLimitRule(BaseRule):
    type: Literal["loadLimit"] = "loadLimit"
    group_type: Literal["worker"] = "worker"
    group_name: str = Field(min_length=1)
    max_slots_per_phase: int = Field(gt=0)


class SlotRestrictionRule(BaseRule):
    type: Literal["slotRestriction"] = "slotRestriction"
    group_type: Literal["client", "worker"]
    group_name: str = Field(min_length=1)
    min_common_slots: int = Field(ge=1)


BusinessRule = Annotated[
    Union[CoRunRule, LoadLimitRule, SlotRestrictionRule],
    Field(discriminator="type"),
]

_rule_adapter = TypeAdapter(BusinessRule)


def describe_rule(rule: BusinessRule) -> str:
    """Human readable summary used when the author leaves the description empty."""
    if isinstance(rule, CoRunRule):
        return f"Tasks {', '.join(rule.tasks)} must run together."
    if isinstance(rule, LoadLimitRule):
        return (
            f"Workers in {rule.group_name} can take a maximum of "
            f"{rule.max_slots_per_phase} slot(s) per phase."
        )
    if isinstance(rule, SlotRestrictionRule):
        return (
            f"{rule.group_type.capitalize()} group {rule.group_name} needs at least "
            f"{rule.min_common_slots} common slot(s)."
        )
    raise TypeError(f"Unhandled rule type: {type(rule).__name__}")


def parse_rule(data: Dict[str, Any]) -> BusinessRule:
    """Validate a rule payload; raises pydantic.ValidationError on bad input."""
    rule = _rule_adapter.validate_python(data)
    if not rule.description.strip():
        rule = rule.model_copy(update={"description": describe_rule(rule)})
    return rule


def rule_to_dict(rule: BusinessRule) -> Dict[str, Any]:
    return rule.model_dump(by_alias=True)


def update_rule(rule: BusinessRule, updated_fields: Dict[str, Any]) -> BusinessRule:
    """Merge fields into a rule and re-validate; the id and type never change."""
    merged = {**rule_to_dict(rule), **updated_fields, "id": rule.id, "type": rule.type}
    return parse_rule(merged)


# --------- Prioritization ---------

def _check_weight(key: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"Weight {key!r} must be a number")
    value = float(value)
    if math.isnan(value) or math.isinf(value) or value < 0:
        raise ValueError(f"Weight {key!r} must be a finite number >= 0")
    return value


def merge_weights(current: Dict[str, float], updates: Dict[str, Any]) -> Dict[str, float]:
    """Partial update: only the given keys change, unknown keys are added."""
    merged = dict(current)
    for key, value in updates.items():
        if value is None:
            continue
        merged[key] = _check_weight(key, value)
    return merged


def build_rules_config(rules: List[BusinessRule], weights: Dict[str, float]) -> Dict[str, Any]:
    """The rules.json document."""
    return {
        "rules": [rule_to_dict(rule) for rule in rules],
        "prioritization": dict(weights),
    }
