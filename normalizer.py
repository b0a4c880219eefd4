import logging
import uuid
from typing import List, Dict, Any, Callable, Union, TypedDict

from coercion import (
    is_blank,
    resolve_column,
    to_integer,
    to_integer_list,
    to_json_object,
    to_phase_list,
    to_required_string,
    to_string,
    to_string_list,
)

logger = logging.getLogger(__name__)

ENTITY_TYPES = ("clients", "workers", "tasks")


class UnknownEntityTypeError(ValueError):
    """Raised when a caller passes something other than clients/workers/tasks."""


# --------- Entity records ---------

class Client(TypedDict, total=False):
    _id: str
    _errors: Dict[str, str]
    ClientID: str
    ClientName: str
    PriorityLevel: int
    RequestedTaskIDs: List[str]
    GroupTag: str
    AttributesJSON: Dict[str, Any]


class Worker(TypedDict, total=False):
    _id: str
    _errors: Dict[str, str]
    WorkerID: str
    WorkerName: str
    Skills: List[str]
    AvailableSlots: List[int]
    MaxLoadPerPhase: int
    WorkerGroup: str
    QualificationLevel: str


class Task(TypedDict, total=False):
    _id: str
    _errors: Dict[str, str]
    TaskID: str
    TaskName: str
    Category: str
    Duration: int
    RequiredSkills: List[str]
    PreferredPhases: List[Union[int, str]]
    MaxConcurrent: int


Entity = Union[Client, Worker, Task]

ID_FIELDS = {"clients": "ClientID", "workers": "WorkerID", "tasks": "TaskID"}
ID_PREFIXES = {"clients": "C", "workers": "W", "tasks": "T"}
INTERNAL_FIELDS = ("_id", "_errors")

# Per-field coercion applied to an already-resolved raw value.
FIELD_COERCERS: Dict[str, Dict[str, Callable[[Any], Any]]] = {
    "clients": {
        "ClientID": to_string,
        "ClientName": to_string,
        "PriorityLevel": lambda raw: to_integer(raw, 1),
        "RequestedTaskIDs": to_string_list,
        "GroupTag": to_string,
        "AttributesJSON": to_json_object,
    },
    "workers": {
        "WorkerID": to_string,
        "WorkerName": to_string,
        "Skills": to_string_list,
        "AvailableSlots": to_integer_list,
        "MaxLoadPerPhase": lambda raw: to_integer(raw, 1),
        "WorkerGroup": to_string,
        "QualificationLevel": to_string,
    },
    "tasks": {
        "TaskID": to_string,
        "TaskName": to_string,
        "Category": to_string,
        "Duration": lambda raw: to_integer(raw, 1),
        "RequiredSkills": to_string_list,
        "PreferredPhases": to_phase_list,
        "MaxConcurrent": lambda raw: to_integer(raw, 1),
    },
}

# Column order for grids and exports
ENTITY_FIELDS: Dict[str, List[str]] = {
    entity_type: list(coercers) for entity_type, coercers in FIELD_COERCERS.items()
}


def check_entity_type(entity_type: str) -> str:
    if entity_type not in ENTITY_TYPES:
        raise UnknownEntityTypeError(f"Unknown entity type: {entity_type!r}")
    return entity_type


def new_instance_id(entity_type: str) -> str:
    return f"{entity_type}-{uuid.uuid4().hex}"


def is_empty_row(row: Dict[str, Any]) -> bool:
    return all(is_blank(value) for value in row.values())


def drop_empty_rows(rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [row for row in rows if not is_empty_row(row)]


def coerce_field(entity_type: str, field: str, raw: Any) -> Any:
    """Coerce one value for a grid edit the same way uploads are coerced."""
    coercers = FIELD_COERCERS[check_entity_type(entity_type)]
    if field not in coercers:
        raise ValueError(f"{entity_type} have no field {field!r}")
    return coercers[field](raw)


def normalize_row(row: Dict[str, Any], entity_type: str, row_index: int) -> Entity:
    """Build one typed record; a missing business id becomes <prefix><row_index+1>."""
    check_entity_type(entity_type)
    id_field = ID_FIELDS[entity_type]

    record: Dict[str, Any] = {"_id": new_instance_id(entity_type)}
    for field, coerce in FIELD_COERCERS[entity_type].items():
        if field == id_field:
            record[field] = to_required_string(
                row, field, f"{ID_PREFIXES[entity_type]}{row_index + 1}"
            )
        else:
            record[field] = coerce(resolve_column(row, field))
    return record


def normalize_rows(rows: List[Dict[str, Any]], entity_type: str) -> List[Entity]:
    check_entity_type(entity_type)
    surviving = drop_empty_rows(rows)
    if len(surviving) != len(rows):
        logger.debug("Dropped %d empty %s rows", len(rows) - len(surviving), entity_type)

    records = [normalize_row(row, entity_type, index) for index, row in enumerate(surviving)]
    logger.info("Normalized %d %s records", len(records), entity_type)
    return records
