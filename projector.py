"""
Folds the validator's flat error list back onto entity records.

Errors are grouped per (entity type, business id). When two errors target the
same field of the same entity, the later message replaces the earlier one.
Records are matched on their business id (trimmed string comparison), never
on the internal `_id`, and the first matching record receives the mapping.
"""
import logging
from dataclasses import dataclass, field
from typing import List, Dict, Any, Tuple

from normalizer import ENTITY_TYPES, ID_FIELDS, Client, Worker, Task
from validator import ValidationError

logger = logging.getLogger(__name__)

ErrorKey = Tuple[str, str]


@dataclass
class Projection:
    clients: List[Client]
    workers: List[Worker]
    tasks: List[Task]
    summary: Dict[str, Any]
    unmatched: List[ErrorKey] = field(default_factory=list)


def group_errors(errors: List[ValidationError]) -> Dict[ErrorKey, Dict[str, str]]:
    grouped: Dict[ErrorKey, Dict[str, str]] = {}
    for error in errors:
        key = (error.entity_type, error.entity_id)
        grouped.setdefault(key, {})[error.field] = error.message
    return grouped


def summarize(errors: List[ValidationError]) -> Dict[str, Any]:
    return {
        "totalErrors": len(errors),
        "errorsByEntity": {
            entity_type: sum(1 for e in errors if e.entity_type == entity_type)
            for entity_type in ENTITY_TYPES
        },
        "errorMessages": [e.to_dict() for e in errors],
    }


def clear_errors(records: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [{k: v for k, v in record.items() if k != "_errors"} for record in records]


def _find_record(records: List[Dict[str, Any]], id_field: str, entity_id: str) -> int:
    wanted = str(entity_id).strip()
    for index, record in enumerate(records):
        if str(record.get(id_field, "")).strip() == wanted:
            return index
    return -1


def project_errors(
    errors: List[ValidationError],
    clients: List[Client],
    workers: List[Worker],
    tasks: List[Task]
) -> Projection:
    """Return fresh copies of the collections with `_errors` attached, plus the summary."""
    collections = {
        "clients": clear_errors(clients),
        "workers": clear_errors(workers),
        "tasks": clear_errors(tasks),
    }
    unmatched: List[ErrorKey] = []

    for (entity_type, entity_id), field_errors in group_errors(errors).items():
        records = collections[entity_type]
        index = _find_record(records, ID_FIELDS[entity_type], entity_id)
        if index == -1:
            logger.error("Failed to find item with ID '%s' in %s", entity_id, entity_type)
            unmatched.append((entity_type, entity_id))
            continue
        records[index]["_errors"] = dict(field_errors)

    return Projection(
        clients=collections["clients"],
        workers=collections["workers"],
        tasks=collections["tasks"],
        summary=summarize(errors),
        unmatched=unmatched,
    )
