import json
import logging
import os
from typing import List, Dict, Any

import pandas as pd

from coercion import is_parse_error
from normalizer import ENTITY_FIELDS, INTERNAL_FIELDS, check_entity_type
from rules import build_rules_config

logger = logging.getLogger(__name__)

COMMA_LIST_FIELDS = ("RequestedTaskIDs", "Skills", "RequiredSkills")
BRACKET_LIST_FIELDS = ("AvailableSlots", "PreferredPhases")
JSON_FIELDS = ("AttributesJSON",)

CSV_FILENAMES = {
    "clients": "clients_cleaned.csv",
    "workers": "workers_cleaned.csv",
    "tasks": "tasks_cleaned.csv",
}
RULES_FILENAME = "rules.json"


def strip_internal_fields(records: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [{k: v for k, v in record.items() if k not in INTERNAL_FIELDS} for record in records]


def _json_text(value: Any) -> str:
    if is_parse_error(value):
        return str(value.get("value", ""))
    return json.dumps(value)


def serialize_record(record: Dict[str, Any]) -> Dict[str, Any]:
    """Flatten list and JSON fields back to their text form."""
    row = dict(record)
    for field in COMMA_LIST_FIELDS:
        if field in row:
            row[field] = ",".join(str(v) for v in row[field])
    for field in BRACKET_LIST_FIELDS:
        if field in row:
            row[field] = "[" + ",".join(str(v) for v in row[field]) + "]"
    for field in JSON_FIELDS:
        if field in row:
            row[field] = _json_text(row[field])
    return row


def to_csv_text(records: List[Dict[str, Any]], entity_type: str) -> str:
    check_entity_type(entity_type)
    rows = [serialize_record(r) for r in strip_internal_fields(records)]
    df = pd.DataFrame(rows, columns=ENTITY_FIELDS[entity_type])
    return df.to_csv(index=False)


def to_rules_json(rules: list, weights: Dict[str, float]) -> str:
    return json.dumps(build_rules_config(rules, weights), indent=2)


def build_export_files(
    clients: List[Dict[str, Any]],
    workers: List[Dict[str, Any]],
    tasks: List[Dict[str, Any]],
    rules: list,
    weights: Dict[str, float]
) -> List[Dict[str, Any]]:
    """In-memory export documents, one entry per file."""
    documents = [
        (RULES_FILENAME, to_rules_json(rules, weights), "application/json"),
        (CSV_FILENAMES["clients"], to_csv_text(clients, "clients"), "text/csv"),
        (CSV_FILENAMES["workers"], to_csv_text(workers, "workers"), "text/csv"),
        (CSV_FILENAMES["tasks"], to_csv_text(tasks, "tasks"), "text/csv"),
    ]
    return [
        {
            "name": name,
            "content": content,
            "type": media_type,
            "size": len(content.encode('utf-8')),
        }
        for name, content, media_type in documents
    ]


def export_all(output_dir: str, clients, workers, tasks, rules, weights) -> str:
    os.makedirs(output_dir, exist_ok=True)
    for document in build_export_files(clients, workers, tasks, rules, weights):
        with open(os.path.join(output_dir, document["name"]), "w", encoding="utf-8", newline="") as f:
            f.write(document["content"])
    logger.info("Exported cleaned data and rules to %s", output_dir)
    return output_dir
