import logging
from dataclasses import dataclass
from typing import List, Dict, Any, Iterable

from coercion import is_parse_error
from normalizer import Client, Worker, Task, ID_FIELDS

logger = logging.getLogger(__name__)


# --------- Validation Error Class ---------
@dataclass(frozen=True)
class ValidationError:
    entity_type: str
    entity_id: str
    field: str
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entityType": self.entity_type,
            "entityId": self.entity_id,
            "field": self.field,
            "message": self.message,
        }


def find_duplicate_ids(records: Iterable[Dict[str, Any]], entity_type: str) -> List[ValidationError]:
    """One error per repeated id; the first occurrence is never flagged."""
    id_field = ID_FIELDS[entity_type]
    errors = []
    seen = set()
    for record in records:
        record_id = record.get(id_field)
        if not record_id:
            continue
        if record_id in seen:
            errors.append(ValidationError(
                entity_type, record_id, id_field, f"Duplicate ID found: {record_id}."
            ))
        seen.add(record_id)
    return errors


def check_priority_level(client: Client) -> List[ValidationError]:
    level = client.get("PriorityLevel", 1)
    if level < 1 or level > 5:
        return [ValidationError(
            "clients", client["ClientID"], "PriorityLevel",
            f"PriorityLevel must be between 1 and 5, but is {level}."
        )]
    return []


def check_attributes_json(client: Client) -> List[ValidationError]:
    if is_parse_error(client.get("AttributesJSON")):
        return [ValidationError("clients", client["ClientID"], "AttributesJSON", "Invalid JSON format.")]
    return []


def check_requested_tasks(client: Client, task_ids: set) -> List[ValidationError]:
    return [
        ValidationError(
            "clients", client["ClientID"], "RequestedTaskIDs",
            f'Requested TaskID "{requested}" does not exist in the tasks list.'
        )
        for requested in client.get("RequestedTaskIDs", [])
        if requested not in task_ids
    ]


def check_duration(task: Task) -> List[ValidationError]:
    duration = task.get("Duration", 1)
    if duration < 1:
        return [ValidationError(
            "tasks", task["TaskID"], "Duration", f"Duration must be at least 1, but is {duration}."
        )]
    return []


def check_skill_coverage(task: Task, worker_skills: set) -> List[ValidationError]:
    return [
        ValidationError(
            "tasks", task["TaskID"], "RequiredSkills",
            f'Required skill "{skill}" is not provided by any worker.'
        )
        for skill in task.get("RequiredSkills", [])
        if skill not in worker_skills
    ]


def run_validators(
    clients: List[Client],
    workers: List[Worker],
    tasks: List[Task]
) -> List[ValidationError]:
    """
    Run every cross-entity check and return the findings in a fixed order:
    duplicate ids (clients, workers, tasks), client priority/JSON checks,
    requested-task references, task durations, then skill coverage.
    """
    errors: List[ValidationError] = []

    # a. Duplicate IDs
    errors.extend(find_duplicate_ids(clients, "clients"))
    errors.extend(find_duplicate_ids(workers, "workers"))
    errors.extend(find_duplicate_ids(tasks, "tasks"))

    # b. Out-of-range priority and broken AttributesJSON
    for client in clients:
        errors.extend(check_priority_level(client))
        errors.extend(check_attributes_json(client))

    # c. Unknown references in RequestedTaskIDs
    task_ids = {task.get("TaskID") for task in tasks}
    for client in clients:
        errors.extend(check_requested_tasks(client, task_ids))

    # d. Out-of-range durations
    for task in tasks:
        errors.extend(check_duration(task))

    # e. Skill coverage
    worker_skills = {skill for worker in workers for skill in worker.get("Skills", [])}
    for task in tasks:
        errors.extend(check_skill_coverage(task, worker_skills))

    logger.info(
        "Validated %d clients, %d workers, %d tasks: %d error(s)",
        len(clients), len(workers), len(tasks), len(errors)
    )
    return errors
