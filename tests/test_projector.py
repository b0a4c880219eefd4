import logging

from normalizer import normalize_rows
from projector import clear_errors, group_errors, project_errors, summarize
from validator import ValidationError


def _clients():
    return normalize_rows([{"ClientID": "C1"}, {"ClientID": "C2"}], "clients")


def test_errors_attach_by_business_id() -> None:
    errors = [
        ValidationError("clients", "C2", "PriorityLevel", "too high"),
        ValidationError("clients", "C2", "AttributesJSON", "Invalid JSON format."),
    ]
    projection = project_errors(errors, _clients(), [], [])
    assert "_errors" not in projection.clients[0]
    assert projection.clients[1]["_errors"] == {
        "PriorityLevel": "too high",
        "AttributesJSON": "Invalid JSON format.",
    }
    assert projection.unmatched == []


def test_later_message_wins_for_same_field() -> None:
    errors = [
        ValidationError("clients", "C1", "RequestedTaskIDs", 'Requested TaskID "T8" does not exist in the tasks list.'),
        ValidationError("clients", "C1", "RequestedTaskIDs", 'Requested TaskID "T9" does not exist in the tasks list.'),
    ]
    assert group_errors(errors)[("clients", "C1")] == {
        "RequestedTaskIDs": 'Requested TaskID "T9" does not exist in the tasks list.'
    }
    projection = project_errors(errors, _clients(), [], [])
    assert projection.summary["totalErrors"] == 2


def test_summary_counts_every_error() -> None:
    errors = [
        ValidationError("clients", "C1", "ClientID", "a"),
        ValidationError("tasks", "T1", "Duration", "b"),
        ValidationError("tasks", "T1", "RequiredSkills", "c"),
    ]
    summary = summarize(errors)
    assert summary["totalErrors"] == 3
    assert summary["errorsByEntity"] == {"clients": 1, "workers": 0, "tasks": 2}
    assert summary["errorMessages"][1] == {
        "entityType": "tasks", "entityId": "T1", "field": "Duration", "message": "b"
    }


def test_match_uses_trimmed_ids() -> None:
    workers = [{"_id": "w", "WorkerID": " W1 "}]
    projection = project_errors([ValidationError("workers", "W1", "WorkerID", "dup")], [], workers, [])
    assert projection.workers[0]["_errors"] == {"WorkerID": "dup"}


def test_duplicate_error_lands_on_first_record() -> None:
    clients = normalize_rows([{"ClientID": "C1"}, {"ClientID": "C1"}], "clients")
    projection = project_errors(
        [ValidationError("clients", "C1", "ClientID", "Duplicate ID found: C1.")], clients, [], []
    )
    assert "_errors" in projection.clients[0]
    assert "_errors" not in projection.clients[1]


def test_unmatched_errors_are_logged(caplog) -> None:
    with caplog.at_level(logging.ERROR, logger="projector"):
        projection = project_errors([ValidationError("tasks", "T404", "Duration", "x")], [], [], [])
    assert projection.unmatched == [("tasks", "T404")]
    assert "Failed to find item with ID 'T404' in tasks" in caplog.text
    assert projection.summary["totalErrors"] == 1


def test_previous_errors_are_cleared() -> None:
    clients = _clients()
    clients[0]["_errors"] = {"ClientID": "stale"}
    projection = project_errors([], clients, [], [])
    assert all("_errors" not in c for c in projection.clients)


def test_inputs_are_not_mutated() -> None:
    clients = _clients()
    project_errors([ValidationError("clients", "C1", "ClientID", "x")], clients, [], [])
    assert all("_errors" not in c for c in clients)


def test_clear_errors_copies_records() -> None:
    records = [{"_id": "a", "_errors": {"x": "y"}, "ClientID": "C1"}]
    cleared = clear_errors(records)
    assert cleared == [{"_id": "a", "ClientID": "C1"}]
    assert "_errors" in records[0]
