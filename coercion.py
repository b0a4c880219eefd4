import json
import logging
import math
from typing import List, Dict, Any, Optional, Union

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

PARSE_ERROR_KEY = "_parseError"

# --------- Column aliases ---------
# Candidate headers per logical field, tried in order.
COLUMN_ALIASES: Dict[str, tuple] = {
    # clients
    "ClientID": ("ClientID", "Client ID", "clientid"),
    "ClientName": ("ClientName", "Client Name", "clientname"),
    "PriorityLevel": ("PriorityLevel", "Priority Level", "prioritylevel"),
    "RequestedTaskIDs": ("RequestedTaskIDs", "Requested Task IDs", "requestedtaskids"),
    "GroupTag": ("GroupTag", "Group Tag", "grouptag"),
    "AttributesJSON": ("AttributesJSON", "Attributes JSON", "attributesjson"),
    # workers
    "WorkerID": ("WorkerID", "Worker ID", "workerid"),
    "WorkerName": ("WorkerName", "Worker Name", "workername"),
    "Skills": ("Skills", "skills"),
    "AvailableSlots": ("AvailableSlots", "Available Slots", "availableslots"),
    "MaxLoadPerPhase": ("MaxLoadPerPhase", "Max Load Per Phase", "maxloadperphase"),
    "WorkerGroup": ("WorkerGroup", "Worker Group", "workergroup"),
    "QualificationLevel": ("QualificationLevel", "Qualification Level", "qualificationlevel"),
    # tasks
    "TaskID": ("TaskID", "Task ID", "taskid"),
    "TaskName": ("TaskName", "Task Name", "taskname"),
    "Category": ("Category", "category"),
    "Duration": ("Duration", "duration"),
    "RequiredSkills": ("RequiredSkills", "Required Skills", "requiredskills"),
    "PreferredPhases": ("PreferredPhases", "Preferred Phases", "preferredphases"),
    "MaxConcurrent": ("MaxConcurrent", "Max Concurrent", "maxconcurrent"),
}


def is_blank(value: Any) -> bool:
    """True for None, NaN/NaT, whitespace-only strings and empty containers."""
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, tuple, set, dict)):
        return len(value) == 0
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def aliases_for(field: str) -> tuple:
    return COLUMN_ALIASES.get(field, (field,))


def resolve_column(row: Dict[str, Any], field: str) -> Any:
    """First present, non-blank value among the field's header aliases."""
    for header in aliases_for(field):
        if header in row and not is_blank(row[header]):
            return row[header]
    return None


# --------- Scalars ---------

def _parse_number(raw: Any) -> Optional[float]:
    if isinstance(raw, (bool, np.bool_)):
        return None
    if isinstance(raw, (int, float, np.integer, np.floating)):
        value = float(raw)
    elif isinstance(raw, str):
        text = raw.strip()
        if not text:
            return None
        try:
            value = float(text)
        except ValueError:
            return None
    else:
        return None
    if math.isnan(value) or math.isinf(value):
        return None
    return value


def _parse_int(raw: Any) -> Optional[int]:
    if isinstance(raw, (int, np.integer)) and not isinstance(raw, (bool, np.bool_)):
        return int(raw)
    if isinstance(raw, str):
        # keeps precision for long digit strings
        try:
            return int(raw.strip())
        except ValueError:
            pass
    value = _parse_number(raw)
    if value is None:
        return None
    return int(value)


def to_string(raw: Any) -> str:
    if is_blank(raw):
        return ""
    if isinstance(raw, (float, np.floating)) and float(raw).is_integer():
        # spreadsheet cells hand back 101.0 for 101
        return str(int(raw))
    return str(raw).strip()


def to_required_string(row: Dict[str, Any], field: str, fallback: str = "") -> str:
    value = to_string(resolve_column(row, field))
    return value if value else fallback


def to_integer(raw: Any, fallback: int) -> int:
    value = _parse_int(raw)
    return fallback if value is None else value


# --------- Lists ---------

def _tokens(raw: Any, strip_brackets: bool = False) -> List[Any]:
    if is_blank(raw):
        return []
    if isinstance(raw, (list, tuple)):
        return list(raw)
    text = to_string(raw)
    if strip_brackets:
        text = text.strip().lstrip("[").rstrip("]")
    return [token.strip() for token in text.split(",") if token.strip()]


def to_string_list(raw: Any) -> List[str]:
    return [to_string(token) for token in _tokens(raw) if not is_blank(token)]


def to_integer_list(raw: Any) -> List[int]:
    values = []
    for token in _tokens(raw, strip_brackets=True):
        parsed = _parse_int(token)
        if parsed is not None:
            values.append(parsed)
    return values


def _parse_range(text: str) -> Optional[List[int]]:
    if "-" not in text:
        return None
    parts = text.split("-")
    if len(parts) != 2:
        return None
    start, end = _parse_int(parts[0]), _parse_int(parts[1])
    if start is None or end is None or start > end:
        return None
    return list(range(start, end + 1))


def to_phase_list(raw: Any) -> List[Union[int, str]]:
    """Phase numbers from "1,3,5", "[1,3,5]" or the range form "1-3"."""
    if isinstance(raw, str):
        expanded = _parse_range(raw.strip().lstrip("[").rstrip("]").strip())
        if expanded is not None:
            return expanded

    phases: List[Union[int, str]] = []
    for token in _tokens(raw, strip_brackets=True):
        if is_blank(token):
            continue
        parsed = _parse_int(token) if _parse_number(token) is not None else None
        phases.append(parsed if parsed is not None else to_string(token))
    return phases


# --------- JSON ---------

def parse_error_marker(original: str) -> Dict[str, Any]:
    return {PARSE_ERROR_KEY: True, "value": original}


def is_parse_error(value: Any) -> bool:
    return isinstance(value, dict) and bool(value.get(PARSE_ERROR_KEY))


def _reject_constant(token: str) -> Any:
    # NaN and Infinity are not JSON
    raise ValueError(f"Invalid JSON constant: {token}")


def to_json_object(raw: Any) -> Dict[str, Any]:
    if isinstance(raw, dict):
        return raw
    if is_blank(raw):
        return {}
    text = raw if isinstance(raw, str) else str(raw)
    try:
        parsed = json.loads(text, parse_constant=_reject_constant)
    except (json.JSONDecodeError, TypeError, ValueError):
        logger.debug("AttributesJSON is not valid JSON: %r", text)
        return parse_error_marker(text)
    if not isinstance(parsed, dict):
        logger.debug("AttributesJSON is not a JSON object: %r", text)
        return parse_error_marker(text)
    return parsed
