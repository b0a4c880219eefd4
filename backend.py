import logging
from typing import List, Dict, Any, Optional

from ai_filter import AIFilterError, GPTAgent, generate_filters
from exporter import build_export_files, export_all
from filters import FilterCondition, apply_filters
from normalizer import ENTITY_TYPES, ID_FIELDS, check_entity_type, coerce_field, normalize_rows
from parsers import FileParseError, parse_file
from projector import clear_errors, project_errors
from rules import (
    DEFAULT_PRIORITIZATION_WEIGHTS,
    BusinessRule,
    merge_weights,
    parse_rule,
    rule_to_dict,
    update_rule,
)
from validator import ValidationError, run_validators

logger = logging.getLogger(__name__)


def _per_entity(value_factory):
    return {entity_type: value_factory() for entity_type in ENTITY_TYPES}


class DataManager:
    """
    Session state for one user: the three entity collections, upload errors,
    the last validation summary, business rules, prioritization weights and
    grid filters.

    Every mutation replaces the affected list or dict instead of editing it,
    so a caller holding an old reference keeps a consistent snapshot.
    """

    def __init__(self, gpt_agent: Optional[GPTAgent] = None):
        self.gpt_agent = gpt_agent
        self.reset()

    def reset(self):
        self.clients: List[Dict[str, Any]] = []
        self.workers: List[Dict[str, Any]] = []
        self.tasks: List[Dict[str, Any]] = []
        self.file_errors: Dict[str, Optional[str]] = _per_entity(lambda: None)
        self.validation_summary: Optional[Dict[str, Any]] = None
        self.rules: List[BusinessRule] = []
        self.prioritization_weights: Dict[str, float] = dict(DEFAULT_PRIORITIZATION_WEIGHTS)
        self.natural_language_query: str = ""
        self.active_filters: Dict[str, List[FilterCondition]] = _per_entity(list)

    # --------- Entity data ---------

    def get_entities(self, entity_type: str) -> List[Dict[str, Any]]:
        return getattr(self, check_entity_type(entity_type))

    def set_data(self, entity_type: str, records: List[Dict[str, Any]], file_error: Optional[str] = None):
        """Replace a whole collection; the previous records are discarded."""
        check_entity_type(entity_type)
        setattr(self, entity_type, list(records))
        self.file_errors = {**self.file_errors, entity_type: file_error}
        self.validation_summary = None
        self.active_filters = {**self.active_filters, entity_type: []}

    def load_file(self, entity_type: str, filename: str, content: bytes) -> List[Dict[str, Any]]:
        """
        Parse and normalize an uploaded file into the store. A file that cannot
        be parsed leaves the current collection untouched and records the
        message in file_errors before re-raising.
        """
        check_entity_type(entity_type)
        try:
            rows = parse_file(filename, content)
        except FileParseError as e:
            logger.warning("Upload of %s for %s rejected: %s", filename, entity_type, e)
            self.file_errors = {**self.file_errors, entity_type: str(e)}
            raise

        records = normalize_rows(rows, entity_type)
        self.set_data(entity_type, records)
        logger.info("Loaded %d %s from %s", len(records), entity_type, filename)
        return records

    def update_entity(self, entity_type: str, instance_id: str, updated_fields: Dict[str, Any]) -> Dict[str, Any]:
        """Apply a grid edit to the record with the given internal `_id`."""
        records = self.get_entities(entity_type)
        index = next((i for i, r in enumerate(records) if r.get("_id") == instance_id), -1)
        if index == -1:
            raise KeyError(f"No {entity_type} record with _id {instance_id!r}")

        coerced = {field: coerce_field(entity_type, field, raw) for field, raw in updated_fields.items()}
        updated = {**records[index], **coerced}
        setattr(self, entity_type, records[:index] + [updated] + records[index + 1:])
        logger.info("Updated %s %s: %s", entity_type, updated.get(ID_FIELDS[entity_type]), sorted(coerced))
        return updated

    # --------- Validation ---------

    def clear_all_errors(self):
        self.validation_summary = None
        self.clients = clear_errors(self.clients)
        self.workers = clear_errors(self.workers)
        self.tasks = clear_errors(self.tasks)
        self.file_errors = _per_entity(lambda: None)

    def validate_all(self) -> List[ValidationError]:
        self.clear_all_errors()
        errors = run_validators(self.clients, self.workers, self.tasks)
        projection = project_errors(errors, self.clients, self.workers, self.tasks)

        self.clients = projection.clients
        self.workers = projection.workers
        self.tasks = projection.tasks
        self.validation_summary = projection.summary
        return errors

    # --------- Business rules ---------

    def add_rule(self, data: Dict[str, Any]) -> BusinessRule:
        rule = parse_rule(data)
        if any(r.id == rule.id for r in self.rules):
            raise ValueError(f"A rule with id {rule.id!r} already exists")
        self.rules = self.rules + [rule]
        logger.info("Added %s rule %s", rule.type, rule.id)
        return rule

    def update_rule(self, rule_id: str, updated_fields: Dict[str, Any]) -> BusinessRule:
        for index, rule in enumerate(self.rules):
            if rule.id == rule_id:
                updated = update_rule(rule, updated_fields)
                self.rules = self.rules[:index] + [updated] + self.rules[index + 1:]
                return updated
        raise KeyError(f"No rule with id {rule_id!r}")

    def delete_rule(self, rule_id: str):
        remaining = [r for r in self.rules if r.id != rule_id]
        if len(remaining) == len(self.rules):
            raise KeyError(f"No rule with id {rule_id!r}")
        self.rules = remaining
        logger.info("Deleted rule %s", rule_id)

    def rules_as_dicts(self) -> List[Dict[str, Any]]:
        return [rule_to_dict(rule) for rule in self.rules]

    # --------- Prioritization ---------

    def set_prioritization_weights(self, weights: Dict[str, Any]) -> Dict[str, float]:
        self.prioritization_weights = merge_weights(self.prioritization_weights, weights)
        return self.prioritization_weights

    def reset_prioritization_weights(self) -> Dict[str, float]:
        self.prioritization_weights = dict(DEFAULT_PRIORITIZATION_WEIGHTS)
        return self.prioritization_weights

    # --------- Filtering ---------

    def set_active_filters(self, entity_type: str, filters: List[FilterCondition]):
        check_entity_type(entity_type)
        self.active_filters = {**self.active_filters, entity_type: list(filters)}

    def clear_filters(self, entity_type: str):
        self.set_active_filters(entity_type, [])

    def filtered_entities(self, entity_type: str) -> List[Dict[str, Any]]:
        return apply_filters(self.get_entities(entity_type), self.active_filters[entity_type])

    def ai_filter(self, query: str, entity_type: str) -> List[FilterCondition]:
        """
        Ask the AI service for filter conditions and make them the active
        filters for the entity type. On failure the previous filters stay.
        """
        check_entity_type(entity_type)
        self.natural_language_query = query
        try:
            filters = generate_filters(self.gpt_agent, query, entity_type)
        except AIFilterError as e:
            logger.warning("AI filter failed for %s: %s", entity_type, e)
            raise
        self.set_active_filters(entity_type, filters)
        return filters

    # --------- Export ---------

    def export_files(self) -> List[Dict[str, Any]]:
        return build_export_files(
            self.clients, self.workers, self.tasks, self.rules, self.prioritization_weights
        )

    def export_all(self, output_dir="exports") -> str:
        return export_all(
            output_dir, self.clients, self.workers, self.tasks, self.rules, self.prioritization_weights
        )

    def summary(self) -> Dict[str, Any]:
        return {
            "total_clients": len(self.clients),
            "total_workers": len(self.workers),
            "total_tasks": len(self.tasks),
            "rules_count": len(self.rules),
            "error_count": self.validation_summary["totalErrors"] if self.validation_summary else 0,
        }
