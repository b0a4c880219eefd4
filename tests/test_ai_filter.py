import pytest
from azure.core.exceptions import ServiceRequestError

from ai_filter import AIFilterError, build_gpt_agent, extract_json_object, generate_filters
from config import Settings
from conftest import FakeAgent
from normalizer import UnknownEntityTypeError


def test_reply_becomes_filter_conditions() -> None:
    agent = FakeAgent('{"filters": [{"field": "Duration", "operator": ">", "value": 2}]}')
    filters = generate_filters(agent, "tasks longer than 2 phases", "tasks")
    assert len(filters) == 1
    assert filters[0].field == "Duration"
    assert filters[0].operator == ">"
    assert filters[0].value == 2
    assert 'User Query: "tasks longer than 2 phases"' in agent.prompts[0]


def test_code_fenced_reply() -> None:
    reply = '```json\n{"filters": [{"field": "Skills", "operator": "contains", "value": "sql"}]}\n```'
    filters = generate_filters(FakeAgent(reply), "knows sql", "workers")
    assert filters[0].value == "sql"


def test_reply_with_surrounding_text() -> None:
    assert extract_json_object('Here you go: {"filters": []} done') == {"filters": []}


@pytest.mark.parametrize("reply", [
    "I cannot help with that",
    '{"filters": [{"field": "Duration", "operator": "between", "value": 2}]}',
    '{"filters": "Duration > 2"}',
    '{"filters": [}',
])
def test_unusable_replies(reply) -> None:
    with pytest.raises(AIFilterError):
        generate_filters(FakeAgent(reply), "anything", "tasks")


def test_disabled_agent() -> None:
    with pytest.raises(AIFilterError):
        generate_filters(None, "anything", "tasks")


def test_blank_query() -> None:
    agent = FakeAgent('{"filters": []}')
    with pytest.raises(AIFilterError):
        generate_filters(agent, "   ", "tasks")
    assert agent.prompts == []


def test_service_failure_is_wrapped() -> None:
    with pytest.raises(AIFilterError):
        generate_filters(FakeAgent(ServiceRequestError("offline")), "anything", "clients")


def test_unknown_entity_type() -> None:
    with pytest.raises(UnknownEntityTypeError):
        generate_filters(FakeAgent('{"filters": []}'), "anything", "projects")


def test_no_token_disables_agent() -> None:
    assert build_gpt_agent(Settings(github_token=None)) is None
