"""
conftest.py: placed at the project root so pytest finds it for every test
module under tests/.

Shared fixtures: raw spreadsheet rows for the three entity types and a fake
chat agent standing in for the AI service.
"""
import pytest

from backend import DataManager


class FakeAgent:
    """Records prompts and answers with a canned reply (or raises it)."""

    def __init__(self, reply):
        self.reply = reply
        self.prompts = []

    def chat_completion(self, system_prompt: str, user_prompt: str) -> str:
        self.prompts.append(user_prompt)
        if isinstance(self.reply, Exception):
            raise self.reply
        return self.reply


@pytest.fixture
def client_rows():
    return [
        {"ClientID": "C1", "ClientName": "Acme", "PriorityLevel": "3",
         "RequestedTaskIDs": "T1,T2", "GroupTag": "GroupA", "AttributesJSON": '{"tier": "gold"}'},
        {"ClientID": "C2", "ClientName": "Globex", "PriorityLevel": "5",
         "RequestedTaskIDs": "T2", "GroupTag": "GroupB", "AttributesJSON": ""},
    ]


@pytest.fixture
def worker_rows():
    return [
        {"WorkerID": "W1", "WorkerName": "Ann", "Skills": "python, sql", "AvailableSlots": "[1,2,3]",
         "MaxLoadPerPhase": "2", "WorkerGroup": "Backend", "QualificationLevel": "Senior"},
        {"WorkerID": "W2", "WorkerName": "Bob", "Skills": "design", "AvailableSlots": "2,4",
         "MaxLoadPerPhase": "1", "WorkerGroup": "Frontend", "QualificationLevel": "Junior"},
    ]


@pytest.fixture
def task_rows():
    return [
        {"TaskID": "T1", "TaskName": "Build API", "Category": "Engineering", "Duration": "2",
         "RequiredSkills": "python", "PreferredPhases": "1-3", "MaxConcurrent": "2"},
        {"TaskID": "T2", "TaskName": "Mockups", "Category": "Design", "Duration": "1",
         "RequiredSkills": "design", "PreferredPhases": "[2,4]", "MaxConcurrent": "1"},
    ]


@pytest.fixture
def data_manager():
    return DataManager(gpt_agent=FakeAgent('{"filters": []}'))
