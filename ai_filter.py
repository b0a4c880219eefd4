import json
import logging
from typing import List, Dict, Any, Optional

from azure.ai.inference import ChatCompletionsClient
from azure.ai.inference.models import SystemMessage, UserMessage
from azure.core.credentials import AzureKeyCredential
from azure.core.exceptions import AzureError
from pydantic import BaseModel, ValidationError as PydanticValidationError

from config import Settings
from filters import FilterCondition
from normalizer import check_entity_type

logger = logging.getLogger(__name__)

FIELD_HINTS = {
    "clients": "ClientID, ClientName, PriorityLevel, RequestedTaskIDs (array of strings), GroupTag",
    "workers": "WorkerID, WorkerName, Skills (array of strings), AvailableSlots (array of numbers), MaxLoadPerPhase",
    "tasks": "TaskID, TaskName, Category, Duration, RequiredSkills (array of strings), PreferredPhases (array of numbers/strings)",
}


class AIFilterError(RuntimeError):
    """The natural-language filter service failed or answered with something unusable."""


class FilterResponse(BaseModel):
    filters: List[FilterCondition]


# --------- GPTAgent Wrapper ---------
class GPTAgent:
    def __init__(self, token: str, endpoint: str, model: str):
        if not token:
            raise ValueError("Missing GITHUB_TOKEN env variable")

        self.client = ChatCompletionsClient(
            endpoint=endpoint,
            credential=AzureKeyCredential(token)
        )
        self.model_name = model

    def chat_completion(self, system_prompt: str, user_prompt: str) -> str:
        messages = [
            SystemMessage(content=system_prompt),
            UserMessage(content=user_prompt)
        ]

        response = self.client.complete(
            messages=messages,
            model=self.model_name,
            temperature=0.0,
            top_p=1.0,
            max_tokens=1000
        )

        return response.choices[0].message.content


def build_gpt_agent(settings: Settings) -> Optional[GPTAgent]:
    try:
        return GPTAgent(settings.github_token, settings.ai_endpoint, settings.ai_model)
    except ValueError as e:
        logger.warning("AI features disabled due to initialization error: %s", e)
        return None


def _strip_code_fences(text: str) -> str:
    text = text.strip()
    if text.startswith('```'):
        lines = [line for line in text.split('\n') if not line.strip().startswith('```')]
        text = '\n'.join(lines)
    return text


def extract_json_object(text: str) -> Dict[str, Any]:
    """Pull the first {...} block out of a chat reply."""
    text = _strip_code_fences(text or "")
    start = text.find('{')
    end = text.rfind('}')
    if start == -1 or end <= start:
        raise AIFilterError(f"AI did not return a JSON object: {text[:100]!r}")
    try:
        return json.loads(text[start:end + 1])
    except json.JSONDecodeError as e:
        raise AIFilterError(f"AI returned malformed JSON: {e}") from e


def build_filter_prompt(query: str, entity_type: str) -> str:
    hints = "\n".join(f"- {name.capitalize()}: {fields}" for name, fields in FIELD_HINTS.items())
    return f"""
You are an expert at converting natural language queries into structured JSON filters for a dataset of {entity_type}.

Available fields:
{hints}

Each filter is an object with keys "field", "operator" and "value".
The operator must be one of: =, >, <, >=, <=, contains, not contains.
Use the 'contains' operator for checking if an item exists in an array.
Multiple filters imply an AND relationship.

User Query: "{query.strip()}"

Return only a JSON object of the form {{"filters": [...]}}. No explanations, no markdown, no code blocks.
"""


def generate_filters(gpt_agent: Optional[GPTAgent], query: str, entity_type: str) -> List[FilterCondition]:
    check_entity_type(entity_type)
    if gpt_agent is None:
        raise AIFilterError("AI features are disabled (no GITHUB_TOKEN configured)")
    if not query or not query.strip():
        raise AIFilterError("Query must not be empty")

    try:
        reply = gpt_agent.chat_completion(
            system_prompt="You translate search queries into JSON filter conditions. Return only JSON.",
            user_prompt=build_filter_prompt(query, entity_type)
        )
    except AzureError as e:
        raise AIFilterError(f"AI service request failed: {e}") from e

    logger.debug("AI filter reply: %r", reply)
    payload = extract_json_object(reply)
    try:
        filters = FilterResponse.model_validate(payload).filters
    except PydanticValidationError as e:
        raise AIFilterError(f"AI returned invalid filters: {e}") from e

    logger.info("Translated %r into %d filter(s) for %s", query, len(filters), entity_type)
    return filters
