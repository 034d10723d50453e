import json
from typing import Optional

from pydantic import ValidationError

from src.core.workflow.models import WorkflowUser
from src.infrastructure.workflow.in_memory import InMemoryUserDirectory


def parse_user_directory(directory_json: Optional[str]) -> list[WorkflowUser]:
    normalized_json = (directory_json or "").strip()
    if not normalized_json:
        return []
    try:
        raw = json.loads(normalized_json)
    except json.JSONDecodeError:
        return []
    if not isinstance(raw, dict):
        return []

    users: list[WorkflowUser] = []
    for user_id, definition in raw.items():
        if not isinstance(user_id, str) or not isinstance(definition, dict):
            continue
        normalized_id = user_id.strip()
        if not normalized_id:
            continue
        payload = {
            "id": normalized_id,
            "role": str(definition.get("role", "")).strip().lower(),
            "name": definition.get("name"),
            "email": definition.get("email"),
        }
        try:
            users.append(WorkflowUser.model_validate(payload))
        except ValidationError:
            continue
    return users


def build_user_directory(directory_json: Optional[str]) -> InMemoryUserDirectory:
    return InMemoryUserDirectory(parse_user_directory(directory_json))
