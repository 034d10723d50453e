import json
from datetime import datetime, timezone
from typing import Optional

from src.core.workflow import AuditRecord, ProposalRecord, WorkflowUser

USERS = {
    "usr_admin_1": WorkflowUser(id="usr_admin_1", role="admin", name="Avery"),
    "usr_manager_1": WorkflowUser(id="usr_manager_1", role="manager", name="Morgan"),
    "usr_manager_2": WorkflowUser(id="usr_manager_2", role="manager", name="Mika"),
    "usr_researcher_1": WorkflowUser(id="usr_researcher_1", role="researcher", name="Riley"),
    "usr_viewer_1": WorkflowUser(id="usr_viewer_1", role="viewer", name="Val"),
}

FIXED_NOW = datetime(2026, 3, 14, 9, 30, tzinfo=timezone.utc)


def user(user_id: str) -> WorkflowUser:
    return USERS[user_id].model_copy()


def user_directory_json() -> str:
    return json.dumps({item.id: {"role": item.role, "name": item.name} for item in USERS.values()})


def actor_headers(user_id: str) -> dict[str, str]:
    actor = USERS[user_id]
    return {"X-Actor-Id": actor.id, "X-Actor-Role": actor.role}


def proposal(
    *,
    status: str = "draft",
    code: Optional[str] = None,
    sent_to_client: bool = False,
    history: Optional[list[AuditRecord]] = None,
    author_id: str = "usr_researcher_1",
    version: Optional[int] = None,
) -> ProposalRecord:
    history = history or []
    return ProposalRecord(
        proposal_id="pp_fixture_001",
        code=code,
        title="Q3 brand tracker",
        status=status,
        author=user(author_id),
        approval_history=history,
        sent_to_client=sent_to_client,
        created_at=FIXED_NOW,
        updated_at=FIXED_NOW,
        version=version if version is not None else len(history) + 1,
    )


def audit_record(
    *,
    action: str,
    previous_status: str,
    by_id: str = "usr_researcher_1",
    record_id: str = "par_fixture",
    comment: Optional[str] = None,
) -> AuditRecord:
    return AuditRecord(
        id=record_id,
        action=action,
        by=user(by_id),
        comment=comment,
        timestamp=FIXED_NOW,
        previous_status=previous_status,
    )
