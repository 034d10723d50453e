import random
import re
import uuid
from datetime import datetime, timezone
from typing import Callable, Iterable, Optional

from src.core.workflow.errors import (
    ActionNotPermittedError,
    HistoryIntegrityError,
    InvalidClientEmailError,
    InvalidManagerError,
    MissingCommentError,
)
from src.core.workflow.models import (
    ApprovalAction,
    AuditRecord,
    ProposalPatch,
    ProposalRecord,
    ProposalStatus,
    TransitionInputs,
    TransitionResult,
    WorkflowActionName,
    WorkflowUser,
)
from src.core.workflow.permissions import ACTION_TARGET_STATUS, find_legal_action, is_privileged

INITIAL_STATUS: ProposalStatus = "draft"
DEFAULT_PROPOSAL_CODE_PREFIX = "BI"

ACTION_AUDIT_ACTION: dict[WorkflowActionName, ApprovalAction] = {
    "submit_to_manager": "submitted_to_manager",
    "manager_approve": "manager_approved",
    "manager_reject": "manager_rejected",
    "request_revision": "revision_requested",
    "put_on_hold": "put_on_hold",
    "submit_to_client": "submitted_to_client",
    "client_approve": "client_approved",
    "client_reject": "client_rejected",
    "reopen": "reopened",
}

AUDIT_ACTION_TARGET_STATUS: dict[ApprovalAction, ProposalStatus] = {
    audit_action: ACTION_TARGET_STATUS[action]
    for action, audit_action in ACTION_AUDIT_ACTION.items()
}

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

CodeGenerator = Callable[[datetime], str]


def generate_proposal_code(
    now: datetime, *, prefix: str = DEFAULT_PROPOSAL_CODE_PREFIX
) -> str:
    return f"{prefix}-{now:%y%m}-{random.randint(0, 9999):04d}"


def is_valid_email(value: Optional[str]) -> bool:
    if value is None:
        return False
    return _EMAIL_PATTERN.match(value.strip()) is not None


def apply_transition(
    *,
    proposal: ProposalRecord,
    action: str,
    actor: WorkflowUser,
    inputs: TransitionInputs,
    now: Optional[datetime] = None,
    code_generator: Optional[CodeGenerator] = None,
) -> TransitionResult:
    """Compute the next status, audit record and patch for one action.

    Checks run in a fixed order and the first failure wins: permission, comment,
    manager selection, client email. ``proposal`` is never mutated.
    """
    descriptor = find_legal_action(proposal.status, actor.role, action)
    if descriptor is None:
        raise ActionNotPermittedError(f"{action} from {proposal.status} as {actor.role}")

    comment = _normalize_comment(inputs.comment)
    if descriptor.requires_comment and comment is None:
        raise MissingCommentError(descriptor.action)

    manager: Optional[WorkflowUser] = None
    if descriptor.requires_manager_selection:
        manager = inputs.manager
        if manager is None:
            raise InvalidManagerError("manager selection is required")
        if not is_privileged(manager.role):
            raise InvalidManagerError(f"{manager.id} has role {manager.role}")

    client_email: Optional[str] = None
    if descriptor.requires_client_email:
        if not is_valid_email(inputs.client_email):
            raise InvalidClientEmailError()
        client_email = (inputs.client_email or "").strip()

    timestamp = now or _utc_now()
    new_status = descriptor.target_status
    if descriptor.action == "reopen" and comment is None:
        comment = f"Reopened from {proposal.status}"

    audit_record = AuditRecord(
        id=f"par_{uuid.uuid4().hex[:12]}",
        action=ACTION_AUDIT_ACTION[descriptor.action],
        by=actor,
        to=manager,
        comment=comment,
        client_email=client_email,
        timestamp=timestamp,
        previous_status=proposal.status,
    )

    patch = ProposalPatch(status=new_status, updated_at=timestamp)
    if descriptor.action == "submit_to_manager" and proposal.code is None:
        generator = code_generator or generate_proposal_code
        patch.code = generator(timestamp)
    if descriptor.action == "submit_to_client" and not proposal.sent_to_client:
        patch.sent_to_client = True

    return TransitionResult(new_status=new_status, audit_record=audit_record, patch=patch)


def replay_status(records: Iterable[AuditRecord]) -> ProposalStatus:
    """Fold an approval history from ``draft`` and return the resulting status."""
    status = INITIAL_STATUS
    for position, record in enumerate(records):
        if record.previous_status != status:
            raise HistoryIntegrityError(
                f"record {position} ({record.id}) previous_status={record.previous_status} "
                f"but replayed status is {status}"
            )
        status = AUDIT_ACTION_TARGET_STATUS[record.action]
    return status


def _normalize_comment(comment: Optional[str]) -> Optional[str]:
    if comment is None or not comment.strip():
        return None
    return comment.strip()


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)
