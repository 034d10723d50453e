import uuid
from datetime import datetime
from typing import Literal, Optional

from src.core.workflow.models import (
    ApprovalAction,
    AuditRecord,
    Notification,
    NotificationType,
    ProposalRecord,
)

RecipientKind = Literal["AUTHOR", "SELECTED_MANAGER", "NONE"]

NOTIFICATION_RECIPIENTS: dict[ApprovalAction, RecipientKind] = {
    "submitted_to_manager": "SELECTED_MANAGER",
    "manager_approved": "AUTHOR",
    "manager_rejected": "AUTHOR",
    "submitted_to_client": "NONE",
    "client_approved": "AUTHOR",
    "client_rejected": "AUTHOR",
    "put_on_hold": "AUTHOR",
    "revision_requested": "AUTHOR",
    "reopened": "NONE",
}

NOTIFICATION_TITLES: dict[NotificationType, str] = {
    "submitted_to_manager": "New Proposal for Review",
    "manager_approved": "Proposal Approved by Manager",
    "manager_rejected": "Proposal Rejected by Manager",
    "submitted_to_client": "Proposal Sent to Client",
    "client_approved": "Proposal Approved by Client!",
    "client_rejected": "Proposal Rejected by Client",
    "put_on_hold": "Proposal Put On Hold",
    "revision_requested": "Revision Requested",
}


def resolve_recipient_ids(*, proposal: ProposalRecord, record: AuditRecord) -> list[str]:
    kind = NOTIFICATION_RECIPIENTS[record.action]
    if kind == "AUTHOR":
        return [proposal.author.id]
    if kind == "SELECTED_MANAGER" and record.to is not None:
        return [record.to.id]
    return []


def build_notifications(
    *, proposal: ProposalRecord, record: AuditRecord, created_at: datetime
) -> list[Notification]:
    """One notification per recipient of ``record``, built from the post-transition ``proposal``."""
    notification_type: NotificationType = record.action  # type: ignore[assignment]
    return [
        Notification(
            id=f"pnt_{uuid.uuid4().hex[:12]}",
            recipient_id=recipient_id,
            type=notification_type,
            title=NOTIFICATION_TITLES[notification_type],
            message=_message(proposal=proposal, record=record),
            proposal_id=proposal.proposal_id,
            proposal_title=proposal.title,
            from_user=record.by,
            read=False,
            created_at=created_at,
        )
        for recipient_id in resolve_recipient_ids(proposal=proposal, record=record)
    ]


def _message(*, proposal: ProposalRecord, record: AuditRecord) -> str:
    actor = record.by.name or record.by.id
    title = proposal.title or "Untitled Proposal"
    action = record.action
    if action == "submitted_to_manager":
        return f'{actor} submitted "{title}" for your approval'
    if action == "manager_approved":
        return f'{actor} approved your proposal "{title}"{_note(record.comment)}'
    if action == "manager_rejected":
        return f'{actor} rejected your proposal "{title}". Reason: {record.comment}'
    if action == "client_approved":
        return f'Client approved your proposal "{title}"{_note(record.comment)}'
    if action == "client_rejected":
        return f'Client rejected your proposal "{title}". Reason: {record.comment}'
    if action == "put_on_hold":
        return f'{actor} put "{title}" on hold. Reason: {record.comment}'
    if action == "revision_requested":
        return f'{actor} requested revisions for "{title}". Details: {record.comment}'
    return f'"{title}" has been sent to client ({record.client_email}) for approval'


def _note(comment: Optional[str]) -> str:
    return f". Note: {comment}" if comment else ""
