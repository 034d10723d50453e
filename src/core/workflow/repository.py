from typing import Optional, Protocol

from src.core.workflow.models import (
    AuditRecord,
    Notification,
    ProposalPatch,
    ProposalRecord,
    WorkflowUser,
)


class ProposalStore(Protocol):
    def create(self, proposal: ProposalRecord) -> None: ...

    def load(self, *, proposal_id: str) -> Optional[ProposalRecord]: ...

    def save(
        self,
        *,
        proposal_id: str,
        patch: ProposalPatch,
        audit_record: AuditRecord,
        expected_version: int,
    ) -> ProposalRecord:
        """Apply ``patch`` and append ``audit_record`` as one unit.

        Raises ``ProposalStoreConflictError`` when the stored version is not
        ``expected_version``, and ``ProposalCodeConflictError`` when a newly
        assigned code belongs to another proposal. Nothing is written in
        either case.
        """
        ...


class NotificationEmitter(Protocol):
    def emit(self, notification: Notification) -> None: ...

    def list_for_recipient(self, *, recipient_id: str) -> list[Notification]: ...


class UserDirectory(Protocol):
    def get_user(self, *, user_id: str) -> Optional[WorkflowUser]: ...


def apply_patch(
    proposal: ProposalRecord, *, patch: ProposalPatch, audit_record: AuditRecord
) -> ProposalRecord:
    """Return ``proposal`` after ``patch``; code is set once, sent_to_client never resets."""
    return proposal.model_copy(
        update={
            "status": patch.status,
            "updated_at": patch.updated_at,
            "code": proposal.code if proposal.code is not None else patch.code,
            "sent_to_client": proposal.sent_to_client or bool(patch.sent_to_client),
            "approval_history": [*proposal.approval_history, audit_record],
            "version": proposal.version + 1,
        },
        deep=True,
    )
