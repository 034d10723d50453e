from copy import deepcopy
from threading import Lock
from typing import Iterable, Optional

from src.core.workflow.errors import (
    ProposalCodeConflictError,
    ProposalNotFoundError,
    ProposalStoreConflictError,
)
from src.core.workflow.models import (
    AuditRecord,
    Notification,
    ProposalPatch,
    ProposalRecord,
    WorkflowUser,
)
from src.core.workflow.repository import (
    NotificationEmitter,
    ProposalStore,
    UserDirectory,
    apply_patch,
)


class InMemoryProposalStore(ProposalStore):
    def __init__(self) -> None:
        self._lock = Lock()
        self._proposals: dict[str, ProposalRecord] = {}

    def create(self, proposal: ProposalRecord) -> None:
        with self._lock:
            self._proposals[proposal.proposal_id] = deepcopy(proposal)

    def load(self, *, proposal_id: str) -> Optional[ProposalRecord]:
        with self._lock:
            proposal = self._proposals.get(proposal_id)
            return deepcopy(proposal) if proposal is not None else None

    def save(
        self,
        *,
        proposal_id: str,
        patch: ProposalPatch,
        audit_record: AuditRecord,
        expected_version: int,
    ) -> ProposalRecord:
        with self._lock:
            current = self._proposals.get(proposal_id)
            if current is None:
                raise ProposalNotFoundError(proposal_id)
            if current.version != expected_version:
                raise ProposalStoreConflictError(
                    proposal_id=proposal_id,
                    expected_version=expected_version,
                    actual_version=current.version,
                )
            if current.code is None and patch.code is not None:
                self._reserve_code(proposal_id=proposal_id, code=patch.code)
            updated = apply_patch(current, patch=patch, audit_record=audit_record)
            self._proposals[proposal_id] = updated
            return deepcopy(updated)

    def _reserve_code(self, *, proposal_id: str, code: str) -> None:
        for other in self._proposals.values():
            if other.proposal_id != proposal_id and other.code == code:
                raise ProposalCodeConflictError(proposal_id=proposal_id, code=code)


class InMemoryNotificationEmitter(NotificationEmitter):
    def __init__(self) -> None:
        self._lock = Lock()
        self._notifications: dict[str, list[Notification]] = {}

    def emit(self, notification: Notification) -> None:
        with self._lock:
            inbox = self._notifications.setdefault(notification.recipient_id, [])
            inbox.insert(0, deepcopy(notification))

    def list_for_recipient(self, *, recipient_id: str) -> list[Notification]:
        with self._lock:
            return [deepcopy(item) for item in self._notifications.get(recipient_id, [])]


class InMemoryUserDirectory(UserDirectory):
    def __init__(self, users: Iterable[WorkflowUser] = ()) -> None:
        self._users = {user.id: user for user in users}

    def get_user(self, *, user_id: str) -> Optional[WorkflowUser]:
        user = self._users.get(user_id)
        return deepcopy(user) if user is not None else None
