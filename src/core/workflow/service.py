import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from src.core.workflow.errors import (
    ProposalCodeConflictError,
    ProposalNotFoundError,
    ProposalStoreConflictError,
    TransitionError,
    WorkflowConflictError,
)
from src.core.workflow.models import (
    ActionDescriptor,
    ActionInputs,
    ApprovalHistoryResponse,
    AuditRecord,
    Notification,
    ProposalRecord,
    ProposalStatus,
    TransitionInputs,
    TransitionResult,
    WorkflowOutcome,
    WorkflowUser,
)
from src.core.workflow.notifications import build_notifications
from src.core.workflow.permissions import find_legal_action, legal_actions
from src.core.workflow.repository import NotificationEmitter, ProposalStore, UserDirectory
from src.core.workflow.transitions import (
    DEFAULT_PROPOSAL_CODE_PREFIX,
    INITIAL_STATUS,
    apply_transition,
    generate_proposal_code,
    replay_status,
)

logger = logging.getLogger(__name__)

CODE_ASSIGNMENT_ATTEMPTS = 5


class ProposalWorkflowService:
    def __init__(
        self,
        *,
        store: ProposalStore,
        notifier: NotificationEmitter,
        users: UserDirectory,
        require_expected_status: bool = False,
        notifications_enabled: bool = True,
        proposal_code_prefix: str = DEFAULT_PROPOSAL_CODE_PREFIX,
    ) -> None:
        self._store = store
        self._notifier = notifier
        self._users = users
        self._require_expected_status = require_expected_status
        self._notifications_enabled = notifications_enabled
        self._proposal_code_prefix = proposal_code_prefix

    def create_proposal(self, *, title: str, author: WorkflowUser) -> ProposalRecord:
        now = _utc_now()
        proposal = ProposalRecord(
            proposal_id=f"pp_{uuid.uuid4().hex[:12]}",
            title=title,
            status=INITIAL_STATUS,
            author=author,
            created_at=now,
            updated_at=now,
        )
        self._store.create(proposal)
        logger.info(
            "workflow.proposal.created",
            extra={"extra_fields": {"proposal_id": proposal.proposal_id, "actor_id": author.id}},
        )
        return proposal

    def get_proposal(self, *, proposal_id: str) -> ProposalRecord:
        proposal = self._store.load(proposal_id=proposal_id)
        if proposal is None:
            raise ProposalNotFoundError(proposal_id)
        return proposal

    def get_approval_history(self, *, proposal_id: str) -> ApprovalHistoryResponse:
        proposal = self.get_proposal(proposal_id=proposal_id)
        replayed = replay_status(proposal.approval_history)
        if replayed != proposal.status and proposal.status != "deleted":
            logger.warning(
                "workflow.history.diverged",
                extra={
                    "extra_fields": {
                        "proposal_id": proposal_id,
                        "status": proposal.status,
                        "replayed_status": replayed,
                    }
                },
            )
        return ApprovalHistoryResponse(
            proposal_id=proposal.proposal_id,
            status=proposal.status,
            records=proposal.approval_history,
        )

    def legal_actions(
        self, *, status: ProposalStatus, actor: WorkflowUser
    ) -> list[ActionDescriptor]:
        return legal_actions(status, actor.role)

    def available_actions(
        self, *, proposal_id: str, actor: WorkflowUser
    ) -> list[ActionDescriptor]:
        proposal = self.get_proposal(proposal_id=proposal_id)
        return legal_actions(proposal.status, actor.role)

    def execute(
        self,
        *,
        proposal_id: str,
        action: str,
        actor: WorkflowUser,
        inputs: ActionInputs,
        expected_status: Optional[ProposalStatus] = None,
    ) -> WorkflowOutcome:
        proposal = self.get_proposal(proposal_id=proposal_id)
        self._validate_expected_status(proposal.status, expected_status)

        for attempt in range(1, CODE_ASSIGNMENT_ATTEMPTS + 1):
            result = self._transition(
                proposal=proposal, action=action, actor=actor, inputs=inputs
            )
            try:
                updated = self._store.save(
                    proposal_id=proposal_id,
                    patch=result.patch,
                    audit_record=result.audit_record,
                    expected_version=proposal.version,
                )
            except ProposalStoreConflictError as exc:
                raise WorkflowConflictError(
                    f"proposal {proposal_id} changed concurrently; reload and retry"
                ) from exc
            except ProposalCodeConflictError as exc:
                logger.warning(
                    "workflow.code.collision",
                    extra={
                        "extra_fields": {
                            "proposal_id": proposal_id,
                            "code": exc.code,
                            "attempt": attempt,
                        }
                    },
                )
                if attempt == CODE_ASSIGNMENT_ATTEMPTS:
                    raise WorkflowConflictError(
                        f"no free proposal code after {attempt} attempts"
                    ) from exc
                continue
            break

        logger.info(
            "workflow.transition",
            extra={
                "extra_fields": {
                    "proposal_id": proposal_id,
                    "action": action,
                    "actor_id": actor.id,
                    "from_status": result.audit_record.previous_status,
                    "to_status": result.new_status,
                    "version": updated.version,
                }
            },
        )

        return WorkflowOutcome(
            proposal_id=proposal_id,
            new_status=result.new_status,
            audit_record=result.audit_record,
            code=updated.code,
            version=updated.version,
            notifications=self._notify(proposal=updated, record=result.audit_record),
        )

    def list_notifications(self, *, recipient_id: str) -> list[Notification]:
        return self._notifier.list_for_recipient(recipient_id=recipient_id)

    def _notify(self, *, proposal: ProposalRecord, record: AuditRecord) -> list[Notification]:
        if not self._notifications_enabled:
            return []
        notifications = build_notifications(
            proposal=proposal, record=record, created_at=record.timestamp
        )
        if not notifications:
            logger.info(
                "workflow.notification.skipped",
                extra={
                    "extra_fields": {
                        "proposal_id": proposal.proposal_id,
                        "audit_action": record.action,
                        "client_email": record.client_email,
                    }
                },
            )
            return []

        emitted: list[Notification] = []
        for notification in notifications:
            try:
                self._notifier.emit(notification)
            except Exception:
                logger.warning(
                    "workflow.notification.failed",
                    exc_info=True,
                    extra={
                        "extra_fields": {
                            "proposal_id": proposal.proposal_id,
                            "notification_type": notification.type,
                            "recipient_id": notification.recipient_id,
                        }
                    },
                )
                continue
            emitted.append(notification)
        return emitted

    def _transition(
        self,
        *,
        proposal: ProposalRecord,
        action: str,
        actor: WorkflowUser,
        inputs: ActionInputs,
    ) -> TransitionResult:
        try:
            return apply_transition(
                proposal=proposal,
                action=action,
                actor=actor,
                inputs=self._resolve_inputs(
                    proposal=proposal, action=action, actor=actor, inputs=inputs
                ),
                code_generator=self._generate_code,
            )
        except TransitionError as exc:
            logger.info(
                "workflow.rejected",
                extra={
                    "extra_fields": {
                        "proposal_id": proposal.proposal_id,
                        "action": action,
                        "actor_id": actor.id,
                        "status": proposal.status,
                        "error_code": exc.code,
                    }
                },
            )
            raise

    def _resolve_inputs(
        self,
        *,
        proposal: ProposalRecord,
        action: str,
        actor: WorkflowUser,
        inputs: ActionInputs,
    ) -> TransitionInputs:
        manager: Optional[WorkflowUser] = None
        descriptor = find_legal_action(proposal.status, actor.role, action)
        if descriptor is not None and descriptor.requires_manager_selection and inputs.manager_id:
            manager = self._users.get_user(user_id=inputs.manager_id)
        return TransitionInputs(
            comment=inputs.comment,
            manager=manager,
            client_email=inputs.client_email,
        )

    def _generate_code(self, now: datetime) -> str:
        return generate_proposal_code(now, prefix=self._proposal_code_prefix)

    def _validate_expected_status(
        self,
        current_status: ProposalStatus,
        expected_status: Optional[ProposalStatus],
    ) -> None:
        if expected_status is None and self._require_expected_status:
            raise WorkflowConflictError("expected_status is required")
        if expected_status is not None and expected_status != current_status:
            raise WorkflowConflictError("expected_status mismatch")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)
