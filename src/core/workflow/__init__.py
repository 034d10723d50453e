from src.core.workflow.errors import (
    ActionNotPermittedError,
    HistoryIntegrityError,
    InvalidClientEmailError,
    InvalidManagerError,
    MissingCommentError,
    ProposalCodeConflictError,
    ProposalNotFoundError,
    ProposalStoreConflictError,
    TransitionError,
    WorkflowConflictError,
    WorkflowError,
)
from src.core.workflow.models import (
    ActionDescriptor,
    ActionInputs,
    ApprovalHistoryResponse,
    AuditRecord,
    AvailableActionsResponse,
    Notification,
    NotificationListResponse,
    ProposalCreateRequest,
    ProposalPatch,
    ProposalRecord,
    TransitionInputs,
    TransitionResult,
    WorkflowActionRequest,
    WorkflowConfigResponse,
    WorkflowOutcome,
    WorkflowUser,
)
from src.core.workflow.permissions import legal_actions
from src.core.workflow.repository import NotificationEmitter, ProposalStore, UserDirectory
from src.core.workflow.service import ProposalWorkflowService
from src.core.workflow.transitions import apply_transition, replay_status

__all__ = [
    "ActionDescriptor",
    "ActionInputs",
    "ActionNotPermittedError",
    "ApprovalHistoryResponse",
    "AuditRecord",
    "AvailableActionsResponse",
    "HistoryIntegrityError",
    "InvalidClientEmailError",
    "InvalidManagerError",
    "MissingCommentError",
    "Notification",
    "NotificationEmitter",
    "NotificationListResponse",
    "ProposalCodeConflictError",
    "ProposalCreateRequest",
    "ProposalNotFoundError",
    "ProposalPatch",
    "ProposalRecord",
    "ProposalStore",
    "ProposalStoreConflictError",
    "ProposalWorkflowService",
    "TransitionError",
    "TransitionInputs",
    "TransitionResult",
    "UserDirectory",
    "WorkflowActionRequest",
    "WorkflowConfigResponse",
    "WorkflowConflictError",
    "WorkflowError",
    "WorkflowOutcome",
    "WorkflowUser",
    "apply_transition",
    "legal_actions",
    "replay_status",
]
