from typing import Annotated, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Path, Query, status

from src.api.dependencies import get_current_actor
from src.api.routers.runtime_utils import raise_backend_unavailable
from src.api.routers.workflow_config import (
    build_notifier,
    build_store,
    build_users,
    notifications_enabled,
    proposal_code_prefix,
    require_expected_status,
    workflow_store_backend_name,
)
from src.api.routers.workflow_http_errors import raise_workflow_http_exception
from src.core.workflow import (
    ApprovalHistoryResponse,
    AvailableActionsResponse,
    NotificationListResponse,
    ProposalCreateRequest,
    ProposalNotFoundError,
    ProposalRecord,
    ProposalWorkflowService,
    TransitionError,
    WorkflowActionRequest,
    WorkflowConfigResponse,
    WorkflowConflictError,
    WorkflowError,
    WorkflowOutcome,
    WorkflowUser,
    legal_actions,
)
from src.core.workflow.models import ProposalStatus, UserRole

router = APIRouter(tags=["Proposal Approval Workflow"])

_SERVICE: Optional[ProposalWorkflowService] = None
_BACKEND_INIT_ERROR: Optional[str] = None


def get_workflow_service() -> ProposalWorkflowService:
    global _SERVICE
    global _BACKEND_INIT_ERROR
    if _SERVICE is None:
        try:
            store = build_store()
            notifier = build_notifier()
        except RuntimeError as exc:
            _BACKEND_INIT_ERROR = str(exc)
            raise_backend_unavailable(exc, fallback_detail="WORKFLOW_POSTGRES_CONNECTION_FAILED")
        _BACKEND_INIT_ERROR = None
        _SERVICE = ProposalWorkflowService(
            store=store,
            notifier=notifier,
            users=build_users(),
            require_expected_status=require_expected_status(),
            notifications_enabled=notifications_enabled(),
            proposal_code_prefix=proposal_code_prefix(),
        )
    return _SERVICE


def reset_workflow_service_for_tests() -> None:
    global _SERVICE
    global _BACKEND_INIT_ERROR
    _SERVICE = None
    _BACKEND_INIT_ERROR = None


ProposalIdPath = Annotated[
    str,
    Path(description="Proposal identifier.", examples=["pp_001"]),
]


@router.post(
    "/proposals",
    response_model=ProposalRecord,
    status_code=status.HTTP_201_CREATED,
    summary="Create Draft Proposal",
    description="Creates a proposal in draft status authored by the acting user.",
)
def create_proposal(
    payload: ProposalCreateRequest,
    actor: Annotated[WorkflowUser, Depends(get_current_actor)],
    service: Annotated[ProposalWorkflowService, Depends(get_workflow_service)],
) -> ProposalRecord:
    return service.create_proposal(title=payload.title, author=actor)


@router.get(
    "/proposals/{proposal_id}",
    response_model=ProposalRecord,
    status_code=status.HTTP_200_OK,
    summary="Get Proposal",
    description="Returns the stored proposal including status, code and approval history.",
)
def get_proposal(
    proposal_id: ProposalIdPath,
    service: Annotated[ProposalWorkflowService, Depends(get_workflow_service)],
) -> ProposalRecord:
    try:
        return service.get_proposal(proposal_id=proposal_id)
    except ProposalNotFoundError as exc:
        raise_workflow_http_exception(exc)


@router.get(
    "/proposals/{proposal_id}/actions",
    response_model=AvailableActionsResponse,
    status_code=status.HTTP_200_OK,
    summary="List Available Actions",
    description=(
        "Returns the actions the acting user may take on the proposal in its current status. "
        "An empty list means the proposal is read-only for this user."
    ),
)
def get_available_actions(
    proposal_id: ProposalIdPath,
    actor: Annotated[WorkflowUser, Depends(get_current_actor)],
    service: Annotated[ProposalWorkflowService, Depends(get_workflow_service)],
) -> AvailableActionsResponse:
    try:
        proposal = service.get_proposal(proposal_id=proposal_id)
    except ProposalNotFoundError as exc:
        raise_workflow_http_exception(exc)
    return AvailableActionsResponse(
        status=proposal.status,
        role=actor.role,
        actions=service.legal_actions(status=proposal.status, actor=actor),
    )


@router.post(
    "/proposals/{proposal_id}/actions/{action}",
    response_model=WorkflowOutcome,
    status_code=status.HTTP_200_OK,
    summary="Execute Workflow Action",
    description=(
        "Validates and applies one workflow action, appends the audit record, "
        "and dispatches notifications to the affected users."
    ),
)
def execute_action(
    proposal_id: ProposalIdPath,
    action: Annotated[
        str,
        Path(description="Workflow action name.", examples=["submit_to_manager"]),
    ],
    actor: Annotated[WorkflowUser, Depends(get_current_actor)],
    service: Annotated[ProposalWorkflowService, Depends(get_workflow_service)],
    payload: Annotated[
        Optional[WorkflowActionRequest],
        Body(description="Action inputs; may be omitted for actions that take none."),
    ] = None,
) -> WorkflowOutcome:
    if payload is None:
        payload = WorkflowActionRequest()
    try:
        return service.execute(
            proposal_id=proposal_id,
            action=action,
            actor=actor,
            inputs=payload,
            expected_status=payload.expected_status,
        )
    except (ProposalNotFoundError, TransitionError, WorkflowConflictError) as exc:
        raise_workflow_http_exception(exc)


@router.get(
    "/proposals/{proposal_id}/approval-history",
    response_model=ApprovalHistoryResponse,
    status_code=status.HTTP_200_OK,
    summary="Get Approval History",
    description="Returns the ordered audit trail of workflow actions for the proposal.",
)
def get_approval_history(
    proposal_id: ProposalIdPath,
    service: Annotated[ProposalWorkflowService, Depends(get_workflow_service)],
) -> ApprovalHistoryResponse:
    try:
        return service.get_approval_history(proposal_id=proposal_id)
    except WorkflowError as exc:
        raise_workflow_http_exception(exc)


@router.get(
    "/workflow/actions",
    response_model=AvailableActionsResponse,
    status_code=status.HTTP_200_OK,
    summary="Resolve Legal Actions",
    description="Resolves the legal actions for a status and role pair without a stored proposal.",
)
def resolve_legal_actions(
    status_value: Annotated[
        ProposalStatus,
        Query(alias="status", description="Proposal status.", examples=["pending_manager"]),
    ],
    role: Annotated[
        UserRole,
        Query(description="User role.", examples=["manager"]),
    ],
) -> AvailableActionsResponse:
    return AvailableActionsResponse(
        status=status_value,
        role=role,
        actions=legal_actions(status_value, role),
    )


@router.get(
    "/notifications",
    response_model=NotificationListResponse,
    status_code=status.HTTP_200_OK,
    summary="List Notifications",
    description="Returns notifications for one recipient, newest first.",
)
def list_notifications(
    recipient_id: Annotated[
        str,
        Query(description="Recipient user id.", examples=["usr_manager_1"]),
    ],
    service: Annotated[ProposalWorkflowService, Depends(get_workflow_service)],
) -> NotificationListResponse:
    return NotificationListResponse(
        recipient_id=recipient_id,
        items=service.list_notifications(recipient_id=recipient_id),
    )


@router.get(
    "/workflow/config",
    response_model=WorkflowConfigResponse,
    status_code=status.HTTP_200_OK,
    summary="Get Workflow Configuration",
    description="Returns effective workflow runtime configuration and store readiness.",
)
def get_workflow_config() -> WorkflowConfigResponse:
    backend_ready = True
    try:
        get_workflow_service()
    except HTTPException:
        backend_ready = False
    return WorkflowConfigResponse(
        store_backend=workflow_store_backend_name(),
        backend_ready=backend_ready,
        backend_init_error=_BACKEND_INIT_ERROR if not backend_ready else None,
        require_expected_status=require_expected_status(),
        notifications_enabled=notifications_enabled(),
        proposal_code_prefix=proposal_code_prefix(),
    )
