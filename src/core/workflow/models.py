from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

ProposalStatus = Literal[
    "draft",
    "pending_manager",
    "manager_approved",
    "manager_rejected",
    "pending_client",
    "client_approved",
    "client_rejected",
    "on_hold",
    "revisions_needed",
    "deleted",
]

WorkflowActionName = Literal[
    "submit_to_manager",
    "manager_approve",
    "manager_reject",
    "request_revision",
    "put_on_hold",
    "submit_to_client",
    "client_approve",
    "client_reject",
    "reopen",
]

ApprovalAction = Literal[
    "submitted_to_manager",
    "manager_approved",
    "manager_rejected",
    "submitted_to_client",
    "client_approved",
    "client_rejected",
    "put_on_hold",
    "revision_requested",
    "reopened",
]

NotificationType = Literal[
    "submitted_to_manager",
    "manager_approved",
    "manager_rejected",
    "submitted_to_client",
    "client_approved",
    "client_rejected",
    "put_on_hold",
    "revision_requested",
]

UserRole = Literal["admin", "manager", "researcher", "viewer"]


class WorkflowUser(BaseModel):
    id: str = Field(description="User identifier.", examples=["usr_researcher_1"])
    role: UserRole = Field(description="Global user role.", examples=["researcher"])
    name: Optional[str] = Field(
        default=None, description="Display name.", examples=["Dana Researcher"]
    )
    email: Optional[str] = Field(
        default=None, description="Contact email.", examples=["dana@example.com"]
    )


class ActionDescriptor(BaseModel):
    action: WorkflowActionName = Field(
        description="Workflow action key.", examples=["submit_to_manager"]
    )
    label: str = Field(description="Button label for presentation layers.", examples=["Approve"])
    description: str = Field(
        description="Short description of the action effect.",
        examples=["Send for manager approval"],
    )
    target_status: ProposalStatus = Field(
        description="Status the proposal holds after the action succeeds.",
        examples=["pending_manager"],
    )
    requires_comment: bool = Field(
        default=False, description="Non-blank comment is mandatory.", examples=[True]
    )
    requires_manager_selection: bool = Field(
        default=False, description="A manager or admin must be selected.", examples=[True]
    )
    requires_client_email: bool = Field(
        default=False, description="A client email address is mandatory.", examples=[False]
    )


class ActionInputs(BaseModel):
    comment: Optional[str] = Field(
        default=None,
        description="Free-text comment recorded in the audit trail.",
        examples=["Budget section needs a second pass."],
    )
    manager_id: Optional[str] = Field(
        default=None,
        description="Manager selected as approver for submit_to_manager.",
        examples=["usr_manager_1"],
    )
    client_email: Optional[str] = Field(
        default=None,
        description="Client contact for submit_to_client.",
        examples=["buyer@client.com"],
    )


class TransitionInputs(BaseModel):
    comment: Optional[str] = None
    manager: Optional[WorkflowUser] = None
    client_email: Optional[str] = None


class AuditRecord(BaseModel):
    model_config = {"frozen": True}

    id: str = Field(description="Audit record identifier.", examples=["par_001"])
    action: ApprovalAction = Field(description="Recorded approval action.", examples=["reopened"])
    by: WorkflowUser = Field(description="Actor who performed the action.")
    to: Optional[WorkflowUser] = Field(
        default=None, description="Counterpart user the action was directed at."
    )
    comment: Optional[str] = Field(
        default=None, description="Comment captured with the action.", examples=["LGTM"]
    )
    client_email: Optional[str] = Field(
        default=None,
        description="Client contact the proposal was sent to (submitted_to_client only).",
        examples=["buyer@client.com"],
    )
    timestamp: datetime = Field(
        description="UTC time the transition was computed.",
        examples=["2026-10-18T09:00:00+00:00"],
    )
    previous_status: ProposalStatus = Field(
        description="Status held immediately before this record was appended.",
        examples=["draft"],
    )


class ProposalRecord(BaseModel):
    proposal_id: str = Field(description="Proposal identifier.", examples=["pp_001"])
    code: Optional[str] = Field(
        default=None,
        description="Human-readable reference, assigned on first manager submission.",
        examples=["BI-2610-0042"],
    )
    title: str = Field(description="Proposal title snapshot.", examples=["Q3 brand tracker"])
    status: ProposalStatus = Field(description="Current workflow status.", examples=["draft"])
    author: WorkflowUser = Field(description="Proposal owner.")
    approval_history: List[AuditRecord] = Field(
        default_factory=list, description="Append-only audit trail ordered by occurrence."
    )
    sent_to_client: bool = Field(
        default=False, description="True once the proposal has been sent to a client."
    )
    created_at: datetime = Field(description="Creation timestamp.")
    updated_at: datetime = Field(description="Last mutation timestamp.")
    version: int = Field(default=1, description="Optimistic concurrency version.", examples=[1])


class ProposalPatch(BaseModel):
    status: ProposalStatus
    updated_at: datetime
    code: Optional[str] = None
    sent_to_client: Optional[bool] = None


class TransitionResult(BaseModel):
    new_status: ProposalStatus
    audit_record: AuditRecord
    patch: ProposalPatch


class Notification(BaseModel):
    id: str = Field(description="Notification identifier.", examples=["pnt_001"])
    recipient_id: str = Field(description="Recipient user id.", examples=["usr_manager_1"])
    type: NotificationType = Field(description="Notification type.", examples=["manager_approved"])
    title: str = Field(description="Notification title.", examples=["Proposal Approved by Manager"])
    message: str = Field(description="Notification body.")
    proposal_id: str = Field(description="Proposal the notification refers to.")
    proposal_title: str = Field(description="Proposal title at notification time.")
    from_user: WorkflowUser = Field(description="Actor who triggered the notification.")
    read: bool = Field(default=False, description="Read flag, owned by the notification store.")
    created_at: datetime = Field(description="Creation timestamp.")


class WorkflowOutcome(BaseModel):
    proposal_id: str = Field(description="Proposal identifier.", examples=["pp_001"])
    new_status: ProposalStatus = Field(description="Status after the transition.")
    audit_record: AuditRecord = Field(description="Audit record appended by the transition.")
    code: Optional[str] = Field(default=None, description="Proposal code after the transition.")
    version: int = Field(description="Stored proposal version after the transition.")
    notifications: List[Notification] = Field(
        default_factory=list, description="Notifications emitted for this transition."
    )


class ProposalCreateRequest(BaseModel):
    title: str = Field(
        min_length=1, description="Proposal title.", examples=["Q3 brand tracker"]
    )


class WorkflowActionRequest(ActionInputs):
    expected_status: Optional[ProposalStatus] = Field(
        default=None,
        description="Optimistic concurrency check against the current proposal status.",
        examples=["pending_manager"],
    )


class ApprovalHistoryResponse(BaseModel):
    proposal_id: str = Field(description="Proposal identifier.", examples=["pp_001"])
    status: ProposalStatus = Field(description="Current status at retrieval time.")
    records: List[AuditRecord] = Field(
        default_factory=list, description="Audit trail ordered by occurrence."
    )


class AvailableActionsResponse(BaseModel):
    status: ProposalStatus = Field(description="Status the actions were resolved for.")
    role: UserRole = Field(description="Role the actions were resolved for.")
    actions: List[ActionDescriptor] = Field(
        default_factory=list,
        description="Legal actions; empty means read-only.",
    )


class NotificationListResponse(BaseModel):
    recipient_id: str = Field(description="Recipient user id.")
    items: List[Notification] = Field(default_factory=list)


class WorkflowConfigResponse(BaseModel):
    store_backend: str = Field(description="Configured proposal store backend.")
    backend_ready: bool = Field(description="Whether the store initialised successfully.")
    backend_init_error: Optional[str] = Field(
        default=None, description="Stable initialisation error code when not ready."
    )
    require_expected_status: bool
    notifications_enabled: bool
    proposal_code_prefix: str
