"""
Role-gated permission table for the proposal approval workflow.

Each action is gated either to privileged roles (manager, admin) or to any
contributor (every role except viewer). Privileged roles are contributors too,
so they see contributor actions as well. Viewers never receive actions.
"""

from typing import Literal

from src.core.workflow.models import (
    ActionDescriptor,
    ProposalStatus,
    UserRole,
    WorkflowActionName,
)

ActionGate = Literal["PRIVILEGED", "CONTRIBUTOR"]

PRIVILEGED_ROLES: frozenset[UserRole] = frozenset({"manager", "admin"})
READ_ONLY_ROLES: frozenset[UserRole] = frozenset({"viewer"})

ACTION_TARGET_STATUS: dict[WorkflowActionName, ProposalStatus] = {
    "submit_to_manager": "pending_manager",
    "manager_approve": "manager_approved",
    "manager_reject": "manager_rejected",
    "request_revision": "revisions_needed",
    "put_on_hold": "on_hold",
    "submit_to_client": "pending_client",
    "client_approve": "client_approved",
    "client_reject": "client_rejected",
    "reopen": "draft",
}


def _descriptor(
    action: WorkflowActionName,
    label: str,
    description: str,
    *,
    requires_comment: bool = False,
    requires_manager_selection: bool = False,
    requires_client_email: bool = False,
) -> ActionDescriptor:
    return ActionDescriptor(
        action=action,
        label=label,
        description=description,
        target_status=ACTION_TARGET_STATUS[action],
        requires_comment=requires_comment,
        requires_manager_selection=requires_manager_selection,
        requires_client_email=requires_client_email,
    )


_SUBMIT_TO_MANAGER = _descriptor(
    "submit_to_manager",
    "Submit to Manager",
    "Send for manager approval",
    requires_manager_selection=True,
)
_REOPEN = _descriptor("reopen", "Reopen as Draft", "Return to draft for editing")

# Ordered per status; order is the presentation order.
PERMISSION_TABLE: dict[ProposalStatus, tuple[tuple[ActionGate, ActionDescriptor], ...]] = {
    "draft": (("CONTRIBUTOR", _SUBMIT_TO_MANAGER),),
    "revisions_needed": (("CONTRIBUTOR", _SUBMIT_TO_MANAGER),),
    "pending_manager": (
        ("PRIVILEGED", _descriptor("manager_approve", "Approve", "Approve this proposal")),
        (
            "PRIVILEGED",
            _descriptor(
                "manager_reject", "Reject", "Reject with feedback", requires_comment=True
            ),
        ),
        (
            "PRIVILEGED",
            _descriptor(
                "request_revision",
                "Request Revision",
                "Request changes from author",
                requires_comment=True,
            ),
        ),
        (
            "PRIVILEGED",
            _descriptor(
                "put_on_hold",
                "Put on Hold",
                "Pause the approval process",
                requires_comment=True,
            ),
        ),
    ),
    "manager_approved": (
        (
            "CONTRIBUTOR",
            _descriptor(
                "submit_to_client",
                "Send to Client",
                "Submit for client approval",
                requires_client_email=True,
            ),
        ),
        (
            "PRIVILEGED",
            _descriptor(
                "put_on_hold",
                "Put on Hold",
                "Pause before sending to client",
                requires_comment=True,
            ),
        ),
    ),
    # Recorded by an internal user on behalf of the client.
    "pending_client": (
        (
            "CONTRIBUTOR",
            _descriptor("client_approve", "Client Approved", "Mark as approved by client"),
        ),
        (
            "CONTRIBUTOR",
            _descriptor(
                "client_reject",
                "Client Rejected",
                "Mark as rejected by client",
                requires_comment=True,
            ),
        ),
    ),
    "manager_rejected": (("CONTRIBUTOR", _REOPEN),),
    "client_rejected": (("CONTRIBUTOR", _REOPEN),),
    "on_hold": (("CONTRIBUTOR", _REOPEN),),
    "client_approved": (),
    "deleted": (),
}

TERMINAL_STATUSES: frozenset[ProposalStatus] = frozenset(
    status for status, entries in PERMISSION_TABLE.items() if not entries
)


def is_privileged(role: UserRole) -> bool:
    return role in PRIVILEGED_ROLES


def role_passes_gate(role: UserRole, gate: ActionGate) -> bool:
    if role in READ_ONLY_ROLES:
        return False
    if gate == "PRIVILEGED":
        return is_privileged(role)
    return True


def legal_actions(status: ProposalStatus, role: UserRole) -> list[ActionDescriptor]:
    """Return the ordered actions ``role`` may take on a proposal in ``status``.

    An empty list means the proposal is read-only for that role; it is not an error.
    """
    return [
        descriptor.model_copy()
        for gate, descriptor in PERMISSION_TABLE.get(status, ())
        if role_passes_gate(role, gate)
    ]


def find_legal_action(
    status: ProposalStatus, role: UserRole, action: str
) -> ActionDescriptor | None:
    for descriptor in legal_actions(status, role):
        if descriptor.action == action:
            return descriptor
    return None
