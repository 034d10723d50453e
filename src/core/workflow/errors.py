from typing import Optional


class WorkflowError(Exception):
    code = "WORKFLOW_ERROR"

    def __init__(self, detail: Optional[str] = None) -> None:
        self.detail = detail
        super().__init__(f"{self.code}: {detail}" if detail else self.code)


class ProposalNotFoundError(WorkflowError):
    code = "PROPOSAL_NOT_FOUND"


class WorkflowConflictError(WorkflowError):
    code = "STATE_CONFLICT"


class TransitionError(WorkflowError):
    code = "INVALID_TRANSITION"


class ActionNotPermittedError(TransitionError):
    code = "ACTION_NOT_PERMITTED"


class MissingCommentError(TransitionError):
    code = "COMMENT_REQUIRED"


class InvalidManagerError(TransitionError):
    code = "INVALID_MANAGER"


class InvalidClientEmailError(TransitionError):
    code = "INVALID_CLIENT_EMAIL"


class ProposalStoreConflictError(Exception):
    """Raised by stores when the expected version no longer matches."""

    def __init__(self, *, proposal_id: str, expected_version: int, actual_version: int) -> None:
        self.proposal_id = proposal_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"PROPOSAL_VERSION_CONFLICT: {proposal_id} expected={expected_version} "
            f"actual={actual_version}"
        )


class HistoryIntegrityError(WorkflowError):
    code = "HISTORY_INTEGRITY_VIOLATION"


class ProposalCodeConflictError(Exception):
    """Raised by stores when a newly assigned proposal code is already taken."""

    def __init__(self, *, proposal_id: str, code: str) -> None:
        self.proposal_id = proposal_id
        self.code = code
        super().__init__(f"PROPOSAL_CODE_CONFLICT: {proposal_id} code={code}")
