import re

import pytest

from src.core.workflow import (
    ActionNotPermittedError,
    HistoryIntegrityError,
    InvalidClientEmailError,
    InvalidManagerError,
    MissingCommentError,
    TransitionInputs,
    apply_transition,
    replay_status,
)
from src.core.workflow.transitions import generate_proposal_code, is_valid_email
from tests.factories import FIXED_NOW, audit_record, proposal, user


def _fixed_code(_now):
    return "BI-2603-0042"


def test_submit_to_manager_assigns_code_and_records_selected_manager():
    draft = proposal(status="draft")

    result = apply_transition(
        proposal=draft,
        action="submit_to_manager",
        actor=user("usr_researcher_1"),
        inputs=TransitionInputs(manager=user("usr_manager_1")),
        now=FIXED_NOW,
        code_generator=_fixed_code,
    )

    assert result.new_status == "pending_manager"
    assert result.patch.status == "pending_manager"
    assert result.patch.code == "BI-2603-0042"
    assert result.patch.updated_at == FIXED_NOW
    assert result.audit_record.action == "submitted_to_manager"
    assert result.audit_record.to.id == "usr_manager_1"
    assert result.audit_record.previous_status == "draft"
    assert result.audit_record.timestamp == FIXED_NOW
    assert re.fullmatch(r"par_[0-9a-f]{12}", result.audit_record.id)


def test_resubmission_keeps_existing_code():
    revised = proposal(status="revisions_needed", code="BI-2601-0001")

    result = apply_transition(
        proposal=revised,
        action="submit_to_manager",
        actor=user("usr_researcher_1"),
        inputs=TransitionInputs(manager=user("usr_manager_2")),
        code_generator=_fixed_code,
    )

    assert result.patch.code is None
    assert result.audit_record.to.id == "usr_manager_2"


def test_apply_transition_does_not_mutate_input_proposal():
    draft = proposal(status="draft")
    snapshot = draft.model_dump()

    apply_transition(
        proposal=draft,
        action="submit_to_manager",
        actor=user("usr_researcher_1"),
        inputs=TransitionInputs(manager=user("usr_manager_1")),
    )

    assert draft.model_dump() == snapshot


def test_permission_check_runs_before_input_validation():
    pending = proposal(status="pending_manager")

    with pytest.raises(ActionNotPermittedError) as exc:
        apply_transition(
            proposal=pending,
            action="manager_reject",
            actor=user("usr_researcher_1"),
            inputs=TransitionInputs(),
        )
    assert str(exc.value).startswith("ACTION_NOT_PERMITTED")


def test_unknown_action_is_not_permitted():
    with pytest.raises(ActionNotPermittedError):
        apply_transition(
            proposal=proposal(status="draft"),
            action="archive",
            actor=user("usr_admin_1"),
            inputs=TransitionInputs(),
        )


def test_viewer_cannot_act_in_any_status():
    with pytest.raises(ActionNotPermittedError):
        apply_transition(
            proposal=proposal(status="pending_client"),
            action="client_approve",
            actor=user("usr_viewer_1"),
            inputs=TransitionInputs(),
        )


@pytest.mark.parametrize("comment", [None, "", "   \n\t"])
def test_blank_comment_is_rejected_when_required(comment):
    with pytest.raises(MissingCommentError) as exc:
        apply_transition(
            proposal=proposal(status="pending_manager"),
            action="manager_reject",
            actor=user("usr_manager_1"),
            inputs=TransitionInputs(comment=comment),
        )
    assert str(exc.value) == "COMMENT_REQUIRED: manager_reject"


def test_comment_is_trimmed_on_audit_record():
    result = apply_transition(
        proposal=proposal(status="pending_manager"),
        action="request_revision",
        actor=user("usr_manager_1"),
        inputs=TransitionInputs(comment="  tighten the sample plan  "),
    )

    assert result.new_status == "revisions_needed"
    assert result.audit_record.comment == "tighten the sample plan"


def test_missing_manager_is_rejected():
    with pytest.raises(InvalidManagerError):
        apply_transition(
            proposal=proposal(status="draft"),
            action="submit_to_manager",
            actor=user("usr_researcher_1"),
            inputs=TransitionInputs(),
        )


def test_non_privileged_manager_selection_is_rejected():
    with pytest.raises(InvalidManagerError) as exc:
        apply_transition(
            proposal=proposal(status="draft"),
            action="submit_to_manager",
            actor=user("usr_researcher_1"),
            inputs=TransitionInputs(manager=user("usr_viewer_1")),
        )
    assert "usr_viewer_1" in str(exc.value)


@pytest.mark.parametrize("email", [None, "", "client", "client@", "a b@example.com"])
def test_invalid_client_email_is_rejected(email):
    with pytest.raises(InvalidClientEmailError):
        apply_transition(
            proposal=proposal(status="manager_approved"),
            action="submit_to_client",
            actor=user("usr_researcher_1"),
            inputs=TransitionInputs(client_email=email),
        )


def test_submit_to_client_marks_sent_once():
    first = apply_transition(
        proposal=proposal(status="manager_approved"),
        action="submit_to_client",
        actor=user("usr_researcher_1"),
        inputs=TransitionInputs(client_email=" buyer@example.com "),
    )
    again = apply_transition(
        proposal=proposal(status="manager_approved", sent_to_client=True),
        action="submit_to_client",
        actor=user("usr_researcher_1"),
        inputs=TransitionInputs(client_email="buyer@example.com"),
    )

    assert first.new_status == "pending_client"
    assert first.patch.sent_to_client is True
    assert first.audit_record.client_email == "buyer@example.com"
    assert again.patch.sent_to_client is None


def test_reopen_defaults_comment_to_previous_status():
    result = apply_transition(
        proposal=proposal(status="client_rejected"),
        action="reopen",
        actor=user("usr_researcher_1"),
        inputs=TransitionInputs(),
    )

    assert result.new_status == "draft"
    assert result.audit_record.action == "reopened"
    assert result.audit_record.comment == "Reopened from client_rejected"


def test_reopen_keeps_supplied_comment():
    result = apply_transition(
        proposal=proposal(status="on_hold"),
        action="reopen",
        actor=user("usr_manager_1"),
        inputs=TransitionInputs(comment="budget confirmed"),
    )

    assert result.audit_record.comment == "budget confirmed"


def test_terminal_status_rejects_every_action():
    with pytest.raises(ActionNotPermittedError):
        apply_transition(
            proposal=proposal(status="client_approved"),
            action="reopen",
            actor=user("usr_admin_1"),
            inputs=TransitionInputs(),
        )


def test_replay_status_folds_history_from_draft():
    history = [
        audit_record(action="submitted_to_manager", previous_status="draft"),
        audit_record(action="manager_approved", previous_status="pending_manager"),
        audit_record(action="submitted_to_client", previous_status="manager_approved"),
        audit_record(action="client_rejected", previous_status="pending_client"),
        audit_record(action="reopened", previous_status="client_rejected"),
    ]

    assert replay_status([]) == "draft"
    assert replay_status(history) == "draft"
    assert replay_status(history[:3]) == "pending_client"


def test_replay_status_detects_broken_chain():
    history = [
        audit_record(action="submitted_to_manager", previous_status="draft"),
        audit_record(action="client_approved", previous_status="pending_client"),
    ]

    with pytest.raises(HistoryIntegrityError) as exc:
        replay_status(history)
    assert str(exc.value).startswith("HISTORY_INTEGRITY_VIOLATION")


def test_generate_proposal_code_format():
    code = generate_proposal_code(FIXED_NOW, prefix="BI")

    assert re.fullmatch(r"BI-2603-\d{4}", code)
    assert generate_proposal_code(FIXED_NOW, prefix="RX").startswith("RX-2603-")


def test_is_valid_email():
    assert is_valid_email("client@example.com")
    assert is_valid_email(" client@example.co.uk ")
    assert not is_valid_email("client@example")
    assert not is_valid_email(None)
