import pytest

from portal.constants import (
    ApplicationStatus, TERMINAL_STATUSES, TRANSITIONS, canonicalize_status, is_valid_transition,
)
from portal.exceptions import ConflictError, ValidationError
from portal.models import Application, ApplicationStageHistory, ApplicationStatusHistory
from portal.services import workflow_service as workflow


@pytest.mark.parametrize("raw, expected", [
    ("on-hold", ApplicationStatus.ON_HOLD),
    ("On Hold", ApplicationStatus.ON_HOLD),
    ("HOLD", ApplicationStatus.ON_HOLD),
    ("onhold", ApplicationStatus.ON_HOLD),
    (" eligible ", ApplicationStatus.ELIGIBLE),
    ("not-eligible", ApplicationStatus.NOT_ELIGIBLE),
    ("NOTELIGIBLE", ApplicationStatus.NOT_ELIGIBLE),
    ("reject", ApplicationStatus.REJECTED),
    ("select", ApplicationStatus.SELECTED),
    ("provisionally selected", ApplicationStatus.PROVISIONAL_SELECTED),
    (ApplicationStatus.WITHDRAWN, ApplicationStatus.WITHDRAWN),
])
def test_canonicalize_status(raw, expected):
    assert canonicalize_status(raw) is expected


def test_canonicalize_status_empty_and_unknown():
    assert canonicalize_status(None) is None
    assert canonicalize_status("  ") is None
    with pytest.raises(ValueError):
        canonicalize_status("approved")


def test_transition_table():
    assert is_valid_transition("DRAFT", "SUBMITTED")
    assert is_valid_transition(ApplicationStatus.ON_HOLD, ApplicationStatus.ELIGIBLE)
    assert not is_valid_transition("ELIGIBLE", "SELECTED")
    assert not is_valid_transition("NOT_ELIGIBLE", "ELIGIBLE")
    assert is_valid_transition("ELIGIBLE", "WITHDRAWN")
    assert not is_valid_transition("ON_HOLD", "WITHDRAWN")
    assert set(TRANSITIONS) == set(ApplicationStatus)
    for status in TERMINAL_STATUSES:
        assert TRANSITIONS[status] == frozenset()


def test_invalid_transition_names_both_statuses(db, masters, make_applicant, make_post, add_application):
    application = add_application(make_applicant(), make_post(), status="NOT_ELIGIBLE")

    with pytest.raises(ConflictError) as excinfo:
        workflow.change_status(db, application.id, ApplicationStatus.ON_HOLD, masters["admin"].id)

    assert "NOT_ELIGIBLE" in excinfo.value.message
    assert "ON_HOLD" in excinfo.value.message
    assert excinfo.value.errors["allowed"] == ["REJECTED", "SELECTED_IN_OTHER_POST", "WITHDRAWN"]
    assert db.query(ApplicationStatusHistory).count() == 0


def test_terminal_status_cannot_change(db, masters, make_applicant, make_post, add_application):
    application = add_application(make_applicant(), make_post(), status="REJECTED")

    with pytest.raises(ConflictError) as excinfo:
        workflow.change_status(db, application.id, ApplicationStatus.ELIGIBLE, masters["admin"].id)

    assert excinfo.value.message == "Cannot change status of terminal application (REJECTED)"


def test_each_transition_appends_one_history_row(db, masters, make_applicant, make_post, add_application):
    admin_id = masters["admin"].id
    application = add_application(make_applicant(), make_post())

    workflow.admin_change_status(db, application.id, ApplicationStatus.ON_HOLD, admin_id, "Verify address")
    workflow.admin_change_status(db, application.id, ApplicationStatus.ELIGIBLE, admin_id)

    rows = workflow.status_history(db, application.id)
    assert [(r["old_status"], r["new_status"]) for r in rows] == [("ELIGIBLE", "ON_HOLD"), ("ON_HOLD", "ELIGIBLE")]
    assert rows[0]["changed_by"] == admin_id
    assert rows[0]["changed_by_type"] == "ADMIN"
    assert rows[0]["remarks"] == "Verify address"

    stages = db.query(ApplicationStageHistory).filter_by(application_id=application.id).all()
    assert [(s.stage, s.exited_at) for s in stages] == [("ELIGIBLE", None)]


def test_admin_status_targets_are_limited(db, masters, make_applicant, make_post, add_application):
    application = add_application(make_applicant(), make_post(), status="PROVISIONAL_SELECTED")

    with pytest.raises(ValidationError) as excinfo:
        workflow.admin_change_status(db, application.id, ApplicationStatus.SELECTED, masters["admin"].id)

    assert excinfo.value.errors["allowed"] == ["ELIGIBLE", "ON_HOLD", "REJECTED"]
    assert db.get(Application, application.id).status == "PROVISIONAL_SELECTED"


def test_admin_rejection_sets_selection_status(db, masters, make_applicant, make_post, add_application):
    application = add_application(make_applicant(), make_post())

    workflow.admin_change_status(db, application.id, ApplicationStatus.REJECTED, masters["admin"].id, "Duplicate")

    application = db.get(Application, application.id)
    assert application.status == "REJECTED"
    assert application.selection_status == "REJECTED"
    assert application.rejection_reason == "Duplicate"


def test_bulk_change_collects_failures(db, masters, make_applicant, make_post, add_application):
    post = make_post(total_positions=5)
    eligible = add_application(make_applicant(), post)
    withdrawn = add_application(make_applicant(), post, status="WITHDRAWN")

    result = workflow.bulk_change_status(db, [eligible.id, withdrawn.id, 9999], ApplicationStatus.ON_HOLD,
                                         masters["admin"].id)

    assert result["success"] == [eligible.id]
    assert [f["id"] for f in result["failed"]] == [withdrawn.id, 9999]
    assert result["failed"][1]["error"] == "Application not found"
    assert db.get(Application, eligible.id).status == "ON_HOLD"
