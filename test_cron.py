from datetime import date

import pytest

from conftest import TODAY
from portal.database import atomic
from portal.exceptions import CapacityExceededError, ConflictError
from portal.models import Application, PostMaster
from portal.services import scheduler as scheduler_module
from portal.services.cron_service import CRON_ACTOR, claim_position


def test_close_expired_posts_is_idempotent(db, services, make_post):
    expired = make_post("Constable", closing_date=date(2025, 5, 31))
    closes_today = make_post("Clerk", closing_date=TODAY)
    open_ended = make_post("Driver")

    assert services.cron.close_expired_posts(db, today=TODAY) == 1
    assert services.cron.close_expired_posts(db, today=TODAY) == 0

    expired = db.get(PostMaster, expired.id)
    assert expired.is_closed is True
    assert expired.is_active is False
    assert expired.closed_by == CRON_ACTOR
    assert expired.closed_at is not None
    assert db.get(PostMaster, closes_today.id).is_closed is False
    assert db.get(PostMaster, open_ended.id).is_closed is False


def test_run_scheduled_tasks_reports_closed_posts(db, services, make_post):
    make_post(closing_date=date(2025, 1, 1))

    result = services.cron.run_scheduled_tasks(db, today=TODAY)

    assert result["closed_posts"] == 1
    assert "ran_at" in result


def test_claim_position_refuses_a_full_post(db, make_post):
    post = make_post(total_positions=1)

    with atomic(db):
        claimed = claim_position(db, post.id, "ADMIN_1")
    assert claimed.filled_positions == 1
    assert claimed.is_closed is True

    with pytest.raises(CapacityExceededError) as excinfo:
        with atomic(db):
            claim_position(db, post.id, "ADMIN_1")
    assert excinfo.value.errors["filled_positions"] == 1


def test_claim_position_refuses_a_closed_post_with_room(db, make_post):
    post = make_post(total_positions=3, is_closed=True)

    with pytest.raises(ConflictError) as excinfo:
        with atomic(db):
            claim_position(db, post.id, "ADMIN_1")

    assert excinfo.value.status_code == 400
    assert db.get(PostMaster, post.id).filled_positions == 0


def test_mark_as_selected(db, services, masters, make_applicant, make_post, add_application):
    admin_id = masters["admin"].id
    applicant = make_applicant()
    post = make_post(total_positions=2)
    application = add_application(applicant, post, status="PROVISIONAL_SELECTED")
    other = add_application(applicant, make_post("Clerk"))

    result = services.cron.mark_as_selected(db, application.id, admin_id)

    assert result["status"] == "SELECTED"
    assert result["filled_positions"] == 1
    assert result["post_closed"] is False
    assert result["auto_rejected"] == 1
    assert db.get(Application, other.id).status == "SELECTED_IN_OTHER_POST"

    with pytest.raises(ConflictError) as excinfo:
        services.cron.mark_as_selected(db, application.id, admin_id)
    assert excinfo.value.message == "Application is already selected"
    assert db.get(PostMaster, post.id).filled_positions == 1


def test_mark_as_selected_follows_the_transition_table(db, services, masters, make_applicant, make_post,
                                                       add_application):
    application = add_application(make_applicant(), make_post())

    with pytest.raises(ConflictError) as excinfo:
        services.cron.mark_as_selected(db, application.id, masters["admin"].id)

    assert excinfo.value.errors["current_status"] == "ELIGIBLE"
    assert db.get(Application, application.id).status == "ELIGIBLE"


def test_mark_as_selected_on_closed_post(db, services, masters, make_applicant, make_post, add_application):
    post = make_post(total_positions=2, is_closed=True)
    application = add_application(make_applicant(), post, status="PROVISIONAL_SELECTED")

    with pytest.raises(ConflictError) as excinfo:
        services.cron.mark_as_selected(db, application.id, masters["admin"].id)

    assert excinfo.value.message == "Post is closed for selection"
    assert db.get(Application, application.id).status == "PROVISIONAL_SELECTED"


def test_check_application_limit_uses_configured_limits(db, services, make_applicant, make_post,
                                                        add_application):
    applicant = make_applicant()
    add_application(applicant, make_post("Constable"))
    add_application(applicant, make_post("Clerk"))

    result = services.cron.check_application_limit(db, applicant.id, make_post("Driver").id)

    assert result["allowed"] is False
    assert result["reason"] == "POST_NAME_LIMIT_REACHED"
    assert result["details"]["max_distinct_post_names"] == 2


def test_scheduler_does_not_start_when_disabled(monkeypatch):
    monkeypatch.setattr(scheduler_module.settings, "CRON_ENABLED", False)

    assert scheduler_module.start_scheduler() is False
    assert scheduler_module.scheduler.running is False
