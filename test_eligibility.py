from datetime import date

import pytest

from conftest import TODAY
from portal.exceptions import NotFoundError
from portal.services.eligibility_service import (
    ApplicantSnapshot, EducationRecord, ExperienceRecord, PostRequirements, age_on, evaluate, months_of,
)


def snapshot(dob=date(1995, 1, 15), education=None, experience=None):
    return ApplicantSnapshot(
        applicant_id=1,
        dob=dob,
        education=education if education is not None else [EducationRecord("Graduate", 4, 70.0)],
        experience=experience or [],
    )


def test_underage_applicant_fails_age_check():
    verdict = evaluate(snapshot(dob=date(2007, 6, 2)), PostRequirements(min_age=18, max_age=30), TODAY)

    assert verdict.is_eligible is False
    assert verdict.failed_checks == ["Age 17 is below minimum required age of 18"]
    age = verdict.checks[0]
    assert age.criterion == "Age"
    assert age.actual == "17 years"
    assert age.passed is False


def test_birthday_on_evaluation_day_counts_the_completed_year():
    assert age_on(date(2007, 6, 1), TODAY) == 18
    assert age_on(date(2007, 6, 2), TODAY) == 17

    verdict = evaluate(snapshot(dob=date(2007, 6, 1)), PostRequirements(min_age=18, max_age=30), TODAY)
    assert verdict.is_eligible is True


def test_overage_message_and_default_bounds():
    verdict = evaluate(snapshot(dob=date(1950, 1, 1)), PostRequirements(), TODAY)

    assert verdict.failed_checks == ["Age 75 exceeds maximum allowed age of 65"]
    assert verdict.checks[0].required == "18 - 65 years"


def test_missing_dob_fails():
    verdict = evaluate(snapshot(dob=None), PostRequirements(), TODAY)

    assert verdict.is_eligible is False
    assert "Date of birth not provided" in verdict.failed_checks


def test_education_below_minimum_names_both_ranks():
    req = PostRequirements(min_rank=4, min_level_name="Graduate")
    verdict = evaluate(snapshot(education=[EducationRecord("HSC", 2)]), req, TODAY)

    assert verdict.failed_checks == ["Education level HSC (rank 2) is below required Graduate (rank 4)"]


def test_education_above_maximum_fails():
    req = PostRequirements(min_rank=1, min_level_name="SSC", max_rank=3, max_level_name="Diploma")
    verdict = evaluate(snapshot(education=[EducationRecord("Post Graduate", 5)]), req, TODAY)

    assert verdict.failed_checks == [
        "Education level Post Graduate (rank 5) exceeds maximum allowed Diploma (rank 3)"
    ]


def test_highest_education_record_is_used():
    req = PostRequirements(min_rank=4, min_level_name="Graduate")
    records = [EducationRecord("SSC", 1), EducationRecord("Graduate", 4), EducationRecord("HSC", 2)]

    assert evaluate(snapshot(education=records), req, TODAY).is_eligible is True


def test_no_education_records():
    with_minimum = evaluate(snapshot(education=[]), PostRequirements(min_rank=2, min_level_name="HSC"), TODAY)
    without_minimum = evaluate(snapshot(education=[]), PostRequirements(), TODAY)

    assert with_minimum.failed_checks == ["No education records found"]
    assert without_minimum.is_eligible is True
    assert without_minimum.checks[1].required == "No minimum education required"


def test_experience_months_from_dates_and_totals():
    current = ExperienceRecord(start_date=date(2023, 1, 1), is_current=True)
    ended = ExperienceRecord(start_date=date(2020, 1, 15), end_date=date(2020, 7, 14))
    recorded = ExperienceRecord(total_months=10)
    backwards = ExperienceRecord(start_date=date(2024, 5, 1), end_date=date(2024, 1, 1))

    assert months_of(current, TODAY) == 29
    assert months_of(ended, TODAY) == 5
    assert months_of(recorded, TODAY) == 10
    assert months_of(backwards, TODAY) == 0


def test_experience_below_minimum():
    req = PostRequirements(min_experience_months=24)
    verdict = evaluate(snapshot(experience=[ExperienceRecord(total_months=10)]), req, TODAY)

    assert verdict.failed_checks == ["Total experience 10 months is below required 24 months"]

    enough = evaluate(snapshot(experience=[ExperienceRecord(start_date=date(2023, 1, 1), is_current=True)]),
                      req, TODAY)
    assert enough.is_eligible is True


def test_zero_experience_requirement_always_passes():
    verdict = evaluate(snapshot(experience=[]), PostRequirements(min_experience_months=0), TODAY)

    assert verdict.checks[2].passed is True
    assert verdict.checks[2].required == "No minimum experience required"


def test_failures_are_joined_in_check_order():
    req = PostRequirements(min_age=18, max_age=30, min_rank=4, min_level_name="Graduate",
                           min_experience_months=12)
    verdict = evaluate(snapshot(dob=date(1980, 1, 1), education=[EducationRecord("SSC", 1)]), req, TODAY)

    assert len(verdict.failed_checks) == 3
    assert verdict.reason == "; ".join(verdict.failed_checks)
    assert verdict.reason.startswith("Age 45 exceeds")


def test_evaluation_is_deterministic():
    req = PostRequirements(min_age=21, max_age=35, min_rank=3, min_level_name="Diploma", min_experience_months=6)
    snap = snapshot(experience=[ExperienceRecord(total_months=8)])

    first = evaluate(snap, req, TODAY).to_dict()
    assert all(evaluate(snap, req, TODAY).to_dict() == first for _ in range(5))


def test_check_eligibility_uses_post_requirements(db, services, make_applicant, make_post):
    applicant = make_applicant(level="HSC")
    post = make_post(min_level="GRAD")

    result = services.eligibility.check_eligibility(db, applicant.id, post.id, today=TODAY)

    assert result["is_eligible"] is False
    assert result["post_code"] == post.post_code
    assert result["component_name"] == "Urban"
    assert result["failed_checks"] == ["Education level HSC (rank 2) is below required Graduate (rank 4)"]


def test_bulk_listing_agrees_with_single_evaluation(db, services, make_applicant, make_post):
    applicant = make_applicant(level="GRAD")
    posts = [
        make_post("Constable", min_level="HSC"),
        make_post("Clerk", min_level="PG"),
        make_post("Driver", max_age=25),
        make_post("Sweeper", max_level="DIP", component=1),
    ]

    listing = services.eligibility.eligible_posts(db, applicant.id, limit=50, today=TODAY)
    flags = {p["post_id"]: p["is_eligible"] for p in listing["posts"]}

    assert set(flags) == {p.id for p in posts}
    for post in posts:
        single = services.eligibility.check_eligibility(db, applicant.id, post.id, today=TODAY)
        assert flags[post.id] == single["is_eligible"]
    assert flags[posts[0].id] is True
    assert flags[posts[1].id] is False


def test_listing_hides_locked_posts_and_marks_applied(db, services, make_applicant, make_post, add_application):
    applicant = make_applicant()
    open_post = make_post("Constable")
    make_post("Clerk", closing_date=date(2025, 5, 1))
    make_post("Driver", is_closed=True)
    add_application(applicant, open_post)

    listing = services.eligibility.eligible_posts(db, applicant.id, today=TODAY)
    assert [p["post_id"] for p in listing["posts"]] == [open_post.id]
    assert listing["posts"][0]["already_applied"] is True

    everything = services.eligibility.eligible_posts(db, applicant.id, include_locked=True, today=TODAY)
    assert everything["pagination"]["total"] == 3


def test_only_eligible_filter_and_search(db, services, make_applicant, make_post):
    applicant = make_applicant(level="HSC")
    make_post("Constable", min_level="SSC")
    make_post("Clerk", min_level="GRAD")

    eligible = services.eligibility.eligible_posts(db, applicant.id, only_eligible=True, today=TODAY)
    assert [p["post_name"] for p in eligible["posts"]] == ["Constable"]

    searched = services.eligibility.eligible_posts(db, applicant.id, search="cler", today=TODAY)
    assert [p["post_name"] for p in searched["posts"]] == ["Clerk"]


def test_profile_completion_sections(db, services, make_applicant):
    complete = make_applicant()
    result = services.eligibility.profile_completion(db, complete.id)
    assert result["percentage"] == 100
    assert result["can_apply"] is True

    missing_docs = make_applicant(upload_docs=())
    result = services.eligibility.profile_completion(db, missing_docs.id)
    assert result["percentage"] == 85
    assert result["sections"]["documents"]["missing"] == ["Identity Proof"]
    assert result["can_apply"] is False


def test_experience_section_needs_an_answer(db, services, make_applicant):
    unanswered = make_applicant(has_experience=None)
    claims_experience = make_applicant(has_experience=True)

    assert services.eligibility.profile_completion(db, unanswered.id)["sections"]["experience"]["complete"] is False
    assert services.eligibility.profile_completion(db, claims_experience.id)["percentage"] == 85


def test_unknown_applicant_and_post(db, services, make_applicant):
    applicant = make_applicant()

    with pytest.raises(NotFoundError):
        services.eligibility.check_eligibility(db, 9999, 1)
    with pytest.raises(NotFoundError):
        services.eligibility.check_eligibility(db, applicant.id, 9999)
