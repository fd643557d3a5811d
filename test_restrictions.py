from conftest import TODAY
from portal.services.restriction_service import ApplicationRestrictionService


def test_first_application_is_allowed(db, services, make_applicant, make_post):
    applicant = make_applicant()
    post = make_post()

    result = services.restrictions.can_apply_to_post(db, applicant.id, post.id)

    assert result.allowed is True
    assert result.reason == "FIRST_APPLICATION"


def test_same_post_is_refused(db, services, make_applicant, make_post, add_application):
    applicant = make_applicant()
    post = make_post()
    existing = add_application(applicant, post)

    result = services.restrictions.can_apply_to_post(db, applicant.id, post.id)

    assert result.allowed is False
    assert result.reason == "ALREADY_APPLIED"
    assert result.details["application_id"] == existing.id


def test_same_post_name_and_component_is_a_duplicate(db, services, make_applicant, make_post, add_application):
    applicant = make_applicant()
    add_application(applicant, make_post("Constable", component=0))

    result = services.restrictions.can_apply_to_post(db, applicant.id, make_post("Constable", component=0).id)

    assert result.reason == "DUPLICATE_COMPONENT"
    assert result.allowed is False


def test_component_limit_per_post_name(db, services, make_applicant, make_post, add_application):
    applicant = make_applicant()
    add_application(applicant, make_post("Constable", component=0))

    second = services.restrictions.can_apply_to_post(db, applicant.id, make_post("Constable", component=1).id)
    assert second.allowed is True
    assert second.reason == "OSC_ALLOWED"

    add_application(applicant, make_post("Constable", component=1))
    third = services.restrictions.can_apply_to_post(db, applicant.id, make_post("Constable", component=2).id)
    assert third.allowed is False
    assert third.reason == "OSC_LIMIT_REACHED"
    assert third.details["applied_components"] == 2


def test_post_name_limit(db, services, make_applicant, make_post, add_application):
    applicant = make_applicant()
    add_application(applicant, make_post("Constable"))

    second = services.restrictions.can_apply_to_post(db, applicant.id, make_post("Clerk").id)
    assert second.allowed is True
    assert second.reason == "NEW_POST_NAME_ALLOWED"

    add_application(applicant, make_post("Clerk"))
    third = services.restrictions.can_apply_to_post(db, applicant.id, make_post("Driver").id)
    assert third.allowed is False
    assert third.reason == "POST_NAME_LIMIT_REACHED"
    assert third.details["applied_post_names"] == ["Constable", "Clerk"]


def test_all_applications_stay_in_the_first_district(db, services, make_applicant, make_post, add_application):
    applicant = make_applicant()
    first = add_application(applicant, make_post("Constable", district=0))

    result = services.restrictions.can_apply_to_post(db, applicant.id, make_post("Clerk", district=1).id)

    assert result.allowed is False
    assert result.reason == "DISTRICT_MISMATCH"
    assert result.details["restricted_to_district"] == first.district_id


def test_explicit_district_overrides_post_district(db, services, make_applicant, make_post, add_application):
    applicant = make_applicant()
    add_application(applicant, make_post("Constable", district=0))
    other = make_post("Clerk", district=1)

    result = services.restrictions.can_apply_to_post(db, applicant.id, other.id,
                                                     district_id=other.district_id)
    assert result.reason == "DISTRICT_MISMATCH"


def test_withdrawn_and_rejected_applications_do_not_count(db, services, make_applicant, make_post,
                                                          add_application):
    applicant = make_applicant()
    post = make_post("Constable", district=0)
    add_application(applicant, post, status="WITHDRAWN")
    add_application(applicant, make_post("Clerk", district=0), status="REJECTED")

    again = services.restrictions.can_apply_to_post(db, applicant.id, post.id)
    elsewhere = services.restrictions.can_apply_to_post(db, applicant.id, make_post("Driver", district=1).id)

    assert again.reason == "FIRST_APPLICATION"
    assert elsewhere.reason == "FIRST_APPLICATION"


def test_limits_come_from_configuration(db, make_applicant, make_post, add_application):
    restrictions = ApplicationRestrictionService(max_distinct_post_names=1, max_osc_per_post_name=1)
    applicant = make_applicant()
    add_application(applicant, make_post("Constable", component=0))

    new_name = restrictions.can_apply_to_post(db, applicant.id, make_post("Clerk").id)
    new_component = restrictions.can_apply_to_post(db, applicant.id, make_post("Constable", component=1).id)

    assert new_name.reason == "POST_NAME_LIMIT_REACHED"
    assert new_component.reason == "OSC_LIMIT_REACHED"


def test_unknown_post(db, services, make_applicant):
    result = services.restrictions.can_apply_to_post(db, make_applicant().id, 9999)

    assert result.allowed is False
    assert result.reason == "POST_NOT_FOUND"


def test_application_summary(db, services, masters, make_applicant, make_post, add_application):
    applicant = make_applicant()
    add_application(applicant, make_post("Constable", component=0))
    add_application(applicant, make_post("Constable", component=1))
    add_application(applicant, make_post("Clerk", component=0))

    summary = services.restrictions.application_summary(db, applicant.id)

    assert summary["total_applications"] == 3
    assert summary["distinct_post_names"] == 2
    assert summary["can_apply_to_new_post_name"] is False
    assert summary["restricted_to_district"] == masters["districts"][0].id
    constable = summary["post_name_breakdown"][0]
    assert constable["post_name"] == "Constable"
    assert constable["application_count"] == 2
    assert constable["can_add_component"] is False


def test_available_posts_carry_the_guard_verdict(db, services, make_applicant, make_post, add_application):
    applicant = make_applicant()
    add_application(applicant, make_post("Constable", component=0))
    make_post("Constable", component=1)
    make_post("Clerk")
    make_post("Driver", is_closed=True)

    result = services.restrictions.available_posts(db, applicant.id, today=TODAY)

    assert [(p["post_name"], p["reason"]) for p in result["posts"]] == [
        ("Clerk", "NEW_POST_NAME_ALLOWED"),
        ("Constable", "ALREADY_APPLIED"),
        ("Constable", "OSC_ALLOWED"),
    ]
    assert [p["can_apply"] for p in result["posts"]] == [True, False, True]
    assert result["can_apply_to_any_post"] is False
    assert result["summary"]["distinct_post_names"] == 1


def test_available_posts_for_a_new_applicant(db, services, make_applicant, make_post):
    make_post()

    result = services.restrictions.available_posts(db, make_applicant().id, today=TODAY)

    assert result["can_apply_to_any_post"] is True
    assert [p["reason"] for p in result["posts"]] == ["FIRST_APPLICATION"]
