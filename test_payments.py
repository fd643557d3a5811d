import pytest

from conftest import sign
from portal.exceptions import ConflictError, ValidationError
from portal.models import ApplicantAcknowledgement, Application, Payment

_orders = iter(range(1, 1000))


def paid(db, applicant, post, district_id=None):
    payment = Payment(
        applicant_id=applicant.id,
        post_id=post.id,
        post_name=post.post_name,
        district_id=district_id or post.district_id,
        base_fee=100, platform_fee=2.5, cgst=9.23, sgst=9.23, amount=120.95,
        payment_status="SUCCESS",
        gateway_order_id=f"order_paid_{next(_orders)}",
    )
    db.add(payment)
    db.commit()
    return payment


def test_fee_breakdown(paid_services):
    fee = paid_services.payments.calculate_fee()

    assert fee == {
        "base_fee": 100.0,
        "platform_fee": 2.5,
        "subtotal": 102.5,
        "cgst": 9.23,
        "sgst": 9.23,
        "total_amount": 120.95,
    }


def test_disabled_payments_are_never_required(db, services, make_applicant, make_post):
    post = make_post()
    result = services.payments.check_payment_required(db, make_applicant().id, post.id, post.post_name,
                                                      post.district_id)

    assert result["required"] is False
    assert result["reason"] == "PAYMENT_DISABLED"


def test_payment_reasons_in_order(db, paid_services, make_applicant, make_post):
    payments = paid_services.payments
    applicant = make_applicant()
    constable = make_post("Constable", component=0)
    constable_rural = make_post("Constable", component=1)
    clerk = make_post("Clerk")
    driver = make_post("Driver")

    def check(post):
        return payments.check_payment_required(db, applicant.id, post.id, post.post_name, post.district_id)

    first = check(constable)
    assert first["required"] is True
    assert first["reason"] == "FIRST_APPLICATION"
    assert first["amount"] == 120.95

    paid(db, applicant, constable)
    assert check(constable)["reason"] == "ALREADY_PAID_FOR_POST"
    assert check(constable_rural)["reason"] == "SAME_POST_NAME_PAID"
    assert check(constable_rural)["required"] is False

    new_name = check(clerk)
    assert new_name["required"] is True
    assert new_name["reason"] == "NEW_POST_NAME"
    assert new_name["paid_post_names"] == ["Constable"]

    paid(db, applicant, clerk)
    limit = check(driver)
    assert limit["required"] is False
    assert limit["reason"] == "POST_NAME_LIMIT_REACHED"


def test_payments_in_another_district_do_not_cover_the_post_name(db, paid_services, masters, make_applicant,
                                                                 make_post):
    applicant = make_applicant()
    paid(db, applicant, make_post("Constable", district=0))
    elsewhere = make_post("Constable", district=1)

    result = paid_services.payments.check_payment_required(db, applicant.id, elsewhere.id, "Constable",
                                                           elsewhere.district_id)
    assert result["reason"] == "NEW_POST_NAME"


def test_apply_defers_application_until_payment(db, paid_services, gateway, make_applicant, make_post):
    applicant = make_applicant()
    post = make_post()

    result = paid_services.applications.apply(db, applicant.id, post.id, True, meta={"place": "Pune"})

    assert result["payment_required"] is True
    order = gateway.orders[0]
    assert result["payment"]["order_id"] == order["id"]
    assert order["amount"] == 12095
    assert db.query(Application).count() == 0

    payment = db.query(Payment).one()
    assert payment.payment_status == "PENDING"
    assert payment.payment_metadata["application_data"]["place"] == "Pune"


def test_verified_payment_creates_and_submits_application(db, paid_services, gateway, make_applicant, make_post):
    applicant = make_applicant()
    post = make_post()
    paid_services.applications.apply(db, applicant.id, post.id, True, meta={"place": "Pune"})
    order_id = gateway.orders[0]["id"]

    result = paid_services.applications.complete_paid_application(
        db, applicant.id, order_id, "pay_001", sign(order_id, "pay_001")
    )

    assert result["status"] == "ELIGIBLE"
    payment = db.query(Payment).one()
    assert payment.payment_status == "SUCCESS"
    assert payment.gateway_payment_id == "pay_001"
    assert payment.application_id == result["application_id"]
    assert payment.paid_at is not None

    acknowledgement = db.query(ApplicantAcknowledgement).one()
    assert acknowledgement.place == "Pune"
    assert acknowledgement.application_id == result["application_id"]


def test_payment_cannot_be_processed_twice(db, paid_services, gateway, make_applicant, make_post):
    applicant = make_applicant()
    post = make_post()
    paid_services.applications.apply(db, applicant.id, post.id, True)
    order_id = gateway.orders[0]["id"]
    signature = sign(order_id, "pay_001")
    paid_services.applications.complete_paid_application(db, applicant.id, order_id, "pay_001", signature)

    with pytest.raises(ConflictError) as excinfo:
        paid_services.applications.complete_paid_application(db, applicant.id, order_id, "pay_001", signature)

    assert excinfo.value.status_code == 409
    assert excinfo.value.errors["reason"] == "PAYMENT_ALREADY_PROCESSED"
    assert db.query(Application).count() == 1


def test_bad_signature_marks_payment_failed(db, paid_services, gateway, make_applicant, make_post):
    applicant = make_applicant()
    post = make_post()
    paid_services.applications.apply(db, applicant.id, post.id, True)
    order_id = gateway.orders[0]["id"]

    with pytest.raises(ValidationError) as excinfo:
        paid_services.applications.complete_paid_application(db, applicant.id, order_id, "pay_001", "forged")

    assert excinfo.value.errors["reason"] == "INVALID_SIGNATURE"
    payment = db.query(Payment).one()
    assert payment.payment_status == "FAILED"
    assert payment.failure_reason == "Invalid payment signature"
    assert db.query(Application).count() == 0


def test_second_component_of_paid_post_name_is_free(db, paid_services, gateway, make_applicant, make_post):
    applicant = make_applicant()
    urban = make_post("Constable", component=0)
    rural = make_post("Constable", component=1)
    paid_services.applications.apply(db, applicant.id, urban.id, True)
    order_id = gateway.orders[0]["id"]
    paid_services.applications.complete_paid_application(db, applicant.id, order_id, "pay_001",
                                                         sign(order_id, "pay_001"))

    result = paid_services.applications.apply(db, applicant.id, rural.id, True)

    assert result["payment_required"] is False
    assert result["payment_reason"] == "SAME_POST_NAME_PAID"
    assert result["restriction"]["reason"] == "OSC_ALLOWED"
    assert len(gateway.orders) == 1


def test_order_refused_when_no_fee_is_due(db, paid_services, services, make_applicant, make_post):
    applicant = make_applicant()
    post = make_post()
    paid(db, applicant, post)

    with pytest.raises(ConflictError):
        paid_services.payments.create_payment_order(db, applicant.id, post, {})
    with pytest.raises(ValidationError):
        services.payments.create_payment_order(db, applicant.id, post, {})


def test_payment_history(db, paid_services, gateway, make_applicant, make_post):
    applicant = make_applicant()
    paid_services.applications.apply(db, applicant.id, make_post().id, True)

    history = paid_services.payments.payment_history(db, applicant.id)

    assert len(history) == 1
    assert history[0]["payment_status"] == "PENDING"
    assert history[0]["order_id"] == gateway.orders[0]["id"]
    assert history[0]["amount"] == 120.95


def test_repeated_apply_reuses_the_open_order(db, paid_services, gateway, make_applicant, make_post):
    applicant = make_applicant()
    post = make_post()

    first = paid_services.applications.apply(db, applicant.id, post.id, True)
    second = paid_services.applications.apply(db, applicant.id, post.id, True)

    assert second["payment"]["order_id"] == first["payment"]["order_id"]
    assert second["payment"]["payment_id"] == first["payment"]["payment_id"]
    assert len(gateway.orders) == 1
    assert db.query(Payment).count() == 1


def test_failed_order_is_not_reused(db, paid_services, gateway, make_applicant, make_post):
    applicant = make_applicant()
    post = make_post()
    paid_services.applications.apply(db, applicant.id, post.id, True)
    order_id = gateway.orders[0]["id"]
    with pytest.raises(ValidationError):
        paid_services.applications.complete_paid_application(db, applicant.id, order_id, "pay_001", "forged")

    retry = paid_services.applications.apply(db, applicant.id, post.id, True)

    assert retry["payment"]["order_id"] == gateway.orders[1]["id"]
    assert db.query(Payment).filter_by(payment_status="PENDING").count() == 1


def test_payment_success_rolls_back_when_application_cannot_be_created(db, paid_services, gateway,
                                                                       make_applicant, make_post):
    applicant = make_applicant()
    post = make_post()
    paid_services.applications.apply(db, applicant.id, post.id, True)
    order_id = gateway.orders[0]["id"]

    post.is_closed = True
    db.commit()

    with pytest.raises(ConflictError):
        paid_services.applications.complete_paid_application(db, applicant.id, order_id, "pay_001",
                                                             sign(order_id, "pay_001"))

    db.expire_all()
    payment = db.query(Payment).one()
    assert payment.payment_status == "PENDING"
    assert payment.gateway_payment_id is None
    assert payment.application_id is None
    assert db.query(Application).count() == 0
