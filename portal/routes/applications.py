# portal/routes/applications.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from portal.auth.dependencies import get_current_applicant
from portal.database import get_db
from portal.models import ApplicantMaster
from portal.schemas import (
    ApplyRequest, CheckPaymentRequest, DraftRequest, SubmitRequest, VerifyPaymentRequest, WithdrawRequest,
)
from portal.services import Services, get_services
from portal.utils.responses import client_meta, ok

logger = logging.getLogger(__name__)
router = APIRouter(
    prefix="/api/applications",
    tags=["Applications"]
)


@router.get("/eligible-posts")
def eligible_posts(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: Optional[str] = None,
    only_eligible: bool = False,
    include_locked: bool = False,
    applicant: ApplicantMaster = Depends(get_current_applicant),
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    data = services.eligibility.eligible_posts(
        db, applicant.id, page=page, limit=limit, search=search,
        only_eligible=only_eligible, include_locked=include_locked,
    )
    return ok("Posts retrieved", data)


@router.get("/summary")
def application_summary(
    applicant: ApplicantMaster = Depends(get_current_applicant),
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    data = services.restrictions.application_summary(db, applicant.id)
    data["profile_locked"] = services.applications.is_profile_locked(db, applicant.id)
    return ok("Application summary retrieved", data)


@router.get("/available-posts")
def available_posts(
    applicant: ApplicantMaster = Depends(get_current_applicant),
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    return ok("Available posts retrieved", services.restrictions.available_posts(db, applicant.id))


@router.get("/profile-completion")
def profile_completion(
    applicant: ApplicantMaster = Depends(get_current_applicant),
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    data = services.eligibility.profile_completion(db, applicant.id)
    data["profile_locked"] = services.applications.is_profile_locked(db, applicant.id)
    return ok("Profile completion retrieved", data)


@router.get("/eligibility/{post_id}")
def check_eligibility(
    post_id: int,
    applicant: ApplicantMaster = Depends(get_current_applicant),
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    data = services.eligibility.check_eligibility(db, applicant.id, post_id)
    data["documents"] = services.documents.check(db, applicant.id, post_id=post_id)
    return ok("Eligibility checked", data)


@router.post("/check-payment")
def check_payment(
    payload: CheckPaymentRequest,
    applicant: ApplicantMaster = Depends(get_current_applicant),
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    post = services.eligibility.load_post(db, payload.post_id)
    district_id = payload.district_id or post.district_id
    data = services.payments.check_payment_required(db, applicant.id, post.id, post.post_name, district_id)
    data["restriction"] = services.restrictions.can_apply_to_post(
        db, applicant.id, post.id, payload.district_id
    ).to_dict()
    return ok(data["message"], data)


@router.post("/apply", status_code=status.HTTP_201_CREATED)
def apply(
    payload: ApplyRequest,
    request: Request,
    applicant: ApplicantMaster = Depends(get_current_applicant),
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    data = services.applications.apply(
        db, applicant.id, payload.post_id, payload.declaration_accepted,
        meta=client_meta(request, payload.place), district_id=payload.district_id,
    )
    message = "Payment required to complete application" if data["payment_required"] else data["message"]
    return ok(message, data)


@router.post("/draft", status_code=status.HTTP_201_CREATED)
def create_draft(
    payload: DraftRequest,
    applicant: ApplicantMaster = Depends(get_current_applicant),
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    application = services.applications.create_draft(db, applicant.id, payload.post_id, payload.district_id)
    return ok("Draft application created", application.to_dict())


@router.post("/verify-payment", status_code=status.HTTP_201_CREATED)
def verify_payment(
    payload: VerifyPaymentRequest,
    applicant: ApplicantMaster = Depends(get_current_applicant),
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    data = services.applications.complete_paid_application(
        db, applicant.id, payload.order_id, payload.payment_id, payload.signature
    )
    return ok("Payment verified and application submitted", data)


@router.get("/payments")
def payment_history(
    applicant: ApplicantMaster = Depends(get_current_applicant),
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    return ok("Payment history retrieved", services.payments.payment_history(db, applicant.id))


@router.get("")
def list_applications(
    applicant: ApplicantMaster = Depends(get_current_applicant),
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    return ok("Applications retrieved", services.applications.list_for_applicant(db, applicant.id))


@router.get("/{application_id}")
def get_application(
    application_id: int,
    applicant: ApplicantMaster = Depends(get_current_applicant),
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    return ok("Application retrieved", services.applications.get_for_applicant(db, applicant.id, application_id))


@router.post("/{application_id}/submit")
def submit_application(
    application_id: int,
    payload: SubmitRequest,
    request: Request,
    applicant: ApplicantMaster = Depends(get_current_applicant),
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    data = services.applications.final_submit(
        db, applicant.id, application_id, payload.declaration_accepted,
        meta=client_meta(request, payload.place),
    )
    return ok(data["message"], data)


@router.post("/{application_id}/withdraw")
def withdraw_application(
    application_id: int,
    payload: WithdrawRequest,
    applicant: ApplicantMaster = Depends(get_current_applicant),
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    application = services.applications.withdraw(db, applicant.id, application_id, payload.reason)
    return ok("Application withdrawn", {"application_id": application.id, "status": application.status})
