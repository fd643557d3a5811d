# portal/services/application_service.py
import logging
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session, joinedload

from portal.constants import ActorType, ApplicationStatus, LOCKED_STATUSES
from portal.database import atomic
from portal.exceptions import ConflictError, NotFoundError, PreconditionError, ValidationError
from portal.models import (
    ApplicantAcknowledgement, Application, EligibilityResult, PostMaster,
)
from portal.services import workflow_service as workflow
from portal.services.eligibility_service import PostRequirements, evaluate
from portal.services.merit_list_service import compute_merit_score
from portal.services.payment_service import SUCCESS
from portal.utils.id_generator import generate_application_number

logger = logging.getLogger(__name__)

DECLARATION_ACTION = "APPLICATION_DECLARATION"
DECLARATION_CHECKBOX = "DECLARATION_ACCEPTED"

# Guard reasons that mean the same application already exists
DUPLICATE_REASONS = ("ALREADY_APPLIED", "DUPLICATE_COMPONENT")


class ApplicationService:
    """
    Applicant-facing lifecycle: draft creation, final submission, paid
    application completion and withdrawal.
    """

    def __init__(self, restriction_service, payment_service, eligibility_service, document_service,
                 merit_age_preference: str = "YOUNGER"):
        self.restrictions = restriction_service
        self.payments = payment_service
        self.eligibility = eligibility_service
        self.documents = document_service
        self.merit_age_preference = merit_age_preference

    # --- Queries -----------------------------------------------------------

    @staticmethod
    def is_profile_locked(db: Session, applicant_id: int) -> bool:
        """The profile is read-only once any application has left DRAFT."""
        return db.query(
            db.query(Application)
            .filter(
                Application.applicant_id == applicant_id,
                Application.is_deleted == False,  # noqa: E712
                Application.status.in_([s.value for s in LOCKED_STATUSES]),
            )
            .exists()
        ).scalar()

    @staticmethod
    def list_for_applicant(db: Session, applicant_id: int) -> List[Dict[str, Any]]:
        applications = (
            db.query(Application)
            .options(joinedload(Application.post))
            .filter(Application.applicant_id == applicant_id, Application.is_deleted == False)  # noqa: E712
            .order_by(Application.created_at.desc(), Application.id.desc())
            .all()
        )
        return [a.to_dict() for a in applications]

    @staticmethod
    def get_owned(db: Session, applicant_id: int, application_id: int, lock: bool = False) -> Application:
        application = workflow.get_application(db, application_id, lock=lock)
        if application.applicant_id != applicant_id:
            raise NotFoundError("Application not found")
        return application

    @staticmethod
    def search(db: Session, post_id: Optional[int] = None, district_id: Optional[int] = None,
               status: Optional[ApplicationStatus] = None, page: int = 1, limit: int = 50) -> Dict[str, Any]:
        """Admin listing; ``status`` is already canonical."""
        query = (
            db.query(Application)
            .options(joinedload(Application.post))
            .filter(Application.is_deleted == False)  # noqa: E712
        )
        if post_id:
            query = query.filter(Application.post_id == post_id)
        if district_id:
            query = query.filter(Application.district_id == district_id)
        if status is not None:
            query = query.filter(Application.status == ApplicationStatus(status).value)

        total = query.count()
        rows = query.order_by(Application.id).offset((page - 1) * limit).limit(limit).all()
        return {
            "applications": [a.to_dict() for a in rows],
            "pagination": {
                "total": total,
                "page": page,
                "limit": limit,
                "total_pages": (total + limit - 1) // limit if limit else 0,
            },
        }

    def get_for_applicant(self, db: Session, applicant_id: int, application_id: int) -> Dict[str, Any]:
        application = self.get_owned(db, applicant_id, application_id)
        data = application.to_dict()
        data["status_history"] = workflow.status_history(db, application.id)
        data["stage_history"] = workflow.stage_history(db, application.id)
        result = application.eligibility_result
        data["eligibility_result"] = {
            "is_eligible": result.is_eligible,
            "checks": result.checks,
            "failed_checks": result.failed_checks,
            "missing_documents": result.missing_documents,
        } if result else None
        return data

    # --- Draft -------------------------------------------------------------

    def create_draft(self, db: Session, applicant_id: int, post_id: int,
                     district_id: Optional[int] = None, today: Optional[date] = None) -> Application:
        today = today or date.today()

        with atomic(db):
            applicant = self.eligibility.load_applicant(db, applicant_id)

            selected = (
                db.query(Application)
                .filter(
                    Application.applicant_id == applicant_id,
                    Application.is_deleted == False,  # noqa: E712
                    Application.status == ApplicationStatus.SELECTED.value,
                )
                .first()
            )
            if selected:
                raise ConflictError(
                    "You have already been selected for a post",
                    errors={"application_id": selected.id, "post_id": selected.post_id},
                )

            restriction = self.restrictions.can_apply_to_post(db, applicant_id, post_id, district_id)
            if not restriction.allowed:
                raise ConflictError(
                    restriction.message,
                    errors=restriction.to_dict(),
                    status_code=409 if restriction.reason in DUPLICATE_REASONS else None,
                )

            completion = self.eligibility.profile_completion(db, applicant_id)
            if not completion["can_apply"]:
                raise PreconditionError(
                    f"Profile is {completion['percentage']}% complete. Complete your profile before applying",
                    errors=completion,
                )

            post = db.query(PostMaster).filter(PostMaster.id == post_id, PostMaster.is_deleted == False).first()  # noqa: E712
            if not post:
                raise NotFoundError("Post not found")
            if not post.is_active or post.is_closed:
                raise ConflictError("This post is not accepting applications", errors={"post_id": post_id})
            if post.closing_date and post.closing_date < today:
                raise ConflictError(
                    "The closing date for this post has passed",
                    errors={"post_id": post_id, "closing_date": post.closing_date.isoformat()},
                )

            existing = (
                db.query(Application)
                .filter(
                    Application.applicant_id == applicant_id,
                    Application.post_id == post_id,
                    Application.is_deleted == False,  # noqa: E712
                )
                .first()
            )
            if existing:
                raise ConflictError(
                    "You have already applied to this post",
                    errors={"application_id": existing.id, "status": existing.status},
                    status_code=409,
                )

            personal = applicant.personal
            address = applicant.address
            if not personal or not address:
                missing = [name for name, part in (("personal", personal), ("address", address)) if not part]
                raise PreconditionError("Complete personal and address details before applying",
                                        errors={"missing_sections": missing})

            resolved_district = district_id or post.district_id or address.district_id
            if not resolved_district:
                raise ValidationError("District could not be determined for this application")

            application = Application(
                applicant_id=applicant_id,
                post_id=post_id,
                district_id=resolved_district,
                status=ApplicationStatus.DRAFT.value,
                is_locked=False,
                gender=personal.gender,
                dob=personal.dob,
                aadhaar_no=personal.aadhaar_no,
                address=address.address_line,
                is_domicile=bool(personal.is_domicile),
            )
            db.add(application)
            db.flush()

        logger.info(f"Draft application {application.id} created for applicant {applicant_id}, post {post_id}")
        return application

    # --- Submission ----------------------------------------------------------

    def final_submit(self, db: Session, applicant_id: int, application_id: int, declaration_accepted: bool,
                     meta: Optional[Dict[str, Any]] = None, today: Optional[date] = None) -> Dict[str, Any]:
        """
        Submit a DRAFT application.

        Runs the eligibility evaluator and the document check, then in one
        unit of work: locks the application, assigns its number, sets the
        final status, stores the acknowledgement and eligibility snapshot
        and writes the DRAFT -> SUBMITTED -> final history rows.
        """
        meta = meta or {}
        today = today or date.today()

        with atomic(db):
            application = self.get_owned(db, applicant_id, application_id, lock=True)

            if application.status != ApplicationStatus.DRAFT.value or application.is_locked:
                raise ConflictError(
                    "Application has already been submitted",
                    errors={"application_id": application.id, "status": application.status},
                )
            if not declaration_accepted:
                raise ValidationError("Declaration must be accepted to submit the application")

            post = self.eligibility.load_post(db, application.post_id)
            snapshot = self.eligibility.load_snapshot(db, applicant_id)
            verdict = evaluate(snapshot, PostRequirements.from_post(post), today)
            document_check = self.documents.check(db, applicant_id, post_id=post.id)

            is_eligible = verdict.is_eligible and document_check["complete"]
            reasons = list(verdict.failed_checks)
            if not document_check["complete"]:
                names = ", ".join(d["doc_name"] for d in document_check["missing"])
                reasons.append(f"Missing documents: {names}")
            eligibility_reason = "; ".join(reasons) or None

            final_status = ApplicationStatus.ELIGIBLE if is_eligible else ApplicationStatus.NOT_ELIGIBLE
            now = datetime.now(timezone.utc)

            application.application_no = generate_application_number(db)
            application.declaration_accepted = True
            application.submitted_at = now
            application.system_eligibility = is_eligible
            application.system_eligibility_reason = eligibility_reason
            application.eligibility_checked_at = now

            workflow.transition(db, application, ApplicationStatus.SUBMITTED, applicant_id, ActorType.APPLICANT,
                                remarks="Application submitted by applicant")
            workflow.transition(
                db, application, final_status, None, ActorType.SYSTEM,
                remarks=f"System eligibility check {'passed' if is_eligible else 'failed'}",
                metadata={"failed_checks": verdict.failed_checks,
                          "missing_documents": [d["doc_code"] for d in document_check["missing"]]},
            )

            db.add(ApplicantAcknowledgement(
                applicant_id=applicant_id,
                application_id=application.id,
                action_type=DECLARATION_ACTION,
                checkbox_code=DECLARATION_CHECKBOX,
                accepted_at=now,
                ip_address=meta.get("ip_address"),
                user_agent=meta.get("user_agent"),
                place=meta.get("place"),
            ))

            result = db.query(EligibilityResult).filter(EligibilityResult.application_id == application.id).first()
            if result is None:
                result = EligibilityResult(application_id=application.id)
                db.add(result)
            result.is_eligible = is_eligible
            result.checks = [c.to_dict() for c in verdict.checks]
            result.failed_checks = list(verdict.failed_checks)
            result.missing_documents = [d["doc_code"] for d in document_check["missing"]]
            result.evaluated_at = now

            if is_eligible:
                application.merit_score = compute_merit_score(
                    snapshot, post.district_id, self.merit_age_preference, today
                )
                workflow.record_stage_entry(db, application.id, ApplicationStatus.ELIGIBLE, None, ActorType.SYSTEM,
                                            remarks="Eligible on submission")
            db.flush()

        logger.info(f"Application {application.id} submitted as {application.application_no}: {final_status.value}")
        return {
            "message": "Application submitted successfully",
            "application_id": application.id,
            "application_no": application.application_no,
            "status": application.status,
            "is_eligible": is_eligible,
            "eligibility_reason": eligibility_reason,
            "eligibility_checks": [c.to_dict() for c in verdict.checks],
            "document_check": {
                "complete": document_check["complete"],
                "missing": document_check["missing"],
                "total_required": document_check["total_required"],
                "total_uploaded": document_check["total_uploaded"],
            },
        }

    # --- Apply (with optional payment) --------------------------------------

    def apply(self, db: Session, applicant_id: int, post_id: int, declaration_accepted: bool,
              meta: Optional[Dict[str, Any]] = None, district_id: Optional[int] = None) -> Dict[str, Any]:
        """
        Entry point for an applicant applying to a post.

        When a fee is due a gateway order is created and the application is
        only created after the payment is verified. Otherwise the draft is
        created and submitted in one unit of work.
        """
        meta = meta or {}
        if not declaration_accepted:
            raise ValidationError("Declaration must be accepted to apply")

        post = self.eligibility.load_post(db, post_id)

        restriction = self.restrictions.can_apply_to_post(db, applicant_id, post_id, district_id)
        if not restriction.allowed:
            raise ConflictError(
                restriction.message,
                errors=restriction.to_dict(),
                status_code=409 if restriction.reason in DUPLICATE_REASONS else None,
            )

        completion = self.eligibility.profile_completion(db, applicant_id)
        if not completion["can_apply"]:
            raise PreconditionError(
                f"Profile is {completion['percentage']}% complete. Complete your profile before applying",
                errors=completion,
            )

        eligibility = self.eligibility.check_eligibility(db, applicant_id, post_id)
        resolved_district = district_id or post.district_id
        payment = self.payments.check_payment_required(db, applicant_id, post_id, post.post_name, resolved_district)

        if payment["required"]:
            order = self.payments.create_payment_order(
                db, applicant_id, post,
                application_data={"declaration_accepted": declaration_accepted, **meta},
                district_id=resolved_district,
            )
            return {
                "payment_required": True,
                "payment": order,
                "restriction": restriction.to_dict(),
                "eligibility": eligibility,
            }

        with atomic(db):
            application = self.create_draft(db, applicant_id, post_id, district_id)
            submission = self.final_submit(db, applicant_id, application.id, declaration_accepted, meta)

        submission.update({
            "payment_required": False,
            "payment_reason": payment["reason"],
            "restriction": restriction.to_dict(),
        })
        return submission

    def complete_paid_application(self, db: Session, applicant_id: int, order_id: str, payment_id: str,
                                  signature: str) -> Dict[str, Any]:
        """
        Verify a gateway payment and create the deferred application.

        The signature check is a local HMAC done before any row is locked.
        Payment success, application creation, acknowledgement and
        submission then commit or roll back together.
        """
        if not self.payments.verify_payment_signature(order_id, payment_id, signature):
            self.payments.mark_payment_failed(db, order_id, applicant_id, "Invalid payment signature", payment_id)
            raise ValidationError("Payment verification failed", errors={"reason": "INVALID_SIGNATURE"})

        with atomic(db):
            payment = self.payments.get_payment_for_order(db, order_id, applicant_id, lock=True)
            if payment.payment_status == SUCCESS:
                raise ConflictError(
                    "Payment has already been processed",
                    errors={"reason": "PAYMENT_ALREADY_PROCESSED", "application_id": payment.application_id},
                    status_code=409,
                )

            self.payments.mark_payment_success(db, payment, payment_id, signature)
            app_data = (payment.payment_metadata or {}).get("application_data", {})

            existing = (
                db.query(Application)
                .filter(
                    Application.applicant_id == applicant_id,
                    Application.post_id == payment.post_id,
                    Application.is_deleted == False,  # noqa: E712
                )
                .first()
            )
            if existing and existing.status != ApplicationStatus.DRAFT.value:
                raise ConflictError(
                    "An application for this post already exists",
                    errors={"application_id": existing.id, "status": existing.status},
                    status_code=409,
                )
            application = existing or self.create_draft(db, applicant_id, payment.post_id, payment.district_id)
            payment.application_id = application.id

            submission = self.final_submit(
                db, applicant_id, application.id,
                declaration_accepted=app_data.get("declaration_accepted", False),
                meta=app_data,
            )

        logger.info(f"Payment {order_id} verified; application {application.id} created for applicant {applicant_id}")
        submission["payment_id"] = payment.id
        return submission

    # --- Withdrawal --------------------------------------------------------

    def withdraw(self, db: Session, applicant_id: int, application_id: int,
                 reason: Optional[str] = None) -> Application:
        with atomic(db):
            application = self.get_owned(db, applicant_id, application_id, lock=True)
            workflow.transition(db, application, ApplicationStatus.WITHDRAWN, applicant_id, ActorType.APPLICANT,
                                remarks=reason or "Withdrawn by applicant")
        return application
