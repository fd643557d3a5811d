# portal/routes/admin_review.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from portal.auth.dependencies import get_current_admin
from portal.constants import canonicalize_status
from portal.database import get_db
from portal.exceptions import ValidationError
from portal.models import AdminUser
from portal.schemas import (
    BulkStatusChangeRequest, DocumentVerifyAllRequest, DocumentVerifyRequest, FinalActionRequest, MeritGenerateRequest,
    ProvisionalActionRequest, StatusChangeRequest,
)
from portal.services import Services, get_services
from portal.services import workflow_service as workflow
from portal.utils.responses import ok

logger = logging.getLogger(__name__)
router = APIRouter(
    prefix="/api/admin",
    tags=["Admin Review"]
)


@router.get("/applications")
def list_applications(
    post_id: Optional[int] = None,
    district_id: Optional[int] = None,
    status: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    admin: AdminUser = Depends(get_current_admin),
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    try:
        canonical = canonicalize_status(status)
    except ValueError as e:
        raise ValidationError(str(e))
    data = services.applications.search(db, post_id, district_id, canonical, page, limit)
    return ok("Applications retrieved", data)


@router.post("/applications/bulk-status")
def bulk_change_status(
    payload: BulkStatusChangeRequest,
    admin: AdminUser = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    data = workflow.bulk_change_status(db, payload.application_ids, payload.status, admin.id, payload.remarks)
    return ok(f"{len(data['success'])} applications updated", data)


@router.post("/applications/{application_id}/status")
def change_status(
    application_id: int,
    payload: StatusChangeRequest,
    admin: AdminUser = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    application = workflow.admin_change_status(db, application_id, payload.status, admin.id, payload.remarks)
    return ok(f"Status changed to {application.status}", application.to_dict())


@router.get("/applications/{application_id}/history")
def application_history(
    application_id: int,
    admin: AdminUser = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    data = {
        "status_history": workflow.status_history(db, application_id),
        "stage_history": workflow.stage_history(db, application_id),
    }
    return ok("History retrieved", data)


@router.post("/applications/{application_id}/provisional")
def provisional_action(
    application_id: int,
    payload: ProvisionalActionRequest,
    admin: AdminUser = Depends(get_current_admin),
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    data = services.selection.provisional_action(db, application_id, payload.action, admin.id, payload.remarks)
    return ok(f"Application moved to {data['new_status']}", data)


@router.post("/applications/{application_id}/final")
def final_selection(
    application_id: int,
    payload: FinalActionRequest,
    admin: AdminUser = Depends(get_current_admin),
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    data = services.selection.final_selection(db, application_id, payload.action, admin.id, payload.remarks)
    message = "Application is already selected" if data["already_selected"] else f"Application {data['new_status']}"
    return ok(message, data)


@router.post("/applications/{application_id}/mark-selected")
def mark_selected(
    application_id: int,
    admin: AdminUser = Depends(get_current_admin),
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    data = services.cron.mark_as_selected(db, application_id, admin.id)
    return ok("Application marked as selected", data)


@router.get("/applications/{application_id}/documents")
def application_documents(
    application_id: int,
    admin: AdminUser = Depends(get_current_admin),
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    return ok("Documents retrieved", services.documents.application_documents(db, application_id))


@router.get("/applications/{application_id}/documents/summary")
def document_summary(
    application_id: int,
    admin: AdminUser = Depends(get_current_admin),
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    return ok("Verification summary retrieved", services.documents.verification_summary(db, application_id))


@router.post("/applications/{application_id}/documents/verify")
def verify_documents(
    application_id: int,
    payload: DocumentVerifyRequest,
    admin: AdminUser = Depends(get_current_admin),
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    items = [item.model_dump() for item in payload.items]
    data = services.documents.verify_documents(db, application_id, items, admin.id)
    return ok("Documents verified", data)


@router.post("/applications/{application_id}/documents/verify-all")
def verify_all_documents(
    application_id: int,
    payload: DocumentVerifyAllRequest,
    admin: AdminUser = Depends(get_current_admin),
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    data = services.documents.verify_all(db, application_id, payload.status, admin.id)
    return ok(f"All documents marked as {payload.status}", data)


@router.get("/posts/{post_id}/stages/{stage}")
def applications_by_stage(
    post_id: int,
    stage: str,
    district_id: Optional[int] = None,
    admin: AdminUser = Depends(get_current_admin),
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    try:
        canonical = canonicalize_status(stage)
    except ValueError as e:
        raise ValidationError(str(e))
    applications = services.selection.applications_by_stage(db, post_id, canonical, district_id)
    return ok(f"{canonical.value} applications retrieved", {"applications": applications, "count": len(applications)})


@router.post("/merit-list/{post_id}/generate")
def generate_merit_list(
    post_id: int,
    payload: MeritGenerateRequest,
    admin: AdminUser = Depends(get_current_admin),
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    data = services.merit.generate(db, post_id, payload.district_id, admin.id)
    return ok(f"Merit list generated with {data['count']} entries", data)


@router.get("/merit-list/{post_id}")
def get_merit_list(
    post_id: int,
    district_id: Optional[int] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    admin: AdminUser = Depends(get_current_admin),
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    return ok("Merit list retrieved", services.merit.get(db, post_id, district_id, page, limit))


@router.post("/cron/run")
def run_cron(
    admin: AdminUser = Depends(get_current_admin),
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    logger.info(f"CRON: Manual run requested by admin {admin.id}")
    return ok("Scheduled tasks completed", services.cron.run_scheduled_tasks(db))


@router.get("/applicants/{applicant_id}/limit/{post_id}")
def application_limit(
    applicant_id: int,
    post_id: int,
    admin: AdminUser = Depends(get_current_admin),
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    return ok("Application limit checked", services.cron.check_application_limit(db, applicant_id, post_id))
