# portal/services/workflow_service.py
"""
Status transitions with an audit trail.

Every status mutation in the system goes through ``transition`` so the
transition table is checked and exactly one history row is appended.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from portal.constants import (
    ActorType, ApplicationStatus, TERMINAL_STATUSES, LOCKED_STATUSES,
    allowed_transitions, is_valid_transition,
)
from portal.database import atomic
from portal.exceptions import ConflictError, NotFoundError, ValidationError
from portal.models import Application, ApplicationStageHistory, ApplicationStatusHistory
from portal.services.merit_list_service import MeritListService

logger = logging.getLogger(__name__)

# Statuses that open a row in the stage ledger
STAGE_STATUSES = frozenset({
    ApplicationStatus.ELIGIBLE, ApplicationStatus.PROVISIONAL_SELECTED, ApplicationStatus.SELECTED,
})

# Targets reachable through the generic admin status endpoint. Selection,
# provisional selection and the cascade status have their own paths.
ADMIN_STATUS_TARGETS = frozenset({
    ApplicationStatus.ELIGIBLE, ApplicationStatus.ON_HOLD, ApplicationStatus.REJECTED,
})


def get_application(db: Session, application_id: int, lock: bool = False) -> Application:
    query = db.query(Application).filter(Application.id == application_id, Application.is_deleted == False)  # noqa: E712
    if lock:
        query = query.with_for_update().populate_existing()
    application = query.first()
    if not application:
        raise NotFoundError("Application not found")
    return application


def append_history(db: Session, application: Application, old_status: Optional[str], new_status: str,
                   actor_id: Optional[int], actor_type: ActorType, remarks: Optional[str] = None,
                   metadata: Optional[Dict[str, Any]] = None) -> ApplicationStatusHistory:
    row = ApplicationStatusHistory(
        application_id=application.id,
        old_status=old_status,
        new_status=ApplicationStatus(new_status).value,
        changed_by=actor_id,
        changed_by_type=ActorType(actor_type).value,
        remarks=remarks,
        history_metadata=metadata,
    )
    db.add(row)
    return row


def record_stage_entry(db: Session, application_id: int, stage: ApplicationStatus, actor_id: Optional[int],
                       actor_type: ActorType, remarks: Optional[str] = None) -> ApplicationStageHistory:
    """Close the open stage row for the application and open a new one."""
    now = datetime.now(timezone.utc)
    open_rows = (
        db.query(ApplicationStageHistory)
        .filter(ApplicationStageHistory.application_id == application_id, ApplicationStageHistory.exited_at.is_(None))
        .all()
    )
    for row in open_rows:
        row.exited_at = now
        row.exited_by = actor_id
        row.exited_by_type = ActorType(actor_type).value

    entry = ApplicationStageHistory(
        application_id=application_id,
        stage=ApplicationStatus(stage).value,
        entered_at=now,
        entered_by=actor_id,
        entered_by_type=ActorType(actor_type).value,
        remarks=remarks,
    )
    db.add(entry)
    db.flush()
    return entry


def transition(db: Session, application: Application, target: ApplicationStatus, actor_id: Optional[int],
               actor_type: ActorType, remarks: Optional[str] = None,
               metadata: Optional[Dict[str, Any]] = None) -> Application:
    """
    Move an application to ``target``.

    Raises ConflictError naming both statuses when the table does not allow
    the move. Does not commit; callers run it inside ``atomic``.
    """
    current = ApplicationStatus(application.status)
    target = ApplicationStatus(target)

    if current in TERMINAL_STATUSES:
        raise ConflictError(
            f"Cannot change status of terminal application ({current.value})",
            errors={"current_status": current.value, "target_status": target.value},
        )
    if not is_valid_transition(current, target):
        raise ConflictError(
            f"Invalid status transition from {current.value} to {target.value}",
            errors={
                "current_status": current.value,
                "target_status": target.value,
                "allowed": sorted(s.value for s in allowed_transitions(current)),
            },
        )

    application.status = target.value
    application.is_locked = target in LOCKED_STATUSES
    append_history(db, application, current.value, target.value, actor_id, actor_type, remarks, metadata)

    logger.info(
        f"Application {application.id} status changed: {current.value} -> {target.value} "
        f"by {ActorType(actor_type).value}:{actor_id or 'system'}"
    )
    return application


def change_status(db: Session, application_id: int, new_status: ApplicationStatus, actor_id: Optional[int],
                  actor_type: ActorType = ActorType.ADMIN, remarks: Optional[str] = None,
                  metadata: Optional[Dict[str, Any]] = None) -> Application:
    with atomic(db):
        application = get_application(db, application_id, lock=True)
        transition(db, application, new_status, actor_id, actor_type, remarks, metadata)
        if ApplicationStatus(new_status) in STAGE_STATUSES:
            record_stage_entry(db, application.id, new_status, actor_id, actor_type, remarks)
    return application


def admin_change_status(db: Session, application_id: int, new_status: ApplicationStatus, admin_id: int,
                        remarks: Optional[str] = None) -> Application:
    target = ApplicationStatus(new_status)
    if target not in ADMIN_STATUS_TARGETS:
        raise ValidationError(
            f"Status {target.value} cannot be set directly",
            errors={"allowed": sorted(s.value for s in ADMIN_STATUS_TARGETS)},
        )

    with atomic(db):
        application = change_status(db, application_id, target, admin_id, ActorType.ADMIN, remarks)
        if target is ApplicationStatus.REJECTED:
            application.selection_status = target.value
            application.rejection_reason = remarks
            MeritListService.sync_selection_status(db, application.id, target.value)
    return application


def bulk_change_status(db: Session, application_ids: List[int], new_status: ApplicationStatus,
                       actor_id: Optional[int], remarks: Optional[str] = None) -> Dict[str, Any]:
    """Each application is its own unit of work; failures are collected, not raised."""
    results = {"success": [], "failed": []}
    for application_id in application_ids:
        try:
            admin_change_status(db, application_id, new_status, actor_id, remarks)
            results["success"].append(application_id)
        except (ConflictError, NotFoundError, ValidationError) as e:
            results["failed"].append({"id": application_id, "error": e.message})

    logger.info(
        f"Bulk status change to {ApplicationStatus(new_status).value}: "
        f"{len(results['success'])} success, {len(results['failed'])} failed"
    )
    return results


def status_history(db: Session, application_id: int) -> List[Dict[str, Any]]:
    get_application(db, application_id)
    rows = (
        db.query(ApplicationStatusHistory)
        .filter(ApplicationStatusHistory.application_id == application_id)
        .order_by(ApplicationStatusHistory.id)
        .all()
    )
    return [r.to_dict() for r in rows]


def stage_history(db: Session, application_id: int) -> List[Dict[str, Any]]:
    rows = (
        db.query(ApplicationStageHistory)
        .filter(ApplicationStageHistory.application_id == application_id)
        .order_by(ApplicationStageHistory.id)
        .all()
    )
    return [r.to_dict() for r in rows]
