# portal/services/selection_service.py
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from portal.constants import (
    ActorType, ApplicationStatus, SelectionAction, PROVISIONAL_ACTIONS, FINAL_ACTIONS,
)
from portal.database import atomic
from portal.exceptions import ConflictError, PreconditionError, ValidationError
from portal.models import Application, ApplicationStageHistory, PostMaster
from portal.services import workflow_service as workflow
from portal.services.workflow_service import STAGE_STATUSES
from portal.services.cron_service import claim_position

logger = logging.getLogger(__name__)

PROVISIONAL_SOURCES = (ApplicationStatus.ELIGIBLE.value, ApplicationStatus.ON_HOLD.value)

PROVISIONAL_TARGETS = {
    SelectionAction.PROVISIONAL_SELECT: ApplicationStatus.PROVISIONAL_SELECTED,
    SelectionAction.HOLD: ApplicationStatus.ON_HOLD,
    SelectionAction.REJECT: ApplicationStatus.REJECTED,
}


class SelectionService:
    """
    Admin review stages.

    ELIGIBLE / ON_HOLD -> PROVISIONAL_SELECTED | ON_HOLD | REJECTED, then
    PROVISIONAL_SELECTED -> SELECTED | REJECTED. Final selection takes a
    position on the post and cascades SELECTED_IN_OTHER_POST to the
    applicant's other applications.
    """

    def __init__(self, document_service, merit_list_service, cron_service):
        self.documents = document_service
        self.merit = merit_list_service
        self.cron = cron_service

    def provisional_action(self, db: Session, application_id: int, action: SelectionAction, admin_id: int,
                           remarks: Optional[str] = None) -> Dict[str, Any]:
        action = SelectionAction(action)
        if action not in PROVISIONAL_ACTIONS:
            raise ValidationError("Invalid action. Must be PROVISIONAL_SELECT, HOLD or REJECT")
        target = PROVISIONAL_TARGETS[action]

        with atomic(db):
            # Status is validated after the row lock is held
            application = workflow.get_application(db, application_id, lock=True)
            previous = application.status
            if previous not in PROVISIONAL_SOURCES:
                raise ConflictError(
                    f"Provisional actions are only allowed from ELIGIBLE or ON_HOLD (current: {previous})",
                    errors={"current_status": previous, "target_status": target.value},
                )

            if action is SelectionAction.PROVISIONAL_SELECT:
                summary = self.documents.verification_summary(db, application.id)
                if summary["total"] == 0:
                    application.document_verified = True
                elif not summary["all_verified"]:
                    raise PreconditionError(
                        "All documents must be verified before provisional selection",
                        errors=summary,
                    )

            now = datetime.now(timezone.utc)
            workflow.transition(db, application, target, admin_id, ActorType.ADMIN,
                                remarks=remarks or f"Moved to {target.value} by admin",
                                metadata={"action": action.value})
            application.verified_by = admin_id
            application.verified_at = now
            application.verification_remarks = remarks

            if target is ApplicationStatus.REJECTED:
                application.selection_status = ApplicationStatus.REJECTED.value
                application.rejection_reason = remarks
            if target is ApplicationStatus.PROVISIONAL_SELECTED:
                workflow.record_stage_entry(db, application.id, target, admin_id, ActorType.ADMIN, remarks)

            self.merit.sync_selection_status(db, application.id, target.value)

        logger.info(f"Application {application_id} moved to {target.value} by admin {admin_id}")
        return {
            "application_id": application_id,
            "previous_status": previous,
            "new_status": target.value,
            "action": action.value,
        }

    def final_selection(self, db: Session, application_id: int, action: SelectionAction, admin_id: int,
                        remarks: Optional[str] = None) -> Dict[str, Any]:
        """
        SELECT or REJECT a provisionally selected application.

        SELECT on an application that is already SELECTED does not take
        another position; it only makes sure the auto-reject cascade has
        run and reports ``already_selected``.
        """
        action = SelectionAction(action)
        if action not in FINAL_ACTIONS:
            raise ValidationError("Invalid action. Must be SELECT or REJECT")

        with atomic(db):
            application = workflow.get_application(db, application_id, lock=True)
            previous = application.status

            if action is SelectionAction.SELECT and previous == ApplicationStatus.SELECTED.value:
                post = db.query(PostMaster).filter(PostMaster.id == application.post_id).first()
                rejected = self.cron.auto_reject_other_applications(db, application.applicant_id, application.id, post)
                logger.info(f"Application {application_id} already selected; cascade re-checked ({rejected} updated)")
                return {
                    "application_id": application_id,
                    "previous_status": previous,
                    "new_status": previous,
                    "action": action.value,
                    "already_selected": True,
                    "auto_rejected": rejected,
                }

            if previous != ApplicationStatus.PROVISIONAL_SELECTED.value:
                raise ConflictError(
                    f"Final selection is only allowed from PROVISIONAL_SELECTED (current: {previous})",
                    errors={"current_status": previous},
                )

            now = datetime.now(timezone.utc)
            if action is SelectionAction.SELECT:
                target = ApplicationStatus.SELECTED
                workflow.transition(db, application, target, admin_id, ActorType.ADMIN,
                                    remarks=remarks or "Final selection")
                post = claim_position(db, application.post_id, f"ADMIN_{admin_id}")
                application.selected_at = now
                application.selected_by = admin_id
            else:
                target = ApplicationStatus.REJECTED
                workflow.transition(db, application, target, admin_id, ActorType.ADMIN,
                                    remarks=remarks or "Rejected at final selection")
                application.rejection_reason = remarks
                post = None

            application.selection_status = target.value
            application.verified_by = admin_id
            if target is ApplicationStatus.SELECTED:
                workflow.record_stage_entry(db, application.id, target, admin_id, ActorType.ADMIN, remarks)
            self.merit.sync_selection_status(db, application.id, target.value)

            rejected = 0
            if post is not None:
                rejected = self.cron.auto_reject_other_applications(db, application.applicant_id, application.id, post)

        logger.info(f"Application {application_id} final action {action.value} by admin {admin_id}")
        result = {
            "application_id": application_id,
            "previous_status": previous,
            "new_status": target.value,
            "action": action.value,
            "already_selected": False,
            "auto_rejected": rejected,
        }
        if post is not None:
            result.update({
                "filled_positions": post.filled_positions,
                "total_positions": post.total_positions,
                "post_closed": post.is_closed,
            })
        return result

    @staticmethod
    def applications_by_stage(db: Session, post_id: int, stage: ApplicationStatus,
                              district_id: Optional[int] = None) -> List[Dict[str, Any]]:
        """
        Applications of a post currently sitting in ``stage``, best merit first.

        ELIGIBLE is read from the application status itself; the other stages
        come from open rows of the stage ledger.
        """
        stage = ApplicationStatus(stage)
        if stage not in STAGE_STATUSES:
            raise ValidationError(
                "stage must be ELIGIBLE, PROVISIONAL_SELECTED or SELECTED",
                errors={"allowed": sorted(s.value for s in STAGE_STATUSES)},
            )

        filters = [Application.post_id == post_id, Application.is_deleted == False]  # noqa: E712
        if district_id is not None:
            filters.append(Application.district_id == district_id)

        if stage is ApplicationStatus.ELIGIBLE:
            applications = (
                db.query(Application)
                .filter(Application.status == stage.value, *filters)
                .all()
            )
            rows = [(app, app.submitted_at, None, None) for app in applications]
        else:
            entries = (
                db.query(ApplicationStageHistory, Application)
                .join(Application, Application.id == ApplicationStageHistory.application_id)
                .filter(
                    ApplicationStageHistory.stage == stage.value,
                    ApplicationStageHistory.exited_at.is_(None),
                    *filters,
                )
                .all()
            )
            rows = [(app, entry.entered_at, entry.entered_by, entry.entered_by_type) for entry, app in entries]

        def sort_key(row):
            app, entered_at = row[0], row[1]
            entered = entered_at.timestamp() if entered_at else 0
            return (-float(app.merit_score or 0), entered, app.application_no or "")

        result = []
        for app, entered_at, entered_by, entered_by_type in sorted(rows, key=sort_key):
            entry = app.to_dict()
            entry.update({
                "stage": stage.value,
                "entered_at": entered_at.isoformat() if entered_at else None,
                "entered_by": entered_by,
                "entered_by_type": entered_by_type,
            })
            result.append(entry)
        return result
