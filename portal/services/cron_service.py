# portal/services/cron_service.py
"""
Post capacity and time-driven reconciliation.

``claim_position`` is the one place post capacity is mutated; manual final
selection and the legacy direct-select path both go through it.
"""
import logging
from datetime import date, datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from portal.constants import ActorType, ApplicationStatus, TERMINAL_STATUSES
from portal.database import atomic
from portal.exceptions import CapacityExceededError, ConflictError, NotFoundError
from portal.models import Application, PostMaster
from portal.services import workflow_service as workflow

logger = logging.getLogger(__name__)

CRON_ACTOR = "CRON_JOB"


def _refuse(post: PostMaster):
    if post.filled_positions >= post.total_positions:
        raise CapacityExceededError(
            "No positions available for this post",
            errors={"post_id": post.id, "total_positions": post.total_positions,
                    "filled_positions": post.filled_positions},
        )
    if not post.is_active or post.is_closed:
        raise ConflictError("Post is closed for selection", errors={"post_id": post.id})


def claim_position(db: Session, post_id: int, closed_by: str) -> PostMaster:
    """
    Take one position on a post under a row lock.

    Raises CapacityExceededError when the post is already full and
    ConflictError when it is closed or inactive. Closes the post when the
    last position is taken. Must run inside ``atomic``.
    """
    post = (
        db.query(PostMaster)
        .filter(PostMaster.id == post_id)
        .with_for_update()
        .populate_existing()
        .first()
    )
    if not post:
        raise NotFoundError("Post not found")
    _refuse(post)

    # Guarded increment; capacity holds even where FOR UPDATE is a no-op (sqlite)
    claimed = (
        db.query(PostMaster)
        .filter(
            PostMaster.id == post_id,
            PostMaster.filled_positions < PostMaster.total_positions,
            PostMaster.is_active == True,  # noqa: E712
            PostMaster.is_closed == False,  # noqa: E712
        )
        .update({PostMaster.filled_positions: PostMaster.filled_positions + 1}, synchronize_session=False)
    )
    db.refresh(post)
    if not claimed:
        _refuse(post)
        raise ConflictError("Post is closed for selection", errors={"post_id": post.id})

    if post.filled_positions >= post.total_positions:
        post.is_closed = True
        post.is_active = False
        post.closed_at = datetime.now(timezone.utc)
        post.closed_by = closed_by
        logger.info(f"Post {post.post_code} filled ({post.filled_positions}/{post.total_positions}) and closed")
    db.flush()
    return post


class CronService:
    def __init__(self, restriction_service, merit_list_service):
        self.restrictions = restriction_service
        self.merit = merit_list_service

    @staticmethod
    def close_expired_posts(db: Session, today: Optional[date] = None) -> int:
        """Close every open post whose closing date has passed. Safe to repeat."""
        today = today or date.today()
        with atomic(db):
            count = (
                db.query(PostMaster)
                .filter(
                    PostMaster.closing_date < today,
                    PostMaster.is_active == True,  # noqa: E712
                    PostMaster.is_closed == False,  # noqa: E712
                    PostMaster.is_deleted == False,  # noqa: E712
                )
                .update(
                    {
                        PostMaster.is_closed: True,
                        PostMaster.is_active: False,
                        PostMaster.closed_at: datetime.now(timezone.utc),
                        PostMaster.closed_by: CRON_ACTOR,
                    },
                    synchronize_session=False,
                )
            )
        if count:
            logger.info(f"CRON: Closed {count} expired posts")
        return count

    def auto_reject_other_applications(self, db: Session, applicant_id: int, selected_application_id: int,
                                       post: PostMaster) -> int:
        """
        Move the applicant's other open applications to SELECTED_IN_OTHER_POST.

        Only applications without a final selection decision are touched, so
        running this again after a repeated selection changes nothing.
        """
        with atomic(db):
            db.flush()
            others = (
                db.query(Application)
                .filter(
                    Application.applicant_id == applicant_id,
                    Application.id != selected_application_id,
                    Application.is_deleted == False,  # noqa: E712
                    Application.status.notin_([s.value for s in TERMINAL_STATUSES]),
                    (Application.selection_status.is_(None)) | (Application.selection_status == "PENDING"),
                )
                .order_by(Application.id)
                .with_for_update()
                .all()
            )

            reason = f"Applicant was selected for post: {post.post_name} ({post.post_code})"
            for other in others:
                workflow.transition(
                    db, other, ApplicationStatus.SELECTED_IN_OTHER_POST, None, ActorType.SYSTEM,
                    remarks=reason,
                    metadata={
                        "selected_application_id": selected_application_id,
                        "selected_post_id": post.id,
                        "selected_post_code": post.post_code,
                    },
                )
                other.selection_status = ApplicationStatus.SELECTED_IN_OTHER_POST.value
                other.auto_rejected_reason = reason
                self.merit.sync_selection_status(db, other.id, ApplicationStatus.SELECTED_IN_OTHER_POST.value)

        if others:
            logger.info(
                f"Auto-rejected {len(others)} applications of applicant {applicant_id} "
                f"after selection in application {selected_application_id}"
            )
        return len(others)

    def mark_as_selected(self, db: Session, application_id: int, admin_id: int) -> Dict[str, Any]:
        """
        Direct selection path. Unlike final selection this is not idempotent:
        an already selected application is refused.
        """
        with atomic(db):
            application = workflow.get_application(db, application_id, lock=True)
            if application.status == ApplicationStatus.SELECTED.value or application.selection_status == "SELECTED":
                raise ConflictError("Application is already selected", errors={"application_id": application.id})

            workflow.transition(db, application, ApplicationStatus.SELECTED, admin_id, ActorType.ADMIN,
                                remarks="Marked as selected")
            post = claim_position(db, application.post_id, f"ADMIN_{admin_id}")

            now = datetime.now(timezone.utc)
            application.selection_status = ApplicationStatus.SELECTED.value
            application.selected_at = now
            application.selected_by = admin_id
            workflow.record_stage_entry(db, application.id, ApplicationStatus.SELECTED, admin_id, ActorType.ADMIN)
            self.merit.sync_selection_status(db, application.id, ApplicationStatus.SELECTED.value)

            rejected = self.auto_reject_other_applications(db, application.applicant_id, application.id, post)

        return {
            "application_id": application.id,
            "status": application.status,
            "post_id": post.id,
            "filled_positions": post.filled_positions,
            "total_positions": post.total_positions,
            "post_closed": post.is_closed,
            "auto_rejected": rejected,
        }

    def check_application_limit(self, db: Session, applicant_id: int, post_id: int) -> Dict[str, Any]:
        """Application limits come from the configured restriction service."""
        return self.restrictions.can_apply_to_post(db, applicant_id, post_id).to_dict()

    def run_scheduled_tasks(self, db: Session, today: Optional[date] = None) -> Dict[str, Any]:
        logger.info("CRON: Running scheduled tasks")
        closed = self.close_expired_posts(db, today)
        return {"closed_posts": closed, "ran_at": datetime.now(timezone.utc).isoformat()}
