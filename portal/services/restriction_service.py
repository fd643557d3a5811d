# portal/services/restriction_service.py
import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from portal.constants import INACTIVE_STATUSES
from portal.models import Application, PostMaster

logger = logging.getLogger(__name__)


@dataclass
class RestrictionResult:
    allowed: bool
    reason: str
    message: str
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self):
        return {
            "allowed": self.allowed,
            "reason": self.reason,
            "message": self.message,
            "details": self.details,
        }


class ApplicationRestrictionService:
    """
    Cross-application limits for one applicant.

    All active applications must sit in one district; at most
    ``max_distinct_post_names`` post names, and at most
    ``max_osc_per_post_name`` components under each post name.
    """

    def __init__(self, max_distinct_post_names: int = 2, max_osc_per_post_name: int = 2):
        self.max_distinct_post_names = max_distinct_post_names
        self.max_osc_per_post_name = max_osc_per_post_name

    @classmethod
    def from_settings(cls, settings):
        return cls(settings.MAX_DISTINCT_POST_NAMES, settings.MAX_OSC_PER_POST_NAME)

    @staticmethod
    def active_applications(db: Session, applicant_id: int) -> List[Application]:
        return (
            db.query(Application)
            .options(joinedload(Application.post))
            .filter(
                Application.applicant_id == applicant_id,
                Application.is_deleted == False,  # noqa: E712
                Application.status.notin_([s.value for s in INACTIVE_STATUSES]),
            )
            .order_by(Application.created_at, Application.id)
            .all()
        )

    @staticmethod
    def _district_of(application: Application) -> Optional[int]:
        if application.district_id:
            return application.district_id
        return application.post.district_id if application.post else None

    @staticmethod
    def _group_by_post_name(applications: List[Application]) -> "OrderedDict[str, List[Application]]":
        groups = OrderedDict()
        for app in applications:
            if app.post is None:
                continue
            groups.setdefault(app.post.post_name, []).append(app)
        return groups

    def can_apply_to_post(self, db: Session, applicant_id: int, post_id: int,
                          district_id: Optional[int] = None) -> RestrictionResult:
        post = db.query(PostMaster).filter(PostMaster.id == post_id, PostMaster.is_deleted == False).first()  # noqa: E712
        if not post:
            return RestrictionResult(False, "POST_NOT_FOUND", "Post not found", {"post_id": post_id})

        existing = self.active_applications(db, applicant_id)
        return self._check(applicant_id, post, existing, district_id or post.district_id)

    def _check(self, applicant_id: int, post: PostMaster, existing: List[Application],
               target_district: Optional[int]) -> RestrictionResult:
        post_id = post.id

        # 1. Same post
        for app in existing:
            if app.post_id == post_id:
                return RestrictionResult(
                    False, "ALREADY_APPLIED", "You have already applied to this post",
                    {"application_id": app.id, "status": app.status},
                )

        # 2. First application
        if not existing:
            return RestrictionResult(True, "FIRST_APPLICATION", "First application", {"district_id": target_district})

        # 3. Same district as the first application
        locked_district = self._district_of(existing[0])
        if locked_district is not None and target_district is not None and locked_district != target_district:
            result = RestrictionResult(
                False, "DISTRICT_MISMATCH",
                "All applications must be in the same district as your first application",
                {"restricted_to_district": locked_district, "target_district": target_district},
            )
            logger.info(f"Restriction for applicant {applicant_id} on post {post_id}: {result.reason}")
            return result

        # 4. Same post name: component variations
        groups = self._group_by_post_name(existing)
        if post.post_name in groups:
            components = {a.post.component_id for a in groups[post.post_name]}
            if post.component_id in components:
                return RestrictionResult(
                    False, "DUPLICATE_COMPONENT",
                    f"You have already applied to {post.post_name} under this component",
                    {"post_name": post.post_name, "component_id": post.component_id},
                )
            if len(components) >= self.max_osc_per_post_name:
                result = RestrictionResult(
                    False, "OSC_LIMIT_REACHED",
                    f"You can apply to at most {self.max_osc_per_post_name} components for {post.post_name}",
                    {"post_name": post.post_name, "applied_components": len(components),
                     "max_osc_per_post_name": self.max_osc_per_post_name},
                )
                logger.info(f"Restriction for applicant {applicant_id} on post {post_id}: {result.reason}")
                return result
            return RestrictionResult(
                True, "OSC_ALLOWED",
                f"Component {len(components) + 1}/{self.max_osc_per_post_name} for {post.post_name}",
                {"post_name": post.post_name, "applied_components": len(components)},
            )

        # 5. New post name
        if len(groups) >= self.max_distinct_post_names:
            result = RestrictionResult(
                False, "POST_NAME_LIMIT_REACHED",
                f"You can apply to at most {self.max_distinct_post_names} different posts",
                {"applied_post_names": list(groups), "max_distinct_post_names": self.max_distinct_post_names},
            )
            logger.info(f"Restriction for applicant {applicant_id} on post {post_id}: {result.reason}")
            return result
        return RestrictionResult(
            True, "NEW_POST_NAME_ALLOWED",
            f"Post name {len(groups) + 1}/{self.max_distinct_post_names}",
            {"applied_post_names": list(groups)},
        )

    def application_summary(self, db: Session, applicant_id: int) -> Dict[str, Any]:
        existing = self.active_applications(db, applicant_id)
        groups = self._group_by_post_name(existing)

        return {
            "total_applications": len(existing),
            "distinct_post_names": len(groups),
            "max_distinct_post_names": self.max_distinct_post_names,
            "max_osc_per_post_name": self.max_osc_per_post_name,
            "can_apply_to_new_post_name": len(groups) < self.max_distinct_post_names,
            "restricted_to_district": self._district_of(existing[0]) if existing else None,
            "post_name_breakdown": [
                {
                    "post_name": name,
                    "components": sorted({a.post.component_id for a in apps if a.post.component_id is not None}),
                    "application_count": len(apps),
                    "can_add_component": len({a.post.component_id for a in apps}) < self.max_osc_per_post_name,
                }
                for name, apps in groups.items()
            ],
        }

    def available_posts(self, db: Session, applicant_id: int, today: Optional[date] = None) -> Dict[str, Any]:
        """Open posts, each annotated with whether the applicant may still apply and why."""
        today = today or date.today()
        existing = self.active_applications(db, applicant_id)
        posts = (
            db.query(PostMaster)
            .filter(
                PostMaster.is_deleted == False,  # noqa: E712
                PostMaster.is_active == True,  # noqa: E712
                PostMaster.is_closed == False,  # noqa: E712
                or_(PostMaster.closing_date.is_(None), PostMaster.closing_date >= today),
            )
            .order_by(PostMaster.post_name, PostMaster.id)
            .all()
        )

        items = []
        for post in posts:
            result = self._check(applicant_id, post, existing, post.district_id)
            entry = post.to_dict()
            entry.update({"can_apply": result.allowed, "reason": result.reason, "message": result.message})
            items.append(entry)

        return {
            "can_apply_to_any_post": not existing,
            "posts": items,
            "summary": self.application_summary(db, applicant_id),
        }
