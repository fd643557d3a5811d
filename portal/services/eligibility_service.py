# portal/services/eligibility_service.py
"""
Eligibility evaluation.

The evaluator itself (``evaluate``) is a pure function over an
``ApplicantSnapshot`` and ``PostRequirements``. ``EligibilityService`` loads
those from the database, so the bulk listing path loads the applicant once
and evaluates every post against the same snapshot.
"""
import logging
from dataclasses import dataclass, field, asdict
from datetime import date
from typing import Any, Dict, List, Optional

from dateutil.relativedelta import relativedelta
from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from portal.exceptions import NotFoundError
from portal.models import (
    ApplicantMaster, ApplicantEducation, ApplicantExperience, PostMaster, Application
)
from portal.constants import INACTIVE_STATUSES

logger = logging.getLogger(__name__)

DEFAULT_MIN_AGE = 18
DEFAULT_MAX_AGE = 65


@dataclass
class CriterionResult:
    criterion: str
    required: str
    actual: str
    passed: bool = True
    message: str = ""

    def to_dict(self):
        return asdict(self)


@dataclass
class EligibilityVerdict:
    is_eligible: bool
    checks: List[CriterionResult]
    failed_checks: List[str]

    @property
    def reason(self) -> str:
        return "; ".join(self.failed_checks)

    def to_dict(self):
        return {
            "is_eligible": self.is_eligible,
            "checks": [c.to_dict() for c in self.checks],
            "failed_checks": list(self.failed_checks),
        }


@dataclass(frozen=True)
class EducationRecord:
    level_name: Optional[str]
    rank: Optional[int]  # display_order of the linked level
    percentage: Optional[float] = None


@dataclass(frozen=True)
class ExperienceRecord:
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    is_current: bool = False
    total_months: Optional[int] = None


@dataclass
class ApplicantSnapshot:
    applicant_id: int
    dob: Optional[date] = None
    education: List[EducationRecord] = field(default_factory=list)
    experience: List[ExperienceRecord] = field(default_factory=list)
    is_domicile: bool = False
    permanent_district_id: Optional[int] = None


@dataclass(frozen=True)
class PostRequirements:
    min_age: Optional[int] = None
    max_age: Optional[int] = None
    min_rank: Optional[int] = None
    min_level_name: Optional[str] = None
    max_rank: Optional[int] = None
    max_level_name: Optional[str] = None
    min_experience_months: int = 0

    @classmethod
    def from_post(cls, post: PostMaster) -> "PostRequirements":
        min_level = post.min_education_level
        max_level = post.max_education_level
        return cls(
            min_age=post.min_age,
            max_age=post.max_age,
            min_rank=min_level.display_order if min_level else None,
            min_level_name=min_level.level_name if min_level else None,
            max_rank=max_level.display_order if max_level else None,
            max_level_name=max_level.level_name if max_level else None,
            min_experience_months=post.min_experience_months or 0,
        )


def age_on(dob: date, today: date) -> int:
    return relativedelta(today, dob).years


def months_of(record: ExperienceRecord, today: date) -> int:
    if record.total_months:
        return max(0, record.total_months)
    if not record.start_date:
        return 0
    end = today if record.is_current or not record.end_date else record.end_date
    delta = relativedelta(end, record.start_date)
    return max(0, delta.years * 12 + delta.months)


def check_age(snapshot: ApplicantSnapshot, req: PostRequirements, today: date) -> CriterionResult:
    min_age = req.min_age or DEFAULT_MIN_AGE
    max_age = req.max_age or DEFAULT_MAX_AGE
    check = CriterionResult("Age", f"{min_age} - {max_age} years", "Not calculated")

    if not snapshot.dob:
        check.actual = "DOB not provided"
        check.passed = False
        check.message = "Date of birth not provided"
        return check

    age = age_on(snapshot.dob, today)
    check.actual = f"{age} years"
    if age < min_age:
        check.passed = False
        check.message = f"Age {age} is below minimum required age of {min_age}"
    elif age > max_age:
        check.passed = False
        check.message = f"Age {age} exceeds maximum allowed age of {max_age}"
    return check


def check_education(snapshot: ApplicantSnapshot, req: PostRequirements) -> CriterionResult:
    check = CriterionResult("Education", "No minimum education required", "No education records")

    if req.min_rank is not None:
        check.required = f"Min: {req.min_level_name} (rank {req.min_rank})"
        if req.max_rank is not None:
            check.required += f", Max: {req.max_level_name} (rank {req.max_rank})"
    elif req.max_rank is not None:
        check.required = f"Max: {req.max_level_name} (rank {req.max_rank})"
    else:
        return check

    ranked = [e for e in snapshot.education if e.rank is not None]
    if not ranked:
        if req.min_rank is None:
            return check
        check.passed = False
        if snapshot.education:
            check.actual = "Education level not linked to master data"
            check.message = "Education records not linked to education level master"
        else:
            check.message = "No education records found"
        return check

    highest = max(ranked, key=lambda e: e.rank)
    check.actual = f"{highest.level_name} (rank {highest.rank})"

    if req.min_rank is not None and highest.rank < req.min_rank:
        check.passed = False
        check.message = (
            f"Education level {highest.level_name} (rank {highest.rank}) is below required "
            f"{req.min_level_name} (rank {req.min_rank})"
        )
    elif req.max_rank is not None and highest.rank > req.max_rank:
        check.passed = False
        check.message = (
            f"Education level {highest.level_name} (rank {highest.rank}) exceeds maximum allowed "
            f"{req.max_level_name} (rank {req.max_rank})"
        )
    return check


def check_experience(snapshot: ApplicantSnapshot, req: PostRequirements, today: date) -> CriterionResult:
    min_required = req.min_experience_months or 0
    check = CriterionResult(
        "Experience",
        f"{min_required} months minimum" if min_required > 0 else "No minimum experience required",
        "0 months",
    )
    if min_required == 0:
        return check

    if not snapshot.experience:
        check.actual = "0 months (no records)"
        check.passed = False
        check.message = f"No experience records found. Minimum {min_required} months required."
        return check

    total = sum(months_of(record, today) for record in snapshot.experience)
    check.actual = f"{total} months"
    if total < min_required:
        check.passed = False
        check.message = f"Total experience {total} months is below required {min_required} months"
    return check


def evaluate(snapshot: ApplicantSnapshot, req: PostRequirements, today: Optional[date] = None) -> EligibilityVerdict:
    """Run age, education and experience checks. Deterministic for a fixed ``today``."""
    today = today or date.today()
    checks = [
        check_age(snapshot, req, today),
        check_education(snapshot, req),
        check_experience(snapshot, req, today),
    ]
    failed = [c.message for c in checks if not c.passed]
    return EligibilityVerdict(is_eligible=not failed, checks=checks, failed_checks=failed)


def is_eligible_inline(snapshot: ApplicantSnapshot, req: PostRequirements, today: Optional[date] = None) -> bool:
    """Boolean form used by bulk listings. Same rules as ``evaluate``."""
    return evaluate(snapshot, req, today).is_eligible


class EligibilityService:
    def __init__(self, document_service):
        self.documents = document_service

    @staticmethod
    def load_applicant(db: Session, applicant_id: int) -> ApplicantMaster:
        applicant = (
            db.query(ApplicantMaster)
            .options(
                joinedload(ApplicantMaster.personal),
                joinedload(ApplicantMaster.address),
            )
            .filter(ApplicantMaster.id == applicant_id, ApplicantMaster.is_deleted == False)  # noqa: E712
            .first()
        )
        if not applicant:
            raise NotFoundError("Applicant not found")
        return applicant

    @staticmethod
    def load_snapshot(db: Session, applicant_id: int) -> ApplicantSnapshot:
        applicant = EligibilityService.load_applicant(db, applicant_id)

        education = (
            db.query(ApplicantEducation)
            .options(joinedload(ApplicantEducation.education_level))
            .filter(ApplicantEducation.applicant_id == applicant_id, ApplicantEducation.is_deleted == False)  # noqa: E712
            .all()
        )
        experience = (
            db.query(ApplicantExperience)
            .filter(ApplicantExperience.applicant_id == applicant_id, ApplicantExperience.is_deleted == False)  # noqa: E712
            .all()
        )
        personal = applicant.personal
        address = applicant.address

        return ApplicantSnapshot(
            applicant_id=applicant_id,
            dob=personal.dob if personal else None,
            education=[
                EducationRecord(
                    level_name=e.education_level.level_name if e.education_level else None,
                    rank=e.education_level.display_order if e.education_level else None,
                    percentage=float(e.percentage) if e.percentage is not None else None,
                )
                for e in education
            ],
            experience=[
                ExperienceRecord(
                    start_date=x.start_date,
                    end_date=x.end_date,
                    is_current=bool(x.is_current),
                    total_months=x.total_months,
                )
                for x in experience
            ],
            is_domicile=bool(personal.is_domicile) if personal else False,
            permanent_district_id=address.permanent_district_id if address else None,
        )

    @staticmethod
    def load_post(db: Session, post_id: int) -> PostMaster:
        post = (
            db.query(PostMaster)
            .options(
                joinedload(PostMaster.min_education_level),
                joinedload(PostMaster.max_education_level),
                joinedload(PostMaster.component),
            )
            .filter(PostMaster.id == post_id, PostMaster.is_deleted == False)  # noqa: E712
            .first()
        )
        if not post:
            raise NotFoundError("Post not found")
        return post

    def check_eligibility(self, db: Session, applicant_id: int, post_id: int,
                          today: Optional[date] = None) -> Dict[str, Any]:
        snapshot = self.load_snapshot(db, applicant_id)
        post = self.load_post(db, post_id)
        verdict = evaluate(snapshot, PostRequirements.from_post(post), today)

        logger.info(
            f"Eligibility check for applicant {applicant_id} on post {post_id}: "
            f"{'ELIGIBLE' if verdict.is_eligible else 'NOT ELIGIBLE'}"
        )
        result = verdict.to_dict()
        result.update({
            "post_id": post.id,
            "post_name": post.post_name,
            "post_code": post.post_code,
            "component_name": post.component.component_name if post.component else None,
        })
        return result

    def eligible_posts(self, db: Session, applicant_id: int, page: int = 1, limit: int = 20,
                       search: Optional[str] = None, only_eligible: bool = False,
                       include_locked: bool = False, today: Optional[date] = None) -> Dict[str, Any]:
        """
        Open posts annotated with eligibility for one applicant.

        Posts the applicant already holds an active application for are marked
        as applied. Locked posts (closed, inactive or past closing date) are
        left out unless ``include_locked`` is set.
        """
        today = today or date.today()
        snapshot = self.load_snapshot(db, applicant_id)

        query = (
            db.query(PostMaster)
            .options(
                joinedload(PostMaster.min_education_level),
                joinedload(PostMaster.max_education_level),
                joinedload(PostMaster.component),
                joinedload(PostMaster.district),
            )
            .filter(PostMaster.is_deleted == False)  # noqa: E712
        )
        if not include_locked:
            query = query.filter(
                PostMaster.is_active == True,  # noqa: E712
                PostMaster.is_closed == False,  # noqa: E712
                or_(PostMaster.closing_date.is_(None), PostMaster.closing_date >= today),
            )
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(or_(PostMaster.post_name.ilike(pattern), PostMaster.post_code.ilike(pattern)))

        posts = query.order_by(PostMaster.post_name, PostMaster.id).all()

        applied = {
            row.post_id
            for row in db.query(Application.post_id).filter(
                Application.applicant_id == applicant_id,
                Application.is_deleted == False,  # noqa: E712
                Application.status.notin_([s.value for s in INACTIVE_STATUSES]),
            )
        }

        items = []
        for post in posts:
            eligible = is_eligible_inline(snapshot, PostRequirements.from_post(post), today)
            if only_eligible and not eligible:
                continue
            entry = post.to_dict()
            entry["is_eligible"] = eligible
            entry["already_applied"] = post.id in applied
            entry["is_locked"] = not post.is_open_on(today)
            items.append(entry)

        total = len(items)
        start = (page - 1) * limit
        return {
            "posts": items[start:start + limit],
            "pagination": {
                "total": total,
                "page": page,
                "limit": limit,
                "total_pages": (total + limit - 1) // limit if limit else 0,
            },
        }

    def profile_completion(self, db: Session, applicant_id: int) -> Dict[str, Any]:
        """
        Weighted completion of the applicant profile.

        Sections: personal 25, address 20, education 25, experience 15,
        documents 15. Only a 100% profile may apply.
        """
        applicant = self.load_applicant(db, applicant_id)
        personal = applicant.personal
        address = applicant.address

        sections = {}

        personal_ok = bool(personal and personal.full_name and personal.dob and personal.gender)
        sections["personal"] = {"weight": 25, "complete": personal_ok}

        address_ok = bool(address and address.address_line and address.district_id and address.pincode)
        sections["address"] = {"weight": 20, "complete": address_ok}

        education_count = (
            db.query(ApplicantEducation)
            .filter(ApplicantEducation.applicant_id == applicant_id, ApplicantEducation.is_deleted == False)  # noqa: E712
            .count()
        )
        sections["education"] = {"weight": 25, "complete": education_count > 0}

        # Experience counts as done once the applicant has answered the question;
        # answering "yes" additionally needs at least one record.
        has_experience = personal.has_experience if personal else None
        if has_experience is None:
            experience_ok = False
        elif has_experience:
            experience_ok = (
                db.query(ApplicantExperience)
                .filter(ApplicantExperience.applicant_id == applicant_id, ApplicantExperience.is_deleted == False)  # noqa: E712
                .count()
                > 0
            )
        else:
            experience_ok = True
        sections["experience"] = {"weight": 15, "complete": experience_ok}

        document_check = self.documents.check(db, applicant_id)
        sections["documents"] = {
            "weight": 15,
            "complete": document_check["complete"],
            "missing": [d["doc_name"] for d in document_check["missing"]],
        }

        percentage = sum(s["weight"] for s in sections.values() if s["complete"])
        return {
            "percentage": percentage,
            "is_complete": percentage == 100,
            "can_apply": percentage == 100,
            "sections": sections,
        }
