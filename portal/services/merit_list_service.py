# portal/services/merit_list_service.py
import logging
from datetime import date, datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session, joinedload

from portal.constants import ApplicationStatus
from portal.database import atomic
from portal.exceptions import NotFoundError
from portal.models import Application, MeritList, PostMaster
from portal.services.eligibility_service import ApplicantSnapshot, EligibilityService, age_on, months_of

logger = logging.getLogger(__name__)

# Scoring weights for the stored merit list
WEIGHTS = {
    "education": 30,
    "marks": 25,
    "experience": 20,
    "age": 15,
    "local_preference": 10,
}
MAX_EDUCATION_ORDER = 10
MAX_EXPERIENCE_MONTHS = 120
MIN_AGE = 18
MAX_AGE = 65

RANKED_STATUSES = (
    ApplicationStatus.ELIGIBLE.value,
    ApplicationStatus.ON_HOLD.value,
    ApplicationStatus.PROVISIONAL_SELECTED.value,
    ApplicationStatus.SELECTED.value,
)


def compute_merit_score(snapshot: ApplicantSnapshot, post_district_id: Optional[int],
                        age_preference: str = "YOUNGER", today: Optional[date] = None) -> float:
    """
    Single sortable score: education rank dominates, then percentage within
    the top level, locality, experience months (capped at 999), then age.
    """
    today = today or date.today()

    ranked = [e for e in snapshot.education if e.rank is not None]
    top_rank = max((e.rank for e in ranked), default=0)
    top_percentage = max((e.percentage or 0 for e in ranked if e.rank == top_rank), default=0)

    local = 1 if post_district_id and snapshot.permanent_district_id == post_district_id else 0
    experience = min(sum(months_of(x, today) for x in snapshot.experience), 999)

    age_score = 0
    if snapshot.dob:
        age = max(0, min(age_on(snapshot.dob, today), 100))
        age_score = age if age_preference == "OLDER" else 100 - age

    return round(top_rank * 100000000 + top_percentage * 100000 + local * 10000 + experience * 10 + age_score, 2)


class MeritListService:
    def __init__(self, age_preference: str = "YOUNGER"):
        self.age_preference = age_preference.upper()

    @staticmethod
    def education_score(snapshot: ApplicantSnapshot) -> float:
        highest = max((e.rank or 0 for e in snapshot.education), default=0)
        return min(WEIGHTS["education"], highest / MAX_EDUCATION_ORDER * WEIGHTS["education"])

    @staticmethod
    def marks_score(snapshot: ApplicantSnapshot) -> float:
        highest = max((e.percentage or 0 for e in snapshot.education), default=0)
        return min(WEIGHTS["marks"], highest / 100 * WEIGHTS["marks"])

    @staticmethod
    def experience_score(snapshot: ApplicantSnapshot, today: date) -> float:
        months = min(sum(months_of(x, today) for x in snapshot.experience), MAX_EXPERIENCE_MONTHS)
        return months / MAX_EXPERIENCE_MONTHS * WEIGHTS["experience"]

    def age_score(self, snapshot: ApplicantSnapshot, today: date) -> float:
        if not snapshot.dob:
            return 0
        age = age_on(snapshot.dob, today)
        if age < MIN_AGE or age > MAX_AGE:
            return 0
        position = (age - MIN_AGE) / (MAX_AGE - MIN_AGE)
        if self.age_preference == "OLDER":
            return WEIGHTS["age"] * position
        return WEIGHTS["age"] * (1 - position)

    def score_application(self, snapshot: ApplicantSnapshot, district_id: Optional[int],
                          today: date) -> Dict[str, Any]:
        is_local = bool(district_id and snapshot.permanent_district_id == district_id)
        parts = {
            "education_score": round(self.education_score(snapshot), 2),
            "marks_score": round(self.marks_score(snapshot), 2),
            "experience_score": round(self.experience_score(snapshot, today), 2),
            "age_score": round(self.age_score(snapshot, today), 2),
            "local_preference_score": WEIGHTS["local_preference"] if is_local else 0,
            "is_local_candidate": is_local,
        }
        parts["score"] = round(
            parts["education_score"] + parts["marks_score"] + parts["experience_score"]
            + parts["age_score"] + parts["local_preference_score"],
            2,
        )
        return parts

    @staticmethod
    def _sort_key(entry):
        # Education, marks, local first, experience, age
        return (
            -entry["education_score"],
            -entry["marks_score"],
            0 if entry["is_local_candidate"] else 1,
            -entry["experience_score"],
            -entry["age_score"],
        )

    def generate(self, db: Session, post_id: int, district_id: Optional[int], admin_id: Optional[int],
                 today: Optional[date] = None) -> Dict[str, Any]:
        today = today or date.today()
        post = db.query(PostMaster).filter(PostMaster.id == post_id).first()
        if not post:
            raise NotFoundError("Post not found")
        district_id = district_id or post.district_id

        with atomic(db):
            applications = (
                db.query(Application)
                .filter(
                    Application.post_id == post_id,
                    Application.district_id == district_id,
                    Application.is_deleted == False,  # noqa: E712
                    Application.system_eligibility == True,  # noqa: E712
                    Application.status.in_(RANKED_STATUSES),
                )
                .order_by(Application.id)
                .all()
            )

            entries = []
            for application in applications:
                snapshot = EligibilityService.load_snapshot(db, application.applicant_id)
                entry = self.score_application(snapshot, district_id, today)
                entry["application_id"] = application.id
                entry["selection_status"] = application.selection_status or "PENDING"
                entries.append(entry)

            entries.sort(key=self._sort_key)

            db.query(MeritList).filter(
                MeritList.post_id == post_id, MeritList.district_id == district_id
            ).delete(synchronize_session=False)

            now = datetime.now(timezone.utc)
            by_id = {a.id: a for a in applications}
            for rank, entry in enumerate(entries, start=1):
                entry["rank"] = rank
                db.add(MeritList(
                    post_id=post_id,
                    district_id=district_id,
                    generated_at=now,
                    generated_by=admin_id,
                    **entry,
                ))
                by_id[entry["application_id"]].merit_score = entry["score"]

        logger.info(f"MERIT: Generated merit list for post {post_id}, district {district_id}: {len(entries)} entries")
        return {
            "post_id": post_id,
            "district_id": district_id,
            "count": len(entries),
            "top_ranked": [
                {"rank": e["rank"], "application_id": e["application_id"], "score": e["score"],
                 "is_local": e["is_local_candidate"]}
                for e in entries[:10]
            ],
        }

    @staticmethod
    def get(db: Session, post_id: int, district_id: Optional[int] = None, page: int = 1,
            limit: int = 50) -> Dict[str, Any]:
        query = (
            db.query(MeritList)
            .options(joinedload(MeritList.application))
            .filter(MeritList.post_id == post_id)
        )
        if district_id:
            query = query.filter(MeritList.district_id == district_id)

        total = query.count()
        rows = query.order_by(MeritList.rank).offset((page - 1) * limit).limit(limit).all()
        return {
            "merit_list": [r.to_dict() for r in rows],
            "pagination": {
                "total": total,
                "page": page,
                "limit": limit,
                "total_pages": (total + limit - 1) // limit if limit else 0,
            },
        }

    @staticmethod
    def sync_selection_status(db: Session, application_id: int, selection_status: str) -> int:
        """Mirror an application's selection status onto its merit list rows."""
        return (
            db.query(MeritList)
            .filter(MeritList.application_id == application_id)
            .update({"selection_status": selection_status}, synchronize_session=False)
        )
