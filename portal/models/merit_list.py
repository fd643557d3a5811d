# portal/models/merit_list.py
from sqlalchemy import Column, String, Integer, Boolean, DateTime, Numeric, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from portal.database import Base


class MeritList(Base):
    __tablename__ = "merit_list"
    __table_args__ = (UniqueConstraint("post_id", "district_id", "application_id", name="uq_merit_entry"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    application_id = Column(Integer, ForeignKey("applications.id"), nullable=False, index=True)
    post_id = Column(Integer, ForeignKey("post_master.id"), nullable=False)
    district_id = Column(Integer, ForeignKey("district_master.id"), nullable=True)

    score = Column(Numeric(10, 2), nullable=True)
    rank = Column(Integer, nullable=True)
    education_score = Column(Numeric(10, 2), nullable=True)
    marks_score = Column(Numeric(10, 2), nullable=True)
    experience_score = Column(Numeric(10, 2), nullable=True)
    age_score = Column(Numeric(10, 2), nullable=True)
    local_preference_score = Column(Numeric(10, 2), nullable=True)
    is_local_candidate = Column(Boolean, default=False, nullable=False)

    # Mirrors Application.selection_status
    selection_status = Column(String(30), default="PENDING", nullable=False)
    generated_at = Column(DateTime(timezone=True), nullable=True)
    generated_by = Column(Integer, ForeignKey("admin_users.id"), nullable=True)

    application = relationship("Application")

    def to_dict(self):
        return {
            "rank": self.rank,
            "application_id": self.application_id,
            "application_no": self.application.application_no if self.application else None,
            "score": float(self.score) if self.score is not None else None,
            "education_score": float(self.education_score or 0),
            "marks_score": float(self.marks_score or 0),
            "experience_score": float(self.experience_score or 0),
            "age_score": float(self.age_score or 0),
            "local_preference_score": float(self.local_preference_score or 0),
            "is_local_candidate": self.is_local_candidate,
            "selection_status": self.selection_status,
        }
