# portal/models/post.py
from sqlalchemy import Column, String, Integer, Boolean, Date, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from portal.database import Base


class PostMaster(Base):
    __tablename__ = "post_master"
    __table_args__ = (CheckConstraint("filled_positions <= total_positions", name="ck_post_capacity"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    post_name = Column(String(150), nullable=False, index=True)
    post_code = Column(String(50), unique=True, nullable=False)
    component_id = Column(Integer, ForeignKey("components.id"), nullable=True)
    district_id = Column(Integer, ForeignKey("district_master.id"), nullable=True)

    # Eligibility requirements
    min_age = Column(Integer, nullable=True)
    max_age = Column(Integer, nullable=True)
    min_education_level_id = Column(Integer, ForeignKey("education_levels.id"), nullable=True)
    max_education_level_id = Column(Integer, ForeignKey("education_levels.id"), nullable=True)
    min_experience_months = Column(Integer, default=0, nullable=False)

    # Capacity: filled_positions never exceeds total_positions
    total_positions = Column(Integer, default=1, nullable=False)
    filled_positions = Column(Integer, default=0, nullable=False)

    is_active = Column(Boolean, default=True, nullable=False)
    is_closed = Column(Boolean, default=False, nullable=False)
    closing_date = Column(Date, nullable=True)
    closed_at = Column(DateTime(timezone=True), nullable=True)
    closed_by = Column(String(50), nullable=True)
    is_deleted = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    component = relationship("Component")
    district = relationship("DistrictMaster")
    min_education_level = relationship("EducationLevel", foreign_keys=[min_education_level_id])
    max_education_level = relationship("EducationLevel", foreign_keys=[max_education_level_id])

    @property
    def remaining_positions(self):
        return max(0, (self.total_positions or 0) - (self.filled_positions or 0))

    def is_open_on(self, day):
        if not self.is_active or self.is_closed or self.is_deleted:
            return False
        return self.closing_date is None or self.closing_date >= day

    def __repr__(self):
        return f"<PostMaster {self.post_code}: {self.filled_positions}/{self.total_positions}>"

    def to_dict(self):
        return {
            "post_id": self.id,
            "post_name": self.post_name,
            "post_code": self.post_code,
            "component_id": self.component_id,
            "component_name": self.component.component_name if self.component else None,
            "district_id": self.district_id,
            "district_name": self.district.district_name if self.district else None,
            "min_age": self.min_age,
            "max_age": self.max_age,
            "min_experience_months": self.min_experience_months,
            "total_positions": self.total_positions,
            "filled_positions": self.filled_positions,
            "is_active": self.is_active,
            "is_closed": self.is_closed,
            "closing_date": self.closing_date.isoformat() if self.closing_date else None,
        }
