# portal/models/application.py
from sqlalchemy import (
    Column, String, Integer, Boolean, Date, DateTime, Text, Numeric, ForeignKey, UniqueConstraint
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from portal.database import Base
from portal.models.types import JSONType


class Application(Base):
    __tablename__ = "applications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    application_no = Column(String(20), unique=True, nullable=True)
    applicant_id = Column(Integer, ForeignKey("applicant_master.id"), nullable=False, index=True)
    post_id = Column(Integer, ForeignKey("post_master.id"), nullable=False, index=True)
    district_id = Column(Integer, ForeignKey("district_master.id"), nullable=True)

    status = Column(String(30), nullable=False, default="DRAFT", index=True)
    selection_status = Column(String(30), nullable=True)
    is_locked = Column(Boolean, default=False, nullable=False)
    declaration_accepted = Column(Boolean, default=False, nullable=False)
    submitted_at = Column(DateTime(timezone=True), nullable=True)

    # Eligibility snapshot taken at submission
    system_eligibility = Column(Boolean, nullable=True)
    system_eligibility_reason = Column(Text, nullable=True)
    eligibility_checked_at = Column(DateTime(timezone=True), nullable=True)

    merit_score = Column(Numeric(14, 2), nullable=True)
    document_verified = Column(Boolean, default=False, nullable=False)
    verified_by = Column(Integer, ForeignKey("admin_users.id"), nullable=True)
    verified_at = Column(DateTime(timezone=True), nullable=True)
    verification_remarks = Column(Text, nullable=True)
    rejection_reason = Column(Text, nullable=True)
    auto_rejected_reason = Column(Text, nullable=True)
    selected_at = Column(DateTime(timezone=True), nullable=True)
    selected_by = Column(Integer, ForeignKey("admin_users.id"), nullable=True)

    # Applicant snapshot
    gender = Column(String(20), nullable=True)
    dob = Column(Date, nullable=True)
    aadhaar_no = Column(String(20), nullable=True)
    address = Column(Text, nullable=True)
    is_domicile = Column(Boolean, default=False, nullable=False)

    is_deleted = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    applicant = relationship("ApplicantMaster")
    post = relationship("PostMaster")
    status_history = relationship(
        "ApplicationStatusHistory", back_populates="application",
        order_by="ApplicationStatusHistory.id",
    )
    eligibility_result = relationship("EligibilityResult", uselist=False, back_populates="application")

    def __repr__(self):
        return f"<Application {self.id} [{self.status}] applicant={self.applicant_id} post={self.post_id}>"

    def to_dict(self):
        return {
            "application_id": self.id,
            "application_no": self.application_no,
            "applicant_id": self.applicant_id,
            "post_id": self.post_id,
            "post_name": self.post.post_name if self.post else None,
            "district_id": self.district_id,
            "status": self.status,
            "selection_status": self.selection_status,
            "is_locked": self.is_locked,
            "declaration_accepted": self.declaration_accepted,
            "system_eligibility": self.system_eligibility,
            "system_eligibility_reason": self.system_eligibility_reason,
            "merit_score": float(self.merit_score) if self.merit_score is not None else None,
            "document_verified": self.document_verified,
            "rejection_reason": self.rejection_reason,
            "auto_rejected_reason": self.auto_rejected_reason,
            "submitted_at": self.submitted_at.isoformat() if self.submitted_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class ApplicationStatusHistory(Base):
    """Append-only. One row per status mutation."""
    __tablename__ = "application_status_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    application_id = Column(Integer, ForeignKey("applications.id"), nullable=False, index=True)
    old_status = Column(String(30), nullable=True)
    new_status = Column(String(30), nullable=False)
    changed_by = Column(Integer, nullable=True)
    changed_by_type = Column(String(20), nullable=False)
    remarks = Column(Text, nullable=True)
    history_metadata = Column("metadata", JSONType, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    application = relationship("Application", back_populates="status_history")

    def to_dict(self):
        return {
            "old_status": self.old_status,
            "new_status": self.new_status,
            "changed_by": self.changed_by,
            "changed_by_type": self.changed_by_type,
            "remarks": self.remarks,
            "metadata": self.history_metadata,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class ApplicationStageHistory(Base):
    """Stage occupancy. At most one open row (exited_at is NULL) per application."""
    __tablename__ = "application_stage_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    application_id = Column(Integer, ForeignKey("applications.id"), nullable=False, index=True)
    stage = Column(String(30), nullable=False)
    entered_at = Column(DateTime(timezone=True), nullable=False)
    entered_by = Column(Integer, nullable=True)
    entered_by_type = Column(String(20), nullable=False)
    exited_at = Column(DateTime(timezone=True), nullable=True)
    exited_by = Column(Integer, nullable=True)
    exited_by_type = Column(String(20), nullable=True)
    remarks = Column(Text, nullable=True)

    def to_dict(self):
        return {
            "stage": self.stage,
            "entered_at": self.entered_at.isoformat() if self.entered_at else None,
            "entered_by": self.entered_by,
            "entered_by_type": self.entered_by_type,
            "exited_at": self.exited_at.isoformat() if self.exited_at else None,
            "remarks": self.remarks,
        }


class EligibilityResult(Base):
    __tablename__ = "eligibility_results"

    id = Column(Integer, primary_key=True, autoincrement=True)
    application_id = Column(Integer, ForeignKey("applications.id"), unique=True, nullable=False)
    is_eligible = Column(Boolean, nullable=False)
    checks = Column(JSONType, nullable=True)
    failed_checks = Column(JSONType, nullable=True)
    missing_documents = Column(JSONType, nullable=True)
    evaluated_at = Column(DateTime(timezone=True), nullable=False)

    application = relationship("Application", back_populates="eligibility_result")


class DocumentVerification(Base):
    __tablename__ = "document_verifications"
    __table_args__ = (UniqueConstraint("application_id", "document_id", name="uq_document_verification"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    application_id = Column(Integer, ForeignKey("applications.id"), nullable=False, index=True)
    document_id = Column(Integer, ForeignKey("applicant_documents.id"), nullable=False)
    verification_status = Column(String(20), default="PENDING", nullable=False)
    verified_by = Column(Integer, ForeignKey("admin_users.id"), nullable=True)
    verified_at = Column(DateTime(timezone=True), nullable=True)
    remarks = Column(Text, nullable=True)


class SequenceCounter(Base):
    __tablename__ = "sequence_counters"
    __table_args__ = (UniqueConstraint("counter_type", "year_month", name="uq_sequence_counter"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    counter_type = Column(String(30), nullable=False)
    year_month = Column(String(5), nullable=False)  # YY-MM
    last_value = Column(Integer, default=0, nullable=False)
